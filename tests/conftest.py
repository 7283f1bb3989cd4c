"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from accounts.database import Database, build_engine
from accounts.models.password_reset import PasswordResetRequest  # noqa: F401
from accounts.models.user import User  # noqa: F401
from accounts.security import BcryptHasher
from accounts.services.users import UserManager, get_user_manager


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class SequentialTokens:
    """Predictable token source: token-1, token-2, ..."""

    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"token-{self.count}"


@pytest.fixture(name="spans")
def spans_fixture():
    """Collected (name, seconds) pairs reported by the timing hook."""
    return []


@pytest.fixture(name="db")
def db_fixture(spans: list):
    """Create an in-memory SQLite database for tests."""
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    db = Database(engine, observer=lambda name, seconds: spans.append((name, seconds)))
    db.create_all()
    try:
        yield db
    finally:
        engine.dispose()


@pytest.fixture(name="clock")
def clock_fixture():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture(name="tokens")
def tokens_fixture():
    return SequentialTokens()


@pytest.fixture(name="hasher")
def hasher_fixture():
    # Minimum cost keeps the suite fast
    return BcryptHasher(rounds=4)


@pytest.fixture(name="users")
def users_fixture(db: Database, hasher: BcryptHasher, clock: FrozenClock, tokens: SequentialTokens):
    return UserManager(db, hasher=hasher, clock=clock, token_source=tokens)


@pytest.fixture(name="alice")
def alice_fixture(users: UserManager):
    return users.create("Alice@Example.com", "hunter2")


@pytest.fixture(name="client")
def client_fixture(users: UserManager):
    """Create a test client wired to the test user manager."""
    from main import app

    app.dependency_overrides[get_user_manager] = lambda: users
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

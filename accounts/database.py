"""Database engine, sessions and transaction scoping."""

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import TypeVar

from sqlalchemy import DateTime, Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.types import TypeDecorator

from accounts.config import get_settings

logger = logging.getLogger("accounts.database")

T = TypeVar("T")

# Receives (span name, elapsed seconds) for every timed operation.
Observer = Callable[[str, float], None]


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TZDateTime(TypeDecorator):
    """Timezone-aware timestamp stored as UTC.

    SQLite drops the offset on the way in, so values read back are naive.
    Normalising to UTC on write and re-attaching UTC on read keeps every
    timestamp aware on all backends, and keeps string comparison in SQLite
    consistent with chronological order.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to a timezone-aware column")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def build_engine(url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, enabling foreign keys on SQLite connections."""
    is_sqlite = url.startswith("sqlite")
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        **kwargs,
    )
    if is_sqlite:

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


class Database:
    """Scoped connection and transaction acquisition over a pooled engine."""

    def __init__(self, engine: Engine, observer: Observer | None = None) -> None:
        self.engine = engine
        self.observer = observer
        self._sessions = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)

    @contextmanager
    def connection(self) -> Iterator[Session]:
        """Yield a session for reads. Nothing is committed."""
        session = self._sessions()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session inside a transaction.

        Commits when the block exits normally, rolls back and re-raises otherwise.
        """
        with self._sessions.begin() as session:
            yield session

    def run_in_transaction(self, fn: Callable[[Session], T]) -> T:
        """Run fn(session) in a single transaction and return its result."""
        with self.transaction() as session:
            return fn(session)

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        """Report the duration of the wrapped block, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            logger.debug("%s took %.1fms", name, elapsed * 1000)
            if self.observer is not None:
                self.observer(name, elapsed)

    def create_all(self) -> None:
        """Create all tables. Production schemas are managed by alembic."""
        Base.metadata.create_all(bind=self.engine)


@lru_cache
def get_database() -> Database:
    """Get the process-wide database handle."""
    settings = get_settings()
    return Database(build_engine(settings.DATABASE_URL, echo=settings.DEBUG))

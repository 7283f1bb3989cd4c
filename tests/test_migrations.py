"""Tests for the alembic migration chain."""

from argparse import Namespace
from pathlib import Path

import pytest
from sqlalchemy import inspect

from accounts.database import Base, Database, build_engine
from accounts.security import BcryptHasher
from accounts.services.users import UserManager
from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(name="database_url")
def database_url_fixture(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'accounts.db'}"


def alembic_config(database_url: str) -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.cmd_opts = Namespace(x=[f"database_url={database_url}"])
    return config


class TestMigrations:
    """Tests for upgrading and downgrading the schema."""

    def test_upgrade_matches_models(self, database_url: str):
        command.upgrade(alembic_config(database_url), "head")

        engine = build_engine(database_url)
        try:
            inspector = inspect(engine)
            for name, table in Base.metadata.tables.items():
                columns = {column["name"] for column in inspector.get_columns(name)}
                assert columns == set(table.columns.keys())

            unique = {c["name"] for c in inspector.get_unique_constraints("user")}
            assert "uq_user_username" in unique
            assert inspector.get_pk_constraint("password_reset_requests")["constrained_columns"] == ["user_id"]
            [fk] = inspector.get_foreign_keys("password_reset_requests")
            assert fk["referred_table"] == "user"
        finally:
            engine.dispose()

    def test_migrated_schema_supports_reset_flow(self, database_url: str):
        command.upgrade(alembic_config(database_url), "head")

        engine = build_engine(database_url)
        try:
            users = UserManager(Database(engine), hasher=BcryptHasher(rounds=4))
            user = users.create("Alice@Example.com", "hunter2")
            _, token = users.create_reset_token("alice@example.com", "127.0.0.1", "pytest")
            assert users.reset_password(user.id, token, "newpass1") is True
            assert users.login("alice@example.com", "newpass1") is not None
        finally:
            engine.dispose()

    def test_downgrade_drops_tables(self, database_url: str):
        config = alembic_config(database_url)
        command.upgrade(config, "head")
        command.downgrade(config, "base")

        engine = build_engine(database_url)
        try:
            assert set(inspect(engine).get_table_names()) == {"alembic_version"}
        finally:
            engine.dispose()

"""Alembic environment for the accounts schema.

The database URL comes from settings unless overridden on the command line:

    alembic -x database_url=postgresql://... upgrade head
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import pool

from alembic import context

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from accounts.config import get_settings
from accounts.database import Base, TZDateTime, build_engine

# Register both tables with Base.metadata
from accounts.models.password_reset import PasswordResetRequest  # noqa: F401
from accounts.models.user import User  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("database_url") or get_settings().DATABASE_URL


def render_item(type_: str, obj, autogen_context):
    """Emit TZDateTime columns as plain timezone-aware DateTime in revisions."""
    if type_ == "type" and isinstance(obj, TZDateTime):
        return "sa.DateTime(timezone=True)"
    return False


def configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_item": render_item,
        # SQLite cannot ALTER constraints in place
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without a connection."""
    url = database_url()
    context.configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"}, **configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the migrations over a live connection."""
    url = database_url()
    connectable = build_engine(url, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **configure_options(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

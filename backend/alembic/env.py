"""
Alembic environment for the workshop booking schema.

The URL comes from settings (DATABASE_URL_SYNC) unless MIGRATIONS_DATABASE_URL
is set, which lets CI point migrations at a throwaway database. SQLite targets
run in batch mode since it cannot ALTER most constraints in place.
"""

import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from workshop_booking.db.base import Base
import workshop_booking.models  # noqa: F401 - registers every table on Base.metadata
from workshop_booking.core.config import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return os.getenv("MIGRATIONS_DATABASE_URL") or get_settings().DATABASE_URL_SYNC


def _is_sqlite(url: str) -> bool:
    return url.strip().lower().startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit the migration as SQL without connecting."""
    url = _database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _database_url()
    section = config.get_section(config.config_ini_section, {}) or {}
    section["sqlalchemy.url"] = url
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_is_sqlite(url),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

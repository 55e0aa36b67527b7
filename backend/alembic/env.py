"""Alembic environment configuration."""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

# Make the ``portal`` package importable when alembic runs from the repo root.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal.config import get_settings  # noqa: E402
from portal.db import models  # noqa: E402,F401
from portal.db.base import Base  # noqa: E402

config = context.config

# scripts/run_migrations.py configures logging itself and opts out.
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def get_url() -> str:
    """Prefer an explicit ``sqlalchemy.url``, else the portal settings."""
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    url = get_settings().database_url
    if not url:
        raise RuntimeError("PORTAL_DATABASE_URL must be set before running migrations.")
    return url


def run_migrations_offline() -> None:
    """Emit SQL scripts without connecting to the database."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

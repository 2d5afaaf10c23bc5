# app/db/migrations/env.py
from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from app.db.base import Base
from app.db.session import sync_database_url
import app.db.models  # noqa: F401  реєструє таблиці в Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

CONFIGURE_OPTS = dict(
    target_metadata=Base.metadata,
    compare_type=True,
    compare_server_default=True,
)


def run_offline() -> None:
    """SQL-скрипт без підключення (alembic upgrade --sql)."""
    context.configure(
        url=sync_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(sync_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **CONFIGURE_OPTS)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()

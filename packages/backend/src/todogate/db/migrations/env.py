"""Alembic environment for the todogate schema.

Learn: The URL always comes from TODOGATE_DATABASE_URL (never alembic.ini),
so `alembic upgrade head` migrates the same database the app serves from.
Online runs go through an async engine, the same driver stack as the app.

SQLite can't ALTER most columns in place; with a sqlite+aiosqlite URL the
migrations run in batch mode (copy-and-move tables) instead.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from todogate.config import settings
from todogate.db.models import Base

if not settings.database_url:
    raise RuntimeError("TODOGATE_DATABASE_URL must be set to run migrations")

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

DATABASE_URL = make_url(settings.database_url)
IS_SQLITE = DATABASE_URL.get_backend_name() == "sqlite"


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        render_as_batch=IS_SQLITE,
        **kwargs,
    )


def run_offline() -> None:
    """Emit SQL to stdout instead of connecting (alembic upgrade --sql)."""
    _configure(
        url=DATABASE_URL.render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    asyncio.run(run_online())

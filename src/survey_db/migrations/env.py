"""Alembic environment running migrations over the async engine.

The same async URL the server uses (asyncpg or aiosqlite) drives
migrations; Alembic's synchronous runner executes inside ``run_sync``.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection

import survey_db.models  # noqa: F401  (populates Base.metadata)
from survey_db.config import get_async_url
from survey_db.engine import build_engine
from survey_db.models.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
URL = get_async_url()


def _configure(**kwargs) -> None:
    # SQLite needs batch mode for ALTER TABLE in later revisions
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=URL.startswith("sqlite"),
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_with(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = build_engine(URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())

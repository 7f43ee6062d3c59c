"""Async engine and session factory.

``get_engine()`` / ``get_session_factory()`` hand out one process-wide
engine built from :func:`survey_db.config.get_async_url`; the server
releases it with ``dispose_engine()`` on shutdown.  ``build_engine()`` and
``build_session_factory()`` are the same construction without the
singleton, for tests and scripts that bring their own URL.
"""

import os

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from survey_db.config import get_async_url

POOL_SIZE = int(os.getenv("PG_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("PG_MAX_OVERFLOW", "10"))

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine for ``url``.

    Server databases get a sized connection pool unless ``kwargs`` choose
    a ``poolclass``; SQLite engines take ``kwargs`` unchanged.
    """
    if make_url(url).get_backend_name() != "sqlite" and "poolclass" not in kwargs:
        kwargs.setdefault("pool_size", POOL_SIZE)
        kwargs.setdefault("max_overflow", MAX_OVERFLOW)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows stay readable after commit; routes serialise them afterwards
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_async_url())
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the singleton."""
    global _engine, _session_factory
    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()

"""SqlKeyValueStore — KeyValueStore backed by ``session_store_entries``.

Each operation runs in its own short transaction so a write is durable
once the awaited call returns.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from survey_db.repository import EntryRepository
from survey_engine.interfaces import KeyValueStore

logger = logging.getLogger(__name__)


class SqlKeyValueStore(KeyValueStore):
    """Durable key/value store for server-side survey engines.

    Args:
        session_factory: factory producing ``AsyncSession`` objects, usually
            :func:`survey_db.engine.get_session_factory`
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._repo = EntryRepository()

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as db:
            entry = await self._repo.get(db, key)
            return entry.value if entry is not None else None

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as db:
            await self._repo.upsert(db, key, value)
            await db.commit()

    async def remove(self, key: str) -> None:
        async with self._session_factory() as db:
            removed = await self._repo.delete(db, key)
            await db.commit()
        if not removed:
            logger.debug("Remove of missing key %s ignored", key)

    async def keys(self, prefix: str = "") -> list[str]:
        async with self._session_factory() as db:
            return await self._repo.list_keys(db, prefix)

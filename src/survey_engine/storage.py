"""Persisted Session Store — namespaced, corruption-tolerant session storage.

Two layers:

  - :class:`InMemoryStore` is the simplest :class:`KeyValueStore`; it backs
    tests and hosts that only need resumability within one process.  The
    durable SQL-backed store lives in ``survey_db.store``.
  - :class:`SessionStorage` scopes a store to one (namespace, identity,
    survey instance) triple and owns the on-disk encoding.

Keys written per triple::

    {namespace}:{identity}:{instance_key}:session    -> PersistedSession JSON
    {namespace}:{identity}:{instance_key}:submitted  -> "true" | "false"

Corrupt values are logged, purged and reported as absent.  A failing store
is treated the same way for reads, removals and the submitted flag, so
resumability degrades to "start over" instead of raising.  Only
:meth:`SessionStorage.save` propagates store errors.
"""

from __future__ import annotations

import logging

import pydantic

from survey_engine.interfaces import KeyValueStore
from survey_engine.models.session import PersistedSession, SessionState

logger = logging.getLogger(__name__)


class InMemoryStore(KeyValueStore):
    """Dict-backed key/value store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Snapshot of stored keys, sorted (handy for inspection)."""
        return sorted(self._data)


class SessionStorage:
    """Session persistence for one respondent and one survey instance.

    Args:
        store: the backing key/value store
        namespace: call-site namespace (e.g. ``"sentiment"``)
        identity: respondent identity within that namespace
        instance_key: the survey instance
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        namespace: str,
        identity: str,
        instance_key: str,
    ) -> None:
        self._store = store
        self.namespace = namespace
        self.identity = identity
        self.instance_key = instance_key

    @property
    def session_key(self) -> str:
        return f"{self._prefix}:session"

    @property
    def submitted_key(self) -> str:
        return f"{self._prefix}:submitted"

    @property
    def _prefix(self) -> str:
        return f"{self.namespace}:{self.identity}:{self.instance_key}"

    # ------------------------------------------------------------------
    # Session entry
    # ------------------------------------------------------------------

    async def load(self) -> PersistedSession | None:
        """Return the stored session, or ``None`` if absent or unreadable."""
        try:
            raw = await self._store.get(self.session_key)
        except Exception as exc:
            logger.warning("Session entry %s unreadable, starting over: %s", self.session_key, exc)
            return None
        if raw is None:
            return None
        try:
            return PersistedSession.model_validate_json(raw)
        except pydantic.ValidationError:
            logger.warning(
                "Discarding unreadable session entry %s", self.session_key,
            )
            await self._discard(self.session_key)
            return None

    async def save(self, state: SessionState) -> None:
        """Write ``state`` through to the store.

        Store errors propagate: the caller must not adopt a state that was
        not persisted.
        """
        entry = PersistedSession(
            answers=state.answers,
            current_index=state.current_index,
            visited=sorted(state.visited),
        )
        await self._store.set(self.session_key, entry.model_dump_json())

    async def purge(self) -> None:
        """Remove the session entry (after a seal, or when remote wins)."""
        await self._discard(self.session_key)

    # ------------------------------------------------------------------
    # "Known submitted" flag: fallback for unreachable status checks
    # ------------------------------------------------------------------

    async def is_known_submitted(self) -> bool:
        """True only if a previous successful submission set the flag."""
        try:
            raw = await self._store.get(self.submitted_key)
        except Exception as exc:
            logger.warning("Submitted flag %s unreadable: %s", self.submitted_key, exc)
            return False
        if raw is None:
            return False
        if raw == "true":
            return True
        if raw == "false":
            return False
        logger.warning(
            "Discarding unreadable submitted flag %s=%r", self.submitted_key, raw,
        )
        await self._discard(self.submitted_key)
        return False

    async def mark_submitted(self) -> bool:
        """Set the flag; returns False if the store refused the write."""
        try:
            await self._store.set(self.submitted_key, "true")
        except Exception as exc:
            logger.warning("Could not record submitted flag %s: %s", self.submitted_key, exc)
            return False
        return True

    async def clear_submitted(self) -> None:
        await self._discard(self.submitted_key)

    async def _discard(self, key: str) -> None:
        # A stale entry left behind is reconciled on the next bootstrap
        try:
            await self._store.remove(key)
        except Exception as exc:
            logger.warning("Could not remove %s: %s", key, exc)

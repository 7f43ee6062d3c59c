"""Async repositories for the survey tables.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Answer validation belongs to the server layer;
the repositories only enforce structural constraints through the schema
(one submission per respondent and survey instance).
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.models.entry import StoredEntry
from survey_db.models.submission import SurveySubmission


def payload_digest(answers: list[dict[str, Any]]) -> str:
    """Stable sha256 hex digest of a submission's answers."""
    canonical = json.dumps(answers, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class EntryRepository:
    """Read/write operations on ``session_store_entries``."""

    async def get(self, db: AsyncSession, key: str) -> StoredEntry | None:
        return await db.get(StoredEntry, key)

    async def upsert(self, db: AsyncSession, key: str, value: str) -> StoredEntry:
        """Insert or overwrite ``key``.  The caller must commit."""
        entry = await db.get(StoredEntry, key)
        if entry is None:
            entry = StoredEntry(key=key, value=value)
            db.add(entry)
        else:
            entry.value = value
            entry.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return entry

    async def delete(self, db: AsyncSession, key: str) -> bool:
        """Remove ``key``; returns False when it did not exist."""
        entry = await db.get(StoredEntry, key)
        if entry is None:
            return False
        await db.delete(entry)
        await db.flush()
        return True

    async def list_keys(self, db: AsyncSession, prefix: str = "") -> list[str]:
        stmt = select(StoredEntry.key).order_by(StoredEntry.key)
        if prefix:
            stmt = stmt.where(StoredEntry.key.startswith(prefix, autoescape=True))
        result = await db.execute(stmt)
        return list(result.scalars().all())


class SubmissionRepository:
    """Read/write operations on ``survey_submissions``."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        *,
        respondent_id: str,
        instance_key: str,
        answers: list[dict[str, Any]],
    ) -> SurveySubmission:
        """Insert a submission row.  The caller must ``await db.commit()``.

        Raises:
            sqlalchemy.exc.IntegrityError: the respondent already submitted
                this instance
        """
        submission = SurveySubmission(
            respondent_id=respondent_id,
            instance_key=instance_key,
            answers=answers,
            payload_digest=payload_digest(answers),
        )
        db.add(submission)
        await db.flush()
        return submission

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(
        self, db: AsyncSession, respondent_id: str, instance_key: str
    ) -> SurveySubmission | None:
        """Fetch the submission for the (respondent_id, instance_key) pair."""
        stmt = select(SurveySubmission).where(
            SurveySubmission.respondent_id == respondent_id,
            SurveySubmission.instance_key == instance_key,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(
        self, db: AsyncSession, respondent_id: str, instance_key: str
    ) -> bool:
        return await self.get(db, respondent_id, instance_key) is not None

    async def list_by_respondent(
        self,
        db: AsyncSession,
        respondent_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[SurveySubmission]:
        """List a respondent's submissions, most recent first."""
        stmt = (
            select(SurveySubmission)
            .where(SurveySubmission.respondent_id == respondent_id)
            .order_by(SurveySubmission.submitted_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

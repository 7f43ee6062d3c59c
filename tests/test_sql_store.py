"""survey_db tests — SqlKeyValueStore and SubmissionRepository on SQLite."""

import pytest
from sqlalchemy.exc import IntegrityError

from survey_db.config import get_async_url, to_async_url
from survey_db.repository import SubmissionRepository, payload_digest
from survey_db.store import SqlKeyValueStore
from survey_engine.controller import SurveyEngine

from helpers.db import make_session_factory
from helpers.fakes import FAST, MockBackend

ANSWERS = [
    {"question_id": "hr-q1", "answer_text": "Smooth"},
    {"question_id": "hr-q2", "option_value": 4},
    {"question_id": "hr-q3", "amount": 80},
]


class TestSqlKeyValueStore:
    @pytest.mark.asyncio
    async def test_set_get_overwrite_remove(self):
        engine, factory = await make_session_factory()
        store = SqlKeyValueStore(factory)
        try:
            assert await store.get("k") is None
            await store.set("k", "v1")
            assert await store.get("k") == "v1"
            await store.set("k", "v2")
            assert await store.get("k") == "v2", "set must overwrite"
            await store.remove("k")
            assert await store.get("k") is None
            await store.remove("k")  # absent key is not an error
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_keys_by_prefix(self):
        engine, factory = await make_session_factory()
        store = SqlKeyValueStore(factory)
        try:
            await store.set("sentiment:u1:a:session", "{}")
            await store.set("sentiment:u1:a:submitted", "true")
            await store.set("hr_feedback:u1:hr-feedback:session", "{}")
            assert await store.keys("sentiment:") == [
                "sentiment:u1:a:session",
                "sentiment:u1:a:submitted",
            ]
            assert len(await store.keys()) == 3
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_engine_resumes_from_sql_store(self):
        db_engine, factory = await make_session_factory()
        backend = MockBackend()

        def _survey():
            return SurveyEngine(
                backend, SqlKeyValueStore(factory), namespace="sentiment",
                identity="e-42", instance_key="sentiment-form-1@2026-01", **FAST,
            )

        try:
            first = _survey()
            await first.start()
            await first.answer("q1", "Persisted in SQL")
            await first.close()

            second = _survey()
            view = await second.start()
            assert view.answers == {"q1": "Persisted in SQL"}
            assert second.tracker.state.visited == {"q1"}
            await second.close()
        finally:
            await db_engine.dispose()


class TestSubmissionRepository:
    @pytest.mark.asyncio
    async def test_create_and_lookup(self):
        engine, factory = await make_session_factory()
        repo = SubmissionRepository()
        try:
            async with factory() as db:
                row = await repo.create(
                    db, respondent_id="hr-7", instance_key="hr-feedback", answers=ANSWERS,
                )
                await db.commit()
                assert row.payload_digest == payload_digest(ANSWERS)

            async with factory() as db:
                assert await repo.exists(db, "hr-7", "hr-feedback")
                assert not await repo.exists(db, "hr-8", "hr-feedback")
                fetched = await repo.get(db, "hr-7", "hr-feedback")
                assert fetched.answers == ANSWERS
                assert [s.instance_key for s in await repo.list_by_respondent(db, "hr-7")] == [
                    "hr-feedback"
                ]
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_one_submission_per_respondent_and_instance(self):
        engine, factory = await make_session_factory()
        repo = SubmissionRepository()
        try:
            async with factory() as db:
                await repo.create(db, respondent_id="u1", instance_key="hr-feedback", answers=ANSWERS)
                await db.commit()

            async with factory() as db:
                with pytest.raises(IntegrityError):
                    await repo.create(
                        db, respondent_id="u1", instance_key="hr-feedback", answers=ANSWERS,
                    )
        finally:
            await engine.dispose()


class TestPayloadDigest:
    def test_key_order_does_not_matter(self):
        reordered = [dict(reversed(list(a.items()))) for a in ANSWERS]
        assert payload_digest(reordered) == payload_digest(ANSWERS)

    def test_values_matter(self):
        changed = [*ANSWERS[:2], {"question_id": "hr-q3", "amount": 81}]
        assert payload_digest(changed) != payload_digest(ANSWERS)


class TestDatabaseUrl:
    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/s")
        monkeypatch.setenv("PG_HOST", "ignored")
        assert get_async_url() == "postgresql+asyncpg://u:p@db:5432/s"

    def test_built_from_pg_vars(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("PG_HOST", "pg")
        monkeypatch.setenv("PG_DATABASE", "surveys")
        assert get_async_url() == "postgresql+asyncpg://survey:survey@pg:5432/surveys"

    def test_driver_swap(self):
        assert to_async_url("sqlite:///x.db") == "sqlite+aiosqlite:///x.db"
        assert to_async_url("postgres://h/db") == "postgresql+asyncpg://h/db"
        assert to_async_url("sqlite+aiosqlite://") == "sqlite+aiosqlite://", "Explicit driver kept"

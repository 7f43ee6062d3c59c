"""SubmissionCoordinator tests — remote status fallback and submit-once.

Uses MockBackend for the remote side; the tracker and gate are real, with
dwell disabled (units=0) unless a test is about the gate.
"""

import asyncio

import pytest

from survey_engine.catalog import CatalogLoader
from survey_engine.coordinator import SubmissionCoordinator, build_payload
from survey_engine.dwell import DwellGate
from survey_engine.errors import (
    DwellViolation,
    IncompleteSurvey,
    SessionSealed,
    SubmissionFailure,
    SubmissionInProgress,
    ValidationError,
)
from survey_engine.models.payload import SubmissionAck
from survey_engine.storage import InMemoryStore, SessionStorage
from survey_engine.tracker import ProgressTracker

from helpers.fakes import FailingStore, MockBackend

KEY = "hr-feedback"


async def _setup(backend, store=None, units=0):
    storage = SessionStorage(
        store if store is not None else InMemoryStore(),
        namespace="hr_feedback", identity="hr-7", instance_key=KEY,
    )
    gate = DwellGate(units=units, tick_seconds=10)
    questions = await CatalogLoader(backend).load(KEY)
    tracker = await ProgressTracker.restore(questions, storage, gate)
    await tracker.arrive()
    return SubmissionCoordinator(backend, storage), tracker, gate, storage


async def _answer_all(tracker):
    await tracker.record_answer("q1", "Smooth rollout")
    await tracker.record_answer("q2", "4")
    await tracker.record_answer("q3", 75)
    await tracker.jump_to(2)


# =====================================================================
# Remote status
# =====================================================================


class TestRemoteStatus:
    @pytest.mark.asyncio
    async def test_remote_complete_purges_local_session(self):
        backend = MockBackend(complete=True)
        coordinator, tracker, _, storage = await _setup(backend)
        await tracker.record_answer("q1", "draft")

        record = await coordinator.check_remote_status()
        assert record.is_complete
        assert record.source == "remote"
        assert await storage.load() is None, "Remote wins over local progress"
        assert await storage.is_known_submitted()

    @pytest.mark.asyncio
    async def test_remote_incomplete_clears_stale_flag(self):
        backend = MockBackend(complete=False)
        coordinator, _, _, storage = await _setup(backend)
        await storage.mark_submitted()

        record = await coordinator.check_remote_status()
        assert not record.is_complete
        assert not await storage.is_known_submitted(), "Remote truth resets the cache"

    @pytest.mark.asyncio
    async def test_unreachable_without_flag_defaults_to_not_complete(self):
        backend = MockBackend()
        backend.status_error = ConnectionError("offline")
        coordinator, _, _, _ = await _setup(backend)

        record = await coordinator.check_remote_status()
        assert not record.is_complete
        assert record.source == "default"
        assert coordinator.remote_status is record

    @pytest.mark.asyncio
    async def test_unreachable_with_flag_uses_local_cache(self):
        backend = MockBackend()
        backend.status_error = TimeoutError()
        coordinator, _, _, storage = await _setup(backend)
        await storage.mark_submitted()

        record = await coordinator.check_remote_status()
        assert record.is_complete
        assert record.source == "local_cache"

    @pytest.mark.asyncio
    async def test_remote_complete_with_failing_removal(self):
        store = FailingStore()
        coordinator, tracker, _, storage = await _setup(MockBackend(complete=True), store)
        await tracker.record_answer("q1", "draft")
        store.fail_removes = True

        record = await coordinator.check_remote_status()
        assert record.is_complete, "Remote answer stands despite the store"
        assert await storage.is_known_submitted()

    @pytest.mark.asyncio
    async def test_remote_incomplete_with_failing_removal(self):
        store = FailingStore()
        coordinator, _, _, storage = await _setup(MockBackend(complete=False), store)
        await storage.mark_submitted()
        store.fail_removes = True

        record = await coordinator.check_remote_status()
        assert not record.is_complete
        assert record.source == "remote"

    @pytest.mark.asyncio
    async def test_unreachable_with_unreadable_store_defaults(self):
        backend = MockBackend()
        backend.status_error = ConnectionError("offline")
        store = FailingStore()
        coordinator, _, _, _ = await _setup(backend, store)
        store.fail_reads = True

        record = await coordinator.check_remote_status()
        assert not record.is_complete
        assert record.source == "default"


# =====================================================================
# Payload
# =====================================================================


class TestBuildPayload:
    @pytest.mark.asyncio
    async def test_fields_follow_question_type(self):
        backend = MockBackend()
        _, tracker, _, _ = await _setup(backend)
        await _answer_all(tracker)

        payload = build_payload("hr-7", tracker.questions, tracker.state)
        assert payload.identity == "hr-7"
        assert payload.survey_instance_key == KEY
        assert [a.model_dump(exclude_none=True) for a in payload.answers] == [
            {"question_id": "q1", "answer_text": "Smooth rollout"},
            {"question_id": "q2", "option_value": 4},
            {"question_id": "q3", "amount": 75},
        ]


# =====================================================================
# Submission
# =====================================================================


class TestSubmit:
    @pytest.mark.asyncio
    async def test_success_seals_purges_and_flags(self):
        backend = MockBackend()
        coordinator, tracker, gate, storage = await _setup(backend)
        await _answer_all(tracker)

        ack = await coordinator.submit(tracker, gate)
        assert ack.success
        assert len(backend.submissions) == 1
        assert len(backend.submissions[0].answers) == 3
        assert tracker.state.sealed
        assert await storage.load() is None, "Stored session purged after seal"
        assert await storage.is_known_submitted()
        assert coordinator.remote_status.is_complete

    @pytest.mark.asyncio
    async def test_acknowledged_submit_survives_failing_removal(self):
        store = FailingStore()
        backend = MockBackend()
        coordinator, tracker, gate, storage = await _setup(backend, store)
        await _answer_all(tracker)
        store.fail_removes = True

        ack = await coordinator.submit(tracker, gate)
        assert ack.success
        assert tracker.state.sealed
        assert await storage.is_known_submitted(), "Flag is written before the purge"
        assert not coordinator.submitting

    @pytest.mark.asyncio
    async def test_acknowledged_submit_survives_refused_flag_write(self):
        store = FailingStore()
        backend = MockBackend()
        coordinator, tracker, gate, storage = await _setup(backend, store)
        await _answer_all(tracker)
        store.fail_writes = True

        ack = await coordinator.submit(tracker, gate)
        assert ack.success
        assert tracker.state.sealed
        assert await storage.load() is None, "Session still purged"

    @pytest.mark.asyncio
    async def test_check_ready_refuses_incomplete_survey(self):
        backend = MockBackend()
        coordinator, tracker, gate, _ = await _setup(backend)
        await tracker.record_answer("q1", "only one")

        with pytest.raises(IncompleteSurvey):
            coordinator.check_ready(tracker, gate)
        assert not coordinator.submitting

    @pytest.mark.asyncio
    async def test_rejection_keeps_session_open(self):
        backend = MockBackend()
        backend.ack = SubmissionAck(success=False, message="Survey closed")
        coordinator, tracker, gate, storage = await _setup(backend)
        await _answer_all(tracker)

        with pytest.raises(SubmissionFailure, match="Survey closed"):
            await coordinator.submit(tracker, gate)
        assert not tracker.state.sealed
        assert (await storage.load()).answers["q3"] == 75, "Answers kept for retry"
        assert not await storage.is_known_submitted()
        assert not coordinator.submitting

    @pytest.mark.asyncio
    async def test_rejection_without_message(self):
        backend = MockBackend()
        backend.ack = SubmissionAck(success=False)
        coordinator, tracker, gate, _ = await _setup(backend)
        await _answer_all(tracker)
        with pytest.raises(SubmissionFailure, match="Save failed"):
            await coordinator.submit(tracker, gate)

    @pytest.mark.asyncio
    async def test_transport_error_is_network_error(self):
        backend = MockBackend()
        backend.submit_error = ConnectionResetError()
        coordinator, tracker, gate, _ = await _setup(backend)
        await _answer_all(tracker)

        with pytest.raises(SubmissionFailure, match="Network error"):
            await coordinator.submit(tracker, gate)
        assert not tracker.state.sealed

    @pytest.mark.asyncio
    async def test_retry_after_failure_succeeds(self):
        backend = MockBackend()
        backend.submit_error = ConnectionResetError()
        coordinator, tracker, gate, _ = await _setup(backend)
        await _answer_all(tracker)
        with pytest.raises(SubmissionFailure):
            await coordinator.submit(tracker, gate)

        backend.submit_error = None
        await coordinator.submit(tracker, gate)
        assert tracker.state.sealed
        assert len(backend.submissions) == 2

    @pytest.mark.asyncio
    async def test_reentrant_submit_is_refused(self):
        backend = MockBackend()
        backend.release = asyncio.Event()
        coordinator, tracker, gate, _ = await _setup(backend)
        await _answer_all(tracker)

        first = asyncio.create_task(coordinator.submit(tracker, gate))
        await asyncio.sleep(0)
        assert coordinator.submitting
        with pytest.raises(SubmissionInProgress):
            await coordinator.submit(tracker, gate)

        backend.release.set()
        await first
        assert len(backend.submissions) == 1, "Exactly one payload transmitted"

    @pytest.mark.asyncio
    async def test_submit_after_seal_is_refused(self):
        backend = MockBackend()
        coordinator, tracker, gate, _ = await _setup(backend)
        await _answer_all(tracker)
        await coordinator.submit(tracker, gate)

        with pytest.raises(SessionSealed):
            await coordinator.submit(tracker, gate)
        assert len(backend.submissions) == 1

    @pytest.mark.asyncio
    async def test_submit_refused_when_remote_complete(self):
        backend = MockBackend(complete=True)
        coordinator, tracker, gate, _ = await _setup(backend)
        await coordinator.check_remote_status()
        with pytest.raises(SessionSealed):
            await coordinator.submit(tracker, gate)
        assert backend.submissions == []

    @pytest.mark.asyncio
    async def test_dwell_checked_before_answers(self):
        backend = MockBackend()
        coordinator, tracker, gate, _ = await _setup(backend, units=3)
        with pytest.raises(DwellViolation, match="before submitting"):
            await coordinator.submit(tracker, gate)
        gate.cancel()

    @pytest.mark.asyncio
    async def test_current_question_checked_before_completeness(self):
        backend = MockBackend()
        coordinator, tracker, gate, _ = await _setup(backend)
        with pytest.raises(ValidationError, match="before submitting") as exc_info:
            await coordinator.submit(tracker, gate)
        assert not isinstance(exc_info.value, IncompleteSurvey)

    @pytest.mark.asyncio
    async def test_incomplete_survey_reports_counts(self):
        backend = MockBackend()
        coordinator, tracker, gate, _ = await _setup(backend)
        await tracker.record_answer("q1", "only one")

        with pytest.raises(IncompleteSurvey) as exc_info:
            await coordinator.submit(tracker, gate)
        assert exc_info.value.answered == 1
        assert exc_info.value.total == 3
        assert backend.submissions == []

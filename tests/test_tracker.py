"""ProgressTracker tests — navigation rules, persistence and sealing.

The tracker is exercised with a real DwellGate on a short tick and an
InMemoryStore, so every assertion about storage reads what was actually
written.
"""

import pytest

from survey_engine.catalog import CatalogLoader
from survey_engine.dwell import DwellGate
from survey_engine.errors import (
    DwellViolation,
    IncompleteSurvey,
    SessionSealed,
    ValidationError,
)
from survey_engine.models.session import SessionState
from survey_engine.storage import InMemoryStore, SessionStorage
from survey_engine.tracker import ProgressTracker

from helpers.fakes import FailingStore, MockBackend

KEY = "sentiment-form-1@2026-01"


async def _questions():
    return await CatalogLoader(MockBackend()).load(KEY)


def _storage(store):
    return SessionStorage(store, namespace="sentiment", identity="e-42", instance_key=KEY)


async def _tracker(store=None, units=3, tick=0.01):
    storage = _storage(store if store is not None else InMemoryStore())
    gate = DwellGate(units=units, tick_seconds=tick)
    tracker = await ProgressTracker.restore(await _questions(), storage, gate)
    await tracker.arrive()
    return tracker, gate, storage


async def _answer_and_advance(tracker, gate, value):
    await tracker.record_answer(tracker.current_question.id, value)
    await gate.wait()
    return await tracker.advance()


# =====================================================================
# Arrival and visited bookkeeping
# =====================================================================


class TestArrival:
    @pytest.mark.asyncio
    async def test_fresh_session_starts_at_first_question(self):
        tracker, gate, _ = await _tracker()
        assert tracker.state.current_index == 0
        assert tracker.state.visited == {"q1"}, "Current question must be visited"
        assert gate.blocking, "First visit arms the dwell gate"
        gate.cancel()

    def test_empty_catalog_is_rejected(self):
        with pytest.raises(ValueError):
            ProgressTracker(
                (), _storage(InMemoryStore()), DwellGate(), SessionState(instance_key=KEY),
            )

    @pytest.mark.asyncio
    async def test_answer_then_reload_keeps_position_and_visited(self):
        store = InMemoryStore()
        tracker, gate, _ = await _tracker(store)
        await tracker.record_answer("q1", "Great team")
        gate.cancel()

        reloaded, gate2, _ = await _tracker(store)
        assert reloaded.state.current_index == 0
        assert reloaded.state.visited == {"q1"}
        assert reloaded.state.answers == {"q1": "Great team"}
        assert not gate2.blocking, "q1 was already visited; no new countdown"


# =====================================================================
# Forward navigation
# =====================================================================


class TestAdvance:
    @pytest.mark.asyncio
    async def test_blocked_during_dwell(self):
        tracker, gate, _ = await _tracker(tick=10)
        await tracker.record_answer("q1", "text")
        with pytest.raises(DwellViolation):
            await tracker.advance()
        assert tracker.state.current_index == 0
        gate.cancel()

    @pytest.mark.asyncio
    async def test_blocked_without_answer(self):
        tracker, gate, _ = await _tracker()
        await gate.wait()
        with pytest.raises(ValidationError, match="before proceeding"):
            await tracker.advance()

    @pytest.mark.asyncio
    async def test_blank_text_does_not_satisfy(self):
        tracker, gate, _ = await _tracker()
        await tracker.record_answer("q1", "   ")
        await gate.wait()
        with pytest.raises(ValidationError):
            await tracker.advance()

    @pytest.mark.asyncio
    async def test_advance_moves_and_marks_visited(self):
        tracker, gate, _ = await _tracker()
        moved = await _answer_and_advance(tracker, gate, "text")
        assert moved
        assert tracker.state.current_index == 1
        assert tracker.state.visited == {"q1", "q2"}
        assert gate.blocking, "First visit to q2 arms the gate again"
        gate.cancel()

    @pytest.mark.asyncio
    async def test_advance_at_last_question_is_a_no_op(self):
        tracker, gate, _ = await _tracker()
        await _answer_and_advance(tracker, gate, "text")
        await _answer_and_advance(tracker, gate, 4)
        await tracker.record_answer("q3", 50)
        await gate.wait()
        assert await tracker.advance() is False
        assert tracker.state.current_index == 2


# =====================================================================
# Backward navigation and jumps
# =====================================================================


class TestRetreatAndJump:
    @pytest.mark.asyncio
    async def test_retreat_is_never_gated(self):
        tracker, gate, _ = await _tracker()
        await _answer_and_advance(tracker, gate, "text")
        assert gate.blocking
        assert await tracker.retreat()
        assert tracker.state.current_index == 0
        assert not gate.blocking, "Revisit clears the gate"

    @pytest.mark.asyncio
    async def test_retreat_at_first_question(self):
        tracker, gate, _ = await _tracker()
        assert await tracker.retreat() is False
        gate.cancel()

    @pytest.mark.asyncio
    async def test_revisit_forward_has_no_dwell(self):
        tracker, gate, _ = await _tracker()
        await _answer_and_advance(tracker, gate, "text")
        await tracker.retreat()
        assert await tracker.advance(), "Revisited question may be left at once"
        assert not gate.blocking, "q2 was visited before"

    @pytest.mark.asyncio
    async def test_forward_jump_is_gated(self):
        tracker, gate, _ = await _tracker(tick=10)
        await tracker.record_answer("q1", "text")
        with pytest.raises(DwellViolation):
            await tracker.jump_to(2)
        gate.cancel()

    @pytest.mark.asyncio
    async def test_forward_jump_requires_current_answer(self):
        tracker, gate, _ = await _tracker()
        await gate.wait()
        with pytest.raises(ValidationError):
            await tracker.jump_to(2)

    @pytest.mark.asyncio
    async def test_backward_jump_ignores_dwell(self):
        tracker, gate, _ = await _tracker(tick=0.05)
        await _answer_and_advance(tracker, gate, "text")
        await _answer_and_advance(tracker, gate, 3)
        await tracker.record_answer("q3", 50)
        assert gate.blocking, "q3 is on its first visit"
        assert await tracker.jump_to(0)
        assert tracker.state.current_index == 0
        gate.cancel()

    @pytest.mark.asyncio
    async def test_backward_jump_requires_current_answer(self):
        tracker, gate, _ = await _tracker()
        await _answer_and_advance(tracker, gate, "text")
        with pytest.raises(ValidationError):
            await tracker.jump_to(0)
        assert tracker.state.current_index == 1, "Position must not change"
        gate.cancel()

    @pytest.mark.asyncio
    async def test_jump_out_of_range(self):
        tracker, gate, _ = await _tracker()
        with pytest.raises(ValidationError, match="out of range"):
            await tracker.jump_to(3)
        gate.cancel()


# =====================================================================
# Answers and completeness
# =====================================================================


class TestAnswers:
    @pytest.mark.asyncio
    async def test_unknown_question_rejected(self):
        tracker, gate, _ = await _tracker()
        with pytest.raises(ValidationError, match="Unknown question"):
            await tracker.record_answer("q9", "x")
        gate.cancel()

    @pytest.mark.asyncio
    async def test_invalid_value_rejected_and_not_stored(self):
        tracker, gate, _ = await _tracker()
        with pytest.raises(ValidationError):
            await tracker.record_answer("q3", 120)
        assert "q3" not in tracker.state.answers
        gate.cancel()

    @pytest.mark.asyncio
    async def test_answer_overwrites(self):
        tracker, gate, storage = await _tracker()
        await tracker.record_answer("q2", 2)
        await tracker.record_answer("q2", "5")
        assert tracker.state.answers["q2"] == 5
        assert (await storage.load()).answers["q2"] == 5, "Write-through on every change"
        gate.cancel()

    @pytest.mark.asyncio
    async def test_completeness_zero_and_n_minus_one(self):
        tracker, gate, _ = await _tracker()
        assert not tracker.completeness_check(), "0/3 answered is incomplete"
        await tracker.record_answer("q1", "text")
        await tracker.record_answer("q2", 4)
        assert tracker.answered_count() == 2
        assert not tracker.completeness_check(), "2/3 answered is incomplete"
        with pytest.raises(IncompleteSurvey) as exc_info:
            tracker.require_complete()
        assert (exc_info.value.answered, exc_info.value.total) == (2, 3)
        assert "2/3" in str(exc_info.value)

        await tracker.record_answer("q3", 45)
        assert tracker.completeness_check()
        gate.cancel()

    @pytest.mark.asyncio
    async def test_failed_write_leaves_state_untouched(self):
        store = FailingStore()
        tracker, gate, _ = await _tracker(store)
        store.fail_writes = True
        with pytest.raises(OSError):
            await tracker.record_answer("q1", "text")
        assert tracker.state.answers == {}, "In-memory state must match storage"
        gate.cancel()


# =====================================================================
# Sealing
# =====================================================================


class TestSeal:
    @pytest.mark.asyncio
    async def test_seal_is_one_way_and_freezes_everything(self):
        tracker, gate, _ = await _tracker()
        await tracker.record_answer("q1", "text")
        sealed = tracker.seal()
        assert sealed.sealed

        with pytest.raises(SessionSealed):
            await tracker.record_answer("q1", "changed")
        with pytest.raises(SessionSealed):
            await tracker.advance()
        with pytest.raises(SessionSealed):
            await tracker.retreat()
        with pytest.raises(SessionSealed):
            await tracker.jump_to(1)
        with pytest.raises(SessionSealed):
            tracker.seal()
        assert tracker.state.answers == {"q1": "text"}
        assert tracker.state.current_index == 0


# =====================================================================
# Reconciliation with the catalog on restore
# =====================================================================


class TestRestore:
    @pytest.mark.asyncio
    async def test_stale_entries_are_dropped(self):
        store = InMemoryStore()
        storage = _storage(store)
        await store.set(
            storage.session_key,
            '{"answers": {"q1": "kept", "gone": "x", "q3": 500}, '
            '"current_index": 9, "visited": ["q1", "gone"]}',
        )
        tracker, gate, _ = await _tracker(store)

        assert tracker.state.answers == {"q1": "kept"}, "Unknown and invalid answers dropped"
        assert tracker.state.current_index == 2, "Index clamped to the catalog"
        assert tracker.state.visited == {"q1", "q3"}, "Arrival adds the clamped question"
        gate.cancel()

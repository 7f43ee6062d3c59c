"""ProgressTracker — sole owner of a respondent's SessionState.

Every mutation builds a new immutable :class:`SessionState` snapshot, writes
it through to :class:`SessionStorage`, and only then makes it current.  A
failed write therefore leaves the in-memory state untouched.

Arrival at a question (bootstrap, advance, retreat, jump) marks it visited
in the same snapshot that moves ``current_index`` and then arms or clears
the dwell gate, so the visited set always contains the current question
before any timer starts.

Operation summary:

    record_answer  — sealed check, catalog/type validation, overwrite
    advance        — dwell check, current answer satisfied, index + 1
    retreat        — index - 1, never gated
    jump_to        — current answer satisfied; forward jumps also dwell-gated
    seal           — one-way; freezes answers and position
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Sequence

from survey_engine.constants import ADVISORY_MESSAGES
from survey_engine.dwell import DwellGate
from survey_engine.errors import IncompleteSurvey, SessionSealed, ValidationError
from survey_engine.models.question import QuestionDefinition
from survey_engine.models.session import PersistedSession, SessionState
from survey_engine.storage import SessionStorage

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Tracks position, answers and visited questions for one session.

    Use :meth:`restore` rather than the constructor; it reconciles whatever
    is in storage with the loaded catalog.

    Args:
        questions: the non-empty, ordered catalog for this session
        storage: namespaced storage for this respondent and instance
        gate: the dwell gate armed on first visits
        state: the starting snapshot
    """

    def __init__(
        self,
        questions: Sequence[QuestionDefinition],
        storage: SessionStorage,
        gate: DwellGate,
        state: SessionState,
    ) -> None:
        if not questions:
            raise ValueError("ProgressTracker needs at least one question")
        self._questions = tuple(questions)
        self._by_id = {q.id: q for q in self._questions}
        self._storage = storage
        self._gate = gate
        self._state = state

    @classmethod
    async def restore(
        cls,
        questions: Sequence[QuestionDefinition],
        storage: SessionStorage,
        gate: DwellGate,
    ) -> "ProgressTracker":
        """Build a tracker seeded from storage (or fresh if nothing is stored)."""
        persisted = await storage.load()
        state = _reconcile(questions, storage.instance_key, persisted)
        return cls(questions, storage, gate, state)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def questions(self) -> tuple[QuestionDefinition, ...]:
        return self._questions

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def current_question(self) -> QuestionDefinition:
        return self._questions[self._state.current_index]

    def answered_count(self) -> int:
        """Number of questions whose stored answer is satisfying."""
        answers = self._state.answers
        return sum(
            1 for q in self._questions if q.id in answers and q.is_satisfied(answers[q.id])
        )

    def completeness_check(self) -> bool:
        """True iff every catalog question has a satisfying answer."""
        return self.answered_count() == self.total

    def is_current_satisfied(self) -> bool:
        q = self.current_question
        return q.id in self._state.answers and q.is_satisfied(self._state.answers[q.id])

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def require_current_satisfied(self, action: Literal["next", "submit"]) -> None:
        """Raise :class:`ValidationError` if the current question is unanswered."""
        if not self.is_current_satisfied():
            raise ValidationError(ADVISORY_MESSAGES[f"unanswered_{action}"])

    def require_complete(self) -> None:
        """Raise :class:`IncompleteSurvey` unless every question is answered."""
        answered = self.answered_count()
        if answered < self.total:
            raise IncompleteSurvey(
                ADVISORY_MESSAGES["incomplete"].format(answered=answered, total=self.total),
                answered=answered,
                total=self.total,
            )

    def _ensure_unsealed(self) -> None:
        if self._state.sealed:
            raise SessionSealed(
                f"Session {self._state.instance_key} is already submitted"
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def record_answer(self, question_id: str, value: Any) -> None:
        """Store ``value`` for ``question_id``, replacing any earlier answer."""
        self._ensure_unsealed()
        question = self._by_id.get(question_id)
        if question is None:
            raise ValidationError(f"Unknown question: {question_id}")
        try:
            coerced = question.coerce_answer(value)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        answers = {**self._state.answers, question_id: coerced}
        await self._commit(self._state.model_copy(update={"answers": answers}))

    async def arrive(self) -> bool:
        """Mark the current question visited and arm the gate accordingly.

        Called once at bootstrap; navigation methods do this internally.
        Returns True on a first visit.
        """
        self._ensure_unsealed()
        return await self._move_to(self._state.current_index)

    async def advance(self) -> bool:
        """Move to the next question.  Returns False at the last question."""
        self._ensure_unsealed()
        self._gate.ensure_clear("next")
        self.require_current_satisfied("next")
        if self._state.current_index >= self.total - 1:
            return False
        await self._move_to(self._state.current_index + 1)
        return True

    async def retreat(self) -> bool:
        """Move to the previous question.  Returns False at the first question."""
        self._ensure_unsealed()
        if self._state.current_index == 0:
            return False
        await self._move_to(self._state.current_index - 1)
        return True

    async def jump_to(self, index: int) -> bool:
        """Move to an arbitrary question.  Returns False if already there.

        The current question must be answered in either direction.  Only
        forward jumps wait for the dwell gate.
        """
        self._ensure_unsealed()
        if not 0 <= index < self.total:
            raise ValidationError(
                f"Question index {index} is out of range (0-{self.total - 1})"
            )
        current = self._state.current_index
        if index == current:
            return False
        if index > current:
            self._gate.ensure_clear("next")
        self.require_current_satisfied("next")
        await self._move_to(index)
        return True

    def seal(self) -> SessionState:
        """Mark the session submitted.  One-way; a second seal raises.

        The sealed snapshot is not written to storage: the coordinator
        purges the entry immediately after sealing.
        """
        self._ensure_unsealed()
        self._gate.cancel()
        self._state = self._state.model_copy(update={"sealed": True})
        logger.info("Session %s sealed", self._state.instance_key)
        return self._state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _move_to(self, index: int) -> bool:
        """Set the index and visited set in one write, then drive the gate."""
        qid = self._questions[index].id
        first_visit = qid not in self._state.visited
        update: dict[str, Any] = {"current_index": index}
        if first_visit:
            update["visited"] = self._state.visited | {qid}
        await self._commit(self._state.model_copy(update=update))
        if first_visit:
            self._gate.start(qid)
        else:
            self._gate.clear(qid)
        return first_visit

    async def _commit(self, state: SessionState) -> None:
        await self._storage.save(state)
        self._state = state


def _reconcile(
    questions: Sequence[QuestionDefinition],
    instance_key: str,
    persisted: PersistedSession | None,
) -> SessionState:
    """Fit a stored session onto the loaded catalog.

    Answers for unknown ids or with values the question no longer accepts
    are dropped, visited ids are filtered, and the index is clamped.
    """
    if persisted is None:
        return SessionState(instance_key=instance_key)

    by_id = {q.id: q for q in questions}
    answers: dict[str, Any] = {}
    dropped: list[str] = []
    for qid, value in persisted.answers.items():
        question = by_id.get(qid)
        if question is None:
            dropped.append(qid)
            continue
        try:
            answers[qid] = question.coerce_answer(value)
        except ValueError:
            dropped.append(qid)

    visited = frozenset(qid for qid in persisted.visited if qid in by_id)
    index = min(max(persisted.current_index, 0), len(questions) - 1)

    if dropped or index != persisted.current_index or len(visited) != len(persisted.visited):
        logger.warning(
            "Stored session %s did not match the catalog; dropped answers=%s, "
            "index %d -> %d",
            instance_key, dropped, persisted.current_index, index,
        )
    return SessionState(
        instance_key=instance_key,
        answers=answers,
        current_index=index,
        visited=visited,
    )

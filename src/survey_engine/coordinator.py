"""SubmissionCoordinator — reconciles local progress with the remote record.

Two responsibilities:

  1. **Remote status** — the backend's "already completed" flag is the
     tie-breaker.  A positive answer purges the local session; a negative
     answer clears any stale local "known submitted" flag.  When the backend
     cannot be reached, the coordinator falls back to that local flag and
     otherwise assumes *not* complete.  It never reports completion without
     positive evidence.

  2. **Submission** — validates readiness, builds a type-aware payload,
     transmits it once (re-entrant calls are refused while one is
     outstanding), and on an acknowledged success seals the tracker, records
     the local "known submitted" flag and purges the stored session.
     Any failure leaves the session unsealed and stored for a retry.
"""

from __future__ import annotations

import logging
from typing import Sequence

from survey_engine.dwell import DwellGate
from survey_engine.errors import SessionSealed, SubmissionFailure, SubmissionInProgress
from survey_engine.interfaces import SurveyBackend
from survey_engine.models.payload import AnswerEntry, SubmissionAck, SubmissionPayload
from survey_engine.models.question import QuestionDefinition
from survey_engine.models.session import RemoteCompletionRecord, SessionState
from survey_engine.storage import SessionStorage
from survey_engine.tracker import ProgressTracker

logger = logging.getLogger(__name__)


def build_payload(
    identity: str,
    questions: Sequence[QuestionDefinition],
    state: SessionState,
) -> SubmissionPayload:
    """Assemble the submission body in catalog order.

    Each answered question contributes one entry whose value sits in the
    field its type dictates (see :mod:`survey_engine.models.payload`).
    """
    entries = [
        AnswerEntry(question_id=q.id, **q.answer_fields(state.answers[q.id]))
        for q in questions
        if q.id in state.answers
    ]
    return SubmissionPayload(
        identity=identity,
        survey_instance_key=state.instance_key,
        answers=entries,
    )


class SubmissionCoordinator:
    """Remote-status reconciliation and submit-once transmission.

    Args:
        backend: the remote survey service
        storage: namespaced storage for this respondent and instance
    """

    def __init__(self, backend: SurveyBackend, storage: SessionStorage) -> None:
        self._backend = backend
        self._storage = storage
        self._remote: RemoteCompletionRecord | None = None
        self._in_flight = False

    @property
    def remote_status(self) -> RemoteCompletionRecord | None:
        """The last status determined by :meth:`check_remote_status`."""
        return self._remote

    @property
    def submitting(self) -> bool:
        return self._in_flight

    # ==================================================================
    # Remote status
    # ==================================================================

    async def check_remote_status(self) -> RemoteCompletionRecord:
        """Determine whether this identity already completed the instance."""
        identity = self._storage.identity
        instance_key = self._storage.instance_key
        try:
            reported = await self._backend.get_completion_status(identity, instance_key)
        except Exception as exc:
            logger.warning(
                "Completion status unreachable for %s/%s, using local fallback: %s",
                identity, instance_key, exc,
            )
            record = await self._fallback_status()
        else:
            record = RemoteCompletionRecord(
                is_complete=reported.is_complete, source="remote",
            )
            if record.is_complete:
                # Remote wins: anything still stored locally is discarded
                await self._storage.mark_submitted()
                await self._storage.purge()
            else:
                await self._storage.clear_submitted()

        logger.info(
            "Completion status for %s/%s: complete=%s (source=%s)",
            identity, instance_key, record.is_complete, record.source,
        )
        self._remote = record
        return record

    async def _fallback_status(self) -> RemoteCompletionRecord:
        if await self._storage.is_known_submitted():
            return RemoteCompletionRecord(is_complete=True, source="local_cache")
        return RemoteCompletionRecord(is_complete=False, source="default")

    # ==================================================================
    # Submission
    # ==================================================================

    def check_ready(self, tracker: ProgressTracker, gate: DwellGate) -> None:
        """Raise unless :meth:`submit` may transmit right now.

        Raises:
            SubmissionInProgress: another submit is still outstanding
            SessionSealed: the session is sealed or completed remotely
            DwellViolation: the current question's countdown is running
            ValidationError: the current question or any other is unanswered
        """
        if self._in_flight:
            raise SubmissionInProgress("A submission is already in progress")
        if tracker.state.sealed:
            raise SessionSealed(f"Session {tracker.state.instance_key} is already submitted")
        if self._remote is not None and self._remote.is_complete:
            raise SessionSealed(
                f"Survey {tracker.state.instance_key} is already completed"
            )

        gate.ensure_clear("submit")
        tracker.require_current_satisfied("submit")
        tracker.require_complete()

    async def submit(self, tracker: ProgressTracker, gate: DwellGate) -> SubmissionAck:
        """Validate, transmit and seal.

        Once the backend acknowledges, the session is sealed no matter what
        the local store does afterwards.

        Raises:
            everything :meth:`check_ready` raises
            SubmissionFailure: transport error or ``success=False``
        """
        self.check_ready(tracker, gate)
        payload = build_payload(self._storage.identity, tracker.questions, tracker.state)

        self._in_flight = True
        try:
            try:
                ack = await self._backend.submit_answers(payload)
            except SubmissionFailure:
                raise
            except Exception as exc:
                logger.warning(
                    "Submission transport failed for %s: %s", payload.survey_instance_key, exc,
                )
                raise SubmissionFailure("Network error") from exc

            if not ack.success:
                logger.warning(
                    "Submission rejected for %s: %s", payload.survey_instance_key, ack.message,
                )
                raise SubmissionFailure(ack.message or "Save failed")

            tracker.seal()
            self._remote = RemoteCompletionRecord(is_complete=True, source="local_cache")
            # Flag first: a reload that cannot reach the backend must see it
            await self._storage.mark_submitted()
            await self._storage.purge()
        finally:
            self._in_flight = False

        logger.info(
            "Submitted %d answers for %s", len(payload.answers), payload.survey_instance_key,
        )
        return ack

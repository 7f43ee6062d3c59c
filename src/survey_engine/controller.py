"""SurveyEngine — the navigation controller that drives one survey session.

The engine sequences the other components in response to respondent
intents.  It owns no session data of its own: position, answers and the
visited set belong to the :class:`ProgressTracker`; the engine only keeps
its lifecycle status and the currently visible advisory.

Bootstrap::

    start()
      ├─ check_remote_status() ─┐  (concurrently)
      └─ catalog load ──────────┤
                                ▼
        complete?  → already_complete (catalog load cancelled)
        catalog failed? → unavailable
        zero questions? → empty
        otherwise → restore tracker, arrive at current question → active
        first write refused? → unavailable

Intents (only honoured while ``active``)::

    answer / next_question / previous_question / go_to / submit
      dwell check → tracker mutation → (submit) readiness check → coordinator

Validation and dwell errors become a transient :class:`Advisory` that
clears itself after a fixed interval.  A failed submission is surfaced in
``view.error`` and the engine returns to ``active`` for a retry.

Renderers call :meth:`subscribe` and receive an immutable
:class:`EngineView` after every transition, dwell tick and advisory change.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from survey_engine.catalog import CatalogLoader
from survey_engine.constants import (
    ADVISORY_SECONDS,
    DWELL_TICK_SECONDS,
    DWELL_UNITS,
    INCOMPLETE_ADVISORY_SECONDS,
    NO_QUESTIONS_MESSAGE,
    PROGRESS_UNAVAILABLE_MESSAGE,
    SUBMITTED_MESSAGE,
    THANK_YOU_MESSAGE,
)
from survey_engine.coordinator import SubmissionCoordinator
from survey_engine.dwell import DwellGate
from survey_engine.errors import (
    AdvisoryError,
    CatalogUnavailable,
    SessionSealed,
    SubmissionFailure,
    SubmissionInProgress,
)
from survey_engine.interfaces import KeyValueStore, SurveyBackend
from survey_engine.models.session import Advisory, EngineStatus, EngineView
from survey_engine.storage import SessionStorage
from survey_engine.tracker import ProgressTracker

logger = logging.getLogger(__name__)

Listener = Callable[[EngineView], None]


class SurveyEngine:
    """Drives one respondent through one survey instance, exactly once.

    Args:
        backend: the remote survey service
        store: durable key/value store used for resumability
        namespace: storage namespace of the calling survey type
        identity: respondent identity within that namespace
        instance_key: the survey instance to run
        dwell_units: reading-time countdown length on first visits
        dwell_tick_seconds: length of one countdown unit
        advisory_seconds: how long advisories stay visible
        incomplete_advisory_seconds: same, for "answer all questions"
    """

    def __init__(
        self,
        backend: SurveyBackend,
        store: KeyValueStore,
        *,
        namespace: str,
        identity: str,
        instance_key: str,
        dwell_units: int = DWELL_UNITS,
        dwell_tick_seconds: float = DWELL_TICK_SECONDS,
        advisory_seconds: float = ADVISORY_SECONDS,
        incomplete_advisory_seconds: float = INCOMPLETE_ADVISORY_SECONDS,
    ) -> None:
        self._storage = SessionStorage(
            store, namespace=namespace, identity=identity, instance_key=instance_key,
        )
        self._loader = CatalogLoader(backend)
        self._coordinator = SubmissionCoordinator(backend, self._storage)
        self._gate = DwellGate(
            units=dwell_units,
            tick_seconds=dwell_tick_seconds,
            on_tick=self._on_dwell_tick,
        )
        self._advisory_seconds = advisory_seconds
        self._incomplete_advisory_seconds = incomplete_advisory_seconds

        self._tracker: ProgressTracker | None = None
        self._status = EngineStatus.BOOTSTRAPPING
        self._started = False
        self._advisory: Advisory | None = None
        self._advisory_task: asyncio.Task | None = None
        self._error: str | None = None
        self._message: str | None = None
        self._listeners: list[Listener] = []

    # ==================================================================
    # Introspection
    # ==================================================================

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def instance_key(self) -> str:
        return self._storage.instance_key

    @property
    def identity(self) -> str:
        return self._storage.identity

    @property
    def storage(self) -> SessionStorage:
        return self._storage

    @property
    def tracker(self) -> ProgressTracker | None:
        """The progress tracker; ``None`` until the engine becomes active."""
        return self._tracker

    @property
    def gate(self) -> DwellGate:
        return self._gate

    @property
    def coordinator(self) -> SubmissionCoordinator:
        return self._coordinator

    @property
    def view(self) -> EngineView:
        """Build a snapshot of everything a renderer needs."""
        tracker = self._tracker
        if tracker is None:
            return EngineView(
                status=self._status,
                instance_key=self.instance_key,
                advisory=self._advisory,
                error=self._error,
                message=self._message,
            )

        state = tracker.state
        complete = tracker.completeness_check()
        return EngineView(
            status=self._status,
            instance_key=self.instance_key,
            total=tracker.total,
            current_index=state.current_index,
            current_question=tracker.current_question,
            answers=dict(state.answers),
            answered=tracker.answered_count(),
            dwell_remaining=self._gate.remaining,
            can_submit=(
                self._status is EngineStatus.ACTIVE
                and complete
                and not self._gate.blocking
            ),
            advisory=self._advisory,
            error=self._error,
            message=self._message,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for view snapshots; returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ==================================================================
    # Lifecycle
    # ==================================================================

    async def start(self) -> EngineView:
        """Bootstrap the session.  Calling it again returns the current view."""
        if self._started:
            return self.view
        self._started = True
        self._publish()

        status_task = asyncio.create_task(self._coordinator.check_remote_status())
        catalog_task = asyncio.create_task(self._loader.load(self.instance_key))

        try:
            remote = await status_task
        except BaseException:
            catalog_task.cancel()
            await asyncio.gather(catalog_task, return_exceptions=True)
            raise

        if remote.is_complete:
            catalog_task.cancel()
            await asyncio.gather(catalog_task, return_exceptions=True)
            self._status = EngineStatus.ALREADY_COMPLETE
            self._message = THANK_YOU_MESSAGE
            logger.info("Survey %s already completed by %s", self.instance_key, self.identity)
            return self._publish()

        try:
            questions = await catalog_task
        except CatalogUnavailable as exc:
            self._status = EngineStatus.UNAVAILABLE
            self._error = str(exc)
            return self._publish()

        if not questions:
            self._status = EngineStatus.EMPTY
            self._message = NO_QUESTIONS_MESSAGE
            logger.info("Survey %s has no questions configured", self.instance_key)
            return self._publish()

        tracker = await ProgressTracker.restore(questions, self._storage, self._gate)
        try:
            await tracker.arrive()
        except Exception as exc:
            # The store refused the first write; nothing could be resumed
            self._gate.cancel()
            self._status = EngineStatus.UNAVAILABLE
            self._error = PROGRESS_UNAVAILABLE_MESSAGE
            logger.warning("Could not persist session for %s: %s", self.instance_key, exc)
            return self._publish()
        self._tracker = tracker
        self._status = EngineStatus.ACTIVE
        logger.info(
            "Survey %s active for %s at question %d/%d",
            self.instance_key, self.identity,
            tracker.state.current_index + 1, tracker.total,
        )
        return self._publish()

    async def close(self) -> None:
        """Cancel local timers.  In-flight network calls are left to finish."""
        self._gate.cancel()
        self._cancel_advisory_timer()

    async def __aenter__(self) -> "SurveyEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ==================================================================
    # Respondent intents
    # ==================================================================

    async def answer(self, question_id: str, value: Any) -> EngineView:
        """Record an answer for ``question_id``."""
        tracker = self._active_tracker("answer")
        if tracker is None:
            return self.view
        return await self._run(tracker.record_answer(question_id, value))

    async def next_question(self) -> EngineView:
        """Advance to the next question (gated by dwell and answer)."""
        tracker = self._active_tracker("next")
        if tracker is None:
            return self.view
        return await self._run(tracker.advance())

    async def previous_question(self) -> EngineView:
        """Go back one question; never blocked."""
        tracker = self._active_tracker("previous")
        if tracker is None:
            return self.view
        return await self._run(tracker.retreat())

    async def go_to(self, index: int) -> EngineView:
        """Jump to question ``index`` (0-based)."""
        tracker = self._active_tracker("go_to")
        if tracker is None:
            return self.view
        return await self._run(tracker.jump_to(index))

    async def submit(self) -> EngineView:
        """Submit the survey once every precondition holds."""
        tracker = self._active_tracker("submit")
        if tracker is None:
            return self.view

        self._error = None
        try:
            # Preconditions first so a refused submit never shows as submitting
            self._coordinator.check_ready(tracker, self._gate)
            self._status = EngineStatus.SUBMITTING
            self._publish()
            ack = await self._coordinator.submit(tracker, self._gate)
        except AdvisoryError as exc:
            self._status = EngineStatus.ACTIVE
            self._show_advisory(exc)
        except SubmissionInProgress:
            # Unreachable through the status guard; keep the outstanding one
            logger.debug("Submit ignored: another submission is outstanding")
        except SubmissionFailure as exc:
            self._status = EngineStatus.ACTIVE
            self._error = str(exc)
        except SessionSealed as exc:
            self._status = (
                EngineStatus.SEALED if tracker.state.sealed else EngineStatus.ALREADY_COMPLETE
            )
            self._message = THANK_YOU_MESSAGE
            logger.warning("Submit refused for %s: %s", self.instance_key, exc)
        else:
            self._status = EngineStatus.SEALED
            self._message = ack.message or SUBMITTED_MESSAGE
            self._advisory = None
            self._cancel_advisory_timer()
        return self._publish()

    # ==================================================================
    # Internals
    # ==================================================================

    def _active_tracker(self, intent: str) -> ProgressTracker | None:
        if self._status is not EngineStatus.ACTIVE or self._tracker is None:
            logger.debug("Ignoring %s while %s", intent, self._status.value)
            return None
        return self._tracker

    async def _run(self, operation: Awaitable[Any]) -> EngineView:
        """Await a tracker operation, turning advisory errors into advisories."""
        try:
            await operation
        except AdvisoryError as exc:
            self._show_advisory(exc)
        return self._publish()

    def _show_advisory(self, exc: AdvisoryError) -> None:
        advisory = Advisory(kind=exc.advisory_kind, message=str(exc))
        delay = (
            self._incomplete_advisory_seconds
            if advisory.kind == "incomplete"
            else self._advisory_seconds
        )
        self._cancel_advisory_timer()
        self._advisory = advisory
        self._advisory_task = asyncio.get_running_loop().create_task(
            self._expire_advisory(advisory, delay),
        )

    async def _expire_advisory(self, advisory: Advisory, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._advisory is advisory:
            self._advisory = None
            self._advisory_task = None
            self._publish()

    def _cancel_advisory_timer(self) -> None:
        if self._advisory_task is not None and not self._advisory_task.done():
            self._advisory_task.cancel()
        self._advisory_task = None

    def _on_dwell_tick(self, remaining: int) -> None:
        self._publish()

    def _publish(self) -> EngineView:
        view = self.view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("View listener %r failed", listener)
        return view

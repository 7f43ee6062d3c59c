"""DwellGate — minimum reading time on a question's first visit.

The gate is purely local and timer driven.  On arrival at a question the
controller calls :meth:`DwellGate.start` (first visit) or
:meth:`DwellGate.clear` (revisit).  ``start`` launches an asyncio countdown
task that decrements ``remaining`` once per tick; while it is non-zero,
:meth:`ensure_clear` refuses forward navigation and submission.

Each arrival cancels the previous countdown first, so a timer never
outlives the question it was started for.  Backward navigation never
consults the gate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Literal

from survey_engine.constants import ADVISORY_MESSAGES, DWELL_TICK_SECONDS, DWELL_UNITS
from survey_engine.errors import DwellViolation

logger = logging.getLogger(__name__)


class DwellGate:
    """Cancellable per-question countdown.

    Args:
        units: countdown length in ticks (default ``DWELL_UNITS``)
        tick_seconds: length of one tick (default ``DWELL_TICK_SECONDS``)
        on_tick: optional callback receiving the new ``remaining`` after
            every tick, used by the controller to publish a fresh view
    """

    def __init__(
        self,
        *,
        units: int = DWELL_UNITS,
        tick_seconds: float = DWELL_TICK_SECONDS,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        self._units = units
        self._tick_seconds = tick_seconds
        self._on_tick = on_tick
        self._remaining = 0
        self._question_id: str | None = None
        self._task: asyncio.Task | None = None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def blocking(self) -> bool:
        """True while the countdown for the current question is running."""
        return self._remaining > 0

    @property
    def question_id(self) -> str | None:
        """The question the gate was last armed or cleared for."""
        return self._question_id

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, question_id: str) -> None:
        """Arm the gate for a first visit to ``question_id``.

        Must be called from within a running event loop.
        """
        self.cancel()
        self._question_id = question_id
        self._remaining = max(self._units, 0)
        if self._remaining:
            self._task = asyncio.get_running_loop().create_task(
                self._countdown(), name=f"dwell:{question_id}",
            )
        logger.debug("Dwell gate armed for %s (%d ticks)", question_id, self._remaining)

    def clear(self, question_id: str) -> None:
        """Revisit of ``question_id``: no wait is imposed."""
        self.cancel()
        self._question_id = question_id
        self._remaining = 0

    def cancel(self) -> None:
        """Stop the running countdown, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def ensure_clear(self, action: Literal["next", "submit"]) -> None:
        """Raise :class:`DwellViolation` while the countdown is running."""
        if self._remaining > 0:
            raise DwellViolation(
                ADVISORY_MESSAGES[f"dwell_{action}"], remaining=self._remaining,
            )

    async def wait(self) -> None:
        """Wait until the current countdown finishes or is cancelled."""
        task = self._task
        if task is not None:
            # asyncio.wait never raises the task's CancelledError into us
            await asyncio.wait({task})

    # ------------------------------------------------------------------
    # Countdown task
    # ------------------------------------------------------------------

    async def _countdown(self) -> None:
        while self._remaining > 0:
            await asyncio.sleep(self._tick_seconds)
            self._remaining -= 1
            if self._on_tick is not None:
                self._on_tick(self._remaining)

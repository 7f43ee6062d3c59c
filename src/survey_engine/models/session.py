"""Session and view models — the contract between the engine and renderers.

``SessionState`` is the unit of persistence and ownership.  It is an
immutable snapshot: every tracker operation builds a new instance with
``model_copy(update=...)`` and writes it through to storage, so a renderer
holding an old snapshot never sees it change underneath it.

``EngineView`` is what renderers subscribe to.  It flattens the controller
status, the current question, the dwell countdown, and any advisory into a
single read-only object.
"""

from __future__ import annotations

import enum
from typing import Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from survey_engine.models.question import AnswerValue, QuestionDefinition


class SessionState(BaseModel):
    """One respondent's progress through one survey instance.

    ``visited`` holds question ids rather than positions so that a catalog
    reloaded after a remount can never shift it onto different questions.
    """

    model_config = ConfigDict(frozen=True)

    instance_key: str
    answers: Dict[str, AnswerValue] = {}
    current_index: int = 0
    visited: FrozenSet[str] = frozenset()
    sealed: bool = False


class PersistedSession(BaseModel):
    """On-disk shape of a session entry in the key/value store."""

    answers: Dict[str, AnswerValue] = {}
    current_index: int = 0
    visited: List[str] = []


class RemoteCompletionRecord(BaseModel):
    """Whether an identity already completed a survey instance.

    ``source`` records which truth produced the answer: the backend itself,
    the locally cached "known submitted" flag, or the safe default used when
    neither was available.
    """

    model_config = ConfigDict(frozen=True)

    is_complete: bool
    source: Literal["remote", "local_cache", "default"] = "remote"


class EngineStatus(str, enum.Enum):
    """Lifecycle states of a survey engine instance.

    Transitions:
        bootstrapping -> already_complete | unavailable | empty | active
        active -> submitting
        submitting -> sealed | active (on failure)

    ``already_complete``, ``unavailable``, ``empty`` and ``sealed`` are
    terminal for the engine instance.
    """

    BOOTSTRAPPING = "bootstrapping"
    ALREADY_COMPLETE = "already_complete"
    UNAVAILABLE = "unavailable"
    EMPTY = "empty"
    ACTIVE = "active"
    SUBMITTING = "submitting"
    SEALED = "sealed"


TERMINAL_STATUSES = frozenset(
    {
        EngineStatus.ALREADY_COMPLETE,
        EngineStatus.UNAVAILABLE,
        EngineStatus.EMPTY,
        EngineStatus.SEALED,
    }
)


class Advisory(BaseModel):
    """A transient, self-clearing message shown next to the question."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["validation", "dwell", "incomplete"]
    message: str


class EngineView(BaseModel):
    """Read-only snapshot published to renderers after every change."""

    model_config = ConfigDict(frozen=True)

    status: EngineStatus
    instance_key: str
    total: int = 0
    current_index: int = 0
    current_question: Optional[QuestionDefinition] = None
    answers: Dict[str, AnswerValue] = {}
    answered: int = 0
    # Countdown units left before forward navigation is allowed
    dwell_remaining: int = 0
    can_submit: bool = False
    advisory: Optional[Advisory] = None
    # Blocking or retryable error text (catalog failure, submission failure)
    error: Optional[str] = None
    # Fixed text for the terminal views
    message: Optional[str] = None

    @property
    def progress_percent(self) -> int:
        """Position-based progress, matching the "Question i of N" header."""
        if not self.total:
            return 0
        return round((self.current_index + 1) / self.total * 100)

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.total > 0 and self.current_index == self.total - 1

"""Public model re-exports for survey_engine.

Consumers should import from ``survey_engine.models`` rather than reaching
into sub-modules directly.
"""

# --- Questions ---
from survey_engine.models.question import (
    AnswerValue,
    BaseQuestion,
    BoundedAmountQuestion,
    FreeTextQuestion,
    Option,
    QuestionDefinition,
    RatingQuestion,
    SingleChoiceQuestion,
    parse_question,
    question_mapper,
)

# --- Session / view ---
from survey_engine.models.session import (
    Advisory,
    EngineStatus,
    EngineView,
    PersistedSession,
    RemoteCompletionRecord,
    SessionState,
    TERMINAL_STATUSES,
)

# --- Submission ---
from survey_engine.models.payload import (
    AnswerEntry,
    SubmissionAck,
    SubmissionPayload,
)

__all__ = [
    # Questions
    "AnswerValue",
    "BaseQuestion",
    "BoundedAmountQuestion",
    "FreeTextQuestion",
    "Option",
    "QuestionDefinition",
    "RatingQuestion",
    "SingleChoiceQuestion",
    "parse_question",
    "question_mapper",
    # Session
    "Advisory",
    "EngineStatus",
    "EngineView",
    "PersistedSession",
    "RemoteCompletionRecord",
    "SessionState",
    "TERMINAL_STATUSES",
    # Submission
    "AnswerEntry",
    "SubmissionAck",
    "SubmissionPayload",
]

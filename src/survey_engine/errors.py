"""Exception hierarchy for the survey engine.

Every failure the engine can produce derives from ``SurveyEngineError`` so a
host application can catch the whole family in one place.  None of them is
fatal: each one degrades to "let the respondent retry" or "treat the survey
as not yet submitted".

  Recovered locally (rendered as a self-clearing advisory):
    - ValidationError: missing or invalid answer on advance/submit
    - DwellViolation: action attempted before the minimum reading time

  Surfaced to the respondent:
    - CatalogUnavailable: questions could not be loaded (blocking)
    - SubmissionFailure: transmit failed or was rejected (retryable)

  Internal:
    - RemoteStatusUnreachable: status check failed, caller falls back
    - SessionSealed: mutation attempted after a successful submission
    - SubmissionInProgress: a submit is already outstanding
"""


class SurveyEngineError(Exception):
    """Base class for all survey engine errors."""


class AdvisoryError(SurveyEngineError):
    """An error that is shown to the respondent as a transient advisory.

    ``advisory_kind`` tells the renderer which flavour of advisory to use;
    the handling is otherwise identical.
    """

    advisory_kind = "validation"


class ValidationError(AdvisoryError):
    """An answer is missing, empty, or not valid for its question."""

    advisory_kind = "validation"


class IncompleteSurvey(ValidationError):
    """Submit attempted while some questions are still unanswered."""

    advisory_kind = "incomplete"

    def __init__(self, message: str, *, answered: int, total: int) -> None:
        super().__init__(message)
        self.answered = answered
        self.total = total


class DwellViolation(AdvisoryError):
    """Forward navigation or submit attempted during the reading countdown."""

    advisory_kind = "dwell"

    def __init__(self, message: str, *, remaining: int) -> None:
        super().__init__(message)
        self.remaining = remaining


class SessionSealed(SurveyEngineError):
    """The session was already submitted; answers and position are frozen."""


class CatalogUnavailable(SurveyEngineError):
    """The question catalog could not be fetched or parsed."""


class RemoteStatusUnreachable(SurveyEngineError):
    """The remote completion status could not be determined."""


class SubmissionFailure(SurveyEngineError):
    """The submission was not acknowledged; the session stays open for retry."""


class SubmissionInProgress(SurveyEngineError):
    """A submission for this session is already outstanding."""

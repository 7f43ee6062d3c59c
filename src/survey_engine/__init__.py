"""survey_engine — resumable, paced, submit-once survey sessions.

Public API:
    SurveyEngine            — navigation controller for one survey session
    open_sentiment_survey   — engine for the monthly rotating sentiment form
    open_hr_feedback_survey — engine for the one-time HR feedback survey
    EngineView              — immutable snapshot published to renderers
    EngineStatus            — lifecycle states of an engine

Components:
    CatalogLoader           — fetches and caches the question catalog
    DwellGate               — minimum reading time on first visits
    ProgressTracker         — owns position, answers and visited questions
    SubmissionCoordinator   — remote status reconciliation and submission
    SessionStorage          — namespaced, corruption-tolerant persistence

Collaborator interfaces:
    SurveyBackend           — ABC for the remote survey service
    KeyValueStore           — ABC for durable key/value storage
    HttpSurveyBackend       — SurveyBackend over the REST API
    InMemoryStore           — process-local KeyValueStore
"""

from survey_engine.catalog import CatalogLoader
from survey_engine.controller import SurveyEngine
from survey_engine.coordinator import SubmissionCoordinator, build_payload
from survey_engine.dwell import DwellGate
from survey_engine.errors import (
    AdvisoryError,
    CatalogUnavailable,
    DwellViolation,
    IncompleteSurvey,
    RemoteStatusUnreachable,
    SessionSealed,
    SubmissionFailure,
    SubmissionInProgress,
    SurveyEngineError,
    ValidationError,
)
from survey_engine.http_backend import HttpSurveyBackend
from survey_engine.instances import (
    catalog_id_for,
    hr_feedback_instance_key,
    sentiment_form_id,
    sentiment_instance_key,
)
from survey_engine.interfaces import KeyValueStore, SurveyBackend
from survey_engine.models import (
    Advisory,
    EngineStatus,
    EngineView,
    QuestionDefinition,
    RemoteCompletionRecord,
    SessionState,
    SubmissionAck,
    SubmissionPayload,
)
from survey_engine.storage import InMemoryStore, SessionStorage
from survey_engine.surveys import open_hr_feedback_survey, open_sentiment_survey
from survey_engine.tracker import ProgressTracker

__all__ = [
    # Engine & call sites
    "SurveyEngine",
    "open_sentiment_survey",
    "open_hr_feedback_survey",
    # Components
    "CatalogLoader",
    "DwellGate",
    "ProgressTracker",
    "SubmissionCoordinator",
    "SessionStorage",
    "build_payload",
    # Collaborators
    "SurveyBackend",
    "KeyValueStore",
    "HttpSurveyBackend",
    "InMemoryStore",
    # Instance keys
    "catalog_id_for",
    "hr_feedback_instance_key",
    "sentiment_form_id",
    "sentiment_instance_key",
    # Models
    "Advisory",
    "EngineStatus",
    "EngineView",
    "QuestionDefinition",
    "RemoteCompletionRecord",
    "SessionState",
    "SubmissionAck",
    "SubmissionPayload",
    # Errors
    "SurveyEngineError",
    "AdvisoryError",
    "ValidationError",
    "IncompleteSurvey",
    "DwellViolation",
    "SessionSealed",
    "CatalogUnavailable",
    "RemoteStatusUnreachable",
    "SubmissionFailure",
    "SubmissionInProgress",
]

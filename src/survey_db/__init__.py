"""survey_db — SQL persistence for survey submissions and client sessions.

Provides the ORM models, async engine factory, repositories and a
:class:`~survey_engine.interfaces.KeyValueStore` implementation so survey
engines can persist sessions in the same database as the service.
"""

from survey_db.engine import (
    build_engine,
    build_session_factory,
    dispose_engine,
    get_engine,
    get_session_factory,
)
from survey_db.models import Base, StoredEntry, SurveySubmission
from survey_db.repository import EntryRepository, SubmissionRepository, payload_digest
from survey_db.store import SqlKeyValueStore

__all__ = [
    "Base",
    "StoredEntry",
    "SurveySubmission",
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_factory",
    "dispose_engine",
    "EntryRepository",
    "SubmissionRepository",
    "payload_digest",
    "SqlKeyValueStore",
]

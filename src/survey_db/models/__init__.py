from survey_db.models.base import Base
from survey_db.models.entry import StoredEntry
from survey_db.models.submission import SurveySubmission

__all__ = ["Base", "StoredEntry", "SurveySubmission"]

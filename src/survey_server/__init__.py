"""survey_server — FastAPI service backing the survey engine.

Serves question catalogs from YAML, answers completion-status queries and
records submissions exactly once per respondent and survey instance.
"""

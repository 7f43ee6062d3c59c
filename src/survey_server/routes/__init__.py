"""Route registration: every router is mounted under ``/api/v1``."""

from fastapi import FastAPI

from survey_server.routes.surveys import router as surveys_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(surveys_router, prefix=API_PREFIX)

"""Survey API application factory and ``survey-server`` entry point.

Startup loads every catalog under ``settings.catalog_dir`` into
``app.state.catalogs``; a broken catalog file stops the server from
starting rather than surfacing later as a 500.  Shutdown releases the
database pool.

Routes live under ``/api/v1`` (see :mod:`survey_server.routes`), plus an
unversioned ``/health`` probe.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from survey_db.engine import dispose_engine, get_engine
from survey_server.catalog_store import CatalogStore
from survey_server.config import ServerSettings, load_settings
from survey_server.errors import register_exception_handlers
from survey_server.routes import register_routes

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: ServerSettings = app.state.settings
    app.state.catalogs = CatalogStore(catalog_dir=settings.catalog_dir)
    app.state.catalogs.load()
    try:
        yield
    finally:
        await dispose_engine()
        logger.info("Survey API stopped; database pool released")


async def _database_ok() -> tuple[bool, str | None]:
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Health check: database unreachable: %s", exc)
        return False, str(exc)
    return True, None


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build the FastAPI app for ``settings`` (environment when omitted)."""
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO), format=LOG_FORMAT,
    )

    app = FastAPI(
        title="Survey API",
        description="Question catalogs, completion status and one-time submissions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Identity comes from a header, not cookies, so credentials stay off
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    register_routes(app)

    @app.get("/health", tags=["meta"])
    async def health() -> dict:
        ok, detail = await _database_ok()
        if not ok:
            return {"status": "error", "detail": detail}
        return {"status": "ok", "catalogs": len(app.state.catalogs.catalogs)}

    return app


# ASGI target for ``uvicorn survey_server.app:app``
app = create_app()


def cli() -> None:
    """``survey-server`` console script."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "survey_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )

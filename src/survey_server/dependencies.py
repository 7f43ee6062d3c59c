"""FastAPI dependency injection — DB sessions, catalogs and respondent identity.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error;
repositories call ``flush()`` but never ``commit()``.
"""

import hmac
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.engine import get_session_factory
from survey_server.catalog_store import CatalogStore


# ------------------------------------------------------------------
# Database session: transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# Catalogs: stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_catalogs(request: Request) -> CatalogStore:
    """Return the CatalogStore singleton from ``app.state``."""
    return request.app.state.catalogs


# ------------------------------------------------------------------
# Respondent identity: extracted from the X-Respondent-ID header
# ------------------------------------------------------------------

async def get_respondent_id(
    request: Request,
    x_respondent_id: str | None = Header(None, alias="X-Respondent-ID"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> str:
    """Extract respondent identity from the ``X-Respondent-ID`` header.

    Returns 401 if the header is missing.  When ``TRUSTED_PROXY_SECRET`` is
    configured the request must also carry a matching ``X-Proxy-Secret``
    (403 otherwise).
    """
    if not x_respondent_id:
        raise HTTPException(status_code=401, detail="X-Respondent-ID header is required")

    expected_secret: str | None = request.app.state.settings.trusted_proxy_secret
    if expected_secret:
        if not x_proxy_secret:
            raise HTTPException(
                status_code=403,
                detail="X-Proxy-Secret header is required",
            )
        # Constant-time comparison
        if not hmac.compare_digest(x_proxy_secret, expected_secret):
            raise HTTPException(status_code=403, detail="Invalid proxy secret")

    return x_respondent_id

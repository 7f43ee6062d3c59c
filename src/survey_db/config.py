"""Database URL resolution.

``DATABASE_URL`` wins when set; otherwise the URL is assembled from the
``PG_*`` variables used by docker-compose.  Whatever the source, the
runtime always gets an async driver:

    postgresql://...   -> postgresql+asyncpg://...
    sqlite:///x.db     -> sqlite+aiosqlite:///x.db

URLs that already name a driver are left alone.
"""

import os

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}

PG_DEFAULTS = {
    "PG_HOST": "localhost",
    "PG_PORT": "5432",
    "PG_USER": "survey",
    "PG_PASSWORD": "survey",
    "PG_DATABASE": "survey",
}


def _pg(name: str) -> str:
    return os.getenv(name, PG_DEFAULTS[name])


def database_url() -> str:
    """The configured URL, exactly as given or built from ``PG_*``."""
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit
    return (
        f"postgresql://{_pg('PG_USER')}:{_pg('PG_PASSWORD')}"
        f"@{_pg('PG_HOST')}:{_pg('PG_PORT')}/{_pg('PG_DATABASE')}"
    )


def to_async_url(url: str) -> str:
    """Swap a bare dialect scheme for its async driver."""
    scheme, sep, rest = url.partition("://")
    if not sep or "+" in scheme:
        return url
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}://{rest}"


def get_async_url() -> str:
    """Async driver URL for the runtime engine and migrations."""
    return to_async_url(database_url())

"""Survey API settings.

Read once from the environment by :func:`load_settings`:

    SERVER_HOST / SERVER_PORT     bind address (0.0.0.0:8080)
    SERVER_CORS_ORIGINS           comma-separated origins, "*" by default
    SERVER_CATALOG_DIR            catalog YAML directory (repo ``catalogs/``)
    SERVER_LOG_LEVEL              logging level name (INFO)
    TRUSTED_PROXY_SECRET          shared secret the identity gateway sends
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    catalog_dir: str | None = None
    log_level: str = "INFO"
    # When set, requests carrying X-Respondent-ID must also carry a matching
    # X-Proxy-Secret, so only the gateway can assert an identity.
    trusted_proxy_secret: str | None = None


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_settings() -> ServerSettings:
    defaults = ServerSettings()
    return ServerSettings(
        host=os.getenv("SERVER_HOST", defaults.host),
        port=int(os.getenv("SERVER_PORT", str(defaults.port))),
        cors_origins=_split_origins(os.getenv("SERVER_CORS_ORIGINS", "*")),
        catalog_dir=os.getenv("SERVER_CATALOG_DIR") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", defaults.log_level).upper(),
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
    )

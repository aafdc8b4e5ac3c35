"""Runtime settings read from the environment."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

APP_NAME = "Calculator History API"
APP_VERSION = "0.1.0"


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    max_history: int = 100
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", name, raw, default)
        return default


def load_settings() -> Settings:
    """Build Settings from HOST, PORT, MAX_HISTORY and LOG_LEVEL."""
    defaults = Settings()
    return Settings(
        host=os.getenv("HOST") or defaults.host,
        port=_env_int("PORT", defaults.port),
        max_history=_env_int("MAX_HISTORY", defaults.max_history),
        log_level=(os.getenv("LOG_LEVEL") or defaults.log_level).upper(),
    )

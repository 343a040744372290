from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List

# DB_PATH values starting with this prefix (e.g. ":memory-test:") keep the
# database in memory only; nothing is ever read from or written to disk.
EPHEMERAL_PREFIX = ":"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - DB_PATH: path of the database snapshot file. Default 'todo.db'.
      Values starting with ':' select an in-memory, never-persisted database.
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level name (DEBUG, INFO, ...). Default 'INFO'
    - FEATURE_TODO_SEARCH: 'false' hides GET /todos/search (404). Default: enabled
    - DEBUG: 'true' returns the error message in 500 responses instead of a
      generic one. Default: false
    """

    db_path: str = "todo.db"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    feature_todo_search: bool = True
    debug: bool = False

    @property
    def is_ephemeral(self) -> bool:
        """True when the configured path opts out of persistence."""
        return self.db_path.startswith(EPHEMERAL_PREFIX)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        # Unknown level names fall back to INFO
        return "INFO"
    return level


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    return Settings(
        db_path=_get_env("DB_PATH", "todo.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_parse_log_level(_get_env("LOG_LEVEL", "INFO")),
        feature_todo_search=_parse_bool(_get_env("FEATURE_TODO_SEARCH", "true"), True),
        debug=_parse_bool(_get_env("DEBUG", "false"), False),
    )

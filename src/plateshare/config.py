"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/plateshare.db"),
        description="SQLite database location.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for mutating endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    notifications_enabled: bool = Field(
        default=True,
        description="Persist in-app notifications after lifecycle changes when true.",
    )
    expiry_reminder_enabled: bool = Field(
        default=False,
        description="Run the periodic expiring-listing reminder job inside the API process.",
    )
    expiry_reminder_window_hours: int = Field(
        default=24,
        description="Listings expiring within this many hours trigger a reminder.",
    )
    expiry_reminder_interval_minutes: float = Field(
        default=60.0,
        description="Minutes between expiring-listing reminder runs.",
    )
    default_page_size: int = Field(
        default=10,
        description="Page size used when browsing listings without an explicit limit.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


# environment variable -> (settings field, parser)
_ENV_FIELDS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "PLATESHARE_DATABASE_PATH": ("database_path", Path),
    "PLATESHARE_API_TOKEN": ("api_token", str),
    "PLATESHARE_LOG_LEVEL": ("log_level", str),
    "PLATESHARE_LOG_FORMAT": ("log_format", str),
    "PLATESHARE_LOG_REQUESTS": ("log_requests", _coerce_bool),
    "PLATESHARE_NOTIFICATIONS_ENABLED": ("notifications_enabled", _coerce_bool),
    "PLATESHARE_EXPIRY_REMINDER_ENABLED": ("expiry_reminder_enabled", _coerce_bool),
    "PLATESHARE_EXPIRY_REMINDER_WINDOW_HOURS": ("expiry_reminder_window_hours", int),
    "PLATESHARE_EXPIRY_REMINDER_INTERVAL_MINUTES": ("expiry_reminder_interval_minutes", float),
    "PLATESHARE_DEFAULT_PAGE_SIZE": ("default_page_size", int),
}


def _read_env_file(path: Path) -> Dict[str, str]:
    """Parse ``KEY=value`` lines, ignoring comments and surrounding quotes."""

    if not path.is_file():
        return {}
    values: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw = line.split("=", 1)
        values[key.strip()] = raw.strip().strip("'\"")
    return values


def _load_from_env() -> Dict[str, Any]:
    """Collect overrides from the environment, then ``.env`` files in order."""

    file_values: Dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        file_values.update(_read_env_file(candidate))

    overrides: Dict[str, Any] = {}
    for env_key, (field, parse) in _ENV_FIELDS.items():
        raw = os.environ.get(env_key) or file_values.get(env_key)
        if not raw:
            continue
        try:
            overrides[field] = parse(raw)
        except ValueError:
            # Malformed numbers fall back to the default.
            continue
    return overrides


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())

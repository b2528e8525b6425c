"""
Application settings for the grade engine.

Settings are read from environment variables prefixed with ``CG_`` (and an
optional ``.env`` file) and cached after the first load. Relative paths are
resolved against the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root directory (parent of climb_grades/)
PROJECT_ROOT = Path(__file__).parent.parent

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Runtime configuration.

    Attributes:
        app_name: Name reported by the API.
        app_version: Version reported by the API.
        debug: Human-readable logs and API docs when True.
        testing: Enables API docs without debug logging.
        log_level: Minimum log level.
        supabase_url: Supabase project URL; remote sync is disabled when empty.
        supabase_key: Supabase API key.
        supabase_timeout_seconds: PostgREST client timeout.
        grade_systems_table: Table holding per-user custom grade systems.
        local_store_path: JSON file backing the local key-value store.
            Empty means an in-memory store.
        default_logging_system: Grade system preselected for new sessions.
    """

    model_config = SettingsConfigDict(
        env_prefix="CG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "climb-grades"
    app_version: str = "0.1.0"
    debug: bool = False
    testing: bool = False
    log_level: str = "INFO"

    supabase_url: str = ""
    supabase_key: str = ""
    supabase_timeout_seconds: int = Field(default=10, ge=1)
    grade_systems_table: str = "grade_systems"

    local_store_path: str = "data/local_store.json"
    default_logging_system: str = "V"

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got '{value}'")
        return upper

    @property
    def remote_sync_enabled(self) -> bool:
        """True when Supabase credentials are configured."""
        return bool(self.supabase_url and self.supabase_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings."""
    return Settings()


def get_settings_override(overrides: dict[str, Any]) -> Settings:
    """Build an uncached Settings instance with explicit values (for testing).

    Example:
        >>> settings = get_settings_override({"debug": True, "local_store_path": ""})
    """
    return Settings(**overrides)


def get_project_root() -> Path:
    """Return the absolute path to the project root directory."""
    return PROJECT_ROOT


def resolve_path(path_str: str, relative_to: Optional[Path] = None) -> Path:
    """
    Resolve a path string to an absolute path.

    Relative paths are resolved against the project root (or
    ``relative_to``); absolute paths are returned as-is.

    Examples:
        >>> resolve_path('data/local_store.json')
        Path('/path/to/project/data/local_store.json')
    """
    path = Path(path_str)

    if path.is_absolute():
        return path

    base_dir = relative_to if relative_to is not None else PROJECT_ROOT
    return (base_dir / path).resolve()

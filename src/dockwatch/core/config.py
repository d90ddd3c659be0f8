"""
Dockwatch Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.

Usage:
    from dockwatch.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Environment Variables:
    DOCKWATCH_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DOCKWATCH_LOG_JSON: Output logs as JSON
    DOCKWATCH_RULES_FILE: Path to the subscription rule file
    DOCKWATCH_APPRISE_URL: Base URL of the Apprise API gateway
    DOCKWATCH_DOCKER_HOST: Docker daemon address (unix:// or tcp://)
    DOCKWATCH_RECONNECT_DELAY_SECONDS: Wait before reopening a lost event stream
    DOCKWATCH_MAX_CONCURRENT_DELIVERIES: Cap on in-flight notifications
    DOCKWATCH_REQUEST_TIMEOUT_SECONDS: Timeout for gateway requests
    DOCKWATCH_BODY_FORMAT: Notification body format (text, markdown, html)
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_env_file() -> Path | None:
    """
    Find .env file by searching for project root markers.

    Searches upward from this file's location for pyproject.toml,
    then checks for .env in that directory.

    Returns:
        Path to .env if found, None otherwise
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            env_file = current / ".env"
            if env_file.exists():
                return env_file
            return None
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


_ENV_FILE = _find_project_env_file()


class DockwatchSettings(BaseSettings):
    """
    Dockwatch configuration settings with validation.

    Environment variables are automatically loaded with the DOCKWATCH_ prefix.
    Command-line options override these values at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCKWATCH_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level for dockwatch components",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Rules & Endpoints
    # =========================================================================

    rules_file: Path = Field(
        default=Path("rules.yaml"),
        description="Subscription rule file (YAML or JSON)",
    )

    apprise_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the Apprise API notification gateway",
    )

    docker_host: str = Field(
        default="unix:///var/run/docker.sock",
        description="Docker daemon address",
    )

    # =========================================================================
    # Dispatch Loop
    # =========================================================================

    reconnect_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Seconds to wait before reopening a lost event stream",
    )

    max_concurrent_deliveries: int = Field(
        default=8,
        ge=1,
        description="Maximum notifications in flight at once",
    )

    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single gateway request",
    )

    body_format: Literal["text", "markdown", "html"] = Field(
        default="text",
        description="Format hint sent with each notification body",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("body_format", mode="before")
    @classmethod
    def lowercase_body_format(cls, v: str) -> str:
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator("apprise_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def log_level_int(self) -> int:
        """Log level as a logging constant."""
        return getattr(logging, self.log_level)


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> DockwatchSettings:
    """
    Get the singleton settings instance.

    The settings are validated at first access.
    """
    return DockwatchSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()


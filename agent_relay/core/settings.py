"""agent-relay - Configuration system with Pydantic Settings"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pydantic_settings
from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

__all__ = [
    "RelaySettings",
    "settings",
    "get_settings",
    "reload_settings",
    "configure_logging",
]

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


class RelaySettings(pydantic_settings.BaseSettings):
    """Runtime knobs for the delegation core with type-safe validation"""

    app_name: str = Field(default="agent-relay", min_length=1)
    log_level: str = Field(default="INFO")

    # Delegation lifecycle
    delegation_timeout_seconds: float = Field(default=300.0)
    orphan_max_idle_seconds: float = Field(default=3600.0)
    report_retention_seconds: float = Field(default=3600.0)

    # Configuration limits
    max_agents: int = Field(default=20)

    model_config = SettingsConfigDict(
        env_prefix="AGENT_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "delegation_timeout_seconds",
        "orphan_max_idle_seconds",
        "report_retention_seconds",
    )
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Reject zero or negative durations."""
        if v <= 0:
            raise ValueError(f"duration must be > 0, got {v}")
        return v

    @field_validator("max_agents")
    @classmethod
    def validate_max_agents(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_agents must be > 0, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the level name and reject unknown levels."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


settings: RelaySettings = RelaySettings()


def get_settings() -> RelaySettings:
    """
    Get the global settings singleton instance.

    Returns:
        The global RelaySettings instance.
    """
    return settings


def reload_settings(env_file: Optional[Path] = None) -> RelaySettings:
    """
    Reload settings by creating a new RelaySettings instance.

    The module-level singleton is replaced so later get_settings() calls
    observe the new values.

    Args:
        env_file: Optional explicit .env file to read instead of ./.env

    Returns:
        A new RelaySettings instance with current environment values.
    """
    global settings
    if env_file is not None:
        settings = RelaySettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = RelaySettings()
    return settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for command-line entry points."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

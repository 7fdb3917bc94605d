"""Preflight configuration loaded from environment variables."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from node_preflight.models import ResultCategory

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables with PREFLIGHT_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="PREFLIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False

    # Container runtime; selects runtime-specific checks.
    runtime: str = ""

    # Docker
    docker_socket: str = "/var/run/docker.sock"
    docker_timeout: float = 5.0

    # Reporting
    report_level: ResultCategory = ResultCategory.GOOD

    # Logging
    structured_logging: bool = False
    log_level: str = "INFO"

    @field_validator("runtime", mode="before")
    @classmethod
    def normalise_runtime(cls, v: str | None) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings for runtime: %r", settings.runtime)

    return settings

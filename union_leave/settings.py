"""
Import pipeline settings using pydantic-settings for type-safe configuration.

Environment variables are centralized here with proper typing, validation,
and defaults suitable for local development. Settings are loaded once and cached.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Import settings loaded from environment variables or a .env file.

    Matcher thresholds are not here; they live in the schema-validated
    config store (see union_leave.config) so they can be tuned per deployment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # === PocketBase Configuration ===
    pocketbase_url: str = Field(
        default="http://127.0.0.1:8090",
        description="PocketBase server URL",
    )
    pocketbase_admin_email: str = Field(
        default="admin@union.local",
        description="PocketBase admin email for API authentication",
    )
    pocketbase_admin_password: str = Field(
        default="",
        description="PocketBase admin password (required - no default for security)",
    )

    # === Import Behavior ===
    import_source: str = Field(
        default="ical",
        description="Value written to import_source on every imported request",
    )
    default_division_id: str | None = Field(
        default=None,
        description="Division used to scope member lookups when none is given",
    )

    # === Logging ===
    log_level: str = Field(
        default="INFO",
        description="Log level: TRACE, DEBUG, INFO, WARNING or ERROR",
    )

    @field_validator("pocketbase_admin_password", mode="after")
    @classmethod
    def validate_admin_password(cls, v: str) -> str:
        """Warn when the admin password is unset or a known default."""
        if v in {"password", "admin", "123456", ""}:
            logger.warning(
                "SECURITY WARNING: POCKETBASE_ADMIN_PASSWORD is not set or uses an insecure default. "
                "Set a strong password in your .env file for production use."
            )
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate log_level."""
        v = v.upper()
        if v not in ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.
    """
    return Settings()

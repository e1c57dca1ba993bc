"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).

Postgres is optional: without `DATABASE_URL` the application serves the bundled intent catalogue and
the caller injects its own reference resolver.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    intent_definitions_path: Path | None = Field(default=None, alias="INTENT_DEFINITIONS_PATH")
    default_hourly_rate: float = Field(default=50.0, alias="DEFAULT_HOURLY_RATE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("default_hourly_rate")
    @classmethod
    def validate_default_hourly_rate(cls, value: float) -> float:
        """The baseline rate applied to new users must itself pass the positive-rate rule."""

        if value <= 0:
            raise ValueError("DEFAULT_HOURLY_RATE must be greater than 0")
        return value

    @field_validator("database_url")
    @classmethod
    def blank_database_url_is_unset(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc

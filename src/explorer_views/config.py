"""Configuration management service with Pydantic Settings.

This module provides centralized configuration for the explorer views
project: database locations, the foreign server the publication layer
imports from, migration retry policy and the refresh daemon.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"

_POSTGRES_PREFIXES = ("postgresql://", "postgresql+asyncpg://", "postgres://")


class DatabaseSettings(BaseSettings):
    """Statistics database connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        alias="DATABASE_URL",
        description="PostgreSQL connection string of the statistics database",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith(_POSTGRES_PREFIXES):
            raise ValueError("DATABASE_URL must be a PostgreSQL connection string")
        return v


class SubscriberSettings(BaseSettings):
    """Foreign server imported by the publication layer."""

    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    host: str = Field(
        default="localhost",
        alias="DB_HOST",
        description="Host of the subscriber database",
    )
    port: int = Field(
        default=5432,
        alias="DB_PORT",
        ge=1,
        le=65535,
        description="Port of the subscriber database",
    )
    name: str = Field(
        default="postgres",
        alias="DB_NAME",
        description="Database name on the subscriber server",
    )
    username: str = Field(
        default="postgres",
        alias="DB_USERNAME",
        description="User the foreign server is accessed as",
    )
    password: SecretStr = Field(
        default=SecretStr(""),
        alias="DB_PASSWORD",
        description="Password for the user mapping",
    )


class MigrationSettings(BaseSettings):
    """Retry policy for migration DDL blocks."""

    model_config = SettingsConfigDict(env_prefix="MIGRATION_", extra="ignore")

    retry_limit: int = Field(
        default=10,
        alias="MIGRATION_RETRY_LIMIT",
        ge=1,
        le=100,
        description="Attempts per DDL block before giving up",
    )
    retry_base_delay_seconds: float = Field(
        default=5.0,
        alias="MIGRATION_RETRY_BASE_DELAY_SECONDS",
        ge=0.0,
        le=3600.0,
        description="Backoff before the second attempt (doubles afterwards)",
    )
    deadline_minutes: float = Field(
        default=90.0,
        alias="MIGRATION_DEADLINE_MINUTES",
        gt=0.0,
        le=24 * 60,
        description="Wall-clock budget for one DDL block including retries",
    )


class RefreshSettings(BaseSettings):
    """Materialized view refresh daemon settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    enabled: bool = Field(
        default=False,
        alias="CALCULATE_EXPLORER_STATISTICS",
        description="Run the refresh daemon",
    )
    interval_scale: float = Field(
        default=1.0,
        alias="REFRESH_INTERVAL_SCALE",
        gt=0.0,
        le=100.0,
        description="Multiplier applied to every refresh interval",
    )


class LoggingSettings(BaseSettings):
    """Logging settings, readable without the database settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from explorer_views.config import get_settings

        settings = get_settings()
        print(settings.database.url)
        print(settings.subscriber.host)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    database: DatabaseSettings = Field(
        default_factory=lambda: DatabaseSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    subscriber: SubscriberSettings = Field(
        default_factory=lambda: SubscriberSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    migrations: MigrationSettings = Field(
        default_factory=lambda: MigrationSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    refresh: RefreshSettings = Field(
        default_factory=lambda: RefreshSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    log: LoggingSettings = Field(
        default_factory=lambda: LoggingSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "database_url": self._redact_url(self.database.url),
            "subscriber": {
                "host": self.subscriber.host,
                "port": str(self.subscriber.port),
                "name": self.subscriber.name,
                "username": self.subscriber.username,
                "password": "(set)" if self.subscriber.password.get_secret_value() else "(not set)",
            },
            "migrations": {
                "retry_limit": str(self.migrations.retry_limit),
                "retry_base_delay_seconds": str(self.migrations.retry_base_delay_seconds),
                "deadline_minutes": str(self.migrations.deadline_minutes),
            },
            "refresh_enabled": str(self.refresh.enabled),
            "log_level": self.log.log_level,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
            or have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()

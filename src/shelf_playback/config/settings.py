"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import BusyTimeoutMs, ConnectionTimeoutS, IntervalSeconds


class DatabaseSettings(BaseModel):
    """Database configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    url: str = Field(
        default="sqlite:///data/library.db",
        validation_alias=AliasChoices("url", "database_url", "db_url"),
    )
    busy_timeout_ms: BusyTimeoutMs = Field(
        default=5000,
        validation_alias=AliasChoices("busy_timeout_ms", "busy_timeout"),
    )
    connection_timeout_s: ConnectionTimeoutS = Field(
        default=10,
        validation_alias=AliasChoices("connection_timeout_s", "connection_timeout"),
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith("sqlite://"):
            raise ValueError(ErrorMessages.INVALID_DATABASE_URL)
        return v


class SessionSettings(BaseModel):
    """Timing for the playback session's background activities."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    download_poll_interval_s: IntervalSeconds = Field(
        default=1.0,
        validation_alias=AliasChoices("download_poll_interval_s", "poll_interval"),
    )
    sleep_tick_interval_s: IntervalSeconds = 1.0
    discover_seek_delay_s: float = Field(default=0.5, ge=0.0, le=10.0)
    sleep_timer_presets: tuple[int, ...] = (15, 30, 45, 60)

    @field_validator("sleep_timer_presets", mode="before")
    @classmethod
    def validate_presets(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        """Convert lists to tuples and reject non-positive presets."""
        if isinstance(v, list):
            v = tuple(v)
        if any(minutes <= 0 for minutes in v):
            raise ValueError(ErrorMessages.INVALID_SLEEP_PRESETS)
        return v


class MediaSettings(BaseModel):
    """Media file adapter configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True)

    ffprobe_path: str = "ffprobe"
    ffprobe_timeout_s: ConnectionTimeoutS = 30
    read_chunk_bytes: int = Field(default=1024 * 1024, ge=4096)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DATABASE__URL, SESSION__DOWNLOAD_POLL_INTERVAL_S, etc. (nested with ``__``)
    - MEDIA__FFPROBE_PATH
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        strict=True,
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels)
            )
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()

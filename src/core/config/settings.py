# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Engine configuration settings using Pydantic Settings.

This module provides centralized configuration management for the ranking
engine. Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.ranking.improvement_window
    10
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.datetime import SUNDAY, resolve_timezone


class RankingSettings(BaseSettings):
    """Scoring and ranking policy constants.

    The composite score is
    ``improvement_weight * avg_improvement
    + daily_minutes_weight * min(daily_minutes, daily_minutes_cap)
    + consistency_points * weekly_days / 7``.
    With the defaults every term tops out at 40/30/30 points.

    Attributes:
        improvement_window: Number of most recent sessions averaged.
        neutral_improvement: Score substituted for sessions without one.
        daily_minutes_cap: Daily study minutes beyond this earn nothing.
        improvement_weight: Points per improvement percentage point.
        daily_minutes_weight: Points per study minute today.
        consistency_points: Points for studying all seven days of the week.
        week_start_day: Weekday the week starts on (Monday=0 .. Sunday=6).
        timezone: IANA timezone defining calendar days.
        default_top_n: Default truncation for display views.
        top_rank_threshold: Rank a student must reach for "entered top" events.
        podium_size: Ranks that earn an achievement.
        max_workers: Threads used to rank scopes (1 ranks sequentially).
    """

    model_config = SettingsConfigDict(
        env_prefix="RANKING_",
        extra="ignore",
    )

    improvement_window: int = Field(default=10, ge=1)
    neutral_improvement: int = Field(default=50, ge=0, le=100)
    daily_minutes_cap: int = Field(default=120, ge=0)
    improvement_weight: float = Field(default=0.4, ge=0)
    daily_minutes_weight: float = Field(default=0.25, ge=0)
    consistency_points: float = Field(default=30.0, ge=0)
    week_start_day: int = Field(default=SUNDAY, ge=0, le=6)
    timezone: str = "UTC"
    default_top_n: int = Field(default=10, ge=1)
    top_rank_threshold: int = Field(default=10, ge=1)
    podium_size: int = Field(default=3, ge=0)
    max_workers: int = Field(default=1, ge=1)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject timezone names zoneinfo cannot resolve."""
        resolve_timezone(value)
        return value

    @property
    def tzinfo(self):
        """Resolved tzinfo for the configured timezone."""
        return resolve_timezone(self.timezone)


class DatabaseSettings(BaseSettings):
    """Snapshot database configuration.

    Attributes:
        url: SQLAlchemy async connection URL.
        echo: Log every SQL statement.
        pool_pre_ping: Test connections before handing them out.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore",
    )

    url: str = "sqlite+aiosqlite:///./rankings.db"
    echo: bool = False
    pool_pre_ping: bool = True

    @property
    def is_sqlite(self) -> bool:
        """Check if the URL points at SQLite."""
        return self.url.startswith("sqlite")


class Settings(BaseSettings):
    """Main engine settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        ranking: Scoring and ranking policy.
        database: Snapshot database settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    ranking: RankingSettings = Field(default_factory=RankingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()

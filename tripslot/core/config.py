"""
Application configuration using Pydantic Settings.

Grid and conflict defaults are read once per process; callers turn them into a
SchedulingConfig and pass that explicitly into every scheduling call.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Time Grid
    # ===========================================
    GRID_INTERVAL_MINUTES: Literal[15, 30, 60] = 30
    GRID_START_HOUR: int = 6
    GRID_END_HOUR: int = 23

    # ===========================================
    # Travel Buffer
    # ===========================================
    # Fixed transit allowance between activities (no routing lookups)
    SHOW_TRAVEL_TIME: bool = True
    TRAVEL_BUFFER_MINUTES: int = 10

    # ===========================================
    # Business Hours (optional, "HH:MM")
    # ===========================================
    # Leave both empty to disable the hours check
    BUSINESS_HOURS_OPEN: str = ""
    BUSINESS_HOURS_CLOSE: str = ""
    # Warn when a venue type is usually closed at the scheduled time
    CHECK_VENUE_HOURS: bool = False

    @property
    def has_business_hours(self) -> bool:
        """Check if both business hour bounds are configured."""
        return bool(self.BUSINESS_HOURS_OPEN and self.BUSINESS_HOURS_CLOSE)

    @property
    def effective_travel_buffer(self) -> int | None:
        """Travel buffer in minutes, or None when travel time is hidden."""
        return self.TRAVEL_BUFFER_MINUTES if self.SHOW_TRAVEL_TIME else None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()

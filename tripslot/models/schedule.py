"""
Schedule models for the time grid and conflict detection.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tripslot.core.config import Settings
from tripslot.core.exceptions import ConfigurationError
from tripslot.models.enums import ConflictReason, ConflictSeverity, ResolutionAction
from tripslot.utils.time_grid import time_to_minutes

ALLOWED_INTERVALS = (15, 30, 60)
DEFAULT_INTERVAL_MINUTES = 30
DEFAULT_START_HOUR = 6
DEFAULT_END_HOUR = 23


class TimeSlot(BaseModel):
    """One fixed-width bucket of the calendar grid."""

    model_config = ConfigDict(frozen=True)

    time: str
    hour: int
    minute: int
    label: str
    is_hour: bool
    interval_index: int


class BusinessHours(BaseModel):
    """Daily opening window, half-open [open, close)."""

    model_config = ConfigDict(frozen=True)

    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def _check_time(cls, value: str) -> str:
        time_to_minutes(value)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "BusinessHours":
        if time_to_minutes(self.open) >= time_to_minutes(self.close):
            raise ConfigurationError(
                f"Business hours open ({self.open}) must be before close ({self.close})",
                details={"open": self.open, "close": self.close},
            )
        return self

    @property
    def open_minutes(self) -> int:
        return time_to_minutes(self.open)

    @property
    def close_minutes(self) -> int:
        return time_to_minutes(self.close)


class SchedulingConfig(BaseModel):
    """
    Session-scoped grid and conflict configuration.

    Validated once here; detection calls trust it afterwards.
    """

    model_config = ConfigDict(frozen=True)

    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    start_hour: int = DEFAULT_START_HOUR
    end_hour: int = DEFAULT_END_HOUR
    travel_buffer_minutes: Optional[int] = None
    business_hours: Optional[BusinessHours] = None
    check_venue_hours: bool = False

    @model_validator(mode="after")
    def _check_consistency(self) -> "SchedulingConfig":
        if self.interval_minutes not in ALLOWED_INTERVALS:
            raise ConfigurationError(
                f"interval_minutes must be one of {ALLOWED_INTERVALS}, got {self.interval_minutes}"
            )
        if not 0 <= self.start_hour <= 23:
            raise ConfigurationError(f"start_hour out of range: {self.start_hour}")
        if not 1 <= self.end_hour <= 24:
            raise ConfigurationError(f"end_hour out of range: {self.end_hour}")
        if self.start_hour >= self.end_hour:
            raise ConfigurationError(
                f"start_hour ({self.start_hour}) must be before end_hour ({self.end_hour})"
            )
        if self.travel_buffer_minutes is not None and self.travel_buffer_minutes < 0:
            raise ConfigurationError(
                f"travel_buffer_minutes must be >= 0, got {self.travel_buffer_minutes}"
            )
        return self

    @property
    def day_start_minutes(self) -> int:
        return self.start_hour * 60

    @property
    def day_end_minutes(self) -> int:
        return self.end_hour * 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchedulingConfig":
        """Build the session config from environment settings."""
        business_hours = None
        if settings.has_business_hours:
            business_hours = BusinessHours(
                open=settings.BUSINESS_HOURS_OPEN,
                close=settings.BUSINESS_HOURS_CLOSE,
            )
        return cls(
            interval_minutes=settings.GRID_INTERVAL_MINUTES,
            start_hour=settings.GRID_START_HOUR,
            end_hour=settings.GRID_END_HOUR,
            travel_buffer_minutes=settings.effective_travel_buffer,
            business_hours=business_hours,
            check_venue_hours=settings.CHECK_VENUE_HOURS,
        )


class ActivityPlacement(BaseModel):
    """A candidate or committed (date, start, end) assignment."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: date
    start: str
    end: str
    place_id: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _check_time(cls, value: str) -> str:
        time_to_minutes(value)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "ActivityPlacement":
        if time_to_minutes(self.start) >= time_to_minutes(self.end):
            raise ValueError(f"start ({self.start}) must be before end ({self.end})")
        return self

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes


class ConflictResolution(BaseModel):
    """A suggested fix; new_start/new_end are set for time adjustments."""

    model_config = ConfigDict(frozen=True)

    action: ResolutionAction
    description: str
    new_start: Optional[str] = None
    new_end: Optional[str] = None


class Conflict(BaseModel):
    """A single detected scheduling problem."""

    model_config = ConfigDict(frozen=True)

    with_id: Optional[str] = Field(
        None, description="Conflicting activity id (None for business-hours conflicts)"
    )
    severity: ConflictSeverity
    reason: ConflictReason
    overlap_minutes: int = 0
    gap_minutes: Optional[int] = None
    message: str = ""
    suggestions: list[ConflictResolution] = Field(default_factory=list)


class ConflictSummary(BaseModel):
    """Conflicts split into blocking errors and advisory warnings."""

    errors: list[Conflict] = Field(default_factory=list)
    warnings: list[Conflict] = Field(default_factory=list)
    text: str


class ResolvedSlot(BaseModel):
    """Outcome of a successful slot search."""

    start: str
    end: str
    was_adjusted: bool = False
    displacement_minutes: int = 0


class AlternativeSlot(BaseModel):
    """Ranked alternative start time offered after a rejected drop."""

    start: str
    end: str
    score: int = Field(..., ge=0, le=100)

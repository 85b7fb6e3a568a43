"""
Place metadata and duration estimate models.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from tripslot.models.enums import ActivityCategory, DurationConfidence


class PlaceData(BaseModel):
    """Already-fetched place metadata (Google Places shaped)."""

    name: str = ""
    types: list[str] = Field(default_factory=list)
    rating: Optional[float] = Field(None, ge=0, le=5)
    user_ratings_total: Optional[int] = Field(None, ge=0)
    place_id: Optional[str] = None


class DurationContext(BaseModel):
    """Scheduling context the estimate is made for."""

    time_of_day: Optional[str] = None
    is_weekend: bool = False
    quick_visits: bool = False
    thorough_exploration: bool = False


class DurationEstimate(BaseModel):
    """Default duration suggestion for a never-scheduled item."""

    duration: int = Field(..., gt=0)
    confidence: DurationConfidence
    category: ActivityCategory
    reasoning: list[str] = Field(default_factory=list)
    range_min: int
    range_max: int

"""
Activity records exchanged with the persistence collaborator.
"""

from __future__ import annotations

from datetime import date as CalendarDate, datetime
from typing import Optional

from pydantic import BaseModel, Field

from tripslot.models.place import PlaceData


class ActivityBase(BaseModel):
    place_id: str
    name: str = ""
    notes: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)


class ActivityCreate(ActivityBase):
    """Payload for adding a wishlist item onto the calendar."""

    date: CalendarDate
    start_time: str
    end_time: str


class Activity(ActivityBase):
    """Scheduled itinerary activity as stored remotely."""

    id: str
    date: Optional[CalendarDate] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_scheduled(self) -> bool:
        return bool(self.date and self.start_time and self.end_time)


class WishlistItem(BaseModel):
    """Unscheduled item waiting to be dropped onto the grid."""

    place_id: str
    place: PlaceData
    duration: Optional[int] = Field(None, gt=0, description="Known duration (minutes)")
    notes: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)

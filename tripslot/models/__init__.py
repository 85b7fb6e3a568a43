"""Pydantic models (schemas) for the scheduling engine."""

from tripslot.models.activity import Activity, ActivityCreate, WishlistItem
from tripslot.models.enums import (
    ActivityCategory,
    ConflictReason,
    ConflictSeverity,
    DurationConfidence,
    PlacementState,
    ResizeEdge,
    ResolutionAction,
)
from tripslot.models.place import DurationContext, DurationEstimate, PlaceData
from tripslot.models.schedule import (
    ActivityPlacement,
    AlternativeSlot,
    BusinessHours,
    Conflict,
    ConflictResolution,
    ConflictSummary,
    ResolvedSlot,
    SchedulingConfig,
    TimeSlot,
)

__all__ = [
    # Enums
    "ActivityCategory",
    "ConflictReason",
    "ConflictSeverity",
    "DurationConfidence",
    "PlacementState",
    "ResizeEdge",
    "ResolutionAction",
    # Schedule
    "ActivityPlacement",
    "AlternativeSlot",
    "BusinessHours",
    "Conflict",
    "ConflictResolution",
    "ConflictSummary",
    "ResolvedSlot",
    "SchedulingConfig",
    "TimeSlot",
    # Places
    "DurationContext",
    "DurationEstimate",
    "PlaceData",
    # Activities
    "Activity",
    "ActivityCreate",
    "WishlistItem",
]

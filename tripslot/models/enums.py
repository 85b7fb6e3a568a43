"""
Enum definitions for the scheduling engine.

These enums are used across models and provide type-safe severity/state values.
"""

from enum import Enum


class ConflictSeverity(str, Enum):
    """
    Ordered severity of a scheduling conflict.

    HIGH = direct time overlap with another committed activity
    MEDIUM = travel buffer violated without a direct overlap
    LOW = outside configured business hours, otherwise valid
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ConflictSeverity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ConflictSeverity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ConflictSeverity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ConflictSeverity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    ConflictSeverity.LOW: 0,
    ConflictSeverity.MEDIUM: 1,
    ConflictSeverity.HIGH: 2,
}


class ConflictReason(str, Enum):
    """Why a conflict was raised."""

    OVERLAP = "overlap"
    BUFFER = "buffer"
    HOURS = "hours"
    MEAL = "meal"


class ResolutionAction(str, Enum):
    """Kind of fix offered alongside a conflict."""

    ADJUST_TIME = "adjust_time"
    REMOVE_ACTIVITY = "remove_activity"
    ADD_TRAVEL_BUFFER = "add_travel_buffer"
    SUGGEST_ALTERNATIVE = "suggest_alternative"


class DurationConfidence(str, Enum):
    """How much a duration estimate can be trusted."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ActivityCategory(str, Enum):
    """Duration band a place falls into, listed in match priority order."""

    QUICK_DINING = "quick_dining"
    DINING = "dining"
    MUSEUM = "museum"
    ATTRACTION = "attraction"
    SHOPPING = "shopping"
    OUTDOOR = "outdoor"
    ENTERTAINMENT = "entertainment"
    LODGING = "lodging"
    DEFAULT = "default"


class PlacementState(str, Enum):
    """
    Lifecycle of an optimistic placement.

    PENDING -> COMMITTED | ROLLED_BACK | SUPERSEDED.
    REJECTED placements never touch local state.
    """

    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"


class ResizeEdge(str, Enum):
    """Which edge of an activity block is being dragged."""

    TOP = "top"
    BOTTOM = "bottom"

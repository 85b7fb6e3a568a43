"""
Nearest-free-slot search used when a drop lands on an occupied time.

Only direct overlaps (HIGH severity) make a slot invalid here; buffer and
business-hours conflicts are advisory and never move an activity.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from tripslot.models.schedule import (
    ActivityPlacement,
    AlternativeSlot,
    ResolvedSlot,
    SchedulingConfig,
)
from tripslot.services.conflict_detector import detect_conflicts, is_blocking
from tripslot.utils.time_grid import LAST_MINUTE, minutes_to_time, time_to_minutes

DEFAULT_STEP_MINUTES = 15
DEFAULT_MAX_ALTERNATIVES = 6
_CANDIDATE_ID = "__slot_candidate__"


def search_bounds(config: Optional[SchedulingConfig]) -> tuple[int, int]:
    """
    Earliest start and latest end (inclusive) a slot may use.

    The end is capped at 23:59 since "24:00" is not a valid time of day.
    """
    if config is None:
        return 0, LAST_MINUTE
    return config.day_start_minutes, min(config.day_end_minutes, LAST_MINUTE)


class _DayIndex:
    """Activities on one date, minus the one being moved."""

    def __init__(
        self,
        target_date: date,
        existing: Iterable[ActivityPlacement],
        exclude_id: Optional[str],
    ):
        self.date = target_date
        self.activities = [
            activity
            for activity in existing
            if activity.date == target_date
            and not (exclude_id is not None and activity.id == exclude_id)
        ]

    def is_free(self, start: int, end: int) -> bool:
        candidate = ActivityPlacement(
            id=_CANDIDATE_ID,
            date=self.date,
            start=minutes_to_time(start),
            end=minutes_to_time(end),
        )
        return not is_blocking(detect_conflicts(candidate, self.activities))


def find_nearest_valid_slot(
    desired_start: str,
    duration_minutes: int,
    date: date,
    existing: Iterable[ActivityPlacement],
    exclude_id: Optional[str] = None,
    config: Optional[SchedulingConfig] = None,
) -> Optional[ResolvedSlot]:
    """
    Find the closest start time where the activity fits without overlapping.

    Candidates alternate outward from the desired start in fixed steps:
    +step, -step, +2*step, -2*step, ... so displacement is minimal and, at
    equal distance, the later time wins.

    Args:
        desired_start: Drop-point start time ("HH:MM[:SS]")
        duration_minutes: Length of the activity
        date: Calendar date of the drop
        existing: Activities already on the itinerary
        exclude_id: The activity being moved, so it ignores its old placement
        config: Grid config; narrows the search window and sets the step

    Returns:
        ResolvedSlot, or None when nothing fits inside the visible day

    Raises:
        ParseError: If desired_start is malformed
        ValueError: If duration_minutes is not positive
    """
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")

    desired = time_to_minutes(desired_start)
    lower, upper = search_bounds(config)
    step = config.interval_minutes if config else DEFAULT_STEP_MINUTES
    day = _DayIndex(date, existing, exclude_id)

    def fits(start: int) -> bool:
        end = start + duration_minutes
        return start >= lower and end <= upper and day.is_free(start, end)

    def resolved(start: int) -> ResolvedSlot:
        return ResolvedSlot(
            start=minutes_to_time(start),
            end=minutes_to_time(start + duration_minutes),
            was_adjusted=start != desired,
            displacement_minutes=abs(start - desired),
        )

    if fits(desired):
        return resolved(desired)

    max_steps = max(upper - desired, desired - lower) // step + 1
    for k in range(1, max_steps + 1):
        for candidate in (desired + k * step, desired - k * step):
            if fits(candidate):
                return resolved(candidate)
    return None


def find_alternative_slots(
    desired_start: str,
    duration_minutes: int,
    date: date,
    existing: Iterable[ActivityPlacement],
    exclude_id: Optional[str] = None,
    config: Optional[SchedulingConfig] = None,
    max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
) -> list[AlternativeSlot]:
    """
    Rank grid-aligned free start times around a rejected drop point.

    Scores fall off by one point per minute of displacement (floor 0). Ties
    are broken in favour of the later time, as in find_nearest_valid_slot.
    """
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")

    desired = time_to_minutes(desired_start)
    lower, upper = search_bounds(config)
    step = config.interval_minutes if config else DEFAULT_STEP_MINUTES
    day = _DayIndex(date, existing, exclude_id)

    first = lower + (-lower % step)
    free_starts = [
        start
        for start in range(first, upper - duration_minutes + 1, step)
        if start != desired and day.is_free(start, start + duration_minutes)
    ]
    free_starts.sort(key=lambda start: (abs(start - desired), -start))

    return [
        AlternativeSlot(
            start=minutes_to_time(start),
            end=minutes_to_time(start + duration_minutes),
            score=max(0, 100 - abs(start - desired)),
        )
        for start in free_starts[:max_alternatives]
    ]

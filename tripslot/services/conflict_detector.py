"""
Conflict detection for activity placements.

Wraps the overlap checks with itinerary rules: same-date filtering,
self-exclusion of a moved activity, an optional travel buffer and an optional
opening-hours window (explicit business hours, or typical hours for the venue
type). All functions are pure; the caller decides policy from the returned
severities (by default only HIGH blocks a drop).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from itertools import combinations
from typing import Iterable, Mapping, Optional

from tripslot.models.enums import ConflictReason, ConflictSeverity, ResolutionAction
from tripslot.models.place import PlaceData
from tripslot.models.schedule import (
    ActivityPlacement,
    BusinessHours,
    Conflict,
    ConflictResolution,
    ConflictSummary,
    SchedulingConfig,
)
from tripslot.services.overlap_detector import gap_minutes, intervals_overlap, overlap_minutes
from tripslot.utils.time_grid import LAST_MINUTE, minutes_to_time, time_to_minutes

BLOCKING_SEVERITY = ConflictSeverity.HIGH

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class VenueHours:
    """Typical opening window for a venue type; close < open wraps past midnight."""

    open: str
    close: str
    weekdays: Optional[frozenset[int]] = None  # date.weekday() values, None = daily

    def is_open_on(self, on: date) -> bool:
        return self.weekdays is None or on.weekday() in self.weekdays

    def is_open_at(self, minutes: int) -> bool:
        open_minutes = time_to_minutes(self.open)
        close_minutes = time_to_minutes(self.close)
        if open_minutes <= close_minutes:
            return open_minutes <= minutes < close_minutes
        return minutes >= open_minutes or minutes < close_minutes


TYPICAL_VENUE_HOURS: dict[str, VenueHours] = {
    "museum": VenueHours("09:00", "17:00"),
    "tourist_attraction": VenueHours("08:00", "18:00"),
    "shopping_mall": VenueHours("10:00", "22:00"),
    "restaurant": VenueHours("11:00", "22:00"),
    "bar": VenueHours("17:00", "02:00"),
    "bank": VenueHours("09:00", "17:00", frozenset(range(0, 5))),
    "post_office": VenueHours("09:00", "17:00", frozenset(range(0, 6))),
}


@dataclass(frozen=True)
class MealWindow:
    name: str
    start: str
    end: str
    ideal: str


MEAL_WINDOWS = (
    MealWindow("breakfast", "07:00", "10:00", "08:30"),
    MealWindow("lunch", "11:30", "14:30", "12:30"),
    MealWindow("dinner", "17:30", "21:00", "19:00"),
)
MEAL_PLACE_TYPES = frozenset({"restaurant", "meal_takeaway"})


def _ordered(a: ActivityPlacement, b: ActivityPlacement) -> tuple[ActivityPlacement, ActivityPlacement]:
    return (a, b) if (a.start_minutes, a.id) <= (b.start_minutes, b.id) else (b, a)


def _overlap_suggestions(
    first: ActivityPlacement, second: ActivityPlacement
) -> list[ConflictResolution]:
    suggestions = []
    if second.start_minutes > first.start_minutes:
        suggestions.append(
            ConflictResolution(
                action=ResolutionAction.ADJUST_TIME,
                description=f"End {first.id} at {second.start}",
                new_end=second.start,
            )
        )
    suggestions.append(
        ConflictResolution(
            action=ResolutionAction.ADJUST_TIME,
            description=f"Start {second.id} at {first.end}",
            new_start=first.end,
        )
    )
    return suggestions


def _buffer_suggestions(
    first: ActivityPlacement, second: ActivityPlacement, buffer_minutes: int
) -> list[ConflictResolution]:
    suggestions = []
    later_start = first.end_minutes + buffer_minutes
    if later_start <= LAST_MINUTE:
        suggestions.append(
            ConflictResolution(
                action=ResolutionAction.ADJUST_TIME,
                description=f"Start {second.id} at {minutes_to_time(later_start)}",
                new_start=minutes_to_time(later_start),
            )
        )
    earlier_end = second.start_minutes - buffer_minutes
    if earlier_end > first.start_minutes:
        suggestions.append(
            ConflictResolution(
                action=ResolutionAction.ADJUST_TIME,
                description=f"End {first.id} at {minutes_to_time(earlier_end)}",
                new_end=minutes_to_time(earlier_end),
            )
        )
    return suggestions


def _pair_conflict(
    candidate: ActivityPlacement,
    other: ActivityPlacement,
    travel_buffer_minutes: Optional[int],
) -> Optional[Conflict]:
    a_start, a_end = candidate.start_minutes, candidate.end_minutes
    b_start, b_end = other.start_minutes, other.end_minutes
    first, second = _ordered(candidate, other)

    if intervals_overlap(a_start, a_end, b_start, b_end):
        shared = overlap_minutes(a_start, a_end, b_start, b_end)
        return Conflict(
            with_id=other.id,
            severity=ConflictSeverity.HIGH,
            reason=ConflictReason.OVERLAP,
            overlap_minutes=shared,
            message=f"Overlaps with {other.id} ({other.start}-{other.end}) by {shared} minutes",
            suggestions=_overlap_suggestions(first, second),
        )

    if travel_buffer_minutes:
        gap = gap_minutes(a_start, a_end, b_start, b_end)
        if gap < travel_buffer_minutes:
            return Conflict(
                with_id=other.id,
                severity=ConflictSeverity.MEDIUM,
                reason=ConflictReason.BUFFER,
                gap_minutes=gap,
                message=(
                    f"Only {gap} minutes between this and {other.id}; "
                    f"{travel_buffer_minutes} minutes of travel time needed"
                ),
                suggestions=_buffer_suggestions(first, second, travel_buffer_minutes),
            )
    return None


def _hours_conflict(
    candidate: ActivityPlacement, business_hours: BusinessHours
) -> Optional[Conflict]:
    open_minutes = business_hours.open_minutes
    close_minutes = business_hours.close_minutes
    starts_outside = not open_minutes <= candidate.start_minutes < close_minutes
    ends_outside = not open_minutes < candidate.end_minutes <= close_minutes
    if not (starts_outside or ends_outside):
        return None

    suggestions = []
    if candidate.start_minutes < open_minutes:
        suggestions.append(
            ConflictResolution(
                action=ResolutionAction.ADJUST_TIME,
                description=f"Start at {business_hours.open} when the venue opens",
                new_start=business_hours.open,
            )
        )
    if candidate.end_minutes > close_minutes and candidate.start_minutes < close_minutes:
        suggestions.append(
            ConflictResolution(
                action=ResolutionAction.ADJUST_TIME,
                description=f"End at {business_hours.close} when the venue closes",
                new_end=business_hours.close,
            )
        )
    return Conflict(
        with_id=None,
        severity=ConflictSeverity.LOW,
        reason=ConflictReason.HOURS,
        message=(
            f"Scheduled outside business hours "
            f"({business_hours.open} - {business_hours.close})"
        ),
        suggestions=suggestions,
    )


def venue_hours_for(
    place_types: Iterable[str],
    venue_hours: Mapping[str, VenueHours] = TYPICAL_VENUE_HOURS,
) -> Optional[tuple[str, VenueHours]]:
    """First place type with known typical hours, with those hours."""
    for place_type in place_types:
        hours = venue_hours.get(place_type.lower())
        if hours is not None:
            return place_type.lower(), hours
    return None


def _venue_hours_conflict(
    candidate: ActivityPlacement,
    place_types: Iterable[str],
    venue_hours: Mapping[str, VenueHours],
) -> Optional[Conflict]:
    match = venue_hours_for(place_types, venue_hours)
    if match is None:
        return None
    place_type, hours = match
    label = place_type.replace("_", " ")
    check_hours = ConflictResolution(
        action=ResolutionAction.SUGGEST_ALTERNATIVE,
        description="Check venue-specific hours before visiting",
    )

    if not hours.is_open_on(candidate.date):
        weekday = WEEKDAY_NAMES[candidate.date.weekday()]
        return Conflict(
            with_id=None,
            severity=ConflictSeverity.LOW,
            reason=ConflictReason.HOURS,
            message=f"A {label} is typically closed on {weekday}",
            suggestions=[check_hours],
        )
    if hours.is_open_at(candidate.start_minutes):
        return None
    return Conflict(
        with_id=None,
        severity=ConflictSeverity.LOW,
        reason=ConflictReason.HOURS,
        message=(
            f"May be closed at {candidate.start}; "
            f"a {label} is typically open {hours.open}-{hours.close}"
        ),
        suggestions=[
            ConflictResolution(
                action=ResolutionAction.ADJUST_TIME,
                description=f"Move to {hours.open} when the venue opens",
                new_start=hours.open,
            ),
            check_hours,
        ],
    )


def detect_conflicts(
    candidate: ActivityPlacement,
    existing: Iterable[ActivityPlacement],
    business_hours: Optional[BusinessHours] = None,
    travel_buffer_minutes: Optional[int] = None,
    exclude_id: Optional[str] = None,
    place_types: Optional[Iterable[str]] = None,
    venue_hours: Optional[Mapping[str, VenueHours]] = None,
) -> list[Conflict]:
    """
    Detect every conflict a candidate placement would cause.

    Args:
        candidate: Placement being proposed
        existing: Activities already on the itinerary (any date)
        business_hours: Optional opening window for the LOW/hours check
        travel_buffer_minutes: Minimum gap between activities (MEDIUM/buffer)
        exclude_id: Activity to ignore, normally the one being moved
        place_types: Place types of the candidate's venue
        venue_hours: Typical hours by place type, used for the hours check
            when no explicit business_hours are given

    Returns:
        All conflicts, ordered by the other activity's start time, with the
        hours conflict (if any) last.
    """
    same_day = sorted(
        (
            activity
            for activity in existing
            if activity.date == candidate.date
            and not (exclude_id is not None and activity.id == exclude_id)
        ),
        key=lambda activity: (activity.start_minutes, activity.id),
    )

    conflicts: list[Conflict] = []
    for activity in same_day:
        conflict = _pair_conflict(candidate, activity, travel_buffer_minutes)
        if conflict:
            conflicts.append(conflict)

    hours: Optional[Conflict] = None
    if business_hours is not None:
        hours = _hours_conflict(candidate, business_hours)
    elif place_types is not None and venue_hours is not None:
        hours = _venue_hours_conflict(candidate, place_types, venue_hours)
    if hours:
        conflicts.append(hours)

    return conflicts


def _is_meal(placement: ActivityPlacement, places: Mapping[str, PlaceData]) -> bool:
    place = places.get(placement.place_id) if placement.place_id else None
    if place is None:
        return False
    if MEAL_PLACE_TYPES & {place_type.lower() for place_type in place.types}:
        return True
    name = place.name.lower()
    return any(meal.name in name for meal in MEAL_WINDOWS)


def detect_meal_timing_conflicts(
    placements: Iterable[ActivityPlacement],
    places: Mapping[str, PlaceData],
) -> list[tuple[str, Conflict]]:
    """
    Warn when a meal window is fully covered by non-meal activities.

    Args:
        placements: Activities to check (any dates)
        places: Place metadata by place_id, used to recognise meals

    Returns:
        (activity_id, conflict) tuples, one per blocked meal per day, keyed by
        the earliest blocking activity.
    """
    by_date: dict[date, list[ActivityPlacement]] = {}
    for placement in placements:
        by_date.setdefault(placement.date, []).append(placement)

    found: list[tuple[str, Conflict]] = []
    for day in sorted(by_date):
        day_placements = sorted(by_date[day], key=lambda p: (p.start_minutes, p.id))
        for meal in MEAL_WINDOWS:
            window_start = time_to_minutes(meal.start)
            window_end = time_to_minutes(meal.end)
            has_meal = any(
                _is_meal(p, places)
                and (
                    window_start <= p.start_minutes <= window_end
                    or window_start <= p.end_minutes <= window_end
                )
                for p in day_placements
            )
            if has_meal:
                continue
            blocking = [
                p
                for p in day_placements
                if p.start_minutes <= window_start and p.end_minutes >= window_end
            ]
            if not blocking:
                continue
            found.append(
                (
                    blocking[0].id,
                    Conflict(
                        with_id=None,
                        severity=ConflictSeverity.LOW,
                        reason=ConflictReason.MEAL,
                        message=(
                            f"{meal.name.capitalize()} time ({meal.start}-{meal.end}) "
                            f"is blocked by {', '.join(p.id for p in blocking)}"
                        ),
                        suggestions=[
                            ConflictResolution(
                                action=ResolutionAction.SUGGEST_ALTERNATIVE,
                                description=f"Consider adding a {meal.name} break around {meal.ideal}",
                            ),
                            ConflictResolution(
                                action=ResolutionAction.ADJUST_TIME,
                                description=f"Shorten activities to allow for {meal.name} time",
                            ),
                        ],
                    ),
                )
            )
    return found


def detect_day_conflicts(
    placements: Iterable[ActivityPlacement],
    travel_buffer_minutes: Optional[int] = None,
    places: Optional[Mapping[str, PlaceData]] = None,
) -> list[tuple[str, Conflict]]:
    """
    Validate a whole itinerary, reporting each conflicting pair once.

    Meal-timing warnings are appended when place metadata is supplied.

    Returns:
        (activity_id, conflict) tuples where ``activity_id`` is the earlier
        activity and ``conflict.with_id`` the later one.
    """
    ordered = sorted(placements, key=lambda p: (p.date, p.start_minutes, p.id))
    found: list[tuple[str, Conflict]] = []
    for first, second in combinations(ordered, 2):
        if first.date != second.date:
            continue
        conflict = _pair_conflict(first, second, travel_buffer_minutes)
        if conflict:
            found.append((first.id, conflict))
    if places is not None:
        found.extend(detect_meal_timing_conflicts(ordered, places))
    return found


def blocking_conflicts(
    conflicts: Iterable[Conflict], threshold: ConflictSeverity = BLOCKING_SEVERITY
) -> list[Conflict]:
    return [conflict for conflict in conflicts if conflict.severity >= threshold]


def is_blocking(
    conflicts: Iterable[Conflict], threshold: ConflictSeverity = BLOCKING_SEVERITY
) -> bool:
    return any(conflict.severity >= threshold for conflict in conflicts)


def highest_severity(conflicts: Iterable[Conflict]) -> Optional[ConflictSeverity]:
    severities = [conflict.severity for conflict in conflicts]
    return max(severities) if severities else None


def group_conflicts_by_severity(
    conflicts: Iterable[Conflict], threshold: ConflictSeverity = BLOCKING_SEVERITY
) -> tuple[list[Conflict], list[Conflict]]:
    """Split into (errors, warnings) around the blocking threshold."""
    errors: list[Conflict] = []
    warnings: list[Conflict] = []
    for conflict in conflicts:
        (errors if conflict.severity >= threshold else warnings).append(conflict)
    return errors, warnings


def get_conflict_summary(conflicts: Iterable[Conflict]) -> ConflictSummary:
    errors, warnings = group_conflicts_by_severity(conflicts)
    if not errors and not warnings:
        return ConflictSummary(text="No scheduling conflicts detected")

    parts = []
    if errors:
        parts.append(f"{len(errors)} error{'s' if len(errors) > 1 else ''}")
    if warnings:
        parts.append(f"{len(warnings)} warning{'s' if len(warnings) > 1 else ''}")
    return ConflictSummary(errors=errors, warnings=warnings, text=", ".join(parts))


class ConflictDetector:
    """Conflict detection bound to one session's SchedulingConfig."""

    def __init__(self, config: SchedulingConfig):
        self.config = config

    @property
    def venue_hours(self) -> Optional[Mapping[str, VenueHours]]:
        return TYPICAL_VENUE_HOURS if self.config.check_venue_hours else None

    def detect(
        self,
        candidate: ActivityPlacement,
        existing: Iterable[ActivityPlacement],
        exclude_id: Optional[str] = None,
        place_types: Optional[Iterable[str]] = None,
    ) -> list[Conflict]:
        return detect_conflicts(
            candidate,
            existing,
            business_hours=self.config.business_hours,
            travel_buffer_minutes=self.config.travel_buffer_minutes,
            exclude_id=exclude_id,
            place_types=place_types,
            venue_hours=self.venue_hours,
        )

    def detect_day(
        self,
        placements: Iterable[ActivityPlacement],
        places: Optional[Mapping[str, PlaceData]] = None,
    ) -> list[tuple[str, Conflict]]:
        return detect_day_conflicts(placements, self.config.travel_buffer_minutes, places)

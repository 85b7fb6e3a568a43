"""
Wall-clock time utilities for the calendar grid.

Times are local ``HH:MM`` / ``HH:MM:SS`` strings with no timezone attached.
Everything here is pure and works in "minutes since midnight".
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tripslot.core.exceptions import ParseError

if TYPE_CHECKING:
    from tripslot.models.schedule import SchedulingConfig, TimeSlot

MINUTES_PER_DAY = 24 * 60
LAST_MINUTE = MINUTES_PER_DAY - 1


def time_to_minutes(time: str) -> int:
    """
    Parse a wall-clock string to minutes since midnight.

    Args:
        time: "HH:MM" or "HH:MM:SS" (seconds are validated, then dropped)

    Returns:
        int: 0-1439

    Raises:
        ParseError: If the string is malformed or out of range
    """
    if not isinstance(time, str):
        raise ParseError(f"Time must be a string, got {type(time).__name__}", time)
    parts = time.strip().split(":")
    if len(parts) not in (2, 3):
        raise ParseError(f"Invalid time format: {time!r}", time)
    if not all(part.isascii() and part.isdigit() for part in parts):
        raise ParseError(f"Invalid time format: {time!r}", time)

    hours = int(parts[0])
    minutes = int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ParseError(f"Time out of range: {time!r}", time)
    return hours * 60 + minutes


def minutes_to_time(minutes: int, with_seconds: bool = False) -> str:
    """Format minutes since midnight as "HH:MM", clamped to 00:00-23:59."""
    clamped = max(0, min(LAST_MINUTE, int(minutes)))
    text = f"{clamped // 60:02d}:{clamped % 60:02d}"
    return f"{text}:00" if with_seconds else text


def format_time_label(minutes: int) -> str:
    """12-hour display label, e.g. 870 -> "2:30 PM"."""
    hour = (minutes // 60) % 24
    minute = minutes % 60
    display_hour = hour - 12 if hour > 12 else (12 if hour == 0 else hour)
    period = "PM" if hour >= 12 else "AM"
    return f"{display_hour}:{minute:02d} {period}"


def add_minutes(time: str, minutes: int, with_seconds: bool = False) -> str:
    return minutes_to_time(time_to_minutes(time) + minutes, with_seconds=with_seconds)


def calculate_duration(start: str, end: str) -> int:
    """
    Minutes between two wall-clock times.

    An end earlier than the start is read as finishing the next day.
    """
    start_minutes = time_to_minutes(start)
    end_minutes = time_to_minutes(end)
    if end_minutes < start_minutes:
        return (MINUTES_PER_DAY - start_minutes) + end_minutes
    return end_minutes - start_minutes


def snap_to_time_slot(time: str, interval_minutes: int) -> str:
    """Round a time down to the slot boundary at or before it."""
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")
    minutes = time_to_minutes(time)
    return minutes_to_time(minutes - (minutes % interval_minutes))


def generate_slots(config: SchedulingConfig) -> list[TimeSlot]:
    """
    Build the slot sequence for a grid configuration.

    One slot per interval from start_hour:00 through end_hour:00, the closing
    boundary included. With end_hour=24 the boundary slot reads "24:00".
    """
    from tripslot.models.schedule import TimeSlot

    slots: list[TimeSlot] = []
    first = config.start_hour * 60
    last = config.end_hour * 60
    for index, offset in enumerate(range(first, last + 1, config.interval_minutes)):
        hour, minute = divmod(offset, 60)
        slots.append(
            TimeSlot(
                time=f"{hour:02d}:{minute:02d}",
                hour=hour,
                minute=minute,
                label=format_time_label(offset),
                is_hour=minute == 0,
                interval_index=index,
            )
        )
    return slots


def slot_index_for_time(time: str, config: SchedulingConfig) -> int:
    """Index of the slot containing ``time``, clamped to the visible grid."""
    minutes = time_to_minutes(time) - config.start_hour * 60
    max_index = (config.end_hour - config.start_hour) * 60 // config.interval_minutes
    return max(0, min(max_index, minutes // config.interval_minutes))


def time_for_slot_index(index: int, config: SchedulingConfig) -> str:
    """Start time of a slot index, e.g. the row a pointer is hovering."""
    max_index = (config.end_hour - config.start_hour) * 60 // config.interval_minutes
    if index < 0 or index > max_index:
        raise IndexError(f"Slot index {index} outside grid (0-{max_index})")
    return minutes_to_time(config.start_hour * 60 + index * config.interval_minutes)

"""
Timezone-aware datetime utilities.

Only used for record timestamps; itinerary times stay local wall-clock strings.
"""

from datetime import date, datetime, timezone

# UTC timezone constant
UTC = timezone.utc


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def is_weekend(target_date: date) -> bool:
    """Saturday or Sunday."""
    return target_date.weekday() >= 5

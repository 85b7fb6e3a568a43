"""
Default duration heuristics for items that have never been scheduled.

Pure lookup over already-fetched place metadata; no network access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tripslot.models.enums import ActivityCategory, DurationConfidence
from tripslot.models.place import DurationContext, DurationEstimate, PlaceData
from tripslot.utils.time_grid import time_to_minutes

SNAP_MINUTES = 15
EVENING_START_HOUR = 17
POPULAR_RATING = 4.3
POPULAR_REVIEW_COUNT = 500
POPULARITY_FACTOR = 1.2
WEEKEND_FACTOR = 1.1
QUICK_VISIT_FACTOR = 0.7
THOROUGH_FACTOR = 1.3


@dataclass(frozen=True)
class DurationBand:
    label: str
    default: int
    min: int
    max: int


BANDS: dict[ActivityCategory, DurationBand] = {
    ActivityCategory.QUICK_DINING: DurationBand("Quick-service dining", 45, 45, 60),
    ActivityCategory.DINING: DurationBand("Full-service dining", 75, 75, 90),
    ActivityCategory.MUSEUM: DurationBand("Museum", 120, 90, 150),
    ActivityCategory.ATTRACTION: DurationBand("Attraction", 90, 90, 150),
    ActivityCategory.SHOPPING: DurationBand("Shopping", 60, 45, 90),
    ActivityCategory.OUTDOOR: DurationBand("Park/outdoor", 90, 60, 120),
    ActivityCategory.ENTERTAINMENT: DurationBand("Entertainment", 120, 90, 180),
    ActivityCategory.LODGING: DurationBand("Lodging", 30, 30, 60),
    ActivityCategory.DEFAULT: DurationBand("Activity", 60, 60, 60),
}

# Evaluated top to bottom; the first category with a matching type wins.
# Full-service dining is checked before quick-service so a "restaurant, cafe"
# place gets the longer band.
CATEGORY_TYPES: list[tuple[ActivityCategory, frozenset[str]]] = [
    (
        ActivityCategory.DINING,
        frozenset({"restaurant", "fine_dining_restaurant", "steak_house"}),
    ),
    (
        ActivityCategory.QUICK_DINING,
        frozenset(
            {"cafe", "bakery", "food", "meal_takeaway", "meal_delivery", "fast_food_restaurant", "coffee_shop"}
        ),
    ),
    (ActivityCategory.MUSEUM, frozenset({"museum", "art_gallery", "aquarium"})),
    (
        ActivityCategory.ATTRACTION,
        frozenset(
            {
                "tourist_attraction",
                "landmark",
                "historical_landmark",
                "church",
                "hindu_temple",
                "mosque",
                "synagogue",
                "place_of_worship",
                "city_hall",
            }
        ),
    ),
    (
        ActivityCategory.SHOPPING,
        frozenset(
            {
                "shopping_mall",
                "department_store",
                "store",
                "clothing_store",
                "book_store",
                "jewelry_store",
                "shoe_store",
                "market",
            }
        ),
    ),
    (
        ActivityCategory.OUTDOOR,
        frozenset(
            {
                "park",
                "national_park",
                "natural_feature",
                "campground",
                "zoo",
                "beach",
                "hiking_area",
                "garden",
            }
        ),
    ),
    (
        ActivityCategory.ENTERTAINMENT,
        frozenset(
            {
                "movie_theater",
                "amusement_park",
                "bowling_alley",
                "casino",
                "night_club",
                "bar",
                "stadium",
                "spa",
                "performing_arts_theater",
            }
        ),
    ),
    (ActivityCategory.LODGING, frozenset({"lodging", "hotel"})),
]

_DINING = {ActivityCategory.DINING, ActivityCategory.QUICK_DINING}
_POPULARITY_SENSITIVE = {ActivityCategory.DINING, ActivityCategory.MUSEUM, ActivityCategory.ATTRACTION}
_WEEKEND_SENSITIVE = {ActivityCategory.MUSEUM, ActivityCategory.ATTRACTION, ActivityCategory.OUTDOOR}


def classify_place(types: list[str]) -> ActivityCategory:
    """Map Google-style place types to a duration category."""
    place_types = {place_type.lower() for place_type in types}
    for category, known in CATEGORY_TYPES:
        if place_types & known:
            return category
    return ActivityCategory.DEFAULT


def _snap(minutes: float) -> int:
    return int(round(minutes / SNAP_MINUTES)) * SNAP_MINUTES


def _is_evening(time_of_day: Optional[str]) -> bool:
    if not time_of_day:
        return False
    return time_to_minutes(time_of_day) >= EVENING_START_HOUR * 60


def estimate_activity_duration(
    place: PlaceData, context: Optional[DurationContext] = None
) -> DurationEstimate:
    """
    Estimate how long a visit to ``place`` should be scheduled for.

    Args:
        place: Place metadata (types, rating, review count, name)
        context: Time of day / weekend / visit-pace hints

    Returns:
        DurationEstimate snapped to 15 minutes and clamped to the category band.
        Confidence is LOW only when no place type was recognised.

    Raises:
        ParseError: If context.time_of_day is malformed
    """
    context = context or DurationContext()
    category = classify_place(place.types)
    band = BANDS[category]
    reasoning = [f"Classified as {band.label}"]

    if category is ActivityCategory.DEFAULT:
        return DurationEstimate(
            duration=band.default,
            confidence=DurationConfidence.LOW,
            category=category,
            reasoning=reasoning + ["No recognised place type, using default duration"],
            range_min=band.min,
            range_max=band.max,
        )

    confidence = DurationConfidence.HIGH
    duration: float = band.default

    if category in _DINING and _is_evening(context.time_of_day):
        duration = band.max
        reasoning.append("Evening meal, allowing a longer sitting")

    if (
        category in _POPULARITY_SENSITIVE
        and place.rating is not None
        and place.user_ratings_total is not None
        and place.rating > POPULAR_RATING
        and place.user_ratings_total > POPULAR_REVIEW_COUNT
    ):
        duration *= POPULARITY_FACTOR
        reasoning.append("Popular venue, expecting queues")

    if context.is_weekend and category in _WEEKEND_SENSITIVE:
        duration *= WEEKEND_FACTOR
        reasoning.append("Weekend, assuming a more leisurely pace")

    if context.quick_visits:
        duration *= QUICK_VISIT_FACTOR
        confidence = DurationConfidence.MEDIUM
        reasoning.append("Shortened for quick-visit preference")
    elif context.thorough_exploration:
        duration *= THOROUGH_FACTOR
        confidence = DurationConfidence.MEDIUM
        reasoning.append("Extended for thorough-exploration preference")

    clamped = max(band.min, min(band.max, duration))
    return DurationEstimate(
        duration=_snap(clamped),
        confidence=confidence,
        category=category,
        reasoning=reasoning,
        range_min=band.min,
        range_max=band.max,
    )


def get_suggested_durations(category: ActivityCategory) -> list[int]:
    """Duration picker options for a category: min, default, quartiles, max."""
    band = BANDS.get(category, BANDS[ActivityCategory.DEFAULT])
    spread = band.max - band.min
    options = {band.min, band.default, band.max}
    for fraction in (0.25, 0.5, 0.75):
        options.add(_snap(band.min + spread * fraction))
    return sorted(options)


def adjust_duration_for_context(
    base_duration: int,
    available_minutes: Optional[int] = None,
    is_last_activity: bool = False,
) -> int:
    """
    Fit an estimate into the schedule around it.

    A tight gap shrinks the duration (keeping 15 minutes spare, never below
    30); the last activity of the day gets 20% extra slack.
    """
    adjusted: float = base_duration
    if available_minutes is not None and available_minutes < base_duration:
        adjusted = max(30, available_minutes - 15)
    if is_last_activity:
        adjusted *= 1.2
    return max(SNAP_MINUTES, _snap(adjusted))

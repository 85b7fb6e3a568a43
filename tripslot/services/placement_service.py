"""
Placement service for drag-and-drop scheduling.

Composes the pure scheduling functions into the two drag phases:

- preview (drag-over): conflict detection only, never moves the ghost block
- commit (drag-end): slot resolution, optimistic local update, persistence,
  then commit or rollback

Local state is the itinerary as currently displayed. Writes for the same
activity are sequenced: a newer move cancels the older in-flight write, and a
settled write whose sequence is no longer the latest never touches the
displayed state.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Iterable, Mapping, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from tripslot.core.exceptions import NotFoundError
from tripslot.core.logger import setup_logger
from tripslot.interfaces.activity_repository import IActivityRepository
from tripslot.models.activity import Activity, ActivityCreate, WishlistItem
from tripslot.models.enums import PlacementState, ResizeEdge
from tripslot.models.place import DurationContext, DurationEstimate, PlaceData
from tripslot.models.schedule import ActivityPlacement, Conflict, SchedulingConfig
from tripslot.services.conflict_detector import (
    ConflictDetector,
    get_conflict_summary,
    group_conflicts_by_severity,
)
from tripslot.services.duration_estimator import estimate_activity_duration
from tripslot.services.slot_resolver import find_nearest_valid_slot, search_bounds
from tripslot.utils.datetime_utils import is_weekend
from tripslot.utils.time_grid import minutes_to_time, snap_to_time_slot, time_to_minutes

logger = setup_logger(__name__)

NO_SLOT_MESSAGE = "Could not find an available time slot for this activity."
ADJUSTED_MESSAGE = "Activity time was adjusted to avoid conflicts."
SAVE_FAILED_MESSAGE = "Could not save the activity position. Please try again."
PENDING_WRITE_MESSAGE = "This item is still being added to your itinerary."
OUTSIDE_DAY_MESSAGE = "Activity would fall outside the visible day"
PENDING_ID_PREFIX = "pending-"


class DropPreview(BaseModel):
    """What the grid should show while an item hovers over a slot."""

    date: date
    start: str
    end: Optional[str] = None
    fits_in_day: bool = True
    is_blocked: bool
    conflicts: list[Conflict] = Field(default_factory=list)
    warnings: list[Conflict] = Field(default_factory=list)
    summary: str = ""


class PlacementResult(BaseModel):
    """Outcome of a commit-time placement."""

    success: bool
    state: PlacementState
    activity_id: Optional[str] = None
    placement: Optional[ActivityPlacement] = None
    was_adjusted: bool = False
    message: Optional[str] = None
    error: Optional[str] = None
    conflicts: list[Conflict] = Field(default_factory=list)
    duration_estimate: Optional[DurationEstimate] = None


def placements_from_activities(activities: Iterable[Activity]) -> list[ActivityPlacement]:
    """Scheduled activities as placements; wishlist (unscheduled) rows are skipped."""
    return [
        ActivityPlacement(
            id=activity.id,
            date=activity.date,
            start=activity.start_time,
            end=activity.end_time,
            place_id=activity.place_id,
        )
        for activity in activities
        if activity.is_scheduled
    ]


def _format_duration(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m"


class PlacementService:
    """
    Session-scoped orchestrator between drag events and the activity store.

    Provides:
    - Drag-over previews (conflicts only)
    - Moves, wishlist imports and resizes with optimistic update + rollback
    - Per-activity write sequencing (last move wins)
    """

    def __init__(
        self,
        repository: IActivityRepository,
        config: SchedulingConfig,
        placements: Optional[Iterable[ActivityPlacement]] = None,
        places: Optional[Mapping[str, PlaceData]] = None,
    ):
        self._repository = repository
        self.config = config
        self._detector = ConflictDetector(config)

        self._placements: dict[str, ActivityPlacement] = {p.id: p for p in placements or []}
        self._confirmed: dict[str, ActivityPlacement] = dict(self._placements)
        self._confirmed_sequence: dict[str, int] = {}
        self._sequence: dict[str, int] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        # place metadata by place_id, for venue-hours and meal checks
        self._places: dict[str, PlaceData] = dict(places or {})

    @classmethod
    async def from_repository(
        cls,
        repository: IActivityRepository,
        config: SchedulingConfig,
        dates: Iterable[date],
    ) -> "PlacementService":
        activities: list[Activity] = []
        for target_date in dates:
            activities.extend(await repository.list_by_date(target_date))
        return cls(repository, config, placements_from_activities(activities))

    # ------------------------------------------------------------------
    # Local state
    # ------------------------------------------------------------------

    @property
    def placements(self) -> list[ActivityPlacement]:
        return sorted(self._placements.values(), key=lambda p: (p.date, p.start_minutes, p.id))

    def get(self, activity_id: str) -> Optional[ActivityPlacement]:
        return self._placements.get(activity_id)

    def placements_on(self, target_date: date) -> list[ActivityPlacement]:
        return [p for p in self.placements if p.date == target_date]

    def has_pending_write(self, activity_id: str) -> bool:
        task = self._inflight.get(activity_id)
        return task is not None and not task.done()

    def _require(self, activity_id: str) -> ActivityPlacement:
        placement = self._placements.get(activity_id)
        if placement is None:
            raise NotFoundError(f"Activity {activity_id} is not on the itinerary")
        return placement

    def _snap(self, slot_time: str) -> str:
        return snap_to_time_slot(slot_time, self.config.interval_minutes)

    def _fits_grid(self, start_minutes: int, end_minutes: int) -> bool:
        lower, upper = search_bounds(self.config)
        return lower <= start_minutes and end_minutes <= upper

    def _place_types(self, placement: Optional[ActivityPlacement]) -> Optional[list[str]]:
        if placement is None or placement.place_id is None:
            return None
        place = self._places.get(placement.place_id)
        return place.types if place else None

    def _pending_rejection(self, activity_id: str) -> Optional[PlacementResult]:
        if not activity_id.startswith(PENDING_ID_PREFIX):
            return None
        return PlacementResult(
            success=False,
            state=PlacementState.REJECTED,
            activity_id=activity_id,
            error=PENDING_WRITE_MESSAGE,
        )

    def validate_day(self, target_date: date) -> list[tuple[str, Conflict]]:
        """Pairwise and meal-timing conflicts for one displayed day."""
        return self._detector.detect_day(self.placements_on(target_date), places=self._places)

    # ------------------------------------------------------------------
    # Drag-over
    # ------------------------------------------------------------------

    def preview_drop(
        self,
        target_date: date,
        slot_time: str,
        duration_minutes: int,
        activity_id: Optional[str] = None,
        place: Optional[PlaceData] = None,
    ) -> DropPreview:
        """
        Classify a hovered slot without resolving it.

        The slot resolver is not consulted; the ghost element stays under
        the pointer. A block outside the visible grid is reported as not
        fitting, matching the bounds the commit-time search uses.

        Args:
            target_date: Day column being hovered
            slot_time: Slot under the pointer (snapped to the grid)
            duration_minutes: Length of the dragged block
            activity_id: Activity being moved; None for a wishlist drag
            place: Place metadata of a wishlist drag, for the hours check
        """
        start = self._snap(slot_time)
        start_minutes = time_to_minutes(start)
        end_minutes = start_minutes + duration_minutes
        if duration_minutes <= 0 or not self._fits_grid(start_minutes, end_minutes):
            return DropPreview(
                date=target_date,
                start=start,
                fits_in_day=False,
                is_blocked=True,
                summary=OUTSIDE_DAY_MESSAGE,
            )

        candidate = ActivityPlacement(
            id=activity_id or f"{PENDING_ID_PREFIX}preview",
            date=target_date,
            start=start,
            end=minutes_to_time(end_minutes),
        )
        place_types = place.types if place else self._place_types(self._placements.get(activity_id or ""))
        conflicts = self._detector.detect(
            candidate, self._placements.values(), exclude_id=activity_id, place_types=place_types
        )
        errors, warnings = group_conflicts_by_severity(conflicts)
        return DropPreview(
            date=target_date,
            start=candidate.start,
            end=candidate.end,
            is_blocked=bool(errors),
            conflicts=conflicts,
            warnings=warnings,
            summary=get_conflict_summary(conflicts).text,
        )

    # ------------------------------------------------------------------
    # Drag-end
    # ------------------------------------------------------------------

    async def commit_move(
        self,
        activity_id: str,
        target_date: date,
        slot_time: str,
        duration_minutes: Optional[int] = None,
    ) -> PlacementResult:
        """
        Move an activity to the dropped slot, or the nearest free one.

        Returns a REJECTED result (state untouched) when no slot fits.
        """
        rejection = self._pending_rejection(activity_id)
        if rejection:
            return rejection
        current = self._require(activity_id)
        duration = current.duration_minutes if duration_minutes is None else duration_minutes
        requested = self._snap(slot_time)

        resolved = find_nearest_valid_slot(
            requested,
            duration,
            target_date,
            self._placements.values(),
            exclude_id=activity_id,
            config=self.config,
        )
        if resolved is None:
            logger.info(f"No free slot for {activity_id} on {target_date} near {requested}")
            return PlacementResult(
                success=False,
                state=PlacementState.REJECTED,
                activity_id=activity_id,
                error=NO_SLOT_MESSAGE,
            )

        moved = current.model_copy(
            update={"date": target_date, "start": resolved.start, "end": resolved.end}
        )
        warnings = self._detector.detect(
            moved,
            self._placements.values(),
            exclude_id=activity_id,
            place_types=self._place_types(current),
        )
        return await self._persist(
            moved,
            was_adjusted=resolved.was_adjusted,
            success_message=ADJUSTED_MESSAGE if resolved.was_adjusted else "Activity moved successfully",
            conflicts=warnings,
        )

    async def resize_activity(
        self,
        activity_id: str,
        new_duration: int,
        edge: ResizeEdge = ResizeEdge.BOTTOM,
    ) -> PlacementResult:
        """Drag the top or bottom edge of a block to a new duration."""
        if new_duration <= 0:
            raise ValueError(f"new_duration must be positive, got {new_duration}")
        rejection = self._pending_rejection(activity_id)
        if rejection:
            return rejection
        current = self._require(activity_id)

        if edge is ResizeEdge.BOTTOM:
            start_minutes = current.start_minutes
            end_minutes = start_minutes + new_duration
        else:
            end_minutes = current.end_minutes
            start_minutes = end_minutes - new_duration

        if not self._fits_grid(start_minutes, end_minutes):
            return PlacementResult(
                success=False,
                state=PlacementState.REJECTED,
                activity_id=activity_id,
                error="Activity cannot extend outside the visible day.",
            )

        resized = current.model_copy(
            update={"start": minutes_to_time(start_minutes), "end": minutes_to_time(end_minutes)}
        )
        conflicts = self._detector.detect(
            resized,
            self._placements.values(),
            exclude_id=activity_id,
            place_types=self._place_types(current),
        )
        errors, _ = group_conflicts_by_severity(conflicts)
        if errors:
            return PlacementResult(
                success=False,
                state=PlacementState.REJECTED,
                activity_id=activity_id,
                error="Resized activity would overlap another activity.",
                conflicts=conflicts,
            )

        return await self._persist(
            resized,
            was_adjusted=False,
            success_message=f"Duration updated to {_format_duration(new_duration)}",
            conflicts=conflicts,
        )

    async def schedule_wishlist_item(
        self,
        item: WishlistItem,
        target_date: date,
        slot_time: str,
    ) -> PlacementResult:
        """
        Drop an unscheduled wishlist item onto the grid.

        Items without a known duration get one from the duration estimator.
        """
        requested = self._snap(slot_time)
        self._places.setdefault(item.place_id, item.place)
        estimate: Optional[DurationEstimate] = None
        duration = item.duration
        if duration is None:
            estimate = estimate_activity_duration(
                item.place,
                DurationContext(time_of_day=requested, is_weekend=is_weekend(target_date)),
            )
            duration = estimate.duration

        resolved = find_nearest_valid_slot(
            requested, duration, target_date, self._placements.values(), config=self.config
        )
        if resolved is None:
            return PlacementResult(
                success=False,
                state=PlacementState.REJECTED,
                error=NO_SLOT_MESSAGE,
                duration_estimate=estimate,
            )

        pending_id = f"{PENDING_ID_PREFIX}{uuid4()}"
        pending = ActivityPlacement(
            id=pending_id,
            date=target_date,
            start=resolved.start,
            end=resolved.end,
            place_id=item.place_id,
        )
        self._placements[pending_id] = pending

        try:
            activity = await self._repository.create_activity(
                ActivityCreate(
                    place_id=item.place_id,
                    name=item.place.name,
                    notes=item.notes,
                    cost=item.cost,
                    date=target_date,
                    start_time=resolved.start,
                    end_time=resolved.end,
                )
            )
        except Exception as e:
            logger.warning(f"Failed to add {item.place_id} to itinerary: {e}")
            return PlacementResult(
                success=False,
                state=PlacementState.ROLLED_BACK,
                error="Could not add this item to your itinerary. Please try again.",
                duration_estimate=estimate,
            )
        finally:
            self._placements.pop(pending_id, None)

        placement = pending.model_copy(update={"id": activity.id})
        self._placements[activity.id] = placement
        self._confirmed[activity.id] = placement
        name = item.place.name or "Activity"
        logger.info(f"Scheduled {item.place_id} as {activity.id} at {target_date} {resolved.start}")
        return PlacementResult(
            success=True,
            state=PlacementState.COMMITTED,
            activity_id=activity.id,
            placement=placement,
            was_adjusted=resolved.was_adjusted,
            message=f"{name} has been added to your itinerary.",
            duration_estimate=estimate,
        )

    # ------------------------------------------------------------------
    # Optimistic write discipline
    # ------------------------------------------------------------------

    def _next_sequence(self, activity_id: str) -> int:
        sequence = self._sequence.get(activity_id, 0) + 1
        self._sequence[activity_id] = sequence
        return sequence

    def _is_latest(self, activity_id: str, sequence: int) -> bool:
        return self._sequence.get(activity_id) == sequence

    def _rollback(self, activity_id: str) -> None:
        confirmed = self._confirmed.get(activity_id)
        if confirmed is not None:
            self._placements[activity_id] = confirmed

    async def _persist(
        self,
        placement: ActivityPlacement,
        was_adjusted: bool,
        success_message: str,
        conflicts: list[Conflict],
    ) -> PlacementResult:
        activity_id = placement.id
        sequence = self._next_sequence(activity_id)
        self._placements[activity_id] = placement

        previous = self._inflight.get(activity_id)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.create_task(
            self._repository.set_activity_date_time(
                activity_id, placement.date, placement.start, placement.end
            )
        )
        self._inflight[activity_id] = task

        try:
            await task
        except asyncio.CancelledError:
            if not self._is_latest(activity_id, sequence):
                return self._superseded(placement)
            self._rollback(activity_id)
            raise
        except Exception as e:
            if not self._is_latest(activity_id, sequence):
                return self._superseded(placement)
            self._rollback(activity_id)
            logger.warning(f"Rolled back {activity_id} after failed write: {e}")
            return PlacementResult(
                success=False,
                state=PlacementState.ROLLED_BACK,
                activity_id=activity_id,
                placement=self._placements.get(activity_id),
                error=SAVE_FAILED_MESSAGE,
            )
        finally:
            if self._inflight.get(activity_id) is task:
                del self._inflight[activity_id]

        if sequence > self._confirmed_sequence.get(activity_id, 0):
            self._confirmed[activity_id] = placement
            self._confirmed_sequence[activity_id] = sequence

        if not self._is_latest(activity_id, sequence):
            return self._superseded(placement)

        logger.info(
            f"Committed {activity_id} to {placement.date} {placement.start}-{placement.end}"
            f"{' (adjusted)' if was_adjusted else ''}"
        )
        return PlacementResult(
            success=True,
            state=PlacementState.COMMITTED,
            activity_id=activity_id,
            placement=placement,
            was_adjusted=was_adjusted,
            message=success_message,
            conflicts=conflicts,
        )

    def _superseded(self, placement: ActivityPlacement) -> PlacementResult:
        logger.info(f"Write for {placement.id} superseded by a newer move")
        return PlacementResult(
            success=False,
            state=PlacementState.SUPERSEDED,
            activity_id=placement.id,
            placement=placement,
            error="Superseded by a newer move of the same activity.",
        )

"""
Unit tests for PlacementService.

Uses the in-memory activity repository; write failures and latency are
injected through it.
"""

import asyncio
from datetime import date
from unittest.mock import patch

import pytest

from tripslot.core.exceptions import NotFoundError
from tripslot.infrastructure.local.activity_repository import InMemoryActivityRepository
from tripslot.models.activity import Activity, WishlistItem
from tripslot.models.enums import ConflictReason, ConflictSeverity, PlacementState, ResizeEdge
from tripslot.models.place import PlaceData
from tripslot.models.schedule import SchedulingConfig
from tripslot.services.placement_service import (
    ADJUSTED_MESSAGE,
    NO_SLOT_MESSAGE,
    PENDING_ID_PREFIX,
    PENDING_WRITE_MESSAGE,
    SAVE_FAILED_MESSAGE,
    PlacementService,
    placements_from_activities,
)
from tripslot.utils.datetime_utils import now_utc

MONDAY = date(2024, 6, 3)
TUESDAY = date(2024, 6, 4)
CONFIG = SchedulingConfig(interval_minutes=15, start_hour=8, end_hour=20, travel_buffer_minutes=10)


def make_activity(activity_id: str, start: str, end: str, on: date = MONDAY) -> Activity:
    now = now_utc()
    return Activity(
        id=activity_id,
        place_id=f"place-{activity_id}",
        name=activity_id.title(),
        date=on,
        start_time=start,
        end_time=end,
        created_at=now,
        updated_at=now,
    )


def build(
    activities=None,
    latency_seconds: float = 0.0,
    config: SchedulingConfig = CONFIG,
    places=None,
):
    activities = activities if activities is not None else [
        make_activity("a", "09:00", "10:00"),
        make_activity("b", "11:00", "12:00"),
    ]
    repository = InMemoryActivityRepository(activities, latency_seconds=latency_seconds)
    service = PlacementService(repository, config, placements_from_activities(activities), places=places)
    return service, repository


# ============================================
# Drag-over preview
# ============================================


class TestPreviewDrop:
    def test_blocked_preview_does_not_resolve(self):
        service, _ = build()

        with patch("tripslot.services.placement_service.find_nearest_valid_slot") as resolver:
            preview = service.preview_drop(MONDAY, "11:40", 60, activity_id="a")

        resolver.assert_not_called()
        assert preview.is_blocked
        assert (preview.start, preview.end) == ("11:30", "12:30")
        assert preview.conflicts[0].with_id == "b"
        assert preview.summary == "1 error"

    def test_buffer_conflict_is_only_a_warning(self):
        service, _ = build()

        preview = service.preview_drop(MONDAY, "12:00", 60, activity_id="a")

        assert not preview.is_blocked
        assert len(preview.warnings) == 1
        assert preview.warnings[0].reason == ConflictReason.BUFFER

    def test_moving_activity_ignores_its_own_slot(self):
        service, _ = build()

        preview = service.preview_drop(MONDAY, "09:15", 45, activity_id="a")

        assert not preview.is_blocked
        assert preview.conflicts == []

    def test_past_end_of_day(self):
        service, _ = build()

        preview = service.preview_drop(MONDAY, "23:30", 60, activity_id="a")

        assert not preview.fits_in_day
        assert preview.is_blocked
        assert preview.end is None


# ============================================
# Moves
# ============================================


class TestCommitMove:
    @pytest.mark.asyncio
    async def test_move_to_free_slot(self):
        service, repository = build()

        result = await service.commit_move("a", MONDAY, "13:00")

        assert result.success
        assert result.state == PlacementState.COMMITTED
        assert not result.was_adjusted
        assert result.message == "Activity moved successfully"
        assert (service.get("a").start, service.get("a").end) == ("13:00", "14:00")
        stored = await repository.get("a")
        assert (stored.start_time, stored.end_time) == ("13:00", "14:00")

    @pytest.mark.asyncio
    async def test_occupied_drop_is_adjusted(self):
        service, _ = build()

        result = await service.commit_move("a", MONDAY, "11:30")

        assert result.success
        assert result.was_adjusted
        assert result.message == ADJUSTED_MESSAGE
        assert (result.placement.start, result.placement.end) == ("12:00", "13:00")
        assert [c.severity for c in result.conflicts] == [ConflictSeverity.MEDIUM]

    @pytest.mark.asyncio
    async def test_move_to_another_day(self):
        service, _ = build()

        result = await service.commit_move("a", TUESDAY, "09:00")

        assert result.success
        assert [p.id for p in service.placements_on(TUESDAY)] == ["a"]
        assert [p.id for p in service.placements_on(MONDAY)] == ["b"]

    @pytest.mark.asyncio
    async def test_no_slot_rejects_without_touching_state(self):
        busy_tuesday = [
            make_activity(f"t{hour}", f"{hour:02d}:00", f"{hour + 1:02d}:00", on=TUESDAY)
            for hour in range(8, 20)
        ]
        service, repository = build([make_activity("a", "09:00", "10:00")] + busy_tuesday)

        result = await service.commit_move("a", TUESDAY, "10:00")

        assert not result.success
        assert result.state == PlacementState.REJECTED
        assert result.error == NO_SLOT_MESSAGE
        assert service.get("a").date == MONDAY
        assert (await repository.get("a")).date == MONDAY

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back(self):
        service, repository = build()
        repository.fail_next_write()

        result = await service.commit_move("a", MONDAY, "13:00")

        assert not result.success
        assert result.state == PlacementState.ROLLED_BACK
        assert result.error == SAVE_FAILED_MESSAGE
        assert (service.get("a").start, service.get("a").end) == ("09:00", "10:00")
        assert (await repository.get("a")).start_time == "09:00"

    @pytest.mark.asyncio
    async def test_rollback_restores_last_confirmed_move(self):
        service, repository = build()
        await service.commit_move("a", MONDAY, "13:00")
        repository.fail_next_write()

        result = await service.commit_move("a", MONDAY, "15:00")

        assert result.state == PlacementState.ROLLED_BACK
        assert service.get("a").start == "13:00"

    @pytest.mark.asyncio
    async def test_newer_move_supersedes_in_flight_write(self):
        service, repository = build(latency_seconds=0.05)

        first = asyncio.create_task(service.commit_move("a", MONDAY, "13:00"))
        await asyncio.sleep(0)
        assert service.get("a").start == "13:00"
        assert service.has_pending_write("a")

        second = await service.commit_move("a", MONDAY, "15:00")
        first_result = await first

        assert first_result.state == PlacementState.SUPERSEDED
        assert not first_result.success
        assert second.state == PlacementState.COMMITTED
        assert service.get("a").start == "15:00"
        assert (await repository.get("a")).start_time == "15:00"
        assert not service.has_pending_write("a")

    @pytest.mark.asyncio
    async def test_unknown_activity(self):
        service, _ = build()

        with pytest.raises(NotFoundError):
            await service.commit_move("missing", MONDAY, "13:00")


# ============================================
# Resize
# ============================================


class TestResize:
    @pytest.mark.asyncio
    async def test_extend_bottom_edge(self):
        service, _ = build()

        result = await service.resize_activity("a", 90)

        assert result.success
        assert result.message == "Duration updated to 1h 30m"
        assert (service.get("a").start, service.get("a").end) == ("09:00", "10:30")

    @pytest.mark.asyncio
    async def test_extend_top_edge(self):
        service, _ = build()

        result = await service.resize_activity("b", 90, edge=ResizeEdge.TOP)

        assert result.success
        assert (service.get("b").start, service.get("b").end) == ("10:30", "12:00")

    @pytest.mark.asyncio
    async def test_resize_into_neighbour_rejected(self):
        service, _ = build()

        result = await service.resize_activity("a", 150)

        assert result.state == PlacementState.REJECTED
        assert result.conflicts[0].with_id == "b"
        assert service.get("a").end == "10:00"

    @pytest.mark.asyncio
    async def test_resize_past_midnight_rejected(self):
        service, _ = build()

        result = await service.resize_activity("b", 800)

        assert result.state == PlacementState.REJECTED
        assert service.get("b").end == "12:00"

    @pytest.mark.asyncio
    async def test_non_positive_duration(self):
        service, _ = build()

        with pytest.raises(ValueError):
            await service.resize_activity("a", 0)


# ============================================
# Wishlist imports
# ============================================


class TestScheduleWishlistItem:
    @pytest.mark.asyncio
    async def test_estimated_duration_used(self):
        service, repository = build()
        item = WishlistItem(place_id="p-museum", place=PlaceData(name="City Museum", types=["museum"]))

        result = await service.schedule_wishlist_item(item, MONDAY, "13:00")

        assert result.success
        assert result.message == "City Museum has been added to your itinerary."
        assert result.duration_estimate.duration == 120
        assert (result.placement.start, result.placement.end) == ("13:00", "15:00")
        assert not result.activity_id.startswith(PENDING_ID_PREFIX)
        assert service.get(result.activity_id) is not None
        assert len(await repository.list_by_date(MONDAY)) == 3

    @pytest.mark.asyncio
    async def test_known_duration_skips_estimate(self):
        service, _ = build()
        item = WishlistItem(place_id="p-cafe", place=PlaceData(name="Cafe", types=["cafe"]), duration=30)

        result = await service.schedule_wishlist_item(item, MONDAY, "10:15")

        assert result.success
        assert result.duration_estimate is None
        assert (result.placement.start, result.placement.end) == ("10:15", "10:45")

    @pytest.mark.asyncio
    async def test_pending_block_visible_while_saving(self):
        service, repository = build()
        seen: list[str] = []
        create = repository.create_activity

        async def observing_create(payload):
            seen.extend(p.id for p in service.placements)
            return await create(payload)

        repository.create_activity = observing_create
        item = WishlistItem(place_id="p-park", place=PlaceData(name="Park", types=["park"]), duration=60)

        await service.schedule_wishlist_item(item, MONDAY, "14:00")

        assert any(activity_id.startswith(PENDING_ID_PREFIX) for activity_id in seen)
        assert not any(p.id.startswith(PENDING_ID_PREFIX) for p in service.placements)

    @pytest.mark.asyncio
    async def test_failed_create_removes_pending_block(self):
        service, repository = build()
        repository.fail_next_write()
        item = WishlistItem(place_id="p-park", place=PlaceData(name="Park", types=["park"]), duration=60)

        result = await service.schedule_wishlist_item(item, MONDAY, "14:00")

        assert result.state == PlacementState.ROLLED_BACK
        assert result.error == "Could not add this item to your itinerary. Please try again."
        assert [p.id for p in service.placements] == ["a", "b"]


@pytest.mark.asyncio
async def test_from_repository_loads_scheduled_activities():
    now = now_utc()
    unscheduled = Activity(id="w", place_id="place-w", created_at=now, updated_at=now)
    repository = InMemoryActivityRepository(
        [make_activity("a", "09:00", "10:00"), make_activity("c", "08:00", "09:00", on=TUESDAY), unscheduled]
    )

    service = await PlacementService.from_repository(repository, CONFIG, [MONDAY, TUESDAY])

    assert [p.id for p in service.placements] == ["a", "c"]


# ============================================
# Visible grid bounds
# ============================================


class TestGridBounds:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "slot_time, resolved",
        [("19:30", ("19:00", "20:00")), ("07:00", ("08:00", "09:00"))],
    )
    async def test_preview_agrees_with_commit_outside_grid(self, slot_time, resolved):
        service, _ = build()

        preview = service.preview_drop(MONDAY, slot_time, 60, activity_id="a")
        result = await service.commit_move("a", MONDAY, slot_time)

        assert not preview.fits_in_day
        assert preview.is_blocked
        assert result.was_adjusted
        assert (result.placement.start, result.placement.end) == resolved

    @pytest.mark.asyncio
    async def test_preview_at_grid_edge_fits(self):
        service, _ = build()

        preview = service.preview_drop(MONDAY, "19:00", 60, activity_id="a")
        result = await service.commit_move("a", MONDAY, "19:00")

        assert preview.fits_in_day
        assert not preview.is_blocked
        assert not result.was_adjusted

    @pytest.mark.asyncio
    async def test_resize_above_grid_start_rejected(self):
        service, _ = build()

        result = await service.resize_activity("a", 180, edge=ResizeEdge.TOP)

        assert result.state == PlacementState.REJECTED
        assert result.error == "Activity cannot extend outside the visible day."
        assert service.get("a").start == "09:00"

    @pytest.mark.asyncio
    async def test_resize_past_grid_end_rejected(self):
        service, _ = build()

        result = await service.resize_activity("b", 600)

        assert result.state == PlacementState.REJECTED
        assert service.get("b").end == "12:00"


# ============================================
# Write sequencing and rollback
# ============================================


class TestWriteSequencing:
    @pytest.mark.asyncio
    async def test_failed_superseding_move_restores_pre_drag_position(self):
        service, repository = build(latency_seconds=0.05)

        first = asyncio.create_task(service.commit_move("a", MONDAY, "13:00"))
        await asyncio.sleep(0)
        repository.fail_next_write()
        second = await service.commit_move("a", MONDAY, "15:00")
        first_result = await first

        assert first_result.state == PlacementState.SUPERSEDED
        assert second.state == PlacementState.ROLLED_BACK
        assert (service.get("a").start, service.get("a").end) == ("09:00", "10:00")
        assert (await repository.get("a")).start_time == "09:00"
        assert not service.has_pending_write("a")

    @pytest.mark.asyncio
    async def test_failed_move_after_settled_move_restores_settled_position(self):
        service, repository = build(latency_seconds=0.01)

        first = await service.commit_move("a", MONDAY, "13:00")
        repository.fail_next_write()
        second = await service.commit_move("a", MONDAY, "15:00")

        assert first.state == PlacementState.COMMITTED
        assert second.state == PlacementState.ROLLED_BACK
        assert (service.get("a").start, service.get("a").end) == ("13:00", "14:00")
        assert (await repository.get("a")).start_time == "13:00"

    @pytest.mark.asyncio
    async def test_write_saved_before_newer_move_becomes_rollback_target(self):
        service, repository = build()

        first = asyncio.create_task(service.commit_move("a", MONDAY, "13:00"))
        await asyncio.sleep(0)
        write = service._inflight["a"]
        while not write.done():
            await asyncio.sleep(0)
        # the first write is stored but its caller has not resumed yet
        repository.fail_next_write()
        second = await service.commit_move("a", MONDAY, "15:00")
        first_result = await first

        assert first_result.state == PlacementState.SUPERSEDED
        assert second.state == PlacementState.ROLLED_BACK
        assert service.get("a").start == "13:00"
        assert (await repository.get("a")).start_time == "13:00"


# ============================================
# Input guards
# ============================================


class TestInputGuards:
    @pytest.mark.asyncio
    async def test_pending_wishlist_block_cannot_be_moved(self):
        service, _ = build(latency_seconds=0.05)
        item = WishlistItem(place_id="p-park", place=PlaceData(name="Park", types=["park"]), duration=60)

        adding = asyncio.create_task(service.schedule_wishlist_item(item, MONDAY, "14:00"))
        await asyncio.sleep(0)
        pending_id = next(p.id for p in service.placements if p.id.startswith(PENDING_ID_PREFIX))

        moved = await service.commit_move(pending_id, MONDAY, "16:00")
        resized = await service.resize_activity(pending_id, 30)
        added = await adding

        assert moved.state == PlacementState.REJECTED
        assert moved.error == PENDING_WRITE_MESSAGE
        assert resized.state == PlacementState.REJECTED
        assert added.success
        assert (service.get(added.activity_id).start, service.get(added.activity_id).end) == ("14:00", "15:00")

    @pytest.mark.asyncio
    async def test_explicit_duration_is_used(self):
        service, _ = build()

        result = await service.commit_move("a", MONDAY, "13:00", duration_minutes=30)

        assert (result.placement.start, result.placement.end) == ("13:00", "13:30")

    @pytest.mark.asyncio
    async def test_explicit_zero_duration_rejected(self):
        service, _ = build()

        with pytest.raises(ValueError):
            await service.commit_move("a", MONDAY, "13:00", duration_minutes=0)
        assert service.get("a").start == "09:00"


# ============================================
# Venue hours and day validation
# ============================================


class TestVenueChecks:
    @pytest.mark.asyncio
    async def test_move_after_museum_closing_warns(self):
        config = CONFIG.model_copy(update={"check_venue_hours": True})
        places = {"place-a": PlaceData(name="City Museum", types=["museum"])}
        service, _ = build(config=config, places=places)

        result = await service.commit_move("a", MONDAY, "17:30")

        assert result.success
        assert [c.reason for c in result.conflicts] == [ConflictReason.HOURS]
        assert result.conflicts[0].suggestions[0].new_start == "09:00"

    def test_wishlist_preview_uses_dragged_place(self):
        config = CONFIG.model_copy(update={"check_venue_hours": True})
        service, _ = build(config=config)
        museum = PlaceData(name="City Museum", types=["museum"])

        preview = service.preview_drop(MONDAY, "18:00", 60, place=museum)

        assert not preview.is_blocked
        assert [c.reason for c in preview.warnings] == [ConflictReason.HOURS]

    def test_validate_day_reports_blocked_lunch(self):
        service, _ = build([make_activity("tour", "11:00", "15:00")])

        found = service.validate_day(MONDAY)

        assert [(activity_id, c.reason) for activity_id, c in found] == [("tour", ConflictReason.MEAL)]

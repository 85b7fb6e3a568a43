"""
Unit tests for scheduling models and configuration.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from tripslot.core.config import Settings
from tripslot.core.exceptions import ConfigurationError
from tripslot.models.activity import Activity
from tripslot.models.schedule import ActivityPlacement, BusinessHours, SchedulingConfig
from tripslot.services.placement_service import placements_from_activities
from tripslot.utils.datetime_utils import now_utc


def test_default_config_matches_grid_defaults():
    config = SchedulingConfig()

    assert config.interval_minutes == 30
    assert (config.start_hour, config.end_hour) == (6, 23)
    assert config.travel_buffer_minutes is None
    assert config.business_hours is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start_hour": 10, "end_hour": 10},
        {"start_hour": 18, "end_hour": 9},
        {"interval_minutes": 20},
        {"start_hour": -1},
        {"end_hour": 25},
        {"travel_buffer_minutes": -5},
    ],
)
def test_inconsistent_config_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        SchedulingConfig(**kwargs)


def test_config_is_immutable():
    config = SchedulingConfig()

    with pytest.raises(ValidationError):
        config.interval_minutes = 15


def test_business_hours_validated():
    with pytest.raises(ConfigurationError):
        BusinessHours(open="18:00", close="09:00")
    with pytest.raises(ValidationError):
        BusinessHours(open="9am", close="17:00")


def test_placement_duration():
    placement = ActivityPlacement(id="a", date=date(2024, 6, 1), start="09:15:00", end="10:45")

    assert placement.duration_minutes == 90


def test_config_from_settings():
    settings = Settings(
        GRID_INTERVAL_MINUTES=15,
        GRID_START_HOUR=8,
        GRID_END_HOUR=22,
        SHOW_TRAVEL_TIME=True,
        TRAVEL_BUFFER_MINUTES=20,
        BUSINESS_HOURS_OPEN="09:00",
        BUSINESS_HOURS_CLOSE="18:00",
    )

    config = SchedulingConfig.from_settings(settings)

    assert config.interval_minutes == 15
    assert (config.start_hour, config.end_hour) == (8, 22)
    assert config.travel_buffer_minutes == 20
    assert config.business_hours == BusinessHours(open="09:00", close="18:00")


def test_hidden_travel_time_disables_buffer():
    settings = Settings(SHOW_TRAVEL_TIME=False, TRAVEL_BUFFER_MINUTES=20)

    config = SchedulingConfig.from_settings(settings)

    assert config.travel_buffer_minutes is None
    assert config.business_hours is None


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("GRID_START_HOUR", "7")
    monkeypatch.setenv("TRAVEL_BUFFER_MINUTES", "25")

    settings = Settings()

    assert settings.GRID_START_HOUR == 7
    assert settings.effective_travel_buffer == 25


def test_inconsistent_settings_fail_at_config_construction():
    settings = Settings(GRID_START_HOUR=20, GRID_END_HOUR=8)

    with pytest.raises(ConfigurationError):
        SchedulingConfig.from_settings(settings)


def test_placements_from_activities_skips_unscheduled():
    now = now_utc()
    activities = [
        Activity(
            id="a",
            place_id="p1",
            date=date(2024, 6, 1),
            start_time="09:00:00",
            end_time="10:00:00",
            created_at=now,
            updated_at=now,
        ),
        Activity(id="b", place_id="p2", created_at=now, updated_at=now),
    ]

    placements = placements_from_activities(activities)

    assert [p.id for p in placements] == ["a"]
    assert placements[0].place_id == "p1"

"""Tests for delivery scheduling (24 business hours, then the next 4 PM)."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from slowpost.utils.business_hours import (
    add_business_hours,
    compute_scheduled_delivery,
    is_business_day,
    next_delivery_slot,
)
from slowpost.utils.timezones import InvalidTimezoneError


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# 2024-01-08 is a Monday
@pytest.mark.parametrize(
    "sent_at, expected_earliest, expected_scheduled",
    [
        # Monday 17:00 → Wednesday 16:00
        (utc(2024, 1, 8, 17), utc(2024, 1, 9, 17), utc(2024, 1, 10, 16)),
        # Monday 15:00 → Tuesday 16:00
        (utc(2024, 1, 8, 15), utc(2024, 1, 9, 15), utc(2024, 1, 9, 16)),
        # Friday 17:00 → Tuesday 16:00 (weekend skipped)
        (utc(2024, 1, 12, 17), utc(2024, 1, 15, 17), utc(2024, 1, 16, 16)),
        # Thursday 16:00 exactly → Friday 16:00 (same-day boundary)
        (utc(2024, 1, 11, 16), utc(2024, 1, 12, 16), utc(2024, 1, 12, 16)),
        # Saturday 10:00 → Monday 10:00, then 24 hours → Tuesday 16:00
        (utc(2024, 1, 13, 10), utc(2024, 1, 16, 10), utc(2024, 1, 16, 16)),
    ],
)
def test_utc_scenarios(sent_at, expected_earliest, expected_scheduled):
    schedule = compute_scheduled_delivery(sent_at, "UTC")
    assert schedule.earliest_delivery_at == expected_earliest
    assert schedule.scheduled_delivery_at == expected_scheduled


def test_sunday_send_counts_from_monday_same_time():
    schedule = compute_scheduled_delivery(utc(2024, 1, 14, 9), "UTC")
    assert schedule.earliest_delivery_at == utc(2024, 1, 16, 9)
    assert schedule.scheduled_delivery_at == utc(2024, 1, 16, 16)


def test_late_sunday_send_slips_to_wednesday():
    # Monday 23:30 + 24h is Tuesday 23:30, past that day's 4 PM
    schedule = compute_scheduled_delivery(utc(2024, 1, 14, 23, 30), "UTC")
    assert schedule.earliest_delivery_at == utc(2024, 1, 16, 23, 30)
    assert schedule.scheduled_delivery_at == utc(2024, 1, 17, 16)


def test_earliest_exactly_at_four_pm_delivers_same_day():
    assert next_delivery_slot(utc(2024, 1, 10, 16), "UTC") == utc(2024, 1, 10, 16)
    assert next_delivery_slot(utc(2024, 1, 10, 16, 0, 0, 1), "UTC") == utc(2024, 1, 11, 16)


def test_saturday_tentative_moves_to_monday():
    # Friday 17:00 earliest → Saturday tentative → Monday
    assert next_delivery_slot(utc(2024, 1, 12, 17), "UTC") == utc(2024, 1, 15, 16)


def test_schedule_uses_recipient_local_time():
    # 15:00 UTC Monday is 10:00 in New York (EST)
    schedule = compute_scheduled_delivery(utc(2024, 1, 8, 15), "America/New_York")
    local = schedule.scheduled_delivery_at.astimezone(ZoneInfo("America/New_York"))
    assert (local.year, local.month, local.day, local.hour) == (2024, 1, 9, 16)
    assert schedule.scheduled_delivery_at == utc(2024, 1, 9, 21)


def test_naive_sent_at_is_treated_as_utc():
    naive = datetime(2024, 1, 8, 15)
    assert compute_scheduled_delivery(naive, "UTC").scheduled_delivery_at == utc(2024, 1, 9, 16)


@pytest.mark.parametrize("bad", ["", "Not/AZone", "US/Eastern", "EST", " UTC", None])
def test_invalid_timezone_raises(bad):
    with pytest.raises(InvalidTimezoneError):
        compute_scheduled_delivery(utc(2024, 1, 8, 9), bad)


# =============================================================================
# Daylight saving
# =============================================================================

def test_spring_forward_sunday_send_keeps_wall_clock_over_weekend_jump():
    ny = ZoneInfo("America/New_York")
    # Sunday 2025-03-09 01:30 EST, half an hour before clocks go forward
    sent = datetime(2025, 3, 9, 1, 30, tzinfo=ny)
    schedule = compute_scheduled_delivery(sent, "America/New_York")

    earliest_local = schedule.earliest_delivery_at.astimezone(ny)
    assert earliest_local.replace(tzinfo=None) == datetime(2025, 3, 11, 1, 30)
    assert schedule.scheduled_delivery_at.astimezone(ny).replace(tzinfo=None) == datetime(
        2025, 3, 11, 16, 0
    )
    assert schedule.scheduled_delivery_at == utc(2025, 3, 11, 20)


def test_fall_back_saturday_send():
    ny = ZoneInfo("America/New_York")
    # Saturday 2024-11-02 12:00 EDT; clocks go back on Sunday
    sent = datetime(2024, 11, 2, 12, 0, tzinfo=ny)
    schedule = compute_scheduled_delivery(sent, "America/New_York")

    assert schedule.earliest_delivery_at.astimezone(ny).replace(tzinfo=None) == datetime(
        2024, 11, 5, 12, 0
    )
    # EST is UTC-5 after the change
    assert schedule.scheduled_delivery_at == utc(2024, 11, 5, 21)


def test_hour_counting_uses_elapsed_time_across_weekday_transition():
    cairo = ZoneInfo("Africa/Cairo")
    # Thursday 10:00; Cairo skips 00:00-01:00 on Friday 2024-04-26
    sent = datetime(2024, 4, 25, 10, 0, tzinfo=cairo)
    schedule = compute_scheduled_delivery(sent, "Africa/Cairo")

    assert schedule.earliest_delivery_at - sent == timedelta(hours=24)
    assert schedule.earliest_delivery_at.astimezone(cairo).replace(tzinfo=None) == datetime(
        2024, 4, 26, 11, 0
    )
    assert schedule.scheduled_delivery_at.astimezone(cairo).replace(tzinfo=None) == datetime(
        2024, 4, 26, 16, 0
    )


def test_add_business_hours_skips_weekend_hours():
    # Friday 20:00 + 8 business hours: 4 on Friday, 4 on Monday
    assert add_business_hours(utc(2024, 1, 12, 20), 8, "UTC") == utc(2024, 1, 15, 4)


def test_is_business_day():
    assert is_business_day(utc(2024, 1, 8))  # Monday
    assert is_business_day(utc(2024, 1, 12))  # Friday
    assert not is_business_day(utc(2024, 1, 13))  # Saturday
    assert not is_business_day(utc(2024, 1, 14))  # Sunday


# =============================================================================
# Properties
# =============================================================================

PROPERTY_ZONES = [
    "UTC",
    "America/New_York",
    "Europe/London",
    "Asia/Kolkata",
    "Australia/Lord_Howe",
    "Pacific/Chatham",
]


def _hourly(start: datetime, days: int):
    for i in range(days * 24):
        yield start + timedelta(hours=i, minutes=17)


@pytest.mark.parametrize("zone_name", PROPERTY_ZONES)
def test_scheduled_instant_is_always_weekday_four_pm(zone_name):
    zone = ZoneInfo(zone_name)
    # Two weeks spanning the 2024 northern spring-forward weekend
    for sent in _hourly(utc(2024, 3, 4), 14):
        schedule = compute_scheduled_delivery(sent, zone_name)
        local = schedule.scheduled_delivery_at.astimezone(zone)

        assert local.weekday() < 5
        assert (local.hour, local.minute, local.second, local.microsecond) == (16, 0, 0, 0)
        assert schedule.scheduled_delivery_at >= schedule.earliest_delivery_at
        assert schedule.earliest_delivery_at > sent


@pytest.mark.parametrize("zone_name", PROPERTY_ZONES)
def test_earliest_at_or_before_four_pm_on_business_day_delivers_that_day(zone_name):
    zone = ZoneInfo(zone_name)
    for sent in _hourly(utc(2024, 10, 21), 14):
        schedule = compute_scheduled_delivery(sent, zone_name)
        earliest_local = schedule.earliest_delivery_at.astimezone(zone)
        scheduled_local = schedule.scheduled_delivery_at.astimezone(zone)

        if earliest_local.weekday() < 5 and earliest_local.hour < 16:
            assert scheduled_local.date() == earliest_local.date()
        else:
            assert schedule.scheduled_delivery_at > schedule.earliest_delivery_at

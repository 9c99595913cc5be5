"""Tests for IANA timezone validation."""

from datetime import datetime, timezone

import pytest

from slowpost.utils.business_hours import compute_scheduled_delivery
from slowpost.utils.timezones import InvalidTimezoneError, get_zone, is_valid_timezone


@pytest.mark.parametrize(
    "name",
    [
        "UTC",
        "America/New_York",
        "Australia/Melbourne",
        "Asia/Kolkata",
        "America/Argentina/Buenos_Aires",
        "Etc/UTC",
        "Etc/GMT+5",
        "Europe/Kyiv",
        "Asia/Ho_Chi_Minh",
    ],
)
def test_canonical_zones_are_valid(name):
    assert is_valid_timezone(name)


@pytest.mark.parametrize(
    "name",
    [
        "",
        "   ",
        " Europe/Paris",
        "Europe/Paris ",
        "Mars/Olympus_Mons",
        "europe/paris",
        "US/Eastern",  # legacy link area
        "Canada/Pacific",
        "EST",  # bare alias
        "GB",
        "Zulu",
        "Asia/Calcutta",  # retired backward links
        "Europe/Kiev",
        "Asia/Saigon",
        "America/Buenos_Aires",
        "Australia/ACT",
        "Asia/Rangoon",
        "Etc/Greenwich",
        None,
        42,
    ],
)
def test_malformed_or_retired_zones_are_invalid(name):
    assert not is_valid_timezone(name)


def test_get_zone_returns_zoneinfo():
    assert get_zone("Europe/Paris").key == "Europe/Paris"


def test_get_zone_never_falls_back_to_utc():
    with pytest.raises(InvalidTimezoneError) as exc_info:
        get_zone("Nowhere/Special")
    assert exc_info.value.name == "Nowhere/Special"
    assert "Nowhere/Special" in str(exc_info.value)


def test_scheduler_rejects_retired_zone():
    with pytest.raises(InvalidTimezoneError):
        compute_scheduled_delivery(datetime(2024, 1, 8, 9, tzinfo=timezone.utc), "Asia/Calcutta")

"""Utility modules."""

from slowpost.utils.business_hours import (
    DeliverySchedule,
    add_business_hours,
    compute_scheduled_delivery,
    is_business_day,
    next_delivery_slot,
)
from slowpost.utils.normalization import (
    is_valid_username,
    normalize_address,
    normalize_email,
    normalize_identifier,
    normalize_phone,
    normalize_username,
)
from slowpost.utils.timezones import InvalidTimezoneError, get_zone, is_valid_timezone

__all__ = [
    "DeliverySchedule",
    "add_business_hours",
    "compute_scheduled_delivery",
    "is_business_day",
    "next_delivery_slot",
    "is_valid_username",
    "normalize_address",
    "normalize_email",
    "normalize_identifier",
    "normalize_phone",
    "normalize_username",
    "InvalidTimezoneError",
    "get_zone",
    "is_valid_timezone",
]

"""Delivery scheduling: 24 business hours, then the next 4 PM.

All arithmetic happens in the recipient's local time. Business days are
Monday-Friday; there is no holiday calendar. DST-safe:

- counting hours uses elapsed time (steps are taken in UTC), so a 23- or
  25-hour local day still counts 24 real hours;
- jumping over a weekend and picking "4 PM on day N" use calendar days,
  which keep the local wall-clock time even when the UTC offset changes.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from slowpost.core.clock import ensure_utc
from slowpost.core.constants import BUSINESS_HOURS_BEFORE_DELIVERY, DELIVERY_HOUR
from slowpost.utils.timezones import get_zone

SATURDAY = 5
SUNDAY = 6
ONE_HOUR = timedelta(hours=1)


@dataclass(frozen=True)
class DeliverySchedule:
    """Both instants are aware UTC datetimes."""
    earliest_delivery_at: datetime
    scheduled_delivery_at: datetime


def is_business_day(value: datetime | date) -> bool:
    """Check if date is a business day (Mon-Fri)."""
    return value.weekday() < SATURDAY


def _shift_local_days(local: datetime, days: int) -> datetime:
    """Add calendar days keeping the local wall-clock time; returns UTC."""
    tz = local.tzinfo
    wall = local.replace(tzinfo=None) + timedelta(days=days)
    return wall.replace(tzinfo=tz).astimezone(timezone.utc)


def _delivery_instant(day: date, tz) -> datetime:
    """DELIVERY_HOUR:00:00.000 local on ``day``, as UTC."""
    return datetime.combine(day, time(DELIVERY_HOUR), tzinfo=tz).astimezone(timezone.utc)


def add_business_hours(start_utc: datetime, hours: int, timezone_name: str) -> datetime:
    """
    Count ``hours`` elapsed hours that fall on Mon-Fri in ``timezone_name``.

    A weekend start first moves to Monday at the same local wall-clock time
    (Saturday +2 days, Sunday +1 day); counting starts from there. Each step
    checks the day of the hour about to elapse, so Friday 17:00 plus 24 ends
    on Monday 17:00.

    Args:
        start_utc: Start instant (any aware datetime; naive is taken as UTC)
        hours: Business hours to count
        timezone_name: IANA timezone (e.g., 'America/New_York')

    Returns:
        The instant after the last counted hour, in UTC

    Raises:
        InvalidTimezoneError: If timezone_name is not a canonical IANA zone
    """
    tz = get_zone(timezone_name)
    cursor = ensure_utc(start_utc)
    local = cursor.astimezone(tz)

    if local.weekday() == SATURDAY:
        cursor = _shift_local_days(local, 2)
    elif local.weekday() == SUNDAY:
        cursor = _shift_local_days(local, 1)

    counted = 0
    while counted < hours:
        if is_business_day(cursor.astimezone(tz)):
            counted += 1
        cursor += ONE_HOUR
    return cursor


def next_delivery_slot(earliest_utc: datetime, timezone_name: str) -> datetime:
    """
    First DELIVERY_HOUR local time on a business day at or after ``earliest_utc``.

    An earliest instant of exactly 16:00:00.000 on a weekday delivers that
    same day.
    """
    tz = get_zone(timezone_name)
    earliest_utc = ensure_utc(earliest_utc)
    day = earliest_utc.astimezone(tz).date()

    if _delivery_instant(day, tz) < earliest_utc:
        day += timedelta(days=1)
    while not is_business_day(day):
        day += timedelta(days=1)
    return _delivery_instant(day, tz)


def compute_scheduled_delivery(sent_at: datetime, recipient_timezone: str) -> DeliverySchedule:
    """
    Compute when a letter sent at ``sent_at`` reaches a recipient in ``recipient_timezone``.

    Examples (recipient in UTC):
        Monday 17:00   → earliest Tuesday 17:00  → Wednesday 16:00
        Monday 15:00   → earliest Tuesday 15:00  → Tuesday 16:00
        Friday 17:00   → earliest Monday 17:00   → Tuesday 16:00
        Thursday 16:00 → earliest Friday 16:00   → Friday 16:00
        Saturday 10:00 → earliest Tuesday 10:00  → Tuesday 16:00

    Raises:
        InvalidTimezoneError: If recipient_timezone is not valid. No default
            zone is substituted.
    """
    earliest = add_business_hours(sent_at, BUSINESS_HOURS_BEFORE_DELIVERY, recipient_timezone)
    return DeliverySchedule(
        earliest_delivery_at=earliest,
        scheduled_delivery_at=next_delivery_slot(earliest, recipient_timezone),
    )

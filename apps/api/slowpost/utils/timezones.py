"""IANA timezone validation.

Every timezone that reaches the delivery scheduler has been through
``is_valid_timezone``: at account creation, and again inside the scheduler,
which refuses to guess a zone when handed a bad one.

The canonical set comes from the zone tables shipped with ``tzdata``.
Backward-compatibility links (``Asia/Calcutta``, ``US/Eastern``, ``EST``)
are present in the zone database but never listed there, so they are
rejected.
"""

import re
from functools import lru_cache
from importlib import resources
from zoneinfo import ZoneInfo, available_timezones

ZONE_TABLES = ("zone1970.tab", "zone.tab")
# Fixed-offset zones that live outside the country tables
FIXED_OFFSET_PATTERN = re.compile(r"^Etc/(UTC|GMT([+-]([1-9]|1[0-4]))?)$")
BARE_NAMES_ALLOWED = frozenset({"UTC"})


class InvalidTimezoneError(ValueError):
    """Timezone identifier is not a canonical IANA zone."""

    def __init__(self, name: object):
        self.name = name
        super().__init__(f"Invalid IANA timezone: {name!r}")


def _read_zone_table(filename: str) -> set[str]:
    text = resources.files("tzdata.zoneinfo").joinpath(filename).read_text(encoding="utf-8")
    names = set()
    for line in text.splitlines():
        if not line or line.startswith("#"):
            continue
        fields = line.split("\t")
        if len(fields) >= 3:
            names.add(fields[2].strip())
    return names


@lru_cache(maxsize=1)
def canonical_zones() -> frozenset[str]:
    """Zone names listed in the tzdata tables, plus UTC and the Etc offsets."""
    available = available_timezones()
    names: set[str] = set(BARE_NAMES_ALLOWED)
    for table in ZONE_TABLES:
        names |= _read_zone_table(table)
    names |= {name for name in available if FIXED_OFFSET_PATTERN.match(name)}
    return frozenset(name for name in names if name in available)


def is_valid_timezone(name: object) -> bool:
    """True for canonical IANA identifiers such as "Australia/Melbourne" or "UTC"."""
    if not isinstance(name, str) or not name:
        return False
    return name in canonical_zones()


def get_zone(name: str) -> ZoneInfo:
    """
    Return the ZoneInfo for a validated name.

    Raises:
        InvalidTimezoneError: never falls back to UTC.
    """
    if not is_valid_timezone(name):
        raise InvalidTimezoneError(name)
    return ZoneInfo(name)

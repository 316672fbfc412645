"""Timezone resolution and conversion utilities for calendarslots.

All timed slots are stored in UTC with the zone they were authored in kept
alongside, so they can be rendered back into local time on read.
"""

from __future__ import annotations

import datetime
import logging
from enum import Enum
from functools import lru_cache
from typing import ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calendarslots.calendar.slot_exceptions import InvalidTimezoneError, RecurrenceContractError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"

ZoneLike = str | datetime.tzinfo


class DurationUnit(str, Enum):
    """Units supported by zone_aware_difference()."""

    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


_UNIT_SECONDS: dict[DurationUnit, int] = {
    DurationUnit.SECONDS: 1,
    DurationUnit.MINUTES: 60,
    DurationUnit.HOURS: 3600,
    DurationUnit.DAYS: 86400,
}


class TimezoneResolver:
    """Resolves zone identifiers to tzinfo objects.

    Accepts IANA identifiers, Windows zone names as emitted by Outlook/Exchange
    and already-constructed tzinfo instances.
    """

    # Windows timezone names to IANA identifier mapping
    WINDOWS_TZ_MAP: ClassVar[dict[str, str]] = {
        "Pacific Standard Time": "America/Los_Angeles",
        "Mountain Standard Time": "America/Denver",
        "Central Standard Time": "America/Chicago",
        "Eastern Standard Time": "America/New_York",
        "Alaskan Standard Time": "America/Anchorage",
        "Hawaiian Standard Time": "Pacific/Honolulu",
        "Arizona Standard Time": "America/Phoenix",
        "GMT Standard Time": "Europe/London",
        "Central European Standard Time": "Europe/Paris",
        "W. Europe Standard Time": "Europe/Berlin",
        "GTB Standard Time": "Europe/Athens",
        "China Standard Time": "Asia/Shanghai",
        "Tokyo Standard Time": "Asia/Tokyo",
        "India Standard Time": "Asia/Kolkata",
        "AUS Eastern Standard Time": "Australia/Sydney",
    }

    def resolve(self, zone: ZoneLike) -> datetime.tzinfo:
        """Return the tzinfo for a zone identifier.

        Args:
            zone: IANA name, Windows zone name or tzinfo instance

        Returns:
            tzinfo usable with datetime.replace()/astimezone()

        Raises:
            InvalidTimezoneError: If the identifier cannot be resolved
        """
        if isinstance(zone, datetime.tzinfo):
            return zone
        if not isinstance(zone, str) or not zone.strip():
            raise InvalidTimezoneError(zone)
        return _load_zone(self.WINDOWS_TZ_MAP.get(zone.strip(), zone.strip()))


@lru_cache(maxsize=128)
def _load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        # OSError covers ids naming a tzdata directory such as "America"
        logger.warning("Failed to resolve timezone %r: %s", name, e)
        raise InvalidTimezoneError(name) from e


_resolver = TimezoneResolver()


def resolve_zone(zone: ZoneLike) -> datetime.tzinfo:
    """Resolve a zone identifier (convenience function).

    Raises:
        InvalidTimezoneError: If the identifier cannot be resolved
    """
    return _resolver.resolve(zone)


def to_utc(local_dt: datetime.datetime, zone: ZoneLike) -> datetime.datetime:
    """Convert a zone-local wall-clock time to UTC.

    The offset in effect at that instant is used, so DST is honoured. Wall
    times inside a DST gap or overlap resolve with fold=0 (the earlier offset).

    Args:
        local_dt: Naive local datetime; an aware value is re-read in ``zone``
        zone: Zone the wall-clock time was authored in

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidTimezoneError: If the zone cannot be resolved
    """
    tz = resolve_zone(zone)
    return local_dt.replace(tzinfo=tz).astimezone(datetime.UTC)


def from_utc(utc_dt: datetime.datetime, zone: ZoneLike) -> datetime.datetime:
    """Convert a UTC instant back to a naive wall-clock time in ``zone``.

    Naive input is assumed to already be UTC.
    """
    tz = resolve_zone(zone)
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=datetime.UTC)
    return utc_dt.astimezone(tz).replace(tzinfo=None)


def zone_aware_difference(
    start_local: datetime.datetime,
    start_zone: ZoneLike,
    end_local: datetime.datetime,
    end_zone: ZoneLike,
    unit: DurationUnit = DurationUnit.MINUTES,
) -> int:
    """Measure the time between two zoned wall-clock times in whole ``unit``s.

    Both endpoints are converted to UTC first, so 10:00 in New York and 16:00
    in Paris on the same summer day are 0 minutes apart. Partial units are
    truncated toward zero.

    Raises:
        InvalidTimezoneError: If either zone cannot be resolved
        RecurrenceContractError: If the unit is not supported
    """
    try:
        unit_seconds = _UNIT_SECONDS[DurationUnit(unit)]
    except (KeyError, ValueError) as e:
        raise RecurrenceContractError(f"Unsupported duration unit: {unit!r}") from e

    delta = to_utc(end_local, end_zone) - to_utc(start_local, start_zone)
    seconds = delta.days * 86400 + delta.seconds
    whole_units = abs(seconds) // unit_seconds
    return whole_units if seconds >= 0 else -whole_units

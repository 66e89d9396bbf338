"""Time arithmetic helpers.

Timestamps are timezone-aware and presented in the configured site
timezone, but every addition, subtraction and comparison of elapsed time is
done on UTC values so daylight saving changes never stretch or shrink a
duration. Minutes may be fractional; rounding only happens in
:func:`format_clock` for display.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from ...config import settings
from .errors import InvalidRange


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def site_zone(name: str | None = None) -> ZoneInfo:
    return _zone(name or settings.site_timezone)


def normalize_timestamp(value: datetime) -> datetime:
    """Attach the site timezone to naive values, convert aware ones to it."""
    zone = site_zone()
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value.astimezone(zone)


def to_utc(value: datetime) -> datetime:
    return normalize_timestamp(value).astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return normalize_timestamp(value)
    return normalize_timestamp(datetime.fromisoformat(str(value).strip()))


def combine_date_and_clock(day: date, clock: time) -> datetime:
    return normalize_timestamp(datetime.combine(day, clock.replace(tzinfo=None)))


def add_minutes(timestamp: datetime, minutes: float) -> datetime:
    """Shift by elapsed minutes, keeping the timezone the value came in."""
    aware = normalize_timestamp(timestamp) if timestamp.tzinfo is None else timestamp
    shifted = aware.astimezone(timezone.utc) + timedelta(minutes=minutes)
    return shifted.astimezone(aware.tzinfo)


def minutes_between(start: datetime, end: datetime) -> float:
    """Signed elapsed minutes from ``start`` to ``end``."""
    return (to_utc(end) - to_utc(start)).total_seconds() / 60.0


def duration_minutes(start: datetime, end: datetime, tolerance: float | None = None) -> float:
    """Elapsed minutes from ``start`` to ``end``.

    Negative spans within the clock-skew tolerance are clamped to zero;
    anything earlier raises :class:`InvalidRange`.
    """
    allowed_skew = settings.clock_skew_tolerance_minutes if tolerance is None else tolerance
    minutes = minutes_between(start, end)
    if minutes < 0:
        if -minutes > allowed_skew:
            raise InvalidRange(
                f"Range ends {-minutes:.1f} min before it starts ({start.isoformat()} -> {end.isoformat()})."
            )
        return 0.0
    return minutes


def format_clock(timestamp: datetime) -> str:
    return normalize_timestamp(add_minutes(timestamp, 0.5)).strftime("%H:%M")

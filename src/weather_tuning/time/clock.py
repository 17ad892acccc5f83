"""Deterministic UTC time-of-day helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from math import floor

# Date used when a bare time of day has to become a timestamp. Fixed so that
# derived values such as moon phase stay reproducible.
REFERENCE_DATE = date(2024, 1, 1)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to timezone-aware UTC, assuming UTC for naive values."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def normalize_time_of_day(time_of_day: float) -> float:
    """Wrap any scalar into the [0, 1) day cycle. In-range values are returned unchanged."""
    wrapped = time_of_day % 1.0
    # Tiny negative inputs round up to exactly 1.0.
    return 0.0 if wrapped >= 1.0 else wrapped


def time_of_day_from_timestamp(timestamp: datetime | None) -> float:
    """Return time of day on a 0-1 scale (0 = midnight, 0.5 = noon).

    Defaults to noon when no timestamp is given. Seconds are ignored.
    """
    if timestamp is None:
        return 0.5
    dt = to_utc(timestamp)
    return (dt.hour + dt.minute / 60.0) / 24.0


def timestamp_for_time_of_day(time_of_day: float, on: date = REFERENCE_DATE) -> datetime:
    """Build a UTC timestamp on `on` whose clock time matches `time_of_day`."""
    hours_float = normalize_time_of_day(time_of_day) * 24.0
    hours = floor(hours_float)
    minutes = floor((hours_float - hours) * 60.0)
    return datetime.combine(on, time(hour=hours, minute=minutes), tzinfo=UTC)

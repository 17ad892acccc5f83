"""Tests for UTC time-of-day helpers."""

from datetime import UTC, datetime, timedelta, timezone

from weather_tuning.time.clock import (
    REFERENCE_DATE,
    normalize_time_of_day,
    time_of_day_from_timestamp,
    timestamp_for_time_of_day,
)


def test_normalize_time_of_day_wraps() -> None:
    """Any scalar should land in [0, 1)."""
    assert normalize_time_of_day(-0.25) == 0.75
    assert normalize_time_of_day(1.25) == 0.25
    assert normalize_time_of_day(1.0) == 0.0


def test_time_of_day_from_timestamp() -> None:
    """Clock time should map to the 0-1 scale in UTC, noon when absent."""
    assert time_of_day_from_timestamp(None) == 0.5
    assert time_of_day_from_timestamp(datetime(2024, 5, 12, 18, 0, tzinfo=UTC)) == 0.75
    assert time_of_day_from_timestamp(datetime(2024, 5, 12, 6, 0)) == 0.25


def test_time_of_day_from_non_utc_timestamp() -> None:
    """Aware datetimes should be converted to UTC first."""
    kst = timezone(timedelta(hours=9))
    assert time_of_day_from_timestamp(datetime(2024, 5, 13, 3, 0, tzinfo=kst)) == 0.75


def test_timestamp_for_time_of_day_uses_reference_date() -> None:
    """Derived timestamps should sit on the fixed reference date."""
    assert timestamp_for_time_of_day(0.25) == datetime(2024, 1, 1, 6, 0, tzinfo=UTC)
    assert timestamp_for_time_of_day(0.3125) == datetime(2024, 1, 1, 7, 30, tzinfo=UTC)
    assert timestamp_for_time_of_day(0.5).date() == REFERENCE_DATE


def test_normalize_time_of_day_keeps_in_range_values() -> None:
    """Values already inside the day should come back bit-for-bit."""
    for value in (0.0, 0.3, 0.7, 0.9, 0.999):
        assert normalize_time_of_day(value) == value
    assert normalize_time_of_day(-1e-20) == 0.0

"""Tests for checkpoint registry and the circular checkpoint locator."""

import pytest

from weather_tuning.time.checkpoints import (
    TIME_CHECKPOINT_ORDER,
    Checkpoint,
    CheckpointInfo,
    checkpoint_for_time,
    checkpoint_time,
    is_near_checkpoint,
    nearest_checkpoint,
    parse_checkpoint,
    surrounding_checkpoints,
)


def test_checkpoint_times_and_order() -> None:
    """Checkpoints should carry canonical times and keep editing order."""
    assert [checkpoint_time(cp) for cp in TIME_CHECKPOINT_ORDER] == [0.25, 0.5, 0.75, 0.0]
    assert parse_checkpoint("dusk") is Checkpoint.DUSK
    assert parse_checkpoint("sunrise") is None


def test_locator_inside_morning_segment() -> None:
    """A time between dawn and noon should blend dawn into noon."""
    located = surrounding_checkpoints(0.3125)
    assert located.before is Checkpoint.DAWN
    assert located.after is Checkpoint.NOON
    assert located.t == pytest.approx(0.25)


def test_locator_wraps_across_midnight() -> None:
    """The dusk segment should wrap into midnight on the next day."""
    located = surrounding_checkpoints(0.875)
    assert (located.before, located.after) == (Checkpoint.DUSK, Checkpoint.MIDNIGHT)
    assert located.t == pytest.approx(0.5)

    early = surrounding_checkpoints(0.1)
    assert (early.before, early.after) == (Checkpoint.MIDNIGHT, Checkpoint.DAWN)
    assert early.t == pytest.approx(0.4)


def test_locator_at_checkpoint_starts_segment() -> None:
    """Exactly at a checkpoint, that checkpoint begins the segment with t = 0."""
    for checkpoint in TIME_CHECKPOINT_ORDER:
        located = surrounding_checkpoints(checkpoint_time(checkpoint))
        assert located.before is checkpoint
        assert located.t == 0.0


def test_locator_normalizes_out_of_range_times() -> None:
    """Times outside [0, 1) should wrap onto the day cycle."""
    assert surrounding_checkpoints(1.3125) == surrounding_checkpoints(0.3125)
    assert surrounding_checkpoints(-0.6875) == surrounding_checkpoints(0.3125)


def test_locator_degenerate_registry_falls_back() -> None:
    """Zero-width segments should yield the wrap segment with t = 0."""
    registry = {
        Checkpoint.DAWN: CheckpointInfo(value=0.5, label="Dawn", clock="12:00"),
        Checkpoint.NOON: CheckpointInfo(value=0.5, label="Noon", clock="12:00"),
    }
    located = surrounding_checkpoints(0.5, registry)
    assert located.before is Checkpoint.NOON
    assert located.after is Checkpoint.DAWN
    assert located.t == 0.0

    single = surrounding_checkpoints(0.9, {Checkpoint.NOON: CheckpointInfo(0.5, "Noon", "12:00")})
    assert (single.before, single.after, single.t) == (Checkpoint.NOON, Checkpoint.NOON, 0.0)


def test_checkpoint_for_time_picks_closer_end() -> None:
    """The closer end of the surrounding segment should be returned."""
    assert checkpoint_for_time(0.3) is Checkpoint.DAWN
    assert checkpoint_for_time(0.45) is Checkpoint.NOON


def test_nearest_checkpoint_uses_circular_distance() -> None:
    """Nearest checkpoint should wrap around midnight and break ties by order."""
    assert nearest_checkpoint(0.3) is Checkpoint.DAWN
    assert nearest_checkpoint(0.95) is Checkpoint.MIDNIGHT
    assert nearest_checkpoint(0.375) is Checkpoint.DAWN
    assert nearest_checkpoint(0.125) is Checkpoint.DAWN
    assert nearest_checkpoint(0.7) is Checkpoint.DUSK


def test_is_near_checkpoint_threshold() -> None:
    """Closeness should respect the default threshold."""
    assert is_near_checkpoint(0.51, Checkpoint.NOON)
    assert not is_near_checkpoint(0.53, Checkpoint.NOON)
    assert is_near_checkpoint(0.53, Checkpoint.NOON, threshold=0.05)


def test_locator_covers_whole_day() -> None:
    """Every time on a fine grid should land in an adjacent segment with t in [0, 1]."""
    by_time = sorted(TIME_CHECKPOINT_ORDER, key=checkpoint_time)
    adjacent = {(by_time[i], by_time[(i + 1) % len(by_time)]) for i in range(len(by_time))}

    for step in range(10_000):
        located = surrounding_checkpoints(step / 10_000)
        assert 0.0 <= located.t <= 1.0
        assert (located.before, located.after) in adjacent

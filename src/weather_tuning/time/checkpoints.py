"""Time-of-day checkpoints and the locator that blends between them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from weather_tuning.time.clock import normalize_time_of_day


class Checkpoint(StrEnum):
    """Named time-of-day keyframes used for tuning."""

    DAWN = "dawn"
    NOON = "noon"
    DUSK = "dusk"
    MIDNIGHT = "midnight"


@dataclass(frozen=True, slots=True)
class CheckpointInfo:
    """Canonical time value and display metadata for one checkpoint."""

    value: float
    label: str
    clock: str


TIME_CHECKPOINTS: dict[Checkpoint, CheckpointInfo] = {
    Checkpoint.DAWN: CheckpointInfo(value=0.25, label="Dawn", clock="06:00"),
    Checkpoint.NOON: CheckpointInfo(value=0.5, label="Noon", clock="12:00"),
    Checkpoint.DUSK: CheckpointInfo(value=0.75, label="Dusk", clock="18:00"),
    Checkpoint.MIDNIGHT: CheckpointInfo(value=0.0, label="Midnight", clock="00:00"),
}

# Editing/display order. Time order is derived by sorting on value.
TIME_CHECKPOINT_ORDER: tuple[Checkpoint, ...] = (
    Checkpoint.DAWN,
    Checkpoint.NOON,
    Checkpoint.DUSK,
    Checkpoint.MIDNIGHT,
)


def parse_checkpoint(value: object) -> Checkpoint | None:
    """Return the checkpoint for a raw name, or None when unknown."""
    try:
        return Checkpoint(str(value))
    except ValueError:
        return None


def checkpoint_time(checkpoint: Checkpoint) -> float:
    """Return the canonical time of day for a checkpoint."""
    return TIME_CHECKPOINTS[checkpoint].value


@dataclass(frozen=True, slots=True)
class SurroundingCheckpoints:
    """The checkpoint segment containing a time, and the blend factor inside it."""

    before: Checkpoint
    after: Checkpoint
    t: float


def surrounding_checkpoints(
    time_of_day: float,
    registry: Mapping[Checkpoint, CheckpointInfo] | None = None,
) -> SurroundingCheckpoints:
    """Locate the two checkpoints around `time_of_day` on the circular day.

    The segment after the latest checkpoint wraps into the earliest one. A
    zero-width segment yields `t = 0`. If floating-point edge cases leave the
    query outside every segment, the wrap segment is returned with `t = 0`.
    """
    checkpoints = registry if registry is not None else TIME_CHECKPOINTS
    ordered = sorted(checkpoints.items(), key=lambda item: item[1].value)
    query = normalize_time_of_day(time_of_day)

    for index, (checkpoint, info) in enumerate(ordered):
        next_checkpoint, next_info = ordered[(index + 1) % len(ordered)]
        start = info.value
        end = next_info.value
        if end < start:
            end += 1.0

        shifted = query
        if shifted < start and end > 1.0:
            shifted += 1.0

        if start <= shifted < end:
            span = end - start
            t = (shifted - start) / span if span > 0 else 0.0
            return SurroundingCheckpoints(before=checkpoint, after=next_checkpoint, t=t)

    return SurroundingCheckpoints(before=ordered[-1][0], after=ordered[0][0], t=0.0)


def checkpoint_for_time(time_of_day: float) -> Checkpoint:
    """Return whichever end of the surrounding segment the time is closer to."""
    located = surrounding_checkpoints(time_of_day)
    return located.before if located.t < 0.5 else located.after


def nearest_checkpoint(time_of_day: float) -> Checkpoint:
    """Return the checkpoint with the smallest circular distance to a time.

    Ties go to the checkpoint listed first in `TIME_CHECKPOINT_ORDER`.
    """
    query = normalize_time_of_day(time_of_day)
    nearest = Checkpoint.NOON
    best = float("inf")
    for checkpoint in TIME_CHECKPOINT_ORDER:
        distance = abs(query - checkpoint_time(checkpoint))
        if distance > 0.5:
            distance = 1.0 - distance
        if distance < best:
            best = distance
            nearest = checkpoint
    return nearest


def is_near_checkpoint(time_of_day: float, checkpoint: Checkpoint, threshold: float = 0.02) -> bool:
    """Return True when `time_of_day` sits within `threshold` of a checkpoint."""
    return abs(time_of_day - checkpoint_time(checkpoint)) < threshold

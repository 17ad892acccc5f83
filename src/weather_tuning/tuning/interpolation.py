"""Interpolation of sparse overrides between time-of-day checkpoints."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from weather_tuning.contracts import ConditionOverrides, FullParameterSet, ParamGroup
from weather_tuning.time.checkpoints import Checkpoint, surrounding_checkpoints

BaseForCheckpoint = Callable[[Checkpoint], FullParameterSet]


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def interpolate_partial(
    a: Mapping[str, Any] | None,
    b: Mapping[str, Any] | None,
    base_a: Mapping[str, Any] | None,
    base_b: Mapping[str, Any] | None,
    t: float,
) -> dict[str, Any] | None:
    """Blend two partial records, filling a missing side from its base.

    Numbers are interpolated linearly. Booleans and any other value step from
    the `a` side to the `b` side at `t >= 0.5`. A field with only one
    resolvable endpoint keeps that value. Returns None when nothing survives.
    """
    if not a and not b:
        return None

    a = a or {}
    b = b or {}
    result: dict[str, Any] = {}
    for key in dict.fromkeys([*a, *b]):
        from_value = a.get(key)
        to_value = b.get(key)
        if from_value is None and to_value is None:
            continue

        if from_value is None and base_a is not None:
            from_value = base_a.get(key)
        if to_value is None and base_b is not None:
            to_value = base_b.get(key)

        if from_value is None or to_value is None:
            result[key] = from_value if from_value is not None else to_value
        elif _is_number(from_value) and _is_number(to_value):
            result[key] = lerp(from_value, to_value, t)
        else:
            result[key] = from_value if t < 0.5 else to_value

    return result or None


def interpolate_overrides(
    a: Mapping[str, Mapping[str, Any]] | None,
    b: Mapping[str, Mapping[str, Any]] | None,
    base_a: FullParameterSet | None,
    base_b: FullParameterSet | None,
    t: float,
) -> ConditionOverrides | None:
    """Interpolate two condition overrides group by group.

    Returns None when no group survives, so callers can tell "no override"
    apart from an empty one.
    """
    if not a and not b:
        return None

    result: ConditionOverrides = {}
    for group in ParamGroup:
        blended = interpolate_partial(
            (a or {}).get(group.value),
            (b or {}).get(group.value),
            base_a.group_values(group) if base_a is not None else None,
            base_b.group_values(group) if base_b is not None else None,
            t,
        )
        if blended:
            result[group.value] = blended
    return result or None


def interpolated_overrides(
    checkpoint_overrides: Mapping[Checkpoint, Mapping[str, Mapping[str, Any]]] | None,
    time_of_day: float,
    base_for_checkpoint: BaseForCheckpoint | None = None,
) -> ConditionOverrides | None:
    """Interpolate stored checkpoint overrides at a continuous time of day.

    Missing checkpoint entries are treated as empty overrides.
    """
    if checkpoint_overrides is None:
        return None

    located = surrounding_checkpoints(time_of_day)
    base_a = base_for_checkpoint(located.before) if base_for_checkpoint else None
    base_b = base_for_checkpoint(located.after) if base_for_checkpoint else None
    return interpolate_overrides(
        checkpoint_overrides.get(located.before),
        checkpoint_overrides.get(located.after),
        base_a,
        base_b,
        located.t,
    )

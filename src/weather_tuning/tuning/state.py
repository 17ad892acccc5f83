"""Immutable tuning state and the pure operations over it.

Every operation takes a :class:`TuningState` snapshot and returns a new one;
inputs are never mutated. Reads derive full parameter sets on demand from the
base resolver, the stored checkpoint overrides, and the global time cursor.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TypeAlias

from weather_tuning.contracts import (
    WEATHER_CONDITIONS,
    ConditionOverrides,
    FullParameterSet,
    ParamGroup,
    ParamValue,
    WeatherCondition,
    coerce_value,
    parse_group,
    resolve_field_name,
)
from weather_tuning.presets.base import base_params_at_time, base_params_for_checkpoint
from weather_tuning.presets.tuned_defaults import tuned_defaults
from weather_tuning.time.checkpoints import (
    TIME_CHECKPOINT_ORDER,
    Checkpoint,
    checkpoint_time,
    nearest_checkpoint,
)
from weather_tuning.time.clock import normalize_time_of_day
from weather_tuning.tuning.interpolation import interpolated_overrides
from weather_tuning.tuning.overrides import (
    DEFAULT_EXCLUDED_FIELDS,
    CheckpointOverrides,
    copy_overrides,
    count_override_fields,
    empty_checkpoint_overrides,
    extract_overrides,
    merge_condition_overrides,
    merge_with_overrides,
)

logger = logging.getLogger(__name__)

DEFAULT_TIME_OF_DAY = 0.5


class ReviewStatus(StrEnum):
    """Per-checkpoint review flag."""

    PENDING = "pending"
    REVIEWED = "reviewed"


ConditionReview = dict[Checkpoint, ReviewStatus]


@dataclass(frozen=True, slots=True)
class ContinuousTime:
    """A time of day between checkpoints, on the 0-1 day scale."""

    value: float


TimeQuery: TypeAlias = Checkpoint | ContinuousTime


@dataclass(frozen=True)
class TuningState:
    """Snapshot of everything the tuning workflow owns.

    `overrides_by_condition` and `review_by_condition` are sparse: conditions
    never tuned or reviewed have no entry.
    """

    global_time_of_day: float = DEFAULT_TIME_OF_DAY
    active_checkpoint: Checkpoint = Checkpoint.NOON
    previewing: bool = False
    active_condition: WeatherCondition = WeatherCondition.CLEAR
    overrides_by_condition: Mapping[WeatherCondition, CheckpointOverrides] = field(default_factory=dict)
    review_by_condition: Mapping[WeatherCondition, ConditionReview] = field(default_factory=dict)
    signed_off: frozenset[WeatherCondition] = frozenset()


def pending_review() -> ConditionReview:
    return {checkpoint: ReviewStatus.PENDING for checkpoint in TIME_CHECKPOINT_ORDER}


# --- reads ---


def checkpoint_overrides_for(state: TuningState, condition: WeatherCondition) -> CheckpointOverrides:
    """Return stored overrides for a condition with every checkpoint present."""
    stored = state.overrides_by_condition.get(condition) or {}
    out = empty_checkpoint_overrides()
    for checkpoint in TIME_CHECKPOINT_ORDER:
        out[checkpoint] = stored.get(checkpoint) or {}
    return out


def stored_override(state: TuningState, condition: WeatherCondition, checkpoint: Checkpoint) -> ConditionOverrides:
    """Return the user override stored at one checkpoint (empty when absent)."""
    return (state.overrides_by_condition.get(condition) or {}).get(checkpoint) or {}


def full_params_for_checkpoint(
    state: TuningState,
    condition: WeatherCondition,
    checkpoint: Checkpoint,
) -> FullParameterSet:
    """Return base params at a checkpoint with that checkpoint's override applied."""
    base = base_params_for_checkpoint(condition, checkpoint)
    return merge_with_overrides(base, stored_override(state, condition, checkpoint))


def get_full_params(state: TuningState, condition: WeatherCondition, query: TimeQuery) -> FullParameterSet:
    """Derive the full parameter set for a condition at a checkpoint or time.

    The celestial time of day always reflects the global time cursor.
    """
    match query:
        case Checkpoint():
            params = full_params_for_checkpoint(state, condition, query)
        case ContinuousTime(value=time_of_day):
            base = base_params_at_time(condition, time_of_day)
            stored = state.overrides_by_condition.get(condition)
            blended = interpolated_overrides(
                stored,
                time_of_day,
                lambda checkpoint: base_params_for_checkpoint(condition, checkpoint),
            )
            params = merge_with_overrides(base, blended)
        case _:
            raise TypeError(f"unsupported time query: {query!r}")

    return replace(params, celestial=replace(params.celestial, time_of_day=state.global_time_of_day))


def params_for_condition(state: TuningState, condition: WeatherCondition) -> FullParameterSet:
    """Full params for a condition at the global time cursor."""
    return get_full_params(state, condition, ContinuousTime(state.global_time_of_day))


def base_params(state: TuningState, condition: WeatherCondition) -> FullParameterSet:
    """Base params for a condition at the global time cursor, without user overrides."""
    base = base_params_at_time(condition, state.global_time_of_day)
    return replace(base, celestial=replace(base.celestial, time_of_day=state.global_time_of_day))


def override_count(state: TuningState, condition: WeatherCondition) -> int:
    """Number of overridden fields across all checkpoints of a condition."""
    stored = state.overrides_by_condition.get(condition) or {}
    return sum(count_override_fields(stored.get(checkpoint)) for checkpoint in TIME_CHECKPOINT_ORDER)


def condition_review_status(state: TuningState, condition: WeatherCondition) -> ConditionReview:
    """Review flags for a condition; checkpoints without a flag are pending."""
    out = pending_review()
    out.update(state.review_by_condition.get(condition) or {})
    return out


def all_checkpoints_reviewed(state: TuningState, condition: WeatherCondition) -> bool:
    review = condition_review_status(state, condition)
    return all(review[checkpoint] is ReviewStatus.REVIEWED for checkpoint in TIME_CHECKPOINT_ORDER)


def is_signed_off(state: TuningState, condition: WeatherCondition) -> bool:
    return condition in state.signed_off


# --- writes ---


def _with_slot(
    state: TuningState,
    condition: WeatherCondition,
    checkpoint: Checkpoint,
    overrides: ConditionOverrides,
) -> TuningState:
    """Replace one (condition, checkpoint) override slot."""
    by_condition = dict(state.overrides_by_condition)
    slots = checkpoint_overrides_for(state, condition)
    slots[checkpoint] = overrides
    by_condition[condition] = slots
    return replace(state, overrides_by_condition=by_condition)


def update_checkpoint_overrides(
    state: TuningState,
    condition: WeatherCondition,
    checkpoint: Checkpoint,
    overrides: ConditionOverrides,
) -> TuningState:
    """Replace the stored override at one checkpoint wholesale."""
    return _with_slot(state, condition, checkpoint, copy_overrides(overrides))


def update_params(state: TuningState, condition: WeatherCondition, params: FullParameterSet) -> TuningState:
    """Store the diff of `params` against the base at the active checkpoint.

    While previewing, the cursor first snaps to the nearest checkpoint so the
    edit is never diffed against an interpolated base.
    """
    if state.previewing:
        snapped = nearest_checkpoint(state.global_time_of_day)
        state = replace(
            state,
            active_checkpoint=snapped,
            global_time_of_day=checkpoint_time(snapped),
            previewing=False,
        )

    checkpoint = state.active_checkpoint
    base = base_params_for_checkpoint(condition, checkpoint)
    return _with_slot(state, condition, checkpoint, extract_overrides(params, base))


def _checked_value(group: ParamGroup | str, name: str, value: ParamValue) -> tuple[ParamGroup, str, ParamValue]:
    resolved_group = parse_group(group)
    if resolved_group is None:
        raise ValueError(f"unknown parameter group: {group}")
    resolved_name = resolve_field_name(resolved_group, name)
    if resolved_name in DEFAULT_EXCLUDED_FIELDS.get(resolved_group, ()):
        raise ValueError(f"{resolved_group.value}.{name} is a global setting, not a per-condition override")
    coerced = coerce_value(resolved_group, resolved_name, value)
    if coerced is None:
        raise ValueError(f"invalid value for {resolved_group.value}.{name}: {value!r}")
    return resolved_group, resolved_name, coerced


def _with_field(overrides: ConditionOverrides, group: ParamGroup, name: str, value: ParamValue) -> ConditionOverrides:
    updated = copy_overrides(overrides)
    updated.setdefault(group.value, {})[name] = value
    return updated


def update_parameter_at_checkpoint(
    state: TuningState,
    condition: WeatherCondition,
    checkpoint: Checkpoint,
    group: ParamGroup | str,
    name: str,
    value: ParamValue,
) -> TuningState:
    """Write one field into one checkpoint's override, keeping its other fields.

    Raises:
        ValueError: if the group, field or value type is invalid.
    """
    resolved_group, resolved_name, coerced = _checked_value(group, name, value)
    current = stored_override(state, condition, checkpoint)
    return _with_slot(state, condition, checkpoint, _with_field(current, resolved_group, resolved_name, coerced))


def bulk_update(
    state: TuningState,
    conditions: Iterable[WeatherCondition],
    checkpoints: Iterable[Checkpoint],
    group: ParamGroup | str,
    name: str,
    value: ParamValue,
) -> TuningState:
    """Apply one field value across every (condition, checkpoint) pair.

    A slot is only written when its effective value differs from `value`; other
    fields already stored in the slot are left untouched.

    Raises:
        ValueError: if the group, field or value type is invalid.
    """
    resolved_group, resolved_name, coerced = _checked_value(group, name, value)
    targets = list(checkpoints)
    for condition in conditions:
        for checkpoint in targets:
            current = full_params_for_checkpoint(state, condition, checkpoint)
            if current.value(resolved_group, resolved_name) == coerced:
                continue
            slot = stored_override(state, condition, checkpoint)
            state = _with_slot(state, condition, checkpoint, _with_field(slot, resolved_group, resolved_name, coerced))
    return state


def reset_condition(state: TuningState, condition: WeatherCondition) -> TuningState:
    """Drop a condition's overrides, review flags and sign-off together."""
    overrides = {key: value for key, value in state.overrides_by_condition.items() if key != condition}
    review = {key: value for key, value in state.review_by_condition.items() if key != condition}
    return replace(
        state,
        overrides_by_condition=overrides,
        review_by_condition=review,
        signed_off=state.signed_off - {condition},
    )


def copy_layer_from_condition(
    state: TuningState,
    source: WeatherCondition,
    target: WeatherCondition,
    group: ParamGroup | str,
) -> TuningState:
    """Copy the source's effective values for one group into the target.

    Applied at every checkpoint; the target's other groups are untouched.
    """
    resolved_group = parse_group(group)
    if resolved_group is None:
        raise ValueError(f"unknown parameter group: {group}")
    for checkpoint in TIME_CHECKPOINT_ORDER:
        source_full = full_params_for_checkpoint(state, source, checkpoint)
        values = source_full.group_values(resolved_group)
        if resolved_group is ParamGroup.CELESTIAL:
            values.pop("time_of_day", None)
        slot = copy_overrides(stored_override(state, target, checkpoint))
        slot[resolved_group.value] = values
        state = _with_slot(state, target, checkpoint, slot)
    return state


def copy_layer_to_all_conditions(state: TuningState, source: WeatherCondition, group: ParamGroup | str) -> TuningState:
    """Copy one group from `source` to every other condition."""
    for target in WEATHER_CONDITIONS:
        if target != source:
            state = copy_layer_from_condition(state, source, target, group)
    return state


def copy_checkpoint_to_checkpoints(
    state: TuningState,
    condition: WeatherCondition,
    source: Checkpoint,
    targets: Iterable[Checkpoint],
) -> TuningState:
    """Copy the source checkpoint's effective look onto other checkpoints.

    The copied override combines the source's tuned defaults with its user
    override. Each target becomes reviewed.
    """
    source_base = base_params_for_checkpoint(condition, source)
    source_full = merge_with_overrides(source_base, stored_override(state, condition, source))
    effective = extract_overrides(source_full, source_base)
    combined = merge_condition_overrides(tuned_defaults(condition, source), effective)

    for target in targets:
        if target == source:
            continue
        state = _with_slot(state, condition, target, copy_overrides(combined))
        state = mark_checkpoint_reviewed(state, condition, target)
    return state


# --- time cursor and review workflow ---


def select_condition(state: TuningState, condition: WeatherCondition) -> TuningState:
    return replace(state, active_condition=condition)


def mark_checkpoint_reviewed(state: TuningState, condition: WeatherCondition, checkpoint: Checkpoint) -> TuningState:
    review = dict(state.review_by_condition)
    entry = condition_review_status(state, condition)
    entry[checkpoint] = ReviewStatus.REVIEWED
    review[condition] = entry
    return replace(state, review_by_condition=review)


def go_to_checkpoint(state: TuningState, condition: WeatherCondition, checkpoint: Checkpoint) -> TuningState:
    """Jump the cursor to a checkpoint, make it the edit target, and mark it reviewed."""
    state = replace(
        state,
        global_time_of_day=checkpoint_time(checkpoint),
        active_checkpoint=checkpoint,
        previewing=False,
    )
    return mark_checkpoint_reviewed(state, condition, checkpoint)


def scrub_time(state: TuningState, time_of_day: float) -> TuningState:
    """Move the cursor continuously. Enters preview; reviews nothing."""
    return replace(state, global_time_of_day=normalize_time_of_day(time_of_day), previewing=True)


def exit_preview(state: TuningState) -> TuningState:
    """Leave preview, making the nearest checkpoint the edit target."""
    return replace(state, previewing=False, active_checkpoint=nearest_checkpoint(state.global_time_of_day))


def sign_off(state: TuningState, condition: WeatherCondition) -> TuningState:
    """Sign a condition off. Disallowed (state unchanged) until all checkpoints are reviewed."""
    if condition in state.signed_off:
        return state
    if not all_checkpoints_reviewed(state, condition):
        logger.warning("Sign-off refused for %s: not every checkpoint is reviewed", condition.value)
        return state
    return replace(state, signed_off=state.signed_off | {condition})


def revoke_sign_off(state: TuningState, condition: WeatherCondition) -> TuningState:
    if condition not in state.signed_off:
        return state
    return replace(state, signed_off=state.signed_off - {condition})


def toggle_sign_off(state: TuningState, condition: WeatherCondition) -> TuningState:
    if condition in state.signed_off:
        return revoke_sign_off(state, condition)
    return sign_off(state, condition)

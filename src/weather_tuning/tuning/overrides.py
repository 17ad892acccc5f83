"""Sparse override diff/merge between full parameter sets and their baseline."""

from __future__ import annotations

from collections.abc import Collection, Mapping

from weather_tuning.contracts import (
    GROUP_FIELDS,
    ConditionOverrides,
    FullParameterSet,
    GroupOverrides,
    ParamGroup,
    ParamValue,
    coerce_value,
    parse_group,
)
from weather_tuning.time.checkpoints import TIME_CHECKPOINT_ORDER, Checkpoint

CheckpointOverrides = dict[Checkpoint, ConditionOverrides]

# Time of day is a global setting, never a per-condition override.
DEFAULT_EXCLUDED_FIELDS: dict[ParamGroup, frozenset[str]] = {
    ParamGroup.CELESTIAL: frozenset({"time_of_day"}),
}


def diff_group(
    current: Mapping[str, ParamValue],
    base: Mapping[str, ParamValue],
    exclude: Collection[str] = (),
) -> GroupOverrides:
    """Return fields of `current` whose value differs from `base`.

    Comparison is exact; no tolerance is applied to floats.
    """
    diff: GroupOverrides = {}
    for name, value in current.items():
        if name in exclude:
            continue
        if name not in base or base[name] != value:
            diff[name] = value
    return diff


def extract_overrides(
    current: FullParameterSet,
    base: FullParameterSet,
    exclude: Mapping[ParamGroup, Collection[str]] | None = None,
) -> ConditionOverrides:
    """Compute the minimal sparse override that turns `base` into `current`.

    Groups with no differing field are omitted.
    """
    excluded = DEFAULT_EXCLUDED_FIELDS if exclude is None else exclude
    overrides: ConditionOverrides = {}
    for group in ParamGroup:
        diff = diff_group(
            current.group_values(group),
            base.group_values(group),
            excluded.get(group, ()),
        )
        if diff:
            overrides[group.value] = diff
    return overrides


def merge_with_overrides(
    base: FullParameterSet,
    overrides: Mapping[str, Mapping[str, ParamValue]] | None = None,
) -> FullParameterSet:
    """Overlay sparse overrides onto a full parameter set.

    Returns `base` itself when there is nothing to apply. Unknown groups,
    unknown fields and values of the wrong type are skipped.
    """
    if not overrides:
        return base

    merged = base
    for raw_group, group_fields in overrides.items():
        group = parse_group(raw_group)
        if group is None or not group_fields:
            continue
        known = GROUP_FIELDS[group]
        values: dict[str, ParamValue] = {}
        for name, raw_value in group_fields.items():
            if name not in known:
                continue
            value = coerce_value(group, name, raw_value)
            if value is not None:
                values[name] = value
        if values:
            merged = merged.with_group_values(group, values)
    return merged


def merge_condition_overrides(
    first: Mapping[str, Mapping[str, ParamValue]] | None,
    second: Mapping[str, Mapping[str, ParamValue]] | None,
) -> ConditionOverrides:
    """Union two sparse overrides group by group, `second` winning on conflicts."""
    out: ConditionOverrides = {}
    for source in (first or {}, second or {}):
        for group, group_fields in source.items():
            if group_fields:
                out.setdefault(group, {}).update(group_fields)
    return out


def copy_overrides(overrides: Mapping[str, Mapping[str, ParamValue]] | None) -> ConditionOverrides:
    """Return an independent copy of a sparse override."""
    return {group: dict(group_fields) for group, group_fields in (overrides or {}).items()}


def empty_checkpoint_overrides() -> CheckpointOverrides:
    """Return overrides with an empty entry for every checkpoint."""
    return {checkpoint: {} for checkpoint in TIME_CHECKPOINT_ORDER}


def count_override_fields(overrides: Mapping[str, Mapping[str, ParamValue]] | None) -> int:
    """Count overridden fields across all groups."""
    return sum(len(group_fields) for group_fields in (overrides or {}).values())


def is_checkpoint_overrides_empty(checkpoint_overrides: Mapping[Checkpoint, ConditionOverrides]) -> bool:
    """Return True when no checkpoint carries any override."""
    return all(count_override_fields(checkpoint_overrides.get(checkpoint)) == 0 for checkpoint in TIME_CHECKPOINT_ORDER)

"""JSON snapshot codec for tuning state, including v1 migration and import."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from weather_tuning.contracts import WeatherCondition, overrides_to_wire, parse_condition, sanitize_overrides
from weather_tuning.time.checkpoints import TIME_CHECKPOINT_ORDER, Checkpoint, nearest_checkpoint, parse_checkpoint
from weather_tuning.time.clock import normalize_time_of_day
from weather_tuning.tuning.overrides import CheckpointOverrides, empty_checkpoint_overrides
from weather_tuning.tuning.state import (
    DEFAULT_TIME_OF_DAY,
    ConditionReview,
    ReviewStatus,
    TuningState,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 2


class StateImportError(ValueError):
    """Raised when imported text is not a recognizable tuning snapshot."""


@dataclass(frozen=True, slots=True)
class ImportedState:
    """Overrides (and sign-off, when present) recovered from imported text."""

    overrides_by_condition: dict[WeatherCondition, CheckpointOverrides]
    signed_off: frozenset[WeatherCondition] | None = None


def is_v1_snapshot(raw: object) -> bool:
    return isinstance(raw, Mapping) and "version" not in raw and "overrides" in raw


def is_v2_snapshot(raw: object) -> bool:
    return isinstance(raw, Mapping) and raw.get("version") == SNAPSHOT_VERSION and "checkpointOverrides" in raw


def migrate_v1(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Upgrade a v1 snapshot (one override per condition) to v2.

    Each condition's single override is copied to all four checkpoints.
    """
    checkpoint_overrides: dict[str, dict[str, Any]] = {}
    overrides = raw.get("overrides")
    if isinstance(overrides, Mapping):
        for condition, condition_overrides in overrides.items():
            checkpoint_overrides[str(condition)] = {
                checkpoint.value: json.loads(json.dumps(condition_overrides or {}))
                for checkpoint in TIME_CHECKPOINT_ORDER
            }
    return {
        "version": SNAPSHOT_VERSION,
        "activeCondition": raw.get("activeCondition", WeatherCondition.CLEAR.value),
        "globalSettings": raw.get("globalSettings", {"timeOfDay": DEFAULT_TIME_OF_DAY}),
        "checkpointOverrides": checkpoint_overrides,
    }


def checkpoint_overrides_to_wire(
    overrides_by_condition: Mapping[WeatherCondition, Mapping[Checkpoint, Mapping[str, Mapping[str, Any]]]],
) -> dict[str, dict[str, dict[str, dict[str, Any]]]]:
    """Serialize per-condition checkpoint overrides to the camelCase wire form."""
    out: dict[str, dict[str, dict[str, dict[str, Any]]]] = {}
    for condition, by_checkpoint in overrides_by_condition.items():
        out[condition.value] = {
            checkpoint.value: overrides_to_wire(by_checkpoint.get(checkpoint) or {})
            for checkpoint in TIME_CHECKPOINT_ORDER
        }
    return out


def parse_checkpoint_overrides(raw: object) -> dict[WeatherCondition, CheckpointOverrides]:
    """Parse wire-form checkpoint overrides, dropping anything unrecognized.

    Missing checkpoints read as empty overrides. Every dropped piece is logged.
    """
    out: dict[WeatherCondition, CheckpointOverrides] = {}
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning("Ignoring checkpoint overrides of type %s", type(raw).__name__)
        return out

    for raw_condition, raw_checkpoints in raw.items():
        condition = parse_condition(raw_condition)
        if condition is None:
            logger.warning("Ignoring overrides for unknown condition %r", raw_condition)
            continue
        if not isinstance(raw_checkpoints, Mapping):
            logger.warning("Ignoring malformed overrides for %s", condition.value)
            continue
        parsed = empty_checkpoint_overrides()
        for raw_checkpoint, raw_overrides in raw_checkpoints.items():
            checkpoint = parse_checkpoint(raw_checkpoint)
            if checkpoint is None:
                logger.warning("Ignoring unknown checkpoint %r for %s", raw_checkpoint, condition.value)
                continue
            cleaned, problems = sanitize_overrides(raw_overrides)
            for problem in problems:
                logger.warning("%s/%s: %s", condition.value, checkpoint.value, problem)
            parsed[checkpoint] = cleaned
        out[condition] = parsed
    return out


def _parse_signed_off(raw: object) -> frozenset[WeatherCondition]:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("Ignoring signedOff of type %s", type(raw).__name__)
        return frozenset()
    conditions = set()
    for item in raw:
        condition = parse_condition(item)
        if condition is None:
            logger.warning("Ignoring unknown signed-off condition %r", item)
            continue
        conditions.add(condition)
    return frozenset(conditions)


def _parse_review(raw: object) -> dict[WeatherCondition, ConditionReview]:
    out: dict[WeatherCondition, ConditionReview] = {}
    if not isinstance(raw, Mapping):
        return out
    for raw_condition, raw_flags in raw.items():
        condition = parse_condition(raw_condition)
        if condition is None or not isinstance(raw_flags, Mapping):
            logger.warning("Ignoring review flags for %r", raw_condition)
            continue
        flags: ConditionReview = {}
        for raw_checkpoint, raw_status in raw_flags.items():
            checkpoint = parse_checkpoint(raw_checkpoint)
            if checkpoint is None:
                continue
            flags[checkpoint] = ReviewStatus.REVIEWED if raw_status == ReviewStatus.REVIEWED.value else ReviewStatus.PENDING
        out[condition] = flags
    return out


def compositor_snapshot(state: TuningState) -> dict[str, Any]:
    """Return the v2 compositor snapshot stored under the compositor key."""
    return {
        "version": SNAPSHOT_VERSION,
        "activeCondition": state.active_condition.value,
        "globalSettings": {"timeOfDay": state.global_time_of_day},
        "checkpointOverrides": checkpoint_overrides_to_wire(state.overrides_by_condition),
    }


def workflow_snapshot(state: TuningState) -> dict[str, Any]:
    """Return the review/sign-off snapshot stored under the session key."""
    return {
        "checkpoints": {
            condition.value: {checkpoint.value: status.value for checkpoint, status in flags.items()}
            for condition, flags in state.review_by_condition.items()
        },
        "signedOff": [condition.value for condition in sorted(state.signed_off)],
    }


def state_from_snapshots(
    compositor: Mapping[str, Any] | None,
    workflow: Mapping[str, Any] | None,
) -> TuningState:
    """Rebuild a :class:`TuningState` from the two persisted snapshots.

    Either snapshot may be missing. The active checkpoint is derived from the
    restored time of day.
    """
    state = TuningState()
    fields: dict[str, Any] = {}

    if compositor is not None:
        settings = compositor.get("globalSettings")
        raw_time = settings.get("timeOfDay") if isinstance(settings, Mapping) else None
        if isinstance(raw_time, (int, float)) and not isinstance(raw_time, bool):
            fields["global_time_of_day"] = normalize_time_of_day(float(raw_time))
        else:
            logger.warning("Missing or invalid timeOfDay in snapshot; using %.2f", DEFAULT_TIME_OF_DAY)
        condition = parse_condition(compositor.get("activeCondition"))
        if condition is not None:
            fields["active_condition"] = condition
        fields["overrides_by_condition"] = parse_checkpoint_overrides(compositor.get("checkpointOverrides"))

    if workflow is not None:
        fields["review_by_condition"] = _parse_review(workflow.get("checkpoints"))
        fields["signed_off"] = _parse_signed_off(workflow.get("signedOff"))

    time_of_day = fields.get("global_time_of_day", state.global_time_of_day)
    fields["active_checkpoint"] = nearest_checkpoint(time_of_day)
    return replace(state, **fields)


def import_state(text: str) -> ImportedState:
    """Parse an export or compositor snapshot into importable overrides.

    Accepts the JSON export (with or without metadata), a v2 snapshot, or a
    v1 snapshot.

    Raises:
        StateImportError: if the text is not valid JSON or not a known shape.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StateImportError(f"invalid JSON: {exc.msg}") from exc

    if is_v1_snapshot(raw):
        raw = migrate_v1(raw)
    if not isinstance(raw, Mapping) or not isinstance(raw.get("checkpointOverrides"), Mapping):
        raise StateImportError("expected an object with checkpointOverrides")

    version = raw.get("version")
    if version is not None and version != SNAPSHOT_VERSION:
        raise StateImportError(f"unsupported snapshot version: {version!r}")

    overrides = parse_checkpoint_overrides(raw["checkpointOverrides"])
    signed_off = _parse_signed_off(raw["signedOff"]) if "signedOff" in raw else None
    return ImportedState(overrides_by_condition=overrides, signed_off=signed_off)

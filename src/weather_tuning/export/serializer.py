"""Serialize tuned checkpoint overrides for hand-off to the production widget."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from weather_tuning.contracts import WEATHER_CONDITIONS, ConditionOverrides, ParamGroup, WeatherCondition, overrides_to_wire
from weather_tuning.time.checkpoints import TIME_CHECKPOINT_ORDER, Checkpoint
from weather_tuning.tuning.codec import SNAPSHOT_VERSION

OverridesByCondition = Mapping[WeatherCondition, Mapping[Checkpoint, ConditionOverrides]]

HEADER = "// Generated by Weather Tuning Studio"


class ExportFormat(StrEnum):
    JSON_OVERRIDES = "json-overrides"
    JSON_FULL = "json-full"
    TYPESCRIPT = "typescript"
    TYPESCRIPT_TOOL_UI = "typescript-tool-ui"


_FILENAMES = {
    ExportFormat.JSON_OVERRIDES: "weather-tuning-export.json",
    ExportFormat.JSON_FULL: "weather-tuning-export.json",
    ExportFormat.TYPESCRIPT: "tuned-overrides.ts",
    ExportFormat.TYPESCRIPT_TOOL_UI: "tuned-presets.ts",
}

# Production widget field names; fields absent here are not exported.
_TOOL_UI_CLOUD = (
    "cloud_scale",
    "coverage",
    "density",
    "softness",
    "wind_speed",
    "wind_angle",
    "turbulence",
    "light_intensity",
    "ambient_darkness",
    "backlight_intensity",
    "num_layers",
)
_TOOL_UI_RAIN = {
    "glass_intensity": "glassIntensity",
    "zoom": "glassZoom",
    "falling_intensity": "fallingIntensity",
    "falling_speed": "fallingSpeed",
    "falling_angle": "fallingAngle",
    "falling_streak_length": "fallingStreakLength",
    "falling_layers": "fallingLayers",
}
_TOOL_UI_LIGHTNING = {
    "auto_mode": "autoMode",
    "auto_interval": "autoInterval",
    "branch_density": "branchDensity",
    "glow_intensity": "flashIntensity",
}
_TOOL_UI_SNOW = (
    "intensity",
    "layers",
    "fall_speed",
    "wind_speed",
    "wind_angle",
    "turbulence",
    "drift",
    "flutter",
    "wind_shear",
    "flake_size",
    "size_variation",
    "opacity",
    "glow_amount",
    "sparkle",
)
_TOOL_UI_GROUP_ORDER = ("layers", "celestial", "cloud", "rain", "lightning", "snow", "interactions")


def _round(value: Any) -> Any:
    if isinstance(value, float):
        return round(value, 4)
    if isinstance(value, dict):
        return {key: _round(item) for key, item in value.items()}
    return value


def _literal(value: Any) -> str:
    """Render one value as a TypeScript literal."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.4f}"
    return json.dumps(value)


def _selected(overrides_by_condition: OverridesByCondition, conditions: Iterable[WeatherCondition] | None) -> list[WeatherCondition]:
    wanted = set(conditions) if conditions is not None else None
    return [
        condition
        for condition in WEATHER_CONDITIONS
        if condition in overrides_by_condition and (wanted is None or condition in wanted)
    ]


def generate_json(
    overrides_by_condition: OverridesByCondition,
    signed_off: Iterable[WeatherCondition] = (),
    conditions: Iterable[WeatherCondition] | None = None,
    include_metadata: bool = False,
    exported_at: datetime | None = None,
) -> str:
    """Serialize overrides as indented JSON, optionally with export metadata.

    Numbers are rounded to four decimals.
    """
    data: dict[str, Any] = {}
    if include_metadata:
        signed = set(signed_off)
        data["exportedAt"] = (exported_at or datetime.now(UTC)).isoformat()
        data["signedOff"] = [condition.value for condition in WEATHER_CONDITIONS if condition in signed]
        data["version"] = SNAPSHOT_VERSION

    data["checkpointOverrides"] = {
        condition.value: {
            checkpoint.value: _round(overrides_to_wire(overrides_by_condition[condition].get(checkpoint) or {}))
            for checkpoint in TIME_CHECKPOINT_ORDER
        }
        for condition in _selected(overrides_by_condition, conditions)
    }
    return json.dumps(data, indent=2)


def _typescript_lines(
    overrides_by_condition: OverridesByCondition,
    signed_off: Iterable[WeatherCondition],
    conditions: Iterable[WeatherCondition] | None,
    map_checkpoint: Callable[[ConditionOverrides], Mapping[str, Mapping[str, Any]]],
    indent: str,
) -> list[str]:
    signed = set(signed_off)
    lines: list[str] = []
    for condition in _selected(overrides_by_condition, conditions):
        marker = " ✓ signed off" if condition in signed else ""
        lines.append(f"  // {condition.value}{marker}")
        lines.append(f'  "{condition.value}": {{')
        for checkpoint in TIME_CHECKPOINT_ORDER:
            mapped = map_checkpoint(overrides_by_condition[condition].get(checkpoint) or {})
            groups = [(group, fields) for group, fields in mapped.items() if fields]
            if not groups:
                lines.append(f"    {checkpoint.value}: {{}},")
                continue
            lines.append(f"    {checkpoint.value}: {{")
            for group, fields in groups:
                lines.append(f"{indent}{group}: {{")
                for name, value in fields.items():
                    lines.append(f"{indent}  {name}: {_literal(value)},")
                lines.append(f"{indent}}},")
            lines.append("    },")
        lines.append("  },")
    return lines


def _wire_in_group_order(overrides: ConditionOverrides) -> dict[str, dict[str, Any]]:
    wire = overrides_to_wire(overrides)
    return {group.value: wire[group.value] for group in ParamGroup if group.value in wire}


def generate_typescript(
    overrides_by_condition: OverridesByCondition,
    signed_off: Iterable[WeatherCondition] = (),
    conditions: Iterable[WeatherCondition] | None = None,
    exported_at: datetime | None = None,
) -> str:
    """Render a `TUNED_CHECKPOINT_OVERRIDES` TypeScript module."""
    lines = [
        HEADER,
        f"// Exported at: {(exported_at or datetime.now(UTC)).isoformat()}",
        "",
        "import type { CheckpointOverrides } from './presets';",
        "import type { WeatherCondition } from '@/components/tool-ui/weather-widget/schema';",
        "",
        "export const TUNED_CHECKPOINT_OVERRIDES: Partial<Record<WeatherCondition, CheckpointOverrides>> = {",
    ]
    lines.extend(_typescript_lines(overrides_by_condition, signed_off, conditions, _wire_in_group_order, "      "))
    lines.extend(["};", ""])
    return "\n".join(lines)


def map_to_tool_ui(overrides: ConditionOverrides) -> dict[str, dict[str, Any]]:
    """Map one checkpoint override onto the production widget's override schema.

    `celestial.timeOfDay` is dropped, some rain and lightning fields are
    renamed, and rain refraction plus lightning scene illumination move to an
    `interactions` group. Lightning is exported as enabled whenever present.
    """
    out: dict[str, dict[str, Any]] = {}
    interactions: dict[str, Any] = {}

    layers = overrides.get("layers")
    if layers:
        out["layers"] = overrides_to_wire({"layers": layers})["layers"]

    celestial = {name: value for name, value in (overrides.get("celestial") or {}).items() if name != "time_of_day"}
    if celestial:
        out["celestial"] = overrides_to_wire({"celestial": celestial})["celestial"]

    cloud = overrides.get("cloud") or {}
    cloud_out = {name: cloud[name] for name in _TOOL_UI_CLOUD if name in cloud}
    if cloud_out:
        out["cloud"] = overrides_to_wire({"cloud": cloud_out})["cloud"]

    rain = overrides.get("rain")
    if rain:
        rain_out = {wire: rain[name] for name, wire in _TOOL_UI_RAIN.items() if name in rain}
        if rain_out:
            out["rain"] = rain_out
        if "falling_refraction" in rain:
            interactions["rainRefractionStrength"] = rain["falling_refraction"]

    lightning = overrides.get("lightning")
    if lightning or (layers or {}).get("lightning") is True:
        lightning = lightning or {}
        out["lightning"] = {
            "enabled": True,
            **{wire: lightning[name] for name, wire in _TOOL_UI_LIGHTNING.items() if name in lightning},
        }
        if "scene_illumination" in lightning:
            interactions["lightningSceneIllumination"] = lightning["scene_illumination"]

    snow = overrides.get("snow") or {}
    snow_out = {name: snow[name] for name in _TOOL_UI_SNOW if name in snow}
    if snow_out:
        out["snow"] = overrides_to_wire({"snow": snow_out})["snow"]

    if interactions:
        out["interactions"] = interactions

    return {group: out[group] for group in _TOOL_UI_GROUP_ORDER if group in out}


def generate_tool_ui_typescript(
    overrides_by_condition: OverridesByCondition,
    signed_off: Iterable[WeatherCondition] = (),
    conditions: Iterable[WeatherCondition] | None = None,
    exported_at: datetime | None = None,
) -> str:
    """Render a `TUNED_WEATHER_EFFECTS_CHECKPOINT_OVERRIDES` module for the widget."""
    lines = [
        HEADER,
        f"// Exported at: {(exported_at or datetime.now(UTC)).isoformat()}",
        "",
        'import type { WeatherCondition } from "../schema";',
        'import type { WeatherEffectsCheckpointOverrides } from "./tuning";',
        "",
        "export const TUNED_WEATHER_EFFECTS_CHECKPOINT_OVERRIDES: "
        "Partial<Record<WeatherCondition, WeatherEffectsCheckpointOverrides>> = {",
    ]
    lines.extend(_typescript_lines(overrides_by_condition, signed_off, conditions, map_to_tool_ui, "      "))
    lines.extend(["};", ""])
    return "\n".join(lines)


def export(
    fmt: ExportFormat | str,
    overrides_by_condition: OverridesByCondition,
    signed_off: Iterable[WeatherCondition] = (),
    conditions: Iterable[WeatherCondition] | None = None,
    include_metadata: bool = False,
    exported_at: datetime | None = None,
) -> str:
    """Serialize overrides in the requested format.

    `json-full` always includes metadata.

    Raises:
        ValueError: if the format is unknown.
    """
    resolved = ExportFormat(fmt)
    if resolved is ExportFormat.TYPESCRIPT:
        return generate_typescript(overrides_by_condition, signed_off, conditions, exported_at)
    if resolved is ExportFormat.TYPESCRIPT_TOOL_UI:
        return generate_tool_ui_typescript(overrides_by_condition, signed_off, conditions, exported_at)
    return generate_json(
        overrides_by_condition,
        signed_off,
        conditions,
        include_metadata=include_metadata or resolved is ExportFormat.JSON_FULL,
        exported_at=exported_at,
    )


def export_filename(fmt: ExportFormat | str) -> str:
    return _FILENAMES[ExportFormat(fmt)]

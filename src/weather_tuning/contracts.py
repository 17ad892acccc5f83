"""Core data contracts for weather-effect tuning."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from typing import Any, TypeAlias

ParamValue: TypeAlias = float | bool
GroupOverrides: TypeAlias = dict[str, ParamValue]
ConditionOverrides: TypeAlias = dict[str, GroupOverrides]


class WeatherCondition(StrEnum):
    """Weather conditions supported by the effect widget."""

    CLEAR = "clear"
    PARTLY_CLOUDY = "partly-cloudy"
    CLOUDY = "cloudy"
    OVERCAST = "overcast"
    FOG = "fog"
    DRIZZLE = "drizzle"
    RAIN = "rain"
    HEAVY_RAIN = "heavy-rain"
    THUNDERSTORM = "thunderstorm"
    SNOW = "snow"
    SLEET = "sleet"
    HAIL = "hail"
    WINDY = "windy"


@dataclass(frozen=True, slots=True)
class ConditionGroup:
    """Named group of conditions used for navigation."""

    name: str
    conditions: tuple[WeatherCondition, ...]


CONDITION_GROUPS: tuple[ConditionGroup, ...] = (
    ConditionGroup(
        "Sky",
        (
            WeatherCondition.CLEAR,
            WeatherCondition.PARTLY_CLOUDY,
            WeatherCondition.CLOUDY,
            WeatherCondition.OVERCAST,
            WeatherCondition.FOG,
        ),
    ),
    ConditionGroup(
        "Rain",
        (
            WeatherCondition.DRIZZLE,
            WeatherCondition.RAIN,
            WeatherCondition.HEAVY_RAIN,
            WeatherCondition.THUNDERSTORM,
        ),
    ),
    ConditionGroup("Winter", (WeatherCondition.SNOW, WeatherCondition.SLEET, WeatherCondition.HAIL)),
    ConditionGroup("Wind", (WeatherCondition.WINDY,)),
)

WEATHER_CONDITIONS: tuple[WeatherCondition, ...] = tuple(
    condition for group in CONDITION_GROUPS for condition in group.conditions
)

CONDITION_LABELS: dict[WeatherCondition, str] = {
    WeatherCondition.CLEAR: "Clear",
    WeatherCondition.PARTLY_CLOUDY: "Partly Cloudy",
    WeatherCondition.CLOUDY: "Cloudy",
    WeatherCondition.OVERCAST: "Overcast",
    WeatherCondition.FOG: "Fog",
    WeatherCondition.DRIZZLE: "Drizzle",
    WeatherCondition.RAIN: "Rain",
    WeatherCondition.HEAVY_RAIN: "Heavy Rain",
    WeatherCondition.THUNDERSTORM: "Thunderstorm",
    WeatherCondition.SNOW: "Snow",
    WeatherCondition.SLEET: "Sleet",
    WeatherCondition.HAIL: "Hail",
    WeatherCondition.WINDY: "Windy",
}


def parse_condition(value: object) -> WeatherCondition | None:
    """Return the condition for a raw tag, or None when the tag is unknown."""
    try:
        return WeatherCondition(str(value))
    except ValueError:
        return None


class ParamGroup(StrEnum):
    """Parameter groups of a full parameter set."""

    LAYERS = "layers"
    CELESTIAL = "celestial"
    CLOUD = "cloud"
    RAIN = "rain"
    LIGHTNING = "lightning"
    SNOW = "snow"


@dataclass(frozen=True, slots=True)
class LayerToggles:
    """Which effect layers are rendered."""

    celestial: bool
    clouds: bool
    rain: bool
    lightning: bool
    snow: bool


@dataclass(frozen=True, slots=True)
class CelestialParams:
    """Sun, moon, stars and sky grading."""

    time_of_day: float
    moon_phase: float
    star_density: float
    celestial_x: float
    celestial_y: float
    sun_size: float
    moon_size: float
    sun_glow_intensity: float
    sun_glow_size: float
    sun_ray_count: float
    sun_ray_length: float
    sun_ray_intensity: float
    moon_glow_intensity: float
    moon_glow_size: float
    sky_brightness: float
    sky_saturation: float
    sky_contrast: float


@dataclass(frozen=True, slots=True)
class CloudParams:
    """Volumetric cloud layer."""

    cloud_scale: float
    coverage: float
    density: float
    softness: float
    wind_speed: float
    wind_angle: float
    turbulence: float
    sun_azimuth: float
    light_intensity: float
    ambient_darkness: float
    backlight_intensity: float
    num_layers: float
    layer_spread: float
    star_size: float
    star_twinkle_speed: float
    star_twinkle_amount: float
    horizon_line: float


@dataclass(frozen=True, slots=True)
class RainParams:
    """Glass droplets and falling rain."""

    glass_intensity: float
    zoom: float
    falling_intensity: float
    falling_speed: float
    falling_angle: float
    falling_streak_length: float
    falling_layers: float
    falling_refraction: float
    falling_waviness: float
    falling_thickness_var: float


@dataclass(frozen=True, slots=True)
class LightningParams:
    """Lightning bolts and scene flashes."""

    branch_density: float
    displacement: float
    glow_intensity: float
    flash_duration: float
    scene_illumination: float
    afterglow_persistence: float
    auto_mode: bool
    auto_interval: float


@dataclass(frozen=True, slots=True)
class SnowParams:
    """Falling snow."""

    intensity: float
    layers: float
    fall_speed: float
    wind_speed: float
    wind_angle: float
    turbulence: float
    drift: float
    flutter: float
    wind_shear: float
    flake_size: float
    size_variation: float
    opacity: float
    glow_amount: float
    sparkle: float
    visibility: float


GROUP_TYPES: dict[ParamGroup, type] = {
    ParamGroup.LAYERS: LayerToggles,
    ParamGroup.CELESTIAL: CelestialParams,
    ParamGroup.CLOUD: CloudParams,
    ParamGroup.RAIN: RainParams,
    ParamGroup.LIGHTNING: LightningParams,
    ParamGroup.SNOW: SnowParams,
}

# Field name -> value type (bool or float), per group, in declaration order.
GROUP_FIELDS: dict[ParamGroup, dict[str, type]] = {
    group: {f.name: bool if f.type in ("bool", bool) else float for f in fields(cls)}
    for group, cls in GROUP_TYPES.items()
}

# Valid UI ranges for numeric fields. Values outside are kept as-is.
FIELD_RANGES: dict[ParamGroup, dict[str, tuple[float, float]]] = {
    ParamGroup.CELESTIAL: {
        "time_of_day": (0.0, 1.0),
        "moon_phase": (0.0, 1.0),
        "star_density": (0.0, 3.0),
        "celestial_x": (0.0, 1.0),
        "celestial_y": (0.0, 1.0),
        "sun_size": (0.01, 0.3),
        "moon_size": (0.01, 0.3),
        "sun_glow_intensity": (0.0, 5.0),
        "sun_glow_size": (0.0, 1.0),
        "sun_ray_count": (0.0, 24.0),
        "sun_ray_length": (0.0, 5.0),
        "sun_ray_intensity": (0.0, 1.0),
        "moon_glow_intensity": (0.0, 5.0),
        "moon_glow_size": (0.0, 1.0),
        "sky_brightness": (0.0, 2.0),
        "sky_saturation": (0.0, 2.0),
        "sky_contrast": (0.0, 2.0),
    },
    ParamGroup.CLOUD: {
        "cloud_scale": (0.5, 3.0),
        "coverage": (0.0, 1.0),
        "density": (0.0, 2.0),
        "softness": (0.0, 1.0),
        "wind_speed": (0.0, 2.0),
        "wind_angle": (-3.14159, 3.14159),
        "turbulence": (0.0, 1.0),
        "sun_azimuth": (-3.14159, 3.14159),
        "light_intensity": (0.0, 2.0),
        "ambient_darkness": (0.0, 1.0),
        "backlight_intensity": (0.0, 1.0),
        "num_layers": (1.0, 5.0),
        "layer_spread": (0.0, 1.0),
        "star_size": (0.5, 3.0),
        "star_twinkle_speed": (0.0, 3.0),
        "star_twinkle_amount": (0.0, 1.0),
        "horizon_line": (0.0, 1.0),
    },
    ParamGroup.RAIN: {
        "glass_intensity": (0.0, 1.0),
        "zoom": (0.5, 3.0),
        "falling_intensity": (0.0, 1.0),
        "falling_speed": (0.1, 3.0),
        "falling_angle": (-0.5, 0.5),
        "falling_streak_length": (0.1, 2.0),
        "falling_layers": (1.0, 6.0),
        "falling_refraction": (0.0, 1.0),
        "falling_waviness": (0.0, 1.0),
        "falling_thickness_var": (0.0, 1.0),
    },
    ParamGroup.LIGHTNING: {
        "branch_density": (0.0, 1.0),
        "displacement": (0.01, 0.2),
        "glow_intensity": (0.0, 2.0),
        "flash_duration": (0.05, 0.5),
        "scene_illumination": (0.0, 1.0),
        "afterglow_persistence": (0.0, 1.0),
        "auto_interval": (1.0, 30.0),
    },
    ParamGroup.SNOW: {
        "intensity": (0.0, 1.0),
        "layers": (1.0, 6.0),
        "fall_speed": (0.1, 2.0),
        "wind_speed": (0.0, 1.0),
        "wind_angle": (-3.14159, 3.14159),
        "turbulence": (0.0, 1.0),
        "drift": (0.0, 1.0),
        "flutter": (0.0, 1.0),
        "wind_shear": (0.0, 1.0),
        "flake_size": (0.3, 3.0),
        "size_variation": (0.0, 1.0),
        "opacity": (0.0, 1.0),
        "glow_amount": (0.0, 1.0),
        "sparkle": (0.0, 1.0),
        "visibility": (0.0, 1.0),
    },
}


def to_wire_name(name: str) -> str:
    """Convert a snake_case field name to its camelCase wire name."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_WIRE_TO_FIELD: dict[ParamGroup, dict[str, str]] = {
    group: {to_wire_name(name): name for name in names} for group, names in GROUP_FIELDS.items()
}


def parse_group(value: object) -> ParamGroup | None:
    """Return the parameter group for a raw name, or None when unknown."""
    try:
        return ParamGroup(str(value))
    except ValueError:
        return None


def resolve_field_name(group: ParamGroup | str, name: str) -> str:
    """Resolve a snake_case or camelCase field name within a group.

    Raises:
        ValueError: if the group or field is unknown.
    """
    resolved_group = parse_group(group)
    if resolved_group is None:
        raise ValueError(f"unknown parameter group: {group}")
    names = GROUP_FIELDS[resolved_group]
    if name in names:
        return name
    field_name = _WIRE_TO_FIELD[resolved_group].get(name)
    if field_name is None:
        raise ValueError(f"unknown field {name!r} in group {resolved_group.value!r}")
    return field_name


def coerce_value(group: ParamGroup, name: str, value: object) -> ParamValue | None:
    """Coerce a raw value to the field's type, or return None when impossible."""
    expected = GROUP_FIELDS[group][name]
    if expected is bool:
        return value if isinstance(value, bool) else None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass(frozen=True, slots=True)
class FullParameterSet:
    """Fully populated parameter set consumed by the effect renderer."""

    layers: LayerToggles
    celestial: CelestialParams
    cloud: CloudParams
    rain: RainParams
    lightning: LightningParams
    snow: SnowParams

    def group(self, group: ParamGroup | str) -> Any:
        """Return one group record by name."""
        return getattr(self, ParamGroup(group).value)

    def group_values(self, group: ParamGroup | str) -> dict[str, ParamValue]:
        """Return one group as a `{field: value}` dictionary."""
        record = self.group(group)
        return {name: getattr(record, name) for name in GROUP_FIELDS[ParamGroup(group)]}

    def value(self, group: ParamGroup | str, name: str) -> ParamValue:
        """Return a single field value."""
        return getattr(self.group(group), resolve_field_name(group, name))

    def with_group_values(self, group: ParamGroup | str, values: Mapping[str, ParamValue]) -> "FullParameterSet":
        """Return a copy with fields of one group replaced."""
        resolved = ParamGroup(group)
        updated = replace(self.group(resolved), **dict(values))
        return replace(self, **{resolved.value: updated})

    def to_dict(self) -> dict[str, dict[str, ParamValue]]:
        """Serialize to the camelCase wire form used by the renderer."""
        return {
            group.value: {to_wire_name(name): value for name, value in self.group_values(group).items()}
            for group in ParamGroup
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FullParameterSet":
        """Deserialize from the wire form created by :meth:`to_dict`.

        Raises:
            ValueError: if a group or field is missing or has the wrong type.
        """
        groups: dict[str, Any] = {}
        for group, group_cls in GROUP_TYPES.items():
            raw = data.get(group.value)
            if not isinstance(raw, Mapping):
                raise ValueError(f"missing parameter group: {group.value}")
            values: dict[str, ParamValue] = {}
            for name in GROUP_FIELDS[group]:
                wire = to_wire_name(name)
                raw_value = raw.get(wire, raw.get(name))
                coerced = coerce_value(group, name, raw_value)
                if coerced is None:
                    raise ValueError(f"invalid value for {group.value}.{wire}: {raw_value!r}")
                values[name] = coerced
            groups[group.value] = group_cls(**values)
        return cls(**groups)


def sanitize_overrides(raw: object) -> tuple[ConditionOverrides, list[str]]:
    """Parse untrusted wire-form overrides into a sparse override map.

    Unknown groups, unknown fields and values of the wrong type are dropped.
    Returns the cleaned overrides and a list of human-readable problems.
    """
    problems: list[str] = []
    out: ConditionOverrides = {}
    if raw is None:
        return out, problems
    if not isinstance(raw, Mapping):
        return out, [f"overrides must be an object, got {type(raw).__name__}"]

    for raw_group, raw_fields in raw.items():
        group = parse_group(raw_group)
        if group is None:
            problems.append(f"unknown group {raw_group!r}")
            continue
        if not isinstance(raw_fields, Mapping):
            problems.append(f"group {group.value!r} must be an object")
            continue
        cleaned: GroupOverrides = {}
        for raw_name, raw_value in raw_fields.items():
            try:
                name = resolve_field_name(group, str(raw_name))
            except ValueError:
                problems.append(f"unknown field {group.value}.{raw_name}")
                continue
            value = coerce_value(group, name, raw_value)
            if value is None:
                problems.append(f"invalid value for {group.value}.{raw_name}: {raw_value!r}")
                continue
            cleaned[name] = value
        if cleaned:
            out[group.value] = cleaned
    return out, problems


def overrides_to_wire(overrides: Mapping[str, Mapping[str, ParamValue]]) -> dict[str, dict[str, ParamValue]]:
    """Convert snake_case override fields to camelCase wire names."""
    return {
        group: {to_wire_name(name): value for name, value in group_fields.items()}
        for group, group_fields in overrides.items()
        if group_fields
    }

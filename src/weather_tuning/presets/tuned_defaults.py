"""Tuned default overrides baked into the base parameters of each condition.

These are part of the baseline, not user edits: the base resolver merges the
entry for the relevant checkpoint before any user override is applied.
"""

from __future__ import annotations

from copy import deepcopy

from weather_tuning.contracts import ConditionOverrides, WeatherCondition
from weather_tuning.time.checkpoints import Checkpoint

CheckpointDefaults = dict[Checkpoint, ConditionOverrides]


def _all_checkpoints(
    overrides: ConditionOverrides,
    **exceptions: ConditionOverrides,
) -> CheckpointDefaults:
    """Use the same overrides at every checkpoint, except those named."""
    out: CheckpointDefaults = {}
    for checkpoint in Checkpoint:
        out[checkpoint] = deepcopy(exceptions.get(checkpoint.value, overrides))
    return out


_CLEAR_SKY_GRADE = {"sky_brightness": 1.04, "sky_saturation": 1.31, "sky_contrast": 0.61}
_CLEAR_MOON = {"celestial_y": 0.74, "moon_glow_intensity": 2.45, "moon_glow_size": 0.96}

_PARTLY_CLOUDY_DAY = {
    "coverage": 0.43,
    "density": 0.32,
    "softness": 0.34,
    "light_intensity": 1.2,
    "backlight_intensity": 0.45,
}

_CLOUDY_DAY: ConditionOverrides = {
    "celestial": {"sky_brightness": 0.91, "sky_saturation": 1.16},
    "cloud": {"softness": 0.45, "wind_speed": 0.09, "light_intensity": 0.81, "backlight_intensity": 0.39},
}

_OVERCAST_SUN = {"sun_glow_size": 0.22, "sun_ray_count": 0.0, "sun_ray_length": 0.0, "sun_ray_intensity": 0.0}
_OVERCAST_CLOUD = {
    "cloud_scale": 0.98,
    "coverage": 1.0,
    "density": 0.87,
    "softness": 1.0,
    "wind_speed": 0.04,
    "light_intensity": 1.1,
    "backlight_intensity": 0.0,
    "num_layers": 1.0,
}

_HEAVY_RAIN_CLOUD: ConditionOverrides = {
    "cloud": {"coverage": 0.64, "density": 1.2, "wind_speed": 0.1, "num_layers": 1.0},
}

_THUNDER_DAY: ConditionOverrides = {
    "lightning": {
        "branch_density": 0.83,
        "glow_intensity": 0.85,
        "flash_duration": 0.44,
        "scene_illumination": 0.77,
    },
}

_SLEET: ConditionOverrides = {
    "rain": {"glass_intensity": 0.3, "zoom": 0.83, "falling_speed": 3.0, "falling_streak_length": 0.42},
    "snow": {"intensity": 0.08, "layers": 6.0, "fall_speed": 0.76, "drift": 0.28, "flake_size": 1.87},
}

_WINDY: ConditionOverrides = {
    "celestial": {"celestial_y": 0.74},
    "cloud": {
        "cloud_scale": 1.84,
        "coverage": 0.49,
        "density": 0.67,
        "wind_speed": 0.26,
        "turbulence": 0.77,
        "light_intensity": 0.63,
        "ambient_darkness": 0.37,
        "backlight_intensity": 0.39,
    },
}

DEFAULT_CHECKPOINT_OVERRIDES: dict[WeatherCondition, CheckpointDefaults] = {
    WeatherCondition.CLEAR: {
        Checkpoint.DAWN: {
            "celestial": {
                **_CLEAR_MOON,
                **_CLEAR_SKY_GRADE,
                "sun_glow_intensity": 3.7,
                "sun_glow_size": 0.36,
            },
        },
        Checkpoint.NOON: {
            "celestial": {
                **_CLEAR_MOON,
                "sun_glow_intensity": 2.68,
                "sun_glow_size": 0.37,
                "sun_ray_intensity": 0.11,
                "sky_brightness": 0.91,
                "sky_saturation": 1.53,
            },
        },
        Checkpoint.DUSK: {
            "celestial": {
                **_CLEAR_MOON,
                **_CLEAR_SKY_GRADE,
                "sun_glow_size": 0.47,
                "sun_ray_intensity": 0.04,
            },
        },
        Checkpoint.MIDNIGHT: {"celestial": {**_CLEAR_MOON, **_CLEAR_SKY_GRADE}},
    },
    WeatherCondition.PARTLY_CLOUDY: _all_checkpoints(
        {"cloud": _PARTLY_CLOUDY_DAY},
        midnight={
            "cloud": {
                "coverage": 0.38,
                "density": 1.36,
                "softness": 0.34,
                "light_intensity": 0.47,
                "backlight_intensity": 0.61,
            },
        },
    ),
    WeatherCondition.CLOUDY: _all_checkpoints(
        _CLOUDY_DAY,
        dusk={
            "celestial": {"sky_brightness": 0.91, "sky_saturation": 1.16},
            "cloud": {
                "coverage": 0.58,
                "softness": 0.29,
                "wind_speed": 0.09,
                "light_intensity": 1.26,
                "backlight_intensity": 0.55,
            },
        },
        midnight={
            "cloud": {
                "coverage": 0.76,
                "density": 1.25,
                "softness": 0.4,
                "light_intensity": 0.92,
                "ambient_darkness": 1.0,
                "backlight_intensity": 0.43,
                "num_layers": 1.0,
            },
        },
    ),
    WeatherCondition.OVERCAST: {
        Checkpoint.DAWN: {
            "celestial": {**_OVERCAST_SUN, "sun_glow_intensity": 2.08, "sky_brightness": 1.05},
            "cloud": {**_OVERCAST_CLOUD, "backlight_intensity": 0.53},
        },
        Checkpoint.NOON: {
            "celestial": {
                **_OVERCAST_SUN,
                "sun_glow_intensity": 1.73,
                "sun_glow_size": 0.48,
                "sky_brightness": 0.68,
                "sky_saturation": 0.84,
            },
            "cloud": dict(_OVERCAST_CLOUD),
        },
        Checkpoint.DUSK: {
            "celestial": {
                **_OVERCAST_SUN,
                "sun_glow_intensity": 1.73,
                "sky_brightness": 0.81,
                "sky_saturation": 0.79,
            },
            "cloud": dict(_OVERCAST_CLOUD),
        },
        Checkpoint.MIDNIGHT: {
            "celestial": {
                **_OVERCAST_SUN,
                "sun_glow_intensity": 1.73,
                "sky_brightness": 0.64,
                "sky_saturation": 1.46,
            },
            "cloud": {**_OVERCAST_CLOUD, "density": 0.97, "softness": 0.95, "backlight_intensity": 0.22},
        },
    },
    WeatherCondition.FOG: _all_checkpoints({}, midnight={"celestial": {"celestial_y": 0.74}}),
    WeatherCondition.RAIN: _all_checkpoints({}, midnight={"cloud": {"wind_speed": 0.19}}),
    WeatherCondition.HEAVY_RAIN: _all_checkpoints(
        _HEAVY_RAIN_CLOUD,
        noon={
            "celestial": {"sun_glow_intensity": 3.38, "sky_brightness": 0.88, "sky_saturation": 0.97},
            "cloud": {
                "coverage": 0.64,
                "density": 1.27,
                "wind_speed": 0.1,
                "light_intensity": 0.19,
                "ambient_darkness": 1.0,
                "backlight_intensity": 0.47,
                "num_layers": 2.0,
            },
            "rain": {
                "glass_intensity": 0.88,
                "zoom": 1.18,
                "falling_speed": 3.0,
                "falling_streak_length": 2.0,
                "falling_layers": 6.0,
            },
        },
    ),
    WeatherCondition.THUNDERSTORM: _all_checkpoints(
        _THUNDER_DAY,
        midnight={
            "cloud": {
                "wind_speed": 0.12,
                "turbulence": 0.63,
                "light_intensity": 0.73,
                "ambient_darkness": 1.0,
                "backlight_intensity": 0.62,
            },
            "lightning": {
                "branch_density": 0.72,
                "glow_intensity": 1.72,
                "flash_duration": 0.5,
                "scene_illumination": 0.19,
                "auto_interval": 7.5,
            },
        },
    ),
    WeatherCondition.SNOW: {
        Checkpoint.DAWN: {"cloud": {"light_intensity": 0.64}, "snow": {"intensity": 0.12}},
        Checkpoint.NOON: {"cloud": {"light_intensity": 0.64}, "snow": {"intensity": 0.23}},
        Checkpoint.DUSK: {"cloud": {"light_intensity": 0.64}, "snow": {"intensity": 0.15}},
        Checkpoint.MIDNIGHT: {"cloud": {"light_intensity": 0.64}},
    },
    WeatherCondition.SLEET: _all_checkpoints(
        _SLEET,
        midnight={**deepcopy(_SLEET), "celestial": {"celestial_y": 0.74}},
    ),
    WeatherCondition.HAIL: _all_checkpoints(
        {"cloud": {"wind_speed": 0.16}},
        midnight={"celestial": {"celestial_y": 0.74}, "cloud": {"wind_speed": 0.16}},
    ),
    WeatherCondition.WINDY: _all_checkpoints(_WINDY),
}


def tuned_defaults(condition: WeatherCondition, checkpoint: Checkpoint) -> ConditionOverrides | None:
    """Return the tuned defaults for a condition at a checkpoint, if any."""
    entry = DEFAULT_CHECKPOINT_OVERRIDES.get(condition)
    if entry is None:
        return None
    defaults = entry.get(checkpoint)
    return defaults or None

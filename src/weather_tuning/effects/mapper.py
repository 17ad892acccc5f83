"""Translate weather observations into effect-layer configuration.

This module provides a deterministic day-cycle approximation: the sun rises
at 06:00 UTC, peaks at 12:00 and sets at 18:00, regardless of location.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Literal, TypeAlias

from weather_tuning.contracts import WeatherCondition
from weather_tuning.time.clock import time_of_day_from_timestamp, to_utc

Precipitation: TypeAlias = Literal["none", "light", "moderate", "heavy"]
WeatherTheme: TypeAlias = Literal["light", "dark"]

_KNOWN_NEW_MOON = datetime(2000, 1, 6, tzinfo=UTC)
_SYNODIC_MONTH_DAYS = 29.530588853

_DARK_THRESHOLD = 0.35
_LIGHT_THRESHOLD = 0.45


@dataclass(frozen=True, slots=True)
class CloudLayerConfig:
    coverage: float
    speed: float
    darkness: float
    turbulence: float


@dataclass(frozen=True, slots=True)
class RainLayerConfig:
    intensity: float
    glass_drops: bool
    falling_rain: bool
    angle: float


@dataclass(frozen=True, slots=True)
class LightningLayerConfig:
    enabled: bool
    auto_trigger: bool
    interval_min: float
    interval_max: float


@dataclass(frozen=True, slots=True)
class SnowLayerConfig:
    intensity: float
    wind_drift: float


@dataclass(frozen=True, slots=True)
class AtmosphereConfig:
    sun_altitude: float
    haze: float
    star_visibility: float


@dataclass(frozen=True, slots=True)
class CelestialConfig:
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


@dataclass(frozen=True, slots=True)
class PostProcessConfig:
    enabled: bool
    haze: float
    bloom_intensity: float
    bloom_radius: float
    exposure_intensity: float
    god_ray_intensity: float


@dataclass(frozen=True, slots=True)
class EffectLayerConfig:
    """Per-layer effect configuration. Absent layers are not rendered."""

    atmosphere: AtmosphereConfig
    celestial: CelestialConfig
    post: PostProcessConfig | None
    cloud: CloudLayerConfig | None = None
    rain: RainLayerConfig | None = None
    lightning: LightningLayerConfig | None = None
    snow: SnowLayerConfig | None = None


@dataclass(frozen=True, slots=True)
class WeatherEffectParams:
    """Weather observation inputs for effect mapping."""

    condition: WeatherCondition
    wind_speed_mph: float | None = None
    precipitation: Precipitation | None = None
    visibility_miles: float | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True, slots=True)
class _CelestialPreset:
    x: float
    y: float
    sun_size: float
    moon_size: float
    star_density: float
    sun_glow_intensity: float
    sun_glow_size: float
    sun_ray_count: float
    sun_ray_length: float
    sun_ray_intensity: float
    moon_glow_intensity: float
    moon_glow_size: float


@dataclass(frozen=True, slots=True)
class _ConditionPreset:
    cloud: CloudLayerConfig | None = None
    rain: RainLayerConfig | None = None
    lightning: LightningLayerConfig | None = None
    snow: SnowLayerConfig | None = None


# One celestial setup is shared by every condition; per-condition differences
# live in the tuned checkpoint defaults.
_UNIFIED_CELESTIAL = _CelestialPreset(
    x=0.74,
    y=0.78,
    sun_size=0.14,
    moon_size=0.17,
    star_density=2.0,
    sun_glow_intensity=3.05,
    sun_glow_size=0.3,
    sun_ray_count=6,
    sun_ray_length=3.0,
    sun_ray_intensity=0.1,
    moon_glow_intensity=3.45,
    moon_glow_size=0.94,
)


def _rain(intensity: float, angle: float) -> RainLayerConfig:
    return RainLayerConfig(intensity=intensity, glass_drops=True, falling_rain=True, angle=angle)


CONDITION_PRESETS: dict[WeatherCondition, _ConditionPreset] = {
    WeatherCondition.CLEAR: _ConditionPreset(cloud=CloudLayerConfig(0.1, 0.3, 0.0, 0.2)),
    WeatherCondition.PARTLY_CLOUDY: _ConditionPreset(cloud=CloudLayerConfig(0.4, 0.4, 0.1, 0.3)),
    WeatherCondition.CLOUDY: _ConditionPreset(cloud=CloudLayerConfig(0.7, 0.4, 0.2, 0.3)),
    WeatherCondition.OVERCAST: _ConditionPreset(cloud=CloudLayerConfig(0.95, 0.3, 0.35, 0.25)),
    WeatherCondition.FOG: _ConditionPreset(cloud=CloudLayerConfig(0.6, 0.15, 0.15, 0.1)),
    WeatherCondition.DRIZZLE: _ConditionPreset(
        cloud=CloudLayerConfig(0.75, 0.35, 0.3, 0.3),
        rain=_rain(0.25, 3),
    ),
    WeatherCondition.RAIN: _ConditionPreset(
        cloud=CloudLayerConfig(0.85, 0.5, 0.4, 0.4),
        rain=_rain(0.6, 5),
    ),
    WeatherCondition.HEAVY_RAIN: _ConditionPreset(
        cloud=CloudLayerConfig(0.95, 0.6, 0.55, 0.5),
        rain=_rain(1.0, 8),
    ),
    WeatherCondition.THUNDERSTORM: _ConditionPreset(
        cloud=CloudLayerConfig(1.0, 0.7, 0.7, 0.6),
        rain=_rain(1.0, 15),
        lightning=LightningLayerConfig(enabled=True, auto_trigger=True, interval_min=4, interval_max=12),
    ),
    WeatherCondition.SNOW: _ConditionPreset(
        cloud=CloudLayerConfig(0.7, 0.25, 0.2, 0.2),
        snow=SnowLayerConfig(intensity=0.7, wind_drift=0.3),
    ),
    WeatherCondition.SLEET: _ConditionPreset(
        cloud=CloudLayerConfig(0.8, 0.4, 0.35, 0.35),
        rain=_rain(0.5, 10),
        snow=SnowLayerConfig(intensity=0.3, wind_drift=0.4),
    ),
    WeatherCondition.HAIL: _ConditionPreset(
        cloud=CloudLayerConfig(0.9, 0.6, 0.5, 0.5),
        rain=_rain(0.7, 5),
    ),
    WeatherCondition.WINDY: _ConditionPreset(cloud=CloudLayerConfig(0.5, 1.0, 0.1, 0.6)),
}

# 1.0 = no attenuation; lower = darker scene.
CONDITION_BRIGHTNESS: dict[WeatherCondition, float] = {
    WeatherCondition.CLEAR: 1.0,
    WeatherCondition.PARTLY_CLOUDY: 0.9,
    WeatherCondition.CLOUDY: 0.8,
    WeatherCondition.OVERCAST: 0.65,
    WeatherCondition.FOG: 0.7,
    WeatherCondition.DRIZZLE: 0.7,
    WeatherCondition.RAIN: 0.6,
    WeatherCondition.HEAVY_RAIN: 0.45,
    WeatherCondition.THUNDERSTORM: 0.3,
    WeatherCondition.SNOW: 0.8,
    WeatherCondition.SLEET: 0.65,
    WeatherCondition.HAIL: 0.5,
    WeatherCondition.WINDY: 0.9,
}

_BLOOM_BOOST: dict[WeatherCondition, float] = {
    WeatherCondition.FOG: 0.18,
    WeatherCondition.THUNDERSTORM: 0.12,
    WeatherCondition.HEAVY_RAIN: 0.1,
    WeatherCondition.OVERCAST: 0.08,
    WeatherCondition.CLOUDY: 0.06,
    WeatherCondition.PARTLY_CLOUDY: 0.06,
}


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _smoothstep(edge0: float, edge1: float, x: float) -> float:
    t = _clamp01((x - edge0) / (edge1 - edge0))
    return t * t * (3.0 - 2.0 * t)


def moon_phase(timestamp: datetime | None) -> float:
    """Approximate moon phase on a 0-1 scale (0 = new, 0.5 = full).

    The phase only changes day to day. Defaults to full moon.
    """
    if timestamp is None:
        return 0.5
    day = to_utc(timestamp).replace(hour=0, minute=0, second=0, microsecond=0)
    days_since_new_moon = (day - _KNOWN_NEW_MOON).total_seconds() / 86_400.0
    return (days_since_new_moon % _SYNODIC_MONTH_DAYS) / _SYNODIC_MONTH_DAYS


def time_of_day_to_sun_altitude(time_of_day: float) -> float:
    """Convert time of day (0-1) to sun altitude (-1 at midnight, 1 at noon)."""
    hours = time_of_day * 24.0
    if hours < 6:
        return -1.0 + hours / 6.0
    if hours < 12:
        return (hours - 6.0) / 6.0
    if hours < 18:
        return 1.0 - (hours - 12.0) / 6.0
    return -(hours - 18.0) / 6.0


def sun_altitude(timestamp: datetime | None) -> float:
    """Sun altitude for a timestamp; mid-morning (0.5) when absent."""
    if timestamp is None:
        return 0.5
    return time_of_day_to_sun_altitude(time_of_day_from_timestamp(timestamp))


def is_night_time(altitude: float) -> bool:
    return altitude < 0


def _brightness_for_altitude(altitude: float, condition: WeatherCondition) -> float:
    if altitude < 0:
        solar = 0.05 + (1.0 + altitude) * 0.1
    else:
        solar = 0.15 + altitude * 0.85
    return _clamp01(solar * CONDITION_BRIGHTNESS[condition])


def scene_brightness(
    timestamp: datetime | None,
    condition: WeatherCondition = WeatherCondition.CLEAR,
) -> float:
    """Predict scene brightness (0 = very dark, 1 = very bright)."""
    return _brightness_for_altitude(sun_altitude(timestamp), condition)


def scene_brightness_from_time_of_day(
    time_of_day: float,
    condition: WeatherCondition = WeatherCondition.CLEAR,
) -> float:
    """Predict scene brightness from a 0-1 time of day."""
    return _brightness_for_altitude(time_of_day_to_sun_altitude(time_of_day), condition)


def weather_theme(brightness: float, current: WeatherTheme | None = None) -> WeatherTheme:
    """Pick a UI theme for a brightness, keeping `current` inside the hysteresis band."""
    if brightness < _DARK_THRESHOLD:
        return "dark"
    if brightness > _LIGHT_THRESHOLD:
        return "light"
    return current or "dark"


def _wind_intensity(mph: float | None) -> float:
    """Map wind speed to 0-1: subtle below 10 mph, dramatic above 25 mph."""
    mph = mph or 0.0
    if mph <= 10:
        return (mph / 10.0) * 0.3
    if mph <= 25:
        return 0.3 + ((mph - 10.0) / 15.0) * 0.4
    return 0.7 + min((mph - 25.0) / 25.0, 0.3)


def _precipitation_intensity(level: Precipitation | None) -> float:
    return {"light": 0.3, "moderate": 0.6, "heavy": 1.0}.get(level or "none", 0.0)


def _haze_for_visibility(miles: float | None) -> float:
    """Map visibility to haze: none at 10+ miles, heavy below 5."""
    miles = 10.0 if miles is None else miles
    if miles >= 10:
        return 0.0
    if miles >= 5:
        return ((10.0 - miles) / 5.0) * 0.3
    return 0.3 + ((5.0 - miles) / 5.0) * 0.7


def map_weather_to_effects(params: WeatherEffectParams, post_processing: bool = True) -> EffectLayerConfig:
    """Map weather parameters to effect layer configuration.

    With `post_processing` off, `post` is None and the bloom and god-ray pass is skipped.
    """
    preset = CONDITION_PRESETS[params.condition]

    altitude = sun_altitude(params.timestamp)
    wind = _wind_intensity(params.wind_speed_mph)
    precipitation = _precipitation_intensity(params.precipitation)
    night = is_night_time(altitude)

    cloud_preset = preset.cloud
    if not night:
        star_visibility = 0.0
    elif cloud_preset is None:
        star_visibility = 1.0
    else:
        star_visibility = 1.0 - cloud_preset.coverage

    atmosphere = AtmosphereConfig(
        sun_altitude=altitude,
        haze=max(_haze_for_visibility(params.visibility_miles), (cloud_preset.darkness if cloud_preset else 0.0) * 0.3),
        star_visibility=star_visibility,
    )

    cloud = None
    if cloud_preset is not None:
        cloud = replace(
            cloud_preset,
            speed=cloud_preset.speed * (1.0 + wind * 0.5),
            turbulence=cloud_preset.turbulence * (1.0 + wind * 0.3),
        )

    rain = None
    if preset.rain is not None:
        rain = replace(
            preset.rain,
            intensity=precipitation if precipitation > 0 else preset.rain.intensity,
            angle=preset.rain.angle + wind * 10.0,
        )

    snow = None
    if preset.snow is not None:
        snow = replace(preset.snow, wind_drift=preset.snow.wind_drift + wind * 0.3)

    celestial_preset = _UNIFIED_CELESTIAL
    celestial = CelestialConfig(
        time_of_day=time_of_day_from_timestamp(params.timestamp),
        moon_phase=moon_phase(params.timestamp),
        star_density=celestial_preset.star_density if night else 0.0,
        celestial_x=celestial_preset.x,
        celestial_y=celestial_preset.y,
        sun_size=celestial_preset.sun_size,
        moon_size=celestial_preset.moon_size,
        sun_glow_intensity=celestial_preset.sun_glow_intensity,
        sun_glow_size=celestial_preset.sun_glow_size,
        sun_ray_count=celestial_preset.sun_ray_count,
        sun_ray_length=celestial_preset.sun_ray_length,
        sun_ray_intensity=celestial_preset.sun_ray_intensity,
        moon_glow_intensity=celestial_preset.moon_glow_intensity,
        moon_glow_size=celestial_preset.moon_glow_size,
    )

    post = _post_process(params.condition, atmosphere, cloud, preset.lightning) if post_processing else None
    return EffectLayerConfig(
        atmosphere=atmosphere,
        celestial=celestial,
        post=post,
        cloud=cloud,
        rain=rain,
        lightning=preset.lightning,
        snow=snow,
    )


def _post_process(
    condition: WeatherCondition,
    atmosphere: AtmosphereConfig,
    cloud: CloudLayerConfig | None,
    lightning: LightningLayerConfig | None,
) -> PostProcessConfig:
    """Bloom, exposure and crepuscular-ray response for the scene."""
    haze = _clamp01(atmosphere.haze)
    coverage = cloud.coverage if cloud else 0.0
    altitude = atmosphere.sun_altitude

    bloom_intensity = _clamp01(0.04 + _BLOOM_BOOST.get(condition, 0.04) + haze * 0.22)

    # God rays need the sun above the horizon, particles, and broken cloud.
    god_rays = 0.0
    if coverage > 0.001:
        day_factor = _smoothstep(-0.05, 0.08, altitude)
        sun_low_factor = 1.0 - _smoothstep(0.18, 0.7, max(0.0, altitude))
        coverage_factor = _smoothstep(0.25, 0.85, coverage)
        not_overcast = 1.0 - _smoothstep(0.97, 1.0, coverage)
        particles = 0.35 + haze * 0.65
        god_rays = _clamp01(day_factor * sun_low_factor * coverage_factor * not_overcast * particles * 0.6)

    return PostProcessConfig(
        enabled=True,
        haze=haze,
        bloom_intensity=bloom_intensity,
        bloom_radius=1.1 + haze * 1.2,
        exposure_intensity=0.85 if lightning is not None and lightning.enabled else 0.0,
        god_ray_intensity=god_rays,
    )

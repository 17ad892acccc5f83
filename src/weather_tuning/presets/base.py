"""Deterministic baseline parameters per weather condition."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from weather_tuning.contracts import (
    CelestialParams,
    CloudParams,
    FullParameterSet,
    LayerToggles,
    LightningParams,
    RainParams,
    SnowParams,
    WeatherCondition,
)
from weather_tuning.effects.mapper import WeatherEffectParams, map_weather_to_effects
from weather_tuning.presets.tuned_defaults import tuned_defaults
from weather_tuning.time.checkpoints import Checkpoint, checkpoint_time
from weather_tuning.time.clock import normalize_time_of_day, time_of_day_from_timestamp, timestamp_for_time_of_day
from weather_tuning.tuning.overrides import merge_with_overrides

# Midnight first: halfway times (03:00, 21:00) take the midnight defaults.
_DEFAULTS_LOOKUP_ORDER: tuple[Checkpoint, ...] = (
    Checkpoint.MIDNIGHT,
    Checkpoint.DAWN,
    Checkpoint.NOON,
    Checkpoint.DUSK,
)


def _defaults_checkpoint(time_of_day: float) -> Checkpoint:
    """Pick the checkpoint whose tuned defaults apply at a time of day."""
    query = normalize_time_of_day(time_of_day)
    nearest = Checkpoint.NOON
    best = float("inf")
    for checkpoint in _DEFAULTS_LOOKUP_ORDER:
        distance = abs(query - checkpoint_time(checkpoint))
        distance = min(distance, 1.0 - distance)
        if distance < best:
            best = distance
            nearest = checkpoint
    return nearest


def resolve_base_params(condition: WeatherCondition, timestamp: datetime | None = None) -> FullParameterSet:
    """Return the canonical full parameter set for a condition.

    Layer flags follow from which effect layers the condition produces. The
    timestamp only influences the celestial group (and which checkpoint's tuned
    defaults are baked in); without one, noon is assumed.
    """
    effects = map_weather_to_effects(WeatherEffectParams(condition=condition, timestamp=timestamp), post_processing=False)
    time_of_day = time_of_day_from_timestamp(timestamp)

    cloud = effects.cloud
    rain = effects.rain
    lightning = effects.lightning
    snow = effects.snow
    celestial = effects.celestial

    base = FullParameterSet(
        layers=LayerToggles(
            celestial=True,
            clouds=cloud is not None,
            rain=rain is not None,
            lightning=lightning is not None,
            snow=snow is not None,
        ),
        celestial=CelestialParams(
            time_of_day=time_of_day,
            moon_phase=celestial.moon_phase,
            star_density=celestial.star_density,
            celestial_x=celestial.celestial_x,
            celestial_y=celestial.celestial_y,
            sun_size=celestial.sun_size,
            moon_size=celestial.moon_size,
            sun_glow_intensity=celestial.sun_glow_intensity,
            sun_glow_size=celestial.sun_glow_size,
            sun_ray_count=float(celestial.sun_ray_count),
            sun_ray_length=celestial.sun_ray_length,
            sun_ray_intensity=celestial.sun_ray_intensity,
            moon_glow_intensity=celestial.moon_glow_intensity,
            moon_glow_size=celestial.moon_glow_size,
            sky_brightness=1.0,
            sky_saturation=1.0,
            sky_contrast=1.0,
        ),
        cloud=CloudParams(
            cloud_scale=1.5,
            coverage=cloud.coverage if cloud else 0.5,
            density=0.7,
            softness=0.3,
            wind_speed=cloud.speed if cloud else 0.5,
            wind_angle=0.0,
            turbulence=cloud.turbulence if cloud else 0.5,
            sun_azimuth=0.0,
            light_intensity=1.0,
            ambient_darkness=cloud.darkness if cloud else 0.3,
            backlight_intensity=0.5,
            num_layers=3.0,
            layer_spread=0.3,
            star_size=1.0,
            star_twinkle_speed=1.0,
            star_twinkle_amount=0.5,
            horizon_line=0.5,
        ),
        rain=RainParams(
            glass_intensity=rain.intensity * 0.7 if rain else 0.0,
            zoom=1.0,
            falling_intensity=rain.intensity if rain else 0.0,
            falling_speed=1.0,
            falling_angle=rain.angle * 0.02 if rain else 0.1,
            falling_streak_length=0.8,
            falling_layers=3.0,
            falling_refraction=0.3,
            falling_waviness=0.15,
            falling_thickness_var=0.5,
        ),
        lightning=LightningParams(
            branch_density=0.6,
            displacement=0.08,
            glow_intensity=0.8,
            flash_duration=0.15,
            scene_illumination=0.6,
            afterglow_persistence=0.3,
            auto_mode=lightning.auto_trigger if lightning else False,
            auto_interval=float(lightning.interval_min + lightning.interval_max) / 2.0 if lightning else 8.0,
        ),
        snow=SnowParams(
            intensity=snow.intensity if snow else 0.0,
            layers=4.0,
            fall_speed=0.5,
            wind_speed=snow.wind_drift if snow else 0.3,
            wind_angle=0.0,
            turbulence=0.3,
            drift=snow.wind_drift if snow else 0.3,
            flutter=0.5,
            wind_shear=0.2,
            flake_size=1.0,
            size_variation=0.5,
            opacity=0.8,
            glow_amount=0.3,
            sparkle=0.2,
            visibility=1.0,
        ),
    )
    return merge_with_overrides(base, tuned_defaults(condition, _defaults_checkpoint(time_of_day)))


def base_params_at_time(condition: WeatherCondition, time_of_day: float) -> FullParameterSet:
    """Return base params for a continuous time of day on the reference date."""
    return resolve_base_params(condition, timestamp_for_time_of_day(time_of_day))


def base_params_for_checkpoint(condition: WeatherCondition, checkpoint: Checkpoint) -> FullParameterSet:
    """Return base params evaluated at a checkpoint's canonical time.

    The celestial time of day is pinned to the checkpoint value, and the tuned
    defaults of that checkpoint are part of the result.
    """
    value = checkpoint_time(checkpoint)
    base = base_params_at_time(condition, value)
    base = replace(base, celestial=replace(base.celestial, time_of_day=value))
    return merge_with_overrides(base, tuned_defaults(condition, checkpoint))

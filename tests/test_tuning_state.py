"""Tests for tuning state reads and reducers."""

from copy import deepcopy

import pytest

from weather_tuning.contracts import WEATHER_CONDITIONS, ParamGroup, WeatherCondition
from weather_tuning.presets.base import base_params_for_checkpoint
from weather_tuning.time.checkpoints import TIME_CHECKPOINT_ORDER, Checkpoint
from weather_tuning.tuning.state import (
    ContinuousTime,
    ReviewStatus,
    TuningState,
    all_checkpoints_reviewed,
    base_params,
    bulk_update,
    condition_review_status,
    copy_checkpoint_to_checkpoints,
    copy_layer_from_condition,
    copy_layer_to_all_conditions,
    exit_preview,
    full_params_for_checkpoint,
    get_full_params,
    go_to_checkpoint,
    is_signed_off,
    mark_checkpoint_reviewed,
    override_count,
    params_for_condition,
    reset_condition,
    scrub_time,
    select_condition,
    sign_off,
    stored_override,
    toggle_sign_off,
    update_checkpoint_overrides,
    update_parameter_at_checkpoint,
    update_params,
)


def _reviewed_everywhere(state: TuningState, condition: WeatherCondition) -> TuningState:
    for checkpoint in TIME_CHECKPOINT_ORDER:
        state = go_to_checkpoint(state, condition, checkpoint)
    return state


def test_numeric_override_interpolates_between_checkpoints() -> None:
    """Coverage halfway into the dawn-noon segment should blend 0.2 toward 0.8."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.RAIN, Checkpoint.DAWN, {"cloud": {"coverage": 0.2}})
    state = update_checkpoint_overrides(state, WeatherCondition.RAIN, Checkpoint.NOON, {"cloud": {"coverage": 0.8}})

    params = get_full_params(state, WeatherCondition.RAIN, ContinuousTime(0.3125))

    assert params.cloud.coverage == pytest.approx(0.35)
    assert params.celestial.time_of_day == state.global_time_of_day


def test_boolean_override_takes_later_value_at_half() -> None:
    """At t = 0.5 a boolean should already show the later checkpoint's value."""
    state = update_checkpoint_overrides(
        TuningState(), WeatherCondition.THUNDERSTORM, Checkpoint.DAWN, {"lightning": {"auto_mode": True}}
    )
    state = update_checkpoint_overrides(
        state, WeatherCondition.THUNDERSTORM, Checkpoint.NOON, {"lightning": {"auto_mode": False}}
    )

    assert get_full_params(state, WeatherCondition.THUNDERSTORM, ContinuousTime(0.375)).lightning.auto_mode is False
    assert get_full_params(state, WeatherCondition.THUNDERSTORM, ContinuousTime(0.3)).lightning.auto_mode is True


def test_checkpoint_query_uses_only_that_checkpoint() -> None:
    """Checkpoint queries should merge the stored override onto that checkpoint's base."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.RAIN, Checkpoint.DAWN, {"cloud": {"coverage": 0.2}})

    at_dawn = get_full_params(state, WeatherCondition.RAIN, Checkpoint.DAWN)
    at_noon = get_full_params(state, WeatherCondition.RAIN, Checkpoint.NOON)

    assert at_dawn.cloud.coverage == 0.2
    assert at_noon.cloud.coverage == base_params_for_checkpoint(WeatherCondition.RAIN, Checkpoint.NOON).cloud.coverage
    assert at_dawn.celestial.time_of_day == 0.5


def test_one_sided_override_blends_against_base() -> None:
    """A field stored at only one checkpoint should blend toward the other side's base."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.RAIN, Checkpoint.DAWN, {"cloud": {"coverage": 0.2}})
    noon_base = base_params_for_checkpoint(WeatherCondition.RAIN, Checkpoint.NOON).cloud.coverage

    params = get_full_params(state, WeatherCondition.RAIN, ContinuousTime(0.3125))

    assert params.cloud.coverage == pytest.approx(0.2 + (noon_base - 0.2) * 0.25)


def test_no_overrides_reads_as_base() -> None:
    """A condition never tuned should read back its base parameters."""
    state = TuningState()
    assert params_for_condition(state, WeatherCondition.CLEAR) == base_params(state, WeatherCondition.CLEAR)


def test_missing_checkpoint_keys_are_tolerated() -> None:
    """Partially populated stored overrides should not break reads."""
    state = TuningState(overrides_by_condition={WeatherCondition.RAIN: {Checkpoint.DUSK: {"cloud": {"density": 0.9}}}})

    params = get_full_params(state, WeatherCondition.RAIN, ContinuousTime(0.8))

    assert params.cloud.density < 0.9
    assert override_count(state, WeatherCondition.RAIN) == 1
    assert stored_override(state, WeatherCondition.RAIN, Checkpoint.DAWN) == {}


def test_update_params_stores_diff_at_active_checkpoint() -> None:
    """Edits should be stored as a diff against the active checkpoint's base."""
    state = TuningState()
    edited = full_params_for_checkpoint(state, WeatherCondition.CLOUDY, Checkpoint.NOON).with_group_values(
        ParamGroup.CLOUD, {"coverage": 0.33}
    )

    updated = update_params(state, WeatherCondition.CLOUDY, edited)

    assert stored_override(updated, WeatherCondition.CLOUDY, Checkpoint.NOON) == {"cloud": {"coverage": 0.33}}
    assert state.overrides_by_condition == {}


def test_update_params_while_previewing_snaps_to_nearest_checkpoint() -> None:
    """Editing during preview should first snap the cursor to the nearest checkpoint."""
    state = scrub_time(TuningState(), 0.7)
    edited = full_params_for_checkpoint(state, WeatherCondition.CLOUDY, Checkpoint.DUSK).with_group_values(
        ParamGroup.CLOUD, {"coverage": 0.33}
    )

    updated = update_params(state, WeatherCondition.CLOUDY, edited)

    assert updated.active_checkpoint is Checkpoint.DUSK
    assert updated.global_time_of_day == 0.75
    assert updated.previewing is False
    assert stored_override(updated, WeatherCondition.CLOUDY, Checkpoint.DUSK) == {"cloud": {"coverage": 0.33}}
    assert stored_override(updated, WeatherCondition.CLOUDY, Checkpoint.NOON) == {}


def test_update_parameter_at_checkpoint_keeps_other_fields() -> None:
    """Single-field writes should leave the rest of the slot alone."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.CLEAR, Checkpoint.DUSK, {"cloud": {"density": 0.4}})

    state = update_parameter_at_checkpoint(state, WeatherCondition.CLEAR, Checkpoint.DUSK, "celestial", "sunGlowIntensity", 2.0)

    assert stored_override(state, WeatherCondition.CLEAR, Checkpoint.DUSK) == {
        "cloud": {"density": 0.4},
        "celestial": {"sun_glow_intensity": 2.0},
    }


def test_update_parameter_rejects_bad_names_and_types() -> None:
    """Unknown groups, unknown fields and mistyped values should raise."""
    state = TuningState()
    with pytest.raises(ValueError):
        update_parameter_at_checkpoint(state, WeatherCondition.CLEAR, Checkpoint.DUSK, "weather", "coverage", 0.1)
    with pytest.raises(ValueError):
        update_parameter_at_checkpoint(state, WeatherCondition.CLEAR, Checkpoint.DUSK, "cloud", "bogus", 0.1)
    with pytest.raises(ValueError):
        update_parameter_at_checkpoint(state, WeatherCondition.CLEAR, Checkpoint.DUSK, "cloud", "coverage", True)


def test_bulk_update_writes_each_slot_without_touching_other_fields() -> None:
    """Bulk propagation should write four slots and keep existing fields."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.RAIN, Checkpoint.DAWN, {"rain": {"zoom": 1.5}})
    state = update_checkpoint_overrides(state, WeatherCondition.SNOW, Checkpoint.NOON, {"snow": {"flake_size": 2.0}})

    updated = bulk_update(
        state,
        [WeatherCondition.RAIN, WeatherCondition.SNOW],
        [Checkpoint.DAWN, Checkpoint.NOON],
        "cloud",
        "coverage",
        0.9,
    )

    for condition in (WeatherCondition.RAIN, WeatherCondition.SNOW):
        for checkpoint in (Checkpoint.DAWN, Checkpoint.NOON):
            assert stored_override(updated, condition, checkpoint)["cloud"]["coverage"] == 0.9
        assert stored_override(updated, condition, Checkpoint.DUSK) == {}
    assert stored_override(updated, WeatherCondition.RAIN, Checkpoint.DAWN)["rain"] == {"zoom": 1.5}
    assert stored_override(updated, WeatherCondition.SNOW, Checkpoint.NOON)["snow"] == {"flake_size": 2.0}


def test_bulk_update_skips_slots_already_at_value() -> None:
    """Slots whose effective value already matches should not gain an override."""
    state = TuningState()
    current = full_params_for_checkpoint(state, WeatherCondition.CLEAR, Checkpoint.NOON).cloud.coverage

    updated = bulk_update(state, [WeatherCondition.CLEAR], [Checkpoint.NOON], "cloud", "coverage", current)

    assert WeatherCondition.CLEAR not in updated.overrides_by_condition


def test_reset_clears_overrides_review_and_sign_off() -> None:
    """Resetting a signed-off condition should leave it pending and unsigned."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.FOG, Checkpoint.DAWN, {"cloud": {"coverage": 0.2}})
    state = sign_off(_reviewed_everywhere(state, WeatherCondition.FOG), WeatherCondition.FOG)
    assert is_signed_off(state, WeatherCondition.FOG)

    reset = reset_condition(state, WeatherCondition.FOG)

    assert all(status is ReviewStatus.PENDING for status in condition_review_status(reset, WeatherCondition.FOG).values())
    assert len(condition_review_status(reset, WeatherCondition.FOG)) == 4
    assert not is_signed_off(reset, WeatherCondition.FOG)
    assert override_count(reset, WeatherCondition.FOG) == 0


def test_sign_off_requires_all_checkpoints_reviewed() -> None:
    """Sign-off should be refused until every checkpoint is reviewed."""
    state = mark_checkpoint_reviewed(TuningState(), WeatherCondition.HAIL, Checkpoint.DAWN)
    assert sign_off(state, WeatherCondition.HAIL) is state

    state = _reviewed_everywhere(state, WeatherCondition.HAIL)
    assert all_checkpoints_reviewed(state, WeatherCondition.HAIL)
    signed = toggle_sign_off(state, WeatherCondition.HAIL)
    assert is_signed_off(signed, WeatherCondition.HAIL)
    assert not is_signed_off(toggle_sign_off(signed, WeatherCondition.HAIL), WeatherCondition.HAIL)


def test_revoking_sign_off_is_always_allowed() -> None:
    """A signed-off condition can be revoked even with pending review flags."""
    state = TuningState(signed_off=frozenset({WeatherCondition.WINDY}))
    assert not is_signed_off(toggle_sign_off(state, WeatherCondition.WINDY), WeatherCondition.WINDY)


def test_navigation_reviews_but_scrubbing_does_not() -> None:
    """Jumping to a checkpoint reviews it; scrubbing only moves the cursor."""
    scrubbed = scrub_time(TuningState(), 0.26)
    assert scrubbed.previewing
    assert condition_review_status(scrubbed, WeatherCondition.CLEAR)[Checkpoint.DAWN] is ReviewStatus.PENDING

    jumped = go_to_checkpoint(scrubbed, WeatherCondition.CLEAR, Checkpoint.DUSK)
    assert jumped.global_time_of_day == 0.75
    assert jumped.active_checkpoint is Checkpoint.DUSK
    assert not jumped.previewing
    assert condition_review_status(jumped, WeatherCondition.CLEAR)[Checkpoint.DUSK] is ReviewStatus.REVIEWED


def test_exit_preview_targets_nearest_checkpoint() -> None:
    """Leaving preview should make the nearest checkpoint the edit target."""
    state = exit_preview(scrub_time(TuningState(), 0.7))
    assert state.active_checkpoint is Checkpoint.DUSK
    assert state.global_time_of_day == 0.7
    assert not state.previewing


def test_scrub_time_wraps_cursor() -> None:
    """Scrubbing past the end of the day should wrap."""
    assert scrub_time(TuningState(), 1.25).global_time_of_day == 0.25


def test_copy_layer_from_condition() -> None:
    """Copying a layer should reproduce the source's effective values in the target."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.CLEAR, Checkpoint.NOON, {"cloud": {"coverage": 0.25}})
    rain_before = full_params_for_checkpoint(state, WeatherCondition.RAIN, Checkpoint.NOON).rain

    copied = copy_layer_from_condition(state, WeatherCondition.CLEAR, WeatherCondition.RAIN, ParamGroup.CLOUD)

    for checkpoint in TIME_CHECKPOINT_ORDER:
        target = full_params_for_checkpoint(copied, WeatherCondition.RAIN, checkpoint)
        source = full_params_for_checkpoint(copied, WeatherCondition.CLEAR, checkpoint)
        assert target.cloud == source.cloud
    assert full_params_for_checkpoint(copied, WeatherCondition.RAIN, Checkpoint.NOON).rain == rain_before


def test_copy_celestial_layer_excludes_time_of_day() -> None:
    """The global time of day should never be copied into overrides."""
    copied = copy_layer_from_condition(TuningState(), WeatherCondition.CLEAR, WeatherCondition.FOG, "celestial")
    for checkpoint in TIME_CHECKPOINT_ORDER:
        assert "time_of_day" not in stored_override(copied, WeatherCondition.FOG, checkpoint)["celestial"]


def test_copy_layer_to_all_conditions() -> None:
    """Every other condition should receive the layer at every checkpoint."""
    copied = copy_layer_to_all_conditions(TuningState(), WeatherCondition.SNOW, ParamGroup.SNOW)
    for condition in WEATHER_CONDITIONS:
        if condition is WeatherCondition.SNOW:
            assert condition not in copied.overrides_by_condition
            continue
        for checkpoint in TIME_CHECKPOINT_ORDER:
            assert "snow" in stored_override(copied, condition, checkpoint)


def test_copy_checkpoint_carries_tuned_defaults_and_reviews_targets() -> None:
    """Copying a checkpoint should carry its whole look and review the targets."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.CLEAR, Checkpoint.DAWN, {"cloud": {"coverage": 0.3}})

    copied = copy_checkpoint_to_checkpoints(
        state, WeatherCondition.CLEAR, Checkpoint.DAWN, [Checkpoint.NOON, Checkpoint.DUSK, Checkpoint.DAWN]
    )

    noon = stored_override(copied, WeatherCondition.CLEAR, Checkpoint.NOON)
    assert noon["cloud"] == {"coverage": 0.3}
    assert noon["celestial"]["sun_glow_intensity"] == 3.7
    assert full_params_for_checkpoint(copied, WeatherCondition.CLEAR, Checkpoint.DUSK).cloud.coverage == 0.3

    review = condition_review_status(copied, WeatherCondition.CLEAR)
    assert review[Checkpoint.NOON] is ReviewStatus.REVIEWED
    assert review[Checkpoint.DUSK] is ReviewStatus.REVIEWED
    assert review[Checkpoint.DAWN] is ReviewStatus.PENDING


def test_reducers_do_not_mutate_inputs() -> None:
    """Every reducer should return a new snapshot and leave its input alone."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.RAIN, Checkpoint.DAWN, {"cloud": {"coverage": 0.2}})
    frozen = deepcopy(state)

    update_parameter_at_checkpoint(state, WeatherCondition.RAIN, Checkpoint.DAWN, "cloud", "density", 0.5)
    bulk_update(state, [WeatherCondition.RAIN], [Checkpoint.DAWN], "cloud", "coverage", 0.7)
    reset_condition(state, WeatherCondition.RAIN)
    select_condition(state, WeatherCondition.SNOW)

    assert state == frozen
    assert stored_override(state, WeatherCondition.RAIN, Checkpoint.DAWN) == {"cloud": {"coverage": 0.2}}


def test_scrubbed_cursor_reads_back_exactly() -> None:
    """The cursor set by scrubbing should be the time reported by reads."""
    state = scrub_time(TuningState(), 0.9)

    assert state.global_time_of_day == 0.9
    assert params_for_condition(state, WeatherCondition.RAIN).celestial.time_of_day == 0.9


def test_time_of_day_cannot_be_stored_as_override() -> None:
    """The global time of day should be rejected by single-field writes."""
    state = TuningState()
    with pytest.raises(ValueError):
        bulk_update(state, [WeatherCondition.RAIN], [Checkpoint.DAWN], "celestial", "time_of_day", 0.9)
    with pytest.raises(ValueError):
        update_parameter_at_checkpoint(state, WeatherCondition.RAIN, Checkpoint.DAWN, "celestial", "timeOfDay", 0.9)

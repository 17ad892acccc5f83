"""Owner of the current tuning snapshot."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from weather_tuning.contracts import FullParameterSet, ParamGroup, ParamValue, WeatherCondition
from weather_tuning.presets.base import base_params_for_checkpoint
from weather_tuning.state.tuning_store import TuningStore
from weather_tuning.time.checkpoints import Checkpoint
from weather_tuning.tuning import state as reducers
from weather_tuning.tuning.codec import import_state
from weather_tuning.tuning.state import ConditionReview, ContinuousTime, TimeQuery, TuningState

logger = logging.getLogger(__name__)


class TuningSession:
    """Apply reducers to one snapshot and persist each new snapshot.

    Saving is fire-and-forget: store failures are logged and the in-memory
    snapshot stays authoritative.
    """

    def __init__(self, store: TuningStore | None = None, initial: TuningState | None = None) -> None:
        self._store = store
        loaded = store.load() if store is not None and initial is None else None
        self._state = initial or loaded or TuningState()
        if loaded is not None:
            logger.debug("Restored tuning state for %d conditions", len(loaded.overrides_by_condition))

    @property
    def state(self) -> TuningState:
        return self._state

    def apply(
        self,
        reducer: Callable[..., TuningState],
        *args: Any,
        **kwargs: Any,
    ) -> TuningState:
        """Run one reducer against the current snapshot and keep the result."""
        updated = reducer(self._state, *args, **kwargs)
        if updated is self._state:
            return updated
        logger.debug("%s applied", reducer.__name__)
        self._state = updated
        self._save()
        return updated

    def _save(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self._state)
        except (sqlite3.Error, OSError):
            logger.warning("Failed to save tuning state", exc_info=True)

    # reads

    def full_params(self, condition: WeatherCondition, query: TimeQuery | None = None) -> FullParameterSet:
        if query is None:
            query = ContinuousTime(self._state.global_time_of_day)
        return reducers.get_full_params(self._state, condition, query)

    def base_params(self, condition: WeatherCondition, checkpoint: Checkpoint | None = None) -> FullParameterSet:
        if checkpoint is None:
            return reducers.base_params(self._state, condition)
        return base_params_for_checkpoint(condition, checkpoint)

    def review_status(self, condition: WeatherCondition) -> ConditionReview:
        return reducers.condition_review_status(self._state, condition)

    def override_count(self, condition: WeatherCondition) -> int:
        return reducers.override_count(self._state, condition)

    def is_signed_off(self, condition: WeatherCondition) -> bool:
        return reducers.is_signed_off(self._state, condition)

    # writes

    def update_params(self, condition: WeatherCondition, params: FullParameterSet) -> TuningState:
        return self.apply(reducers.update_params, condition, params)

    def update_parameter_at_checkpoint(
        self,
        condition: WeatherCondition,
        checkpoint: Checkpoint,
        group: ParamGroup | str,
        name: str,
        value: ParamValue,
    ) -> TuningState:
        return self.apply(reducers.update_parameter_at_checkpoint, condition, checkpoint, group, name, value)

    def bulk_update(
        self,
        conditions: Iterable[WeatherCondition],
        checkpoints: Iterable[Checkpoint],
        group: ParamGroup | str,
        name: str,
        value: ParamValue,
    ) -> TuningState:
        return self.apply(reducers.bulk_update, list(conditions), list(checkpoints), group, name, value)

    def reset_condition(self, condition: WeatherCondition) -> TuningState:
        return self.apply(reducers.reset_condition, condition)

    def copy_layer(self, source: WeatherCondition, target: WeatherCondition | None, group: ParamGroup | str) -> TuningState:
        """Copy one group from `source` to `target`, or to every other condition when None."""
        if target is None:
            return self.apply(reducers.copy_layer_to_all_conditions, source, group)
        return self.apply(reducers.copy_layer_from_condition, source, target, group)

    def copy_checkpoint(
        self,
        condition: WeatherCondition,
        source: Checkpoint,
        targets: Iterable[Checkpoint],
    ) -> TuningState:
        return self.apply(reducers.copy_checkpoint_to_checkpoints, condition, source, list(targets))

    def select_condition(self, condition: WeatherCondition) -> TuningState:
        return self.apply(reducers.select_condition, condition)

    def go_to_checkpoint(self, checkpoint: Checkpoint, condition: WeatherCondition | None = None) -> TuningState:
        return self.apply(reducers.go_to_checkpoint, condition or self._state.active_condition, checkpoint)

    def scrub_time(self, time_of_day: float) -> TuningState:
        return self.apply(reducers.scrub_time, time_of_day)

    def exit_preview(self) -> TuningState:
        return self.apply(reducers.exit_preview)

    def toggle_sign_off(self, condition: WeatherCondition) -> TuningState:
        return self.apply(reducers.toggle_sign_off, condition)

    def import_json(self, text: str) -> TuningState:
        """Replace overrides (and sign-off, when present) from imported JSON.

        The current snapshot is untouched when parsing fails.

        Raises:
            StateImportError: if the text cannot be parsed.
        """
        imported = import_state(text)
        changes: dict[str, Any] = {"overrides_by_condition": imported.overrides_by_condition}
        if imported.signed_off is not None:
            changes["signed_off"] = imported.signed_off
        logger.info("Imported overrides for %d conditions", len(imported.overrides_by_condition))
        return self.apply(replace, **changes)

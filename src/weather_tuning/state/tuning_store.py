"""Tuning state persistence over a key-value blob store."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from weather_tuning.state.blob_store import BlobStore
from weather_tuning.tuning.codec import (
    compositor_snapshot,
    is_v1_snapshot,
    is_v2_snapshot,
    migrate_v1,
    state_from_snapshots,
    workflow_snapshot,
)
from weather_tuning.tuning.state import TuningState

logger = logging.getLogger(__name__)

COMPOSITOR_KEY = "weather-compositor-state"
SESSION_KEY = "weather-tuning-session"


class TuningStore(Protocol):
    """Interface for loading and saving tuning state snapshots."""

    def load(self) -> TuningState | None:
        """Return the persisted state, or None on first run or unreadable data."""

    def save(self, state: TuningState) -> None:
        """Persist one state snapshot."""


class BlobTuningStore(TuningStore):
    """Stores the compositor snapshot and the review workflow under separate keys."""

    def __init__(self, blobs: BlobStore) -> None:
        self._blobs = blobs

    def load(self) -> TuningState | None:
        compositor = self._read(COMPOSITOR_KEY)
        if compositor is not None and not is_v2_snapshot(compositor):
            if is_v1_snapshot(compositor):
                logger.info("Migrating v1 compositor snapshot to v2")
                compositor = migrate_v1(compositor)
                self._write(COMPOSITOR_KEY, compositor)
            else:
                logger.warning("Unrecognized compositor snapshot under %s; ignoring it", COMPOSITOR_KEY)
                compositor = None

        workflow = self._read(SESSION_KEY)
        if compositor is None and workflow is None:
            return None
        return state_from_snapshots(compositor, workflow)

    def save(self, state: TuningState) -> None:
        self._write(COMPOSITOR_KEY, compositor_snapshot(state))
        self._write(SESSION_KEY, workflow_snapshot(state))

    def _read(self, key: str) -> dict[str, Any] | None:
        raw = self._blobs.get(key)
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable JSON stored under %s", key)
            return None
        if not isinstance(parsed, dict):
            logger.warning("Discarding non-object snapshot stored under %s", key)
            return None
        return parsed

    def _write(self, key: str, payload: dict[str, Any]) -> None:
        self._blobs.put(key, json.dumps(payload, sort_keys=True, separators=(",", ":")))

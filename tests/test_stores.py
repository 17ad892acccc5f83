"""Tests for blob stores and tuning state persistence."""

import json
from pathlib import Path

from weather_tuning.contracts import WeatherCondition
from weather_tuning.state.blob_store import InMemoryBlobStore, SQLiteBlobStore
from weather_tuning.state.tuning_store import COMPOSITOR_KEY, SESSION_KEY, BlobTuningStore
from weather_tuning.time.checkpoints import Checkpoint
from weather_tuning.tuning.state import TuningState, scrub_time, update_checkpoint_overrides


def test_sqlite_blob_store_put_get_replace(tmp_path: Path) -> None:
    """Blobs should be stored, replaced and survive reopening."""
    path = str(tmp_path / "tuning.sqlite")
    store = SQLiteBlobStore(path)
    assert store.get("missing") is None

    store.put("k", "one")
    store.put("k", "two")
    assert store.get("k") == "two"
    store.close()

    reopened = SQLiteBlobStore(path)
    assert reopened.get("k") == "two"
    reopened.close()


def test_first_run_loads_nothing() -> None:
    """An empty store should report no persisted state."""
    assert BlobTuningStore(InMemoryBlobStore()).load() is None


def test_save_then_load_roundtrip(tmp_path: Path) -> None:
    """A saved state should come back from a SQLite-backed store."""
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.SLEET, Checkpoint.MIDNIGHT, {"snow": {"opacity": 0.4}})
    state = scrub_time(state, 0.9)
    blobs = SQLiteBlobStore(str(tmp_path / "tuning.sqlite"))

    BlobTuningStore(blobs).save(state)
    loaded = BlobTuningStore(blobs).load()

    assert loaded is not None
    assert loaded.overrides_by_condition == state.overrides_by_condition
    assert loaded.global_time_of_day == 0.9
    assert loaded.active_checkpoint is Checkpoint.MIDNIGHT
    assert not loaded.previewing
    blobs.close()


def test_v1_snapshot_is_migrated_and_written_back() -> None:
    """Loading a v1 snapshot should upgrade it in place."""
    blobs = InMemoryBlobStore()
    blobs.put(COMPOSITOR_KEY, json.dumps({"overrides": {"rain": {"cloud": {"coverage": 0.3}}}}))

    loaded = BlobTuningStore(blobs).load()

    assert loaded is not None
    assert loaded.overrides_by_condition[WeatherCondition.RAIN][Checkpoint.DUSK] == {"cloud": {"coverage": 0.3}}
    stored = json.loads(blobs.get(COMPOSITOR_KEY) or "{}")
    assert stored["version"] == 2
    assert stored["checkpointOverrides"]["rain"]["dawn"] == {"cloud": {"coverage": 0.3}}


def test_unreadable_snapshots_are_ignored() -> None:
    """Garbage under both keys should read as a first run."""
    blobs = InMemoryBlobStore()
    blobs.put(COMPOSITOR_KEY, "{broken")
    blobs.put(SESSION_KEY, "[1, 2]")
    assert BlobTuningStore(blobs).load() is None

    blobs.put(COMPOSITOR_KEY, json.dumps({"version": 9}))
    assert BlobTuningStore(blobs).load() is None


def test_workflow_snapshot_alone_restores_sign_off() -> None:
    """Review and sign-off should load even without a compositor snapshot."""
    blobs = InMemoryBlobStore()
    blobs.put(SESSION_KEY, json.dumps({"checkpoints": {}, "signedOff": ["windy"]}))

    loaded = BlobTuningStore(blobs).load()

    assert loaded is not None
    assert loaded.signed_off == frozenset({WeatherCondition.WINDY})
    assert loaded.overrides_by_condition == {}

"""Tests for the package CLI."""

import json
from pathlib import Path

import pytest

from weather_tuning.__main__ import main
from weather_tuning.contracts import WeatherCondition
from weather_tuning.state.blob_store import SQLiteBlobStore
from weather_tuning.state.tuning_store import BlobTuningStore
from weather_tuning.time.checkpoints import Checkpoint
from weather_tuning.tuning.state import TuningState, update_checkpoint_overrides


def _seed_store(path: Path) -> None:
    state = update_checkpoint_overrides(TuningState(), WeatherCondition.RAIN, Checkpoint.DAWN, {"cloud": {"coverage": 0.2}})
    state = update_checkpoint_overrides(state, WeatherCondition.RAIN, Checkpoint.NOON, {"cloud": {"coverage": 0.8}})
    blobs = SQLiteBlobStore(str(path))
    BlobTuningStore(blobs).save(state)
    blobs.close()


def test_cli_without_command() -> None:
    """Running without a command should succeed."""
    assert main([]) == 0


def test_cli_version(capsys: pytest.CaptureFixture[str]) -> None:
    """`--version` should print the version and exit cleanly."""
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert "weather_tuning 0.1.0" in capsys.readouterr().out


def test_export_writes_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Export should write the requested format to the output path."""
    store = tmp_path / "tuning.sqlite"
    output = tmp_path / "export.json"
    _seed_store(store)

    code = main(["export", "--store", str(store), "--format", "json-full", "--output", str(output)])

    assert code == 0
    assert "export complete format=json-full conditions=1" in capsys.readouterr().out
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["version"] == 2
    assert payload["checkpointOverrides"]["rain"]["noon"] == {"cloud": {"coverage": 0.8}}


def test_export_to_stdout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Without an output path the export should go to stdout."""
    store = tmp_path / "tuning.sqlite"
    _seed_store(store)

    assert main(["export", "--store", str(store), "--format", "typescript"]) == 0
    assert "TUNED_CHECKPOINT_OVERRIDES" in capsys.readouterr().out


def test_params_interpolates_stored_overrides(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """`params --time` should print interpolated values at that time."""
    store = tmp_path / "tuning.sqlite"
    _seed_store(store)

    assert main(["params", "--condition", "rain", "--time", "0.3125", "--store", str(store)]) == 0
    payload = json.loads(capsys.readouterr().out)

    assert payload["cloud"]["coverage"] == pytest.approx(0.35)
    assert payload["celestial"]["timeOfDay"] == 0.3125


def test_params_base_ignores_overrides(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """`--base` should print the checkpoint base without user overrides."""
    store = tmp_path / "tuning.sqlite"
    _seed_store(store)

    assert main(["params", "--condition", "rain", "--checkpoint", "dawn", "--store", str(store), "--base"]) == 0
    payload = json.loads(capsys.readouterr().out)

    assert payload["cloud"]["coverage"] != 0.2
    assert payload["celestial"]["timeOfDay"] == 0.25


def test_params_rejects_out_of_range_time() -> None:
    """Times outside the day should be rejected by the parser."""
    with pytest.raises(SystemExit):
        main(["params", "--condition", "rain", "--time", "1.5"])


def test_params_rejects_end_of_day() -> None:
    """1.0 is the next midnight, outside the [0, 1) cursor range."""
    with pytest.raises(SystemExit):
        main(["params", "--condition", "rain", "--time", "1.0"])

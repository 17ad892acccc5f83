"""Command-line entrypoint for weather_tuning."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from weather_tuning.contracts import WEATHER_CONDITIONS, WeatherCondition
from weather_tuning.export.serializer import ExportFormat, export
from weather_tuning.presets.base import base_params_at_time, base_params_for_checkpoint
from weather_tuning.state.blob_store import InMemoryBlobStore, SQLiteBlobStore
from weather_tuning.state.tuning_store import BlobTuningStore
from weather_tuning.time.checkpoints import Checkpoint, checkpoint_time
from weather_tuning.tuning.state import ContinuousTime, TimeQuery, TuningState, get_full_params


def _parse_time_of_day(value: str) -> float:
    """Parse a time of day in [0, 1)."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid time of day: {value}") from exc
    if not 0.0 <= parsed < 1.0:
        raise argparse.ArgumentTypeError(f"time of day must be within [0, 1): {value}")
    return parsed


def _load_state(store_path: str | None) -> TuningState:
    blobs = SQLiteBlobStore(store_path) if store_path else InMemoryBlobStore()
    return BlobTuningStore(blobs).load() or TuningState()


def build_parser() -> argparse.ArgumentParser:
    """Create and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(
        prog="weather_tuning",
        description="Weather effect tuning command-line interface.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    subparsers = parser.add_subparsers(dest="command")
    export_cmd = subparsers.add_parser(
        "export",
        help="Export tuned checkpoint overrides from a SQLite store.",
    )
    export_cmd.add_argument("--store", required=True)
    export_cmd.add_argument(
        "--format",
        choices=[fmt.value for fmt in ExportFormat],
        default=ExportFormat.JSON_OVERRIDES.value,
    )
    export_cmd.add_argument("--output", default=None)
    export_cmd.add_argument("--include-metadata", action="store_true")

    params = subparsers.add_parser(
        "params",
        help="Print the full parameter set for a condition as JSON.",
    )
    params.add_argument("--condition", choices=[c.value for c in WEATHER_CONDITIONS], required=True)
    when = params.add_mutually_exclusive_group(required=True)
    when.add_argument("--time", type=_parse_time_of_day)
    when.add_argument("--checkpoint", choices=[cp.value for cp in Checkpoint])
    params.add_argument("--store", default=None)
    params.add_argument("--base", action="store_true", help="Ignore stored overrides.")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI application."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "export":
        state = _load_state(args.store)
        content = export(
            args.format,
            state.overrides_by_condition,
            state.signed_off,
            include_metadata=args.include_metadata,
        )
        if args.output:
            Path(args.output).write_text(content, encoding="utf-8")
            print(f"export complete format={args.format} conditions={len(state.overrides_by_condition)} output={args.output}")
        else:
            sys.stdout.write(content)
        return 0

    if args.command == "params":
        condition = WeatherCondition(args.condition)
        if args.base:
            if args.checkpoint is not None:
                result = base_params_for_checkpoint(condition, Checkpoint(args.checkpoint))
            else:
                result = base_params_at_time(condition, args.time)
        else:
            state = _load_state(args.store)
            if args.checkpoint is not None:
                checkpoint = Checkpoint(args.checkpoint)
                query: TimeQuery = checkpoint
                state = replace(state, global_time_of_day=checkpoint_time(checkpoint))
            else:
                query = ContinuousTime(args.time)
                state = replace(state, global_time_of_day=args.time)
            result = get_full_params(state, condition, query)
        print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
        return 0

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Command-line interface for SensorGuard.

Provides commands for streaming a telemetry dataset through the model,
scoring a dataset once, and reading back the persisted event history.

Usage:
    sensorguard stream --duration 30
    sensorguard stream --dataset data/sample.csv --tick 0.2 --format json
    sensorguard score resources/SensorNetGuard_full.csv
    sensorguard events --limit 20
"""

import argparse
import asyncio
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Optional

from sensorguard import __version__
from sensorguard.config import settings
from sensorguard.exceptions import DatasetLoadError, ModelLoadError
from sensorguard.pipeline.factory import build_monitor, build_worker
from sensorguard.pipeline.monitor import Monitor
from sensorguard.store.event_store import DEFAULT_FETCH_LIMIT, EventStore
from sensorguard.stream.loader import load_dataset

logger = logging.getLogger(__name__)

EXIT_MODEL_ERROR = 2


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser.

    Returns:
        Configured ArgumentParser with all commands and arguments.
    """
    parser = argparse.ArgumentParser(
        prog="sensorguard",
        description="SensorGuard — telemetry sensor risk monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sensorguard stream --duration 30
  sensorguard score resources/SensorNetGuard_full.csv --format json
  sensorguard events --limit 20
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # stream command
    stream_parser = subparsers.add_parser(
        "stream",
        help="Replay a dataset as a live feed and monitor every sensor",
        description="Stream one row per tick through the model; Ctrl-C to stop",
    )
    stream_parser.add_argument(
        "--dataset",
        type=Path,
        default=None,
        help="CSV dataset to replay (default: DATASET_PATH setting)",
    )
    stream_parser.add_argument(
        "--duration",
        type=_positive_float,
        default=None,
        help="Stop after this many seconds (default: run until Ctrl-C)",
    )
    stream_parser.add_argument(
        "--tick",
        type=_positive_float,
        default=None,
        help="Seconds between rows (default: TICK_SECONDS setting)",
    )
    stream_parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    stream_parser.add_argument(
        "--events",
        type=int,
        default=20,
        help="Number of session events to print (default: 20)",
    )

    # score command
    score_parser = subparsers.add_parser(
        "score",
        help="Score every row of a dataset once",
    )
    score_parser.add_argument("dataset", type=Path, help="CSV dataset to score")
    score_parser.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )

    # events command
    events_parser = subparsers.add_parser(
        "events",
        help="Show persisted events, newest first",
    )
    events_parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_FETCH_LIMIT,
        help=f"Maximum events to show (default: {DEFAULT_FETCH_LIMIT})",
    )
    events_parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Event database (default: EVENT_DB_PATH setting)",
    )

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    return parser


async def _stream_session(
    monitor: Monitor,
    dataset: Optional[Path],
    duration: Optional[float],
) -> bool:
    """Run one monitoring session; False if the stream did not start."""
    if not await monitor.start(dataset):
        return False
    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        monitor.stop()
        await monitor.drain()
    return True


def _print_session(monitor: Monitor, event_limit: int, fmt: str) -> None:
    stats = monitor.stats()
    sensors = monitor.snapshot()
    events = monitor.events(event_limit)

    if fmt == "json":
        print(json.dumps(
            {
                "stats": stats.to_dict(),
                "sensors": [s.to_dict() for s in sensors],
                "events": [e.to_dict() for e in events],
            },
            indent=2,
        ))
        return

    print(
        f"Rows: {stats.rows_processed}  Malicious-labelled: {stats.malicious_rows}  "
        f"Sensors: {stats.total_unique_sensors}  Stale dropped: {stats.stale_dropped}"
    )
    print()
    for s in sensors:
        flag = " [USER QUARANTINED]" if s.user_quarantined else ""
        reasons = " • ".join(s.reasons)
        print(f"{s.sensor_id:<20} {s.severity.value:<11} p={s.probability:.3f}{flag}  {reasons}")
    if events:
        print()
        print("Events:")
        for e in events:
            print(f"  {e.timestamp:%H:%M:%S} {e.kind.value:<9} {e.sensor_id:<20} {e.message}")


def cmd_stream(args: argparse.Namespace) -> int:
    """Execute the stream command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 success, 1 failure, 2 model load failure, 130 interrupted)
    """
    config = settings
    if args.tick is not None:
        config = settings.model_copy(update={"tick_seconds": args.tick})

    try:
        monitor = build_monitor(config)
    except ModelLoadError as e:
        logger.error("Model load failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_MODEL_ERROR

    try:
        # Main-thread loop: Ctrl-C cancels the session and drains it
        started = asyncio.run(_stream_session(monitor, args.dataset, args.duration))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        _print_session(monitor, args.events, args.format)
        return 130
    except Exception as e:
        logger.error("Stream failed: %s", e, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not started:
        print("Error: stream did not start (see log)", file=sys.stderr)
        return 1

    _print_session(monitor, args.events, args.format)
    return 0


def cmd_score(args: argparse.Namespace) -> int:
    """Execute the score command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 success, 1 failure, 2 model load failure)
    """
    try:
        report = load_dataset(args.dataset)
        worker = build_worker(settings)
    except ModelLoadError as e:
        logger.error("Model load failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_MODEL_ERROR
    except DatasetLoadError as e:
        logger.error("Dataset load failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    results = [worker.evaluate(reading) for reading in report.readings]

    if args.format == "json":
        print(json.dumps(
            {
                "rows": report.total_rows,
                "malformed": report.malformed,
                "results": [r.to_dict() for r in results],
            },
            indent=2,
        ))
        return 0

    for r in results:
        print(f"{r.sensor_id:<20} {r.severity.value:<11} p={r.probability:.3f}  {' • '.join(r.reasons)}")
    counts = Counter(r.severity.value for r in results)
    summary = "  ".join(f"{name}={n}" for name, n in sorted(counts.items()))
    print()
    print(f"Scored {len(results)} rows ({report.malformed} malformed skipped)  {summary}")
    return 0


def cmd_events(args: argparse.Namespace) -> int:
    """Execute the events command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    store = EventStore(args.db or settings.event_db_path)
    entries = store.fetch_latest(limit=args.limit)
    if not entries:
        print("No events recorded.")
        return 0
    for e in entries:
        print(f"{e.timestamp.isoformat()}  {e.kind.value:<9} {e.sensor_id:<20} {e.message}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Execute the version command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    print(f"SensorGuard v{__version__}")
    print("Telemetry sensor risk monitor")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    parser = create_parser()
    args = parser.parse_args(argv)

    # Route to command handler
    if args.command == "stream":
        return cmd_stream(args)
    elif args.command == "score":
        return cmd_score(args)
    elif args.command == "events":
        return cmd_events(args)
    elif args.command == "version":
        return cmd_version(args)
    else:
        # No command specified
        parser.print_help()
        return 0


def cli_entry() -> None:
    """Console script entry point for setuptools."""
    sys.exit(main())


if __name__ == "__main__":
    cli_entry()

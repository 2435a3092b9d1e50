"""Main entry point for the market events tracker."""
import argparse
import asyncio
import json
import logging
import signal
import sys
from datetime import datetime, timezone

from market_events.core.config import load_config, ConfigError
from market_events.core.event_store import StorageError
from market_events.core.orchestrator import Orchestrator
from market_events.models import ErrorKind

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BAD_REQUEST = 2
EXIT_NOT_FOUND = 3

_OVERLAY_OPTIONS = {
    "total_implied_vol": "totalImpliedVol",
    "clean_implied_vol": "cleanImpliedVol",
    "dirty_volume": "dirtyVolume",
    "vol": "vol",
}


def _parse_date(value: str) -> datetime:
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r} (expected YYYY-MM-DD)") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="python -m market_events",
        description="Market events tracker - reconcile macro and corporate events per instrument",
    )

    parser.add_argument(
        "-c", "--config",
        default="config/default.yaml",
        help="Path to configuration file (default: config/default.yaml)",
    )

    parser.add_argument(
        "-l", "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="Run one reconciliation")
    ingest.add_argument("--ticker", help="Only ingest events for this ticker")

    watch = commands.add_parser("watch", help="Run full reconciliation periodically")
    watch.add_argument("--interval-hours", type=float, help="Override ingestion.interval_hours")

    list_cmd = commands.add_parser("list", help="Print stored events as JSON")
    list_cmd.add_argument("--ticker", help="Only events for this ticker")
    list_cmd.add_argument("--start", type=_parse_date, help="Earliest event date (inclusive)")
    list_cmd.add_argument("--end", type=_parse_date, help="Latest event date (inclusive)")

    overlay = commands.add_parser("overlay", help="Set analyst overlay values on an event")
    overlay.add_argument("id", help="Event id")
    for dest in _OVERLAY_OPTIONS:
        overlay.add_argument(f"--{dest.replace('_', '-')}", dest=dest, type=float)

    return parser.parse_args(args)


def setup_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=getattr(logging, level),
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from external libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


async def run_command(orchestrator: Orchestrator, args: argparse.Namespace) -> int:
    """Execute a parsed command against a started orchestrator."""
    if args.command == "ingest":
        report = await orchestrator.ingest(args.ticker)
        if report.skipped:
            logger.warning(f"Ingestion skipped: {report.skipped_reason}")
        return EXIT_OK

    if args.command == "watch":
        await orchestrator.run_periodic(args.interval_hours)
        return EXIT_OK

    if args.command == "list":
        events = await orchestrator.query.list_events(args.ticker, args.start, args.end)
        print(json.dumps({"events": [e.to_dict() for e in events]}, indent=2, default=str))
        return EXIT_OK

    if args.command == "overlay":
        fields = {
            wire: getattr(args, dest)
            for dest, wire in _OVERLAY_OPTIONS.items()
            if getattr(args, dest) is not None
        }
        result = await orchestrator.query.apply_overlay(args.id, fields)
        if not result.ok:
            logger.error(f"Overlay rejected: {result.error.message}")
            if result.error.kind is ErrorKind.INVALID_INPUT:
                return EXIT_BAD_REQUEST
            if result.error.kind is ErrorKind.NOT_FOUND:
                return EXIT_NOT_FOUND
            return EXIT_ERROR
        print(json.dumps({"event": result.value.to_dict()}, indent=2, default=str))
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


async def _main_async(orchestrator: Orchestrator, args: argparse.Namespace) -> int:
    if args.command == "watch":
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, orchestrator.request_stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or loop
                pass

    async with orchestrator:
        return await run_command(orchestrator, args)


def main(args: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 success, 1 error, 2 bad request, 3 not found)
    """
    parsed_args = parse_args(args)

    setup_logging(parsed_args.log_level)

    logger.info(f"Market events tracker starting ({parsed_args.command})...")
    logger.info(f"Config: {parsed_args.config}")

    try:
        config = load_config(parsed_args.config)
        orchestrator = Orchestrator(config)
        return asyncio.run(_main_async(orchestrator, parsed_args))

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ERROR

    except StorageError as e:
        logger.error(f"Storage error: {e}")
        return EXIT_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_OK

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())

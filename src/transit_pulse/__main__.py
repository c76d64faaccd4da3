"""Command-line entry point: run the route status pulse once."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Sequence

from transit_pulse.config import Settings, get_settings
from transit_pulse.logging import get_logger, setup_logging
from transit_pulse.services.pulse.builder import PulseBuilder

logger = get_logger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="transit-pulse",
        description="Build route_status.json from static GTFS and GTFS-RT feeds.",
    )
    parser.add_argument(
        "--static-dir",
        type=Path,
        help="Directory holding routes.txt, trips.txt, stops.txt and optional .pb feeds.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Where to write the pulse JSON (default: PULSE_OUTPUT_FILE).",
    )
    parser.add_argument(
        "--trip-updates-url",
        help="Remote trip updates feed, used when no local tripupdates.pb exists.",
    )
    parser.add_argument(
        "--alerts-url",
        help="Remote service alerts feed, used when no local alerts.pb exists.",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level override (default: PULSE_LOG_LEVEL).",
    )
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    """Apply command-line overrides on top of environment settings."""
    settings = base.with_static_dir(args.static_dir) if args.static_dir else base
    overrides: dict[str, Any] = {}
    if args.output:
        overrides["output_file"] = args.output
    if args.trip_updates_url:
        overrides["trip_updates_url"] = args.trip_updates_url
    if args.alerts_url:
        overrides["alerts_url"] = args.alerts_url
    return settings.model_copy(update=overrides) if overrides else settings


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    settings = settings_from_args(args, get_settings())

    result = asyncio.run(PulseBuilder(settings).run())
    if not result.ok:
        logger.error("Pulse run degraded", error=result.error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

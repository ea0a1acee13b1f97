"""Command-line entrypoint for batch jobs."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from dataclasses import replace

from jobs.config import (
    DEFAULT_FEEDS,
    FeedConfigError,
    parse_granularity,
    parse_region,
    settings_from_env,
)
from jobs.load_all import load_all_async
from jobs.load_all import main as run_load_all
from pipelines.analytics import MONTHLY_WINDOW, WEEKLY_WINDOW, recent_window
from pipelines.model import Granularity, Region
from storage.exports import ALLOWED_FORMATS, export_records


def _format_region(region: Region) -> str:
    weekly = DEFAULT_FEEDS.get((region, Granularity.WEEKLY), "(none)")
    monthly = DEFAULT_FEEDS.get((region, Granularity.MONTHLY), "(none)")
    return f"{region.value}:\n  weekly={weekly}\n  monthly={monthly}"


def _run_export(args: argparse.Namespace) -> int:
    granularity = parse_granularity(args.granularity)
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    state = asyncio.run(load_all_async())
    records = list(state.records(granularity))
    if args.recent:
        size = WEEKLY_WINDOW if granularity is Granularity.WEEKLY else MONTHLY_WINDOW
        records = recent_window(records, size)
    path = export_records(records, granularity, args.output, fmt=args.format)
    print(f"Wrote {len(records)} {granularity.value} records to {path}")
    return 1 if state.error else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Regional market feeds job runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    load_parser = subparsers.add_parser(
        "load", help="Fetch every regional feed and log the latest period per region"
    )
    load_parser.add_argument(
        "--priority-region",
        help="Region fetched before all others (defaults to PRIORITY_REGION or Kingston)",
    )

    export_parser = subparsers.add_parser(
        "export", help="Fetch every regional feed and write one granularity to a file"
    )
    export_parser.add_argument("granularity", help="weekly or monthly")
    export_parser.add_argument("output", help="Destination file path")
    export_parser.add_argument(
        "--format", default="csv", choices=sorted(ALLOWED_FORMATS), help="Output format"
    )
    export_parser.add_argument(
        "--recent",
        action="store_true",
        help="Only export the recent window (52 weeks or 24 months)",
    )

    for sub in (load_parser, export_parser):
        sub.add_argument(
            "--log-level",
            help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
        )

    subparsers.add_parser("list-regions", help="Show configured regions and feed URLs")

    args = parser.parse_args(argv)

    if args.command == "list-regions":
        for region in Region:
            print(_format_region(region))
        return 0

    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level

    try:
        if args.command == "load":
            settings = settings_from_env()
            if args.priority_region:
                settings = replace(settings, priority_region=parse_region(args.priority_region))
            return run_load_all(settings)

        if args.command == "export":
            return _run_export(args)
    except FeedConfigError as exc:
        raise SystemExit(str(exc)) from exc

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

"""Command-line entry for occurrence_lite.

Reads an ICS file, builds the occurrence table for a window and prints one
line per occurrence (or JSON rows with ``--json``).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Any, NoReturn, Optional

from .config_loader import Config, load_config
from .lite_datetime_utils import ensure_timezone_aware, resolve_timezone
from .lite_exceptions import LiteDocumentError
from .lite_ics_reader import LiteICSReader
from .lite_logging import configure_lite_logging
from .lite_occurrence_table import LiteOccurrenceTable, LiteOccurrenceTableBuilder

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for occurrence_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="occurrence_lite",
        description="Occurrence Lite - expand ICS recurrences into an occurrence table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m occurrence_lite calendar.ics                         # Next 30 days
  python -m occurrence_lite calendar.ics --days 7 --tz Europe/Berlin
  python -m occurrence_lite calendar.ics --start 2025-01-01 --end 2025-02-01 --json
        """,
    )

    parser.add_argument("ics_file", type=Path, help="Path to the ICS document")
    parser.add_argument("--start", metavar="ISO", help="Window start (default: now minus lookback_days)")
    parser.add_argument("--end", metavar="ISO", help="Window end (default: start plus --days)")
    parser.add_argument("--days", type=int, metavar="N", help="Window length in days (default: window_days)")
    parser.add_argument("--config", type=Path, metavar="PATH", help="YAML/JSON config file")
    parser.add_argument("--tz", metavar="ZONE", help="Zone for floating and all-day values")
    parser.add_argument("--json", action="store_true", help="Print rows as JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser


def _parse_window_bound(value: str, zone: tzinfo) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid window bound {value!r}: {e}") from e
    return ensure_timezone_aware(parsed, zone)


def resolve_window(args: argparse.Namespace, config: Config, zone: tzinfo, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Work out the expansion window from CLI arguments and config defaults."""
    days = args.days if args.days is not None else config.window_days
    if args.start:
        window_start = _parse_window_bound(args.start, zone)
    else:
        window_start = (now or datetime.now(UTC)) - timedelta(days=config.lookback_days)
    if args.end:
        window_end = _parse_window_bound(args.end, zone)
    else:
        window_end = window_start + timedelta(days=days)
    return window_start, window_end


def _print_table(table: LiteOccurrenceTable, as_json: bool) -> None:
    if as_json:
        payload: dict[str, Any] = {
            "window_start": table.window_start.isoformat(),
            "window_end": table.window_end.isoformat(),
            "occurrences": table.to_rows(),
            "discarded": [d.model_dump() for d in table.discarded],
            "warnings": table.warnings,
        }
        print(json.dumps(payload, indent=2, default=str))
        return

    for instance in table.sorted_instances():
        marker = instance.recurrence_marker or "-"
        print(f"{instance.start.isoformat()}  {instance.end.isoformat()}  {instance.uid}  {marker}  {instance.summary}")
    for discarded in table.discarded:
        print(
            f"discarded {discarded.phase} #{discarded.position} {discarded.uid}: "
            f"{discarded.error_type}: {discarded.reason}",
            file=sys.stderr,
        )


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the occurrence_lite CLI.

    Exits 1 when the document cannot be read and 2 on bad arguments.
    Per-event failures are reported but do not change the exit status.
    """
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        zone = resolve_timezone(args.tz) if args.tz else config.zone
    except ValueError as e:
        parser.error(str(e))

    configure_lite_logging(debug_mode=args.debug, log_level=config.log_level)

    try:
        window_start, window_end = resolve_window(args, config, zone)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    try:
        content = args.ics_file.read_bytes()
    except OSError as e:
        logger.error("Cannot read %s: %s", args.ics_file, e)
        sys.exit(1)

    try:
        result = LiteICSReader().read(content)
    except LiteDocumentError as e:
        logger.error("Cannot parse %s: %s", args.ics_file, e)
        sys.exit(1)

    builder = LiteOccurrenceTableBuilder(default_tz=zone, **config.parser_options())
    table = builder.build(result.recurring_events, result.single_events, window_start, window_end)
    logger.info(
        "%d occurrences between %s and %s (%d discarded)",
        len(table),
        window_start.isoformat(),
        window_end.isoformat(),
        len(table.discarded),
    )

    _print_table(table, args.json)
    sys.exit(0)


if __name__ == "__main__":
    main()

"""Command-line entry for calendarslots.

This module provides a small CLI around run_expand(): it reads an event
document, expands its recurrence and prints the resulting slots as JSON.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import NoReturn, Optional

from pydantic import ValidationError

from . import run_expand
from .calendar.slot_exceptions import SlotExpansionError


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calendarslots CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendarslots",
        description="calendarslots - expand recurring calendar events into slots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendarslots expand event.json                  # Print slots (UTC)
  python -m calendarslots expand event.json --local          # Print slots in local time
  python -m calendarslots expand event.json --store slots.json
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    expand = subparsers.add_parser("expand", help="Expand an event document into slots")
    expand.add_argument("event_file", metavar="EVENT.json", help="Day or timed event document")
    expand.add_argument(
        "--store",
        metavar="PATH",
        help="JSON slot store to regenerate the event's slots in "
        "(default: CALENDARSLOTS_STORE_PATH env var, otherwise in-memory only)",
    )
    expand.add_argument(
        "--local",
        action="store_true",
        help="Render timed slots in the zones they were authored in instead of UTC",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """Run the calendarslots CLI.

    Exit codes: 0 on success, 1 for an unreadable or invalid event document,
    2 for expansion or storage failures.
    """
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        slots = run_expand(args)
    except SlotExpansionError as exc:
        print(f"Expansion failed: {exc}", file=sys.stderr)
        sys.exit(2)
    except (OSError, ValueError, ValidationError) as exc:
        print(f"Invalid event document {args.event_file}: {exc}", file=sys.stderr)
        sys.exit(1)

    json.dump(slots, sys.stdout, indent=2)
    sys.stdout.write("\n")
    sys.exit(0)


if __name__ == "__main__":
    main()

"""Check which teachers can take a lesson, against the live dashboard API.

Standalone diagnostic script: loads teachers, bookings and availability for
one date, resolves busy/unavailable teachers for the given time range and
prints a table or JSON. Read-only; nothing is written to the API.

Run with: python scripts/check_conflicts.py --date 2024-06-10 --start 09:00 --end 10:00
Editing:  python scripts/check_conflicts.py --date 2024-06-10 --start 9:00 --end 10:00 --exclude 123
Grid:     python scripts/check_conflicts.py --date 2024-06-10 --clusters
JSON:     python scripts/check_conflicts.py --date 2024-06-10 --start 09:00 --end 10:00 --json

Exit codes:
  0 = success (table or JSON on stdout)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import os
import sys
from collections import defaultdict

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.scheduling.client import ApiClient  # noqa: E402
from src.scheduling.clustering import cluster  # noqa: E402
from src.scheduling.config import get_config  # noqa: E402
from src.scheduling.intervals import parse_interval  # noqa: E402
from src.scheduling.logging import setup_logging_from_config  # noqa: E402
from src.scheduling.normalize import parse_date  # noqa: E402
from src.scheduling.resolver import ConflictResolver, Resolution  # noqa: E402
from src.scheduling.store import ScheduleDataStore  # noqa: E402


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Resolve busy/unavailable teachers for a lesson slot.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--date", required=True, help="Lesson date (YYYY-MM-DD).")
    parser.add_argument("--start", help="Start time (e.g. 09:00, 9：00, 9点00分).")
    parser.add_argument("--end", help="End time.")
    parser.add_argument(
        "--exclude",
        help="Booking id being edited (does not conflict with itself).",
    )

    output_group = parser.add_mutually_exclusive_group()
    output_group.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of a table.",
    )
    output_group.add_argument(
        "--clusters",
        action="store_true",
        help="Print the day's bookings grouped per teacher into overlap clusters.",
    )
    return parser.parse_args()


def _format_table(resolution: Resolution) -> str:
    """Format a resolution as a table.

    Columns: Teacher | Tier | State
    """
    if not resolution.candidates:
        return "(no teachers)"

    headers = ["Teacher", "Tier", "State"]
    rows = []
    for r in resolution.candidates:
        states = []
        if r.id in resolution.busy:
            states.append("busy")
        if r.id in resolution.unavailable:
            states.append("unavailable")
        if r.id == resolution.default_pick:
            states.append("default")
        name = r.name + (" (paused)" if r.is_paused else "")
        rows.append([name, r.restriction_tier.value, ", ".join(states) or "free"])

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    lines = [" | ".join(h.ljust(w) for h, w in zip(headers, widths))]
    lines.append("-+-".join("-" * w for w in widths))
    for row in rows:
        lines.append(" | ".join(cell.ljust(w) for cell, w in zip(row, widths)))
    return "\n".join(lines)


async def _print_clusters(store: ScheduleDataStore, date: str) -> None:
    bookings = await store.get_bookings(date, date)
    by_teacher = defaultdict(list)
    for record in bookings:
        by_teacher[record.resource_name or str(record.resource_id)].append(record)

    for teacher, records in sorted(by_teacher.items()):
        print(teacher)
        for group in cluster(records):
            people = ", ".join(f"{r.counterparty_name or '-'} ({r.type_label})" for r in group.records)
            where = " / ".join(group.locations) or "-"
            print(f"  {group.time_label or 'time unknown'}  {people}  @ {where}")


async def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging_from_config(config)

    date = parse_date(args.date, config.display_timezone)
    if date is None:
        raise ValueError(f"invalid --date {args.date!r}")

    async with ApiClient(config) as client:
        store = ScheduleDataStore(client, config)
        if args.clusters:
            await _print_clusters(store, date)
            return

        interval = parse_interval(args.start, args.end)
        if interval is None:
            _log(f"  Time range {args.start!r}-{args.end!r} not understood; nothing is blocked")

        resolver = ConflictResolver.from_config(store, config)
        resolution = await resolver.resolve(date, interval, args.exclude)
        for notice in store.notices.active():
            _log(f"  [WARNING] {notice.message}")

        if args.json:
            print(json.dumps(resolution.model_dump(mode="json"), indent=2, ensure_ascii=False))
        else:
            print(_format_table(resolution))

    _log("check_conflicts: done")


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

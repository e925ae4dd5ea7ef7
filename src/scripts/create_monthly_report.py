#!/usr/bin/env python3
"""
Create the monthly calendar summary spreadsheet from MS365 calendars.

Reads last month's events from every calendar matching CALENDAR_NAME_FILTER
and writes one sheet per calendar with hours, inclusion checkboxes and a
total formula. Meant to be run by the monthly schedule (see schedule.py) or
by hand.

Usage:
    uv run python src/scripts/create_monthly_report.py
    uv run python src/scripts/create_monthly_report.py --start 2024-02-01 --end 2024-03-01
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Settings
from core.database import create_schema, get_connection
from models.events import DateRange
from services.email import send_error_email
from services.generation import build_context, generate, generate_for_window

logger = logging.getLogger(__name__)


def parse_window(start: str | None, end: str | None, timezone: str) -> DateRange | None:
    """Explicit window from YYYY-MM-DD arguments, or None for last month."""
    if not start and not end:
        return None
    if not (start and end):
        raise SystemExit("--start and --end must be given together")
    tz = ZoneInfo(timezone)
    return DateRange(
        start=datetime.strptime(start, "%Y-%m-%d").replace(tzinfo=tz),
        end=datetime.strptime(end, "%Y-%m-%d").replace(tzinfo=tz),
    )


async def main(window: DateRange | None = None, now: datetime | None = None):
    """Main entry point for the monthly summary."""
    settings = Settings.from_env()
    conn = get_connection(settings.db_path)
    try:
        create_schema(conn)
        ctx = build_context(settings, conn)

        if window is None:
            result = await generate(ctx, now)
        else:
            result = await generate_for_window(window, ctx)

        print(f"\nCreated document: {result.document.path} (ID: {result.document.id})")
        print(f"Sheets: {', '.join(result.sheet_names) or '(none)'}")
        print(f"Timed events: {result.total_events}")
        print("\nDone!")

    except Exception as e:
        logger.exception("Generation failed: %s", e)
        await send_error_email(settings, e)
        raise
    finally:
        conn.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Generate the monthly calendar summary")
    parser.add_argument("--start", help="Window start (YYYY-MM-DD). Defaults to last month.")
    parser.add_argument("--end", help="Window end, exclusive (YYYY-MM-DD).")
    parser.add_argument("--now", help="Reference date for 'last month' (YYYY-MM-DD). Defaults to today.")
    args = parser.parse_args()

    timezone = Settings.from_env().timezone
    now = datetime.strptime(args.now, "%Y-%m-%d") if args.now else None

    try:
        asyncio.run(main(parse_window(args.start, args.end, timezone), now))
    except Exception:
        sys.exit(1)

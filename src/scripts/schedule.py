#!/usr/bin/env python3
"""
Install or run the monthly generation trigger.

`install` registers the monthly trigger (replacing any previous one). `run`
fires it when this month's fire time has passed; call it from cron, e.g.
hourly.

Usage:
    uv run python src/scripts/schedule.py install --day 1 --hour 0
    uv run python src/scripts/schedule.py run
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Settings
from core.database import create_schema, get_connection
from services.email import send_error_email
from services.generation import build_context, run_due_triggers
from services.triggers import TriggerRegistry, install_schedule

logger = logging.getLogger(__name__)


def install(settings: Settings, day: int, hour: int):
    conn = get_connection(settings.db_path)
    try:
        create_schema(conn)
        trigger = install_schedule(TriggerRegistry(conn), day, hour)
        print(f"Installed monthly trigger {trigger.id} (day {day}, {hour:02d}:00 {settings.timezone})")
    finally:
        conn.close()


async def run(settings: Settings):
    conn = get_connection(settings.db_path)
    try:
        create_schema(conn)
        results = await run_due_triggers(build_context(settings, conn))
        for result in results:
            print(f"Created document: {result.document.path} (ID: {result.document.id})")
        if not results:
            print("No trigger due")
    except Exception as e:
        logger.exception("Scheduled generation failed: %s", e)
        await send_error_email(settings, e)
        raise
    finally:
        conn.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Monthly generation schedule")
    subparsers = parser.add_subparsers(dest="command", required=True)
    install_parser = subparsers.add_parser("install", help="Register the monthly trigger")
    install_parser.add_argument("--day", type=int, default=None, help="Day of month (default: DATE_RANGE_DAY)")
    install_parser.add_argument("--hour", type=int, default=0, help="Hour of day (0-23)")
    subparsers.add_parser("run", help="Fire the monthly trigger if it is due")
    args = parser.parse_args()

    settings = Settings.from_env()
    if args.command == "install":
        install(settings, args.day or settings.anchor_day, args.hour)
    else:
        try:
            asyncio.run(run(settings))
        except Exception:
            sys.exit(1)

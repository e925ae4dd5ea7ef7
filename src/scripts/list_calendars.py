#!/usr/bin/env python3
"""
List the configured user's calendars and whether CALENDAR_NAME_FILTER selects them.

Usage:
    uv run python src/scripts/list_calendars.py
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Settings
from core.selection import select_calendars
from services.calendar import GraphCalendarService


async def main():
    """List all calendars and mark the selected ones."""
    settings = Settings.from_env()
    service = GraphCalendarService(settings)

    print(f"Fetching calendars of {settings.calendar_user_id}...\n")
    calendars = await service.list_calendars()
    selected = {c.id for c in select_calendars(calendars, settings.calendar_name_filter)}

    print(f"Found {len(calendars)} calendars (filter: {settings.calendar_name_filter or 'none'})\n")
    print("=" * 80)

    for cal in calendars:
        mark = "x" if cal.id in selected else " "
        print(f"[{mark}] {cal.display_name}")
        print(f"      ID: {cal.id}")

    print("-" * 80)
    print(f"\n{len(selected)} calendar(s) selected. Done!")


if __name__ == "__main__":
    asyncio.run(main())

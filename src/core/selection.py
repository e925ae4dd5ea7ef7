"""
Calendar name filtering.
"""

import re

from models.events import CalendarRecord

MATCH_ALL = ".*"


def select_calendars(calendars: list[CalendarRecord], name_pattern: str | None) -> list[CalendarRecord]:
    """
    Keep calendars whose display name matches `name_pattern` (case-insensitive).

    An unset or empty pattern matches everything. Input order is preserved.
    """
    matcher = re.compile(name_pattern or MATCH_ALL, re.IGNORECASE)
    return [c for c in calendars if matcher.search(c.display_name)]

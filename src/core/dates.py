"""
Generation window arithmetic.
"""

import calendar
from datetime import datetime
from zoneinfo import ZoneInfo

from models.events import DateRange


def _anchor_midnight(year: int, month: int, anchor_day: int, tz) -> datetime:
    """Anchor day of the given month at local midnight, clamped to month end."""
    _, last_day = calendar.monthrange(year, month)
    return datetime(year, month, min(anchor_day, last_day), tzinfo=tz)


def compute_last_month_window(anchor_day: int, now: datetime, timezone: str = "UTC") -> DateRange:
    """
    Calculate the [start, end) window for "last month".

    Args:
        anchor_day: Day of month used for both boundaries (1-31).
        now: Reference instant. Naive values are read in `timezone`.
        timezone: IANA zone name the boundaries are computed in.

    Returns:
        DateRange from the anchor day of the previous month to the anchor day
        of now's month, both at local midnight.
    """
    tz = ZoneInfo(timezone)
    local_now = now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)

    end = _anchor_midnight(local_now.year, local_now.month, anchor_day, tz)

    if local_now.month == 1:
        start = _anchor_midnight(local_now.year - 1, 12, anchor_day, tz)
    else:
        start = _anchor_midnight(local_now.year, local_now.month - 1, anchor_day, tz)

    return DateRange(start=start, end=end)


def format_window_label(window: DateRange) -> str:
    """Human-readable window, e.g. '2024-02-01 - 2024-03-01'."""
    return f"{window.start:%Y-%m-%d} - {window.end:%Y-%m-%d}"

"""
Event to spreadsheet row aggregation.
"""

from zoneinfo import ZoneInfo

from core.config import DATE_LABEL_FORMAT, TIME_LABEL_FORMAT
from models.events import CalendarRecord, CalendarSheetData, EventRow, RawEvent

# Spreadsheet columns for the hours and inclusion values
HOURS_COLUMN = "D"
INCLUSION_COLUMN = "E"
FIRST_DATA_ROW = 2


def event_duration_hours(event: RawEvent) -> float:
    """Duration in hours; events never end before they start."""
    return (event.end - event.start).total_seconds() / 3600


def build_total_formula(row_count: int) -> str:
    """
    Sum of hours for ticked rows over exactly the data rows.

    With no data rows the sum is empty, so the formula is a constant zero;
    a reversed range like D2:D1 would take in the header and the total cell.
    """
    if row_count == 0:
        return "=0"
    last_row = FIRST_DATA_ROW + row_count - 1
    hours = f"{HOURS_COLUMN}{FIRST_DATA_ROW}:{HOURS_COLUMN}{last_row}"
    included = f"{INCLUSION_COLUMN}{FIRST_DATA_ROW}:{INCLUSION_COLUMN}{last_row}"
    return f"=SUMPRODUCT({hours},--({included}=TRUE))"


def build_event_row(event: RawEvent, timezone: str = "UTC") -> EventRow:
    """Convert a timed event into a row with 24-hour labels in `timezone`."""
    tz = ZoneInfo(timezone)
    start = event.start.astimezone(tz)
    end = event.end.astimezone(tz)
    return EventRow(
        date_label=start.strftime(DATE_LABEL_FORMAT),
        time_range_label=f"{start.strftime(TIME_LABEL_FORMAT)}-{end.strftime(TIME_LABEL_FORMAT)}",
        title=event.title,
        duration_hours=event_duration_hours(event),
    )


def build_calendar_sheet_data(
    calendar: CalendarRecord, events: list[RawEvent], timezone: str = "UTC"
) -> CalendarSheetData:
    """
    Build the rows of one calendar sheet.

    All-day events are dropped; everything else keeps the source order.
    """
    rows = [build_event_row(e, timezone) for e in events if not e.is_all_day]
    return CalendarSheetData(
        calendar=calendar,
        rows=rows,
        total_formula=build_total_formula(len(rows)),
    )

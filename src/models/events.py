"""
Data models for calendars, events and generated documents.

Frozen dataclasses for values that must not change during a run; the
sheet data is built once and handed straight to the document builder.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class DateRange:
    """Half-open generation window [start, end)."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if not self.start < self.end:
            raise ValueError(
                f"Window start must be before end, got {self.start} >= {self.end}"
            )


@dataclass(frozen=True)
class CalendarRecord:
    """One source calendar, owned by the calendar service."""

    id: str
    display_name: str


@dataclass(frozen=True)
class RawEvent:
    """Calendar event as returned by the calendar service."""

    title: str
    start: datetime
    end: datetime
    is_all_day: bool = False


@dataclass
class EventRow:
    """One spreadsheet row derived from a timed event."""

    date_label: str
    time_range_label: str
    title: str
    duration_hours: float
    include_in_total: bool = True

    def as_cells(self) -> list:
        return [
            self.date_label,
            self.time_range_label,
            self.title,
            self.duration_hours,
            self.include_in_total,
        ]


@dataclass
class CalendarSheetData:
    """Rows for one calendar sheet plus the trailing total formula."""

    calendar: CalendarRecord
    rows: list[EventRow] = field(default_factory=list)
    total_formula: str = "=0"

    @property
    def total_hours(self) -> float:
        """Hours the total formula evaluates to for untouched checkboxes."""
        return sum(r.duration_hours for r in self.rows if r.include_in_total)


@dataclass(frozen=True)
class Folder:
    """Storage folder; `id` is the path relative to the storage root."""

    id: str
    path: Path


@dataclass(frozen=True)
class Document:
    """Stored spreadsheet document."""

    id: str
    name: str
    path: Path


@dataclass
class GeneratedDocument:
    """Result of one generation run."""

    document: Document
    window: DateRange
    sheet_names: list[str]
    generated_at: datetime
    total_events: int = 0


@dataclass(frozen=True)
class Trigger:
    """Registered trigger row."""

    id: str
    handler: str
    event_type: str  # "on_open" or "monthly"
    source_id: str | None = None
    day_of_month: int | None = None
    hour: int | None = None
    last_fired_at: str | None = None


@dataclass(frozen=True)
class RegenerateMenu:
    """Menu offered when a document is opened; choosing the item replays it."""

    document_id: str
    title: str
    item: str
    window: DateRange | None = None  # persisted window, None if unreadable

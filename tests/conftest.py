"""
Pytest configuration and shared fixtures.
"""

import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.config import Settings
from core.database import create_schema, get_connection
from models.events import CalendarRecord, RawEvent
from services.generation import build_context
from services.storage import DocumentStore
from services.triggers import TriggerRegistry

UTC = ZoneInfo("UTC")


def at(*args) -> datetime:
    """Aware UTC datetime shorthand."""
    return datetime(*args, tzinfo=UTC)


class FakeCalendarService:
    """In-memory calendar service returning events that overlap the window."""

    def __init__(self, calendars=None, events=None):
        self.calendars = calendars or []
        self.events = events or {}
        self.requested_windows = []

    async def list_calendars(self):
        return list(self.calendars)

    async def list_events(self, calendar_id, window):
        self.requested_windows.append((calendar_id, window))
        return [
            e for e in self.events.get(calendar_id, [])
            if e.start < window.end and e.end > window.start
        ]


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary database and output directory."""
    return Settings(
        output_dir=tmp_path / "output",
        db_path=tmp_path / "calendar-summary.db",
        timezone="UTC",
        api_key="test-key",
    )


@pytest.fixture
def conn(settings):
    connection = get_connection(settings.db_path)
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def store(settings, conn):
    return DocumentStore(settings, conn)


@pytest.fixture
def registry(conn):
    return TriggerRegistry(conn)


@pytest.fixture
def work_calendar():
    return CalendarRecord(id="cal-work", display_name="Work")


@pytest.fixture
def personal_calendar():
    return CalendarRecord(id="cal-personal", display_name="Personal (shared)")


@pytest.fixture
def calendar_service(work_calendar, personal_calendar):
    """Two calendars; Work has one timed event and one all-day event in February 2024."""
    return FakeCalendarService(
        calendars=[work_calendar, personal_calendar],
        events={
            "cal-work": [
                RawEvent(title="Client Call", start=at(2024, 2, 10, 10), end=at(2024, 2, 10, 12)),
                RawEvent(title="Holiday", start=at(2024, 2, 19), end=at(2024, 2, 20), is_all_day=True),
            ],
            "cal-personal": [
                RawEvent(title="Dentist", start=at(2024, 2, 12, 9), end=at(2024, 2, 12, 10)),
            ],
        },
    )


@pytest.fixture
def make_context(settings, conn, calendar_service):
    """Build a generation context, optionally with different settings."""

    def _make(**overrides):
        effective = settings.model_copy(update=overrides) if overrides else settings
        return build_context(effective, conn, calendars=calendar_service)

    return _make

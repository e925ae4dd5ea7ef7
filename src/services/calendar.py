"""
Calendar listing and event fetching from MS Graph.
"""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from msgraph.generated.users.item.calendars.item.calendar_view.calendar_view_request_builder import (
    CalendarViewRequestBuilder,
)

from core.config import Settings
from core.graph_client import get_graph_client
from models.events import CalendarRecord, DateRange, RawEvent

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class CalendarError(Exception):
    """Raised when a calendar service call fails."""


def parse_graph_datetime(value: str, tz: ZoneInfo) -> datetime:
    """
    Parse a Graph dateTime string ('2024-02-10T10:00:00.0000000') in `tz`.

    Graph returns seven fractional digits, which fromisoformat does not
    accept on every Python version, so the fraction is dropped.
    """
    head, _, _ = value.replace("Z", "").partition(".")
    return datetime.fromisoformat(head).replace(tzinfo=tz)


def parse_event(event, tz: ZoneInfo) -> RawEvent:
    """Parse MS Graph event into our format."""
    start = parse_graph_datetime(event.start.date_time, tz)
    end = parse_graph_datetime(event.end.date_time, tz)
    return RawEvent(
        title=event.subject or "",
        start=start,
        end=end,
        is_all_day=bool(event.is_all_day),
    )


def _to_utc_string(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GraphCalendarService:
    """Calendars of one MS365 user, read through MS Graph."""

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self.user_id = settings.calendar_user_id
        self.tz = ZoneInfo(settings.timezone)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_graph_client(self.settings)
        return self._client

    async def list_calendars(self) -> list[CalendarRecord]:
        """List every calendar of the configured user."""
        try:
            response = await self.client.users.by_user_id(self.user_id).calendars.get()
        except Exception as e:
            raise CalendarError(f"Failed to list calendars for {self.user_id}: {e}") from e

        calendars = response.value if response and response.value else []
        return [CalendarRecord(id=c.id, display_name=c.name or "") for c in calendars]

    async def list_events(self, calendar_id: str, window: DateRange) -> list[RawEvent]:
        """
        Fetch all events overlapping `window`, following @odata.nextLink pages.

        Events come back in the calendar view's start-time order.
        """
        query_params = CalendarViewRequestBuilder.CalendarViewRequestBuilderGetQueryParameters(
            start_date_time=_to_utc_string(window.start),
            end_date_time=_to_utc_string(window.end),
            orderby=["start/dateTime"],
            top=PAGE_SIZE,
        )
        config = CalendarViewRequestBuilder.CalendarViewRequestBuilderGetRequestConfiguration(
            query_parameters=query_params,
            headers={"Prefer": f'outlook.timezone="{self.settings.timezone}"'},
        )
        view = (
            self.client.users.by_user_id(self.user_id)
            .calendars.by_calendar_id(calendar_id)
            .calendar_view
        )

        events = []
        try:
            response = await view.get(request_configuration=config)
            while response is not None:
                for event in response.value or []:
                    events.append(parse_event(event, self.tz))
                if not response.odata_next_link:
                    break
                response = await view.with_url(response.odata_next_link).get()
        except Exception as e:
            raise CalendarError(f"Failed to fetch events for calendar {calendar_id}: {e}") from e

        return events

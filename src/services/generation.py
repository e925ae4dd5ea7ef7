"""
Generation pipeline and trigger handlers.

Fetches the selected calendars' events for a window, builds the summary
document, and dispatches fired triggers (document opened, monthly schedule)
to their handlers.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from core.config import APP_MENU_TITLE, MENU_HANDLER, REGENERATE_MENU_ITEM, SCHEDULE_HANDLER, Settings
from core.dates import compute_last_month_window
from core.selection import select_calendars
from models.events import (
    CalendarRecord,
    CalendarSheetData,
    DateRange,
    GeneratedDocument,
    RegenerateMenu,
    Trigger,
)
from services.aggregation import build_calendar_sheet_data
from services.calendar import GraphCalendarService
from services.reports import build_document, document_name, read_persisted_window
from services.storage import DocumentStore
from services.triggers import MONTHLY, TriggerRegistry, is_due, resolve_replay_window

logger = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    """Raised when a document id does not resolve to a live document."""


@dataclass
class GenerationContext:
    """Collaborators of one invocation, built once at entry."""

    settings: Settings
    calendars: object  # GraphCalendarService or any object with the same methods
    store: DocumentStore
    registry: TriggerRegistry


def build_context(settings: Settings, conn, calendars=None) -> GenerationContext:
    """Wire up the Graph calendar service, document store and trigger registry."""
    if calendars is None:
        calendars = GraphCalendarService(settings)
    return GenerationContext(
        settings=settings,
        calendars=calendars,
        store=DocumentStore(settings, conn),
        registry=TriggerRegistry(conn),
    )


@dataclass
class ReplayResult:
    """Outcome of a document regeneration."""

    generated: GeneratedDocument
    exact_window: bool


def _local_now(settings: Settings, now: datetime | None) -> datetime:
    tz = ZoneInfo(settings.timezone)
    if now is None:
        return datetime.now(tz)
    return now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)


async def fetch_calendar_data(
    window: DateRange, ctx: GenerationContext
) -> dict[CalendarRecord, CalendarSheetData]:
    """Select calendars by name and aggregate each one's events in `window`."""
    calendars = await ctx.calendars.list_calendars()
    logger.info("Unfiltered calendar names: %s", ", ".join(c.display_name for c in calendars))

    selected = select_calendars(calendars, ctx.settings.calendar_name_filter)
    logger.info("Filtered calendar names: %s", ", ".join(c.display_name for c in selected))

    data = {}
    for calendar in selected:
        events = await ctx.calendars.list_events(calendar.id, window)
        data[calendar] = build_calendar_sheet_data(calendar, events, ctx.settings.timezone)
        logger.info(
            "  %s: %d event(s), %d timed, %.2f hour(s)",
            calendar.display_name,
            len(events),
            len(data[calendar].rows),
            data[calendar].total_hours,
        )

    logger.info("Fetched events for %d calendar(s)", len(selected))
    return data


async def generate_for_window(
    window: DateRange,
    ctx: GenerationContext,
    document=None,
    generated_at: datetime | None = None,
) -> GeneratedDocument:
    """
    Run the pipeline for an explicit window.

    Passing `document` rewrites that document in place instead of creating
    a new one.
    """
    logger.info(
        "Starting generation for %s - %s (filter=%r, folder=%r)",
        window.start.isoformat(),
        window.end.isoformat(),
        ctx.settings.calendar_name_filter,
        ctx.settings.folder_id,
    )
    data = await fetch_calendar_data(window, ctx)
    folder = ctx.store.get_target_folder(ctx.settings.folder_id)
    # openpyxl and sqlite work runs off the event loop
    return await asyncio.to_thread(
        build_document,
        window,
        data,
        folder,
        ctx.store,
        ctx.registry,
        ctx.settings,
        document,
        generated_at,
    )


async def generate(ctx: GenerationContext, now: datetime | None = None) -> GeneratedDocument:
    """Generate a new document for last month relative to `now`."""
    local_now = _local_now(ctx.settings, now)
    window = compute_last_month_window(ctx.settings.anchor_day, local_now, ctx.settings.timezone)
    return await generate_for_window(window, ctx, generated_at=local_now)


# =============================================================================
# TRIGGER HANDLERS
# =============================================================================



def _live_document(document_id: str, ctx: GenerationContext):
    document = ctx.store.get_document(document_id)
    if document is None or not ctx.store.file_exists(document_id):
        raise DocumentNotFoundError(f"Document {document_id} not found")
    return document


def _read_window(document, ctx: GenerationContext) -> DateRange | None:
    return read_persisted_window(ctx.store.load_workbook(document), ctx.settings.timezone)


async def regenerate_document(
    document_id: str, ctx: GenerationContext, now: datetime | None = None
) -> ReplayResult:
    """
    Regenerate a document for the window it was generated with.

    This is the action behind the regenerate menu item. Documents without a
    usable persisted window fall back to last month relative to `now`, and
    are renamed after that window.
    """
    local_now = _local_now(ctx.settings, now)
    document = _live_document(document_id, ctx)

    logger.info("Regeneration triggered from document: %s", document_id)
    persisted = await asyncio.to_thread(_read_window, document, ctx)
    window, exact = resolve_replay_window(persisted, ctx.settings, local_now)

    if not exact and document.name != document_name(window):
        renamed = ctx.store.rename_document(document, document_name(window))
        logger.warning("Renamed %r to %r to match the recomputed window", document.name, renamed.name)
        document = renamed

    generated = await generate_for_window(window, ctx, document=document, generated_at=local_now)
    return ReplayResult(generated=generated, exact_window=exact)


async def create_regenerate_menu(document_id: str, ctx: GenerationContext) -> RegenerateMenu:
    """
    Offer the regenerate action for an opened document.

    Nothing is written; the user's checkbox edits stay until the action is
    chosen.
    """
    document = _live_document(document_id, ctx)
    window = await asyncio.to_thread(_read_window, document, ctx)
    return RegenerateMenu(
        document_id=document_id,
        title=APP_MENU_TITLE,
        item=REGENERATE_MENU_ITEM,
        window=window,
    )


async def generate_on_schedule(ctx: GenerationContext, now: datetime | None = None) -> GeneratedDocument:
    logger.info("Monthly time trigger")
    return await generate(ctx, now)


async def fire_trigger(trigger: Trigger, ctx: GenerationContext, now: datetime | None = None):
    """Run the handler a trigger is registered for."""
    if trigger.handler == MENU_HANDLER:
        return await create_regenerate_menu(trigger.source_id, ctx)
    if trigger.handler == SCHEDULE_HANDLER:
        return await generate_on_schedule(ctx, now)
    raise ValueError(f"Unknown trigger handler: {trigger.handler}")


async def deliver_open_event(
    document_id: str, ctx: GenerationContext, now: datetime | None = None
) -> list[RegenerateMenu]:
    """
    Deliver a "document opened" event.

    Fires every open trigger bound to the document and returns the menus they
    offer; a document without a trigger gets none.
    """
    if not ctx.store.file_exists(document_id):
        raise DocumentNotFoundError(f"Document {document_id} not found")

    triggers = ctx.registry.open_triggers_for(document_id)
    if not triggers:
        logger.info("No open trigger installed for document %s", document_id)

    results = []
    for trigger in triggers:
        results.append(await fire_trigger(trigger, ctx, now))
    return results


async def run_due_triggers(ctx: GenerationContext, now: datetime | None = None) -> list[GeneratedDocument]:
    """Fire monthly triggers whose fire time has passed this month."""
    local_now = _local_now(ctx.settings, now)
    results = []
    for trigger in ctx.registry.list_triggers(event_type=MONTHLY):
        if not is_due(trigger, local_now, ctx.settings.timezone):
            continue
        ctx.registry.mark_fired(trigger.id, local_now)
        results.append(await fire_trigger(trigger, ctx, local_now))
    return results

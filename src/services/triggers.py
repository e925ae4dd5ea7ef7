"""
Trigger registry and regeneration trigger lifecycle.

A generated document gets exactly one "on open" trigger pointing at the
regeneration handler. Each generation run prunes triggers whose document
is gone, or which point at the document just generated, before installing
the fresh one. The persisted window in the document is the only state the
handler needs when it fires.
"""

import calendar
import logging
import sqlite3
import uuid
from datetime import datetime
from zoneinfo import ZoneInfo

from core.config import MENU_HANDLER, SCHEDULE_HANDLER, Settings
from core.dates import compute_last_month_window
from models.events import DateRange, Document, Trigger

logger = logging.getLogger(__name__)

ON_OPEN = "on_open"
MONTHLY = "monthly"


class TriggerRegistry:
    """Triggers stored in the `triggers` table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _row_to_trigger(self, row) -> Trigger:
        return Trigger(
            id=row["id"],
            handler=row["handler"],
            event_type=row["event_type"],
            source_id=row["source_id"],
            day_of_month=row["day_of_month"],
            hour=row["hour"],
            last_fired_at=row["last_fired_at"],
        )

    def list_triggers(self, handler: str | None = None, event_type: str | None = None) -> list[Trigger]:
        query = "SELECT * FROM triggers WHERE 1 = 1"
        params: list = []
        if handler:
            query += " AND handler = ?"
            params.append(handler)
        if event_type:
            query += " AND event_type = ?"
            params.append(event_type)
        query += " ORDER BY create_date, rowid"
        return [self._row_to_trigger(r) for r in self.conn.execute(query, params).fetchall()]

    def open_triggers_for(self, document_id: str) -> list[Trigger]:
        rows = self.conn.execute(
            "SELECT * FROM triggers WHERE event_type = ? AND source_id = ? ORDER BY rowid",
            (ON_OPEN, document_id),
        ).fetchall()
        return [self._row_to_trigger(r) for r in rows]

    def delete_trigger(self, trigger_id: str):
        self.conn.execute("DELETE FROM triggers WHERE id = ?", (trigger_id,))
        self.conn.commit()

    def create_open_trigger(self, handler: str, document_id: str) -> Trigger:
        trigger = Trigger(id=uuid.uuid4().hex, handler=handler, event_type=ON_OPEN, source_id=document_id)
        self.conn.execute(
            "INSERT INTO triggers (id, handler, event_type, source_id) VALUES (?, ?, ?, ?)",
            (trigger.id, trigger.handler, trigger.event_type, trigger.source_id),
        )
        self.conn.commit()
        return trigger

    def create_time_trigger(self, handler: str, day_of_month: int, hour: int) -> Trigger:
        trigger = Trigger(
            id=uuid.uuid4().hex,
            handler=handler,
            event_type=MONTHLY,
            day_of_month=day_of_month,
            hour=hour,
        )
        self.conn.execute(
            "INSERT INTO triggers (id, handler, event_type, day_of_month, hour) VALUES (?, ?, ?, ?, ?)",
            (trigger.id, trigger.handler, trigger.event_type, trigger.day_of_month, trigger.hour),
        )
        self.conn.commit()
        return trigger

    def mark_fired(self, trigger_id: str, fired_at: datetime):
        self.conn.execute(
            "UPDATE triggers SET last_fired_at = ? WHERE id = ?",
            (fired_at.isoformat(), trigger_id),
        )
        self.conn.commit()


# =============================================================================
# REGENERATION TRIGGER
# =============================================================================


def install_regeneration_trigger(document: Document, registry: TriggerRegistry, store) -> Trigger:
    """
    Replace the document's open trigger and drop triggers of vanished documents.

    Triggers of other documents that still exist are left alone.
    """
    for trigger in registry.list_triggers(handler=MENU_HANDLER):
        if trigger.source_id == document.id or not store.file_exists(trigger.source_id):
            registry.delete_trigger(trigger.id)
            logger.info("Removed regeneration trigger %s (document %s)", trigger.id, trigger.source_id)

    trigger = registry.create_open_trigger(MENU_HANDLER, document.id)
    logger.info("Installed regeneration trigger %s for document %s", trigger.id, document.id)
    return trigger


def recompute_replay_window(settings: Settings, now: datetime) -> DateRange:
    """Window used when a document carries no usable persisted range."""
    return compute_last_month_window(settings.anchor_day, now, settings.timezone)


def resolve_replay_window(
    persisted: DateRange | None, settings: Settings, now: datetime
) -> tuple[DateRange, bool]:
    """
    Pick the window for a replay.

    Returns:
        (window, exact) where `exact` is False when the window had to be
        recomputed relative to `now`.
    """
    if persisted is not None:
        logger.info(
            "Detected generation date range, regenerating for %s - %s",
            persisted.start.isoformat(),
            persisted.end.isoformat(),
        )
        return persisted, True

    window = recompute_replay_window(settings, now)
    logger.info(
        "Unable to locate generation date range, recomputed %s - %s",
        window.start.isoformat(),
        window.end.isoformat(),
    )
    return window, False


# =============================================================================
# MONTHLY SCHEDULE
# =============================================================================


def install_schedule(registry: TriggerRegistry, day_of_month: int = 1, hour: int = 0) -> Trigger:
    """Replace the monthly generation trigger."""
    if not 1 <= day_of_month <= 31:
        raise ValueError(f"day_of_month must be between 1 and 31, got {day_of_month}")
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be between 0 and 23, got {hour}")

    for trigger in registry.list_triggers(handler=SCHEDULE_HANDLER, event_type=MONTHLY):
        registry.delete_trigger(trigger.id)

    trigger = registry.create_time_trigger(SCHEDULE_HANDLER, day_of_month, hour)
    logger.info("Installed monthly trigger on day %d at %02d:00", day_of_month, hour)
    return trigger


def scheduled_fire_time(trigger: Trigger, now: datetime, timezone: str) -> datetime:
    """This month's fire time of a monthly trigger (day clamped to month end)."""
    tz = ZoneInfo(timezone)
    local_now = now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)
    _, last_day = calendar.monthrange(local_now.year, local_now.month)
    return datetime(
        local_now.year,
        local_now.month,
        min(trigger.day_of_month, last_day),
        trigger.hour,
        tzinfo=tz,
    )


def is_due(trigger: Trigger, now: datetime, timezone: str) -> bool:
    """True once `now` passes this month's fire time and it has not fired since."""
    fire_time = scheduled_fire_time(trigger, now, timezone)
    aware_now = now.replace(tzinfo=fire_time.tzinfo) if now.tzinfo is None else now
    if aware_now < fire_time:
        return False
    if trigger.last_fired_at is None:
        return True
    return datetime.fromisoformat(trigger.last_fired_at) < fire_time

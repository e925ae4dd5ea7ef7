"""Tests for services.triggers: registry, pruning, replay window, schedule."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from core.config import MENU_HANDLER, SCHEDULE_HANDLER
from models.events import DateRange
from services.triggers import (
    MONTHLY,
    ON_OPEN,
    install_regeneration_trigger,
    install_schedule,
    is_due,
    resolve_replay_window,
    scheduled_fire_time,
)

UTC = ZoneInfo("UTC")


class TestInstallRegenerationTrigger:
    def test_first_install(self, store, registry):
        document = store.create_document("Summary")
        trigger = install_regeneration_trigger(document, registry, store)
        assert trigger.handler == MENU_HANDLER
        assert trigger.event_type == ON_OPEN
        assert trigger.source_id == document.id
        assert registry.list_triggers() == [trigger]

    def test_prunes_stale_and_replaced_triggers(self, store, registry):
        valid = [store.create_document(f"Valid {i}") for i in range(3)]
        trashed = store.create_document("Trashed")
        deleted = store.create_document("Deleted")
        current = store.create_document("Current")

        for document in valid + [trashed, deleted, current]:
            registry.create_open_trigger(MENU_HANDLER, document.id)
        registry.create_open_trigger(MENU_HANDLER, "never-existed")

        store.trash_document(trashed.id)
        deleted.path.unlink()

        # N = 7 triggers, M = 3 point at missing documents, 1 at the current one
        fresh = install_regeneration_trigger(current, registry, store)

        remaining = registry.list_triggers(handler=MENU_HANDLER)
        assert len(remaining) == (7 - 3 - 1) + 1
        assert sorted(t.source_id for t in remaining) == sorted([d.id for d in valid] + [current.id])
        assert [t.id for t in registry.open_triggers_for(current.id)] == [fresh.id]

    def test_repeated_installs_keep_one_trigger(self, store, registry):
        document = store.create_document("Summary")
        for _ in range(3):
            install_regeneration_trigger(document, registry, store)
        assert len(registry.open_triggers_for(document.id)) == 1

    def test_schedule_trigger_untouched(self, store, registry):
        schedule = install_schedule(registry, 1, 0)
        install_regeneration_trigger(store.create_document("Summary"), registry, store)
        assert schedule in registry.list_triggers(event_type=MONTHLY)


class TestResolveReplayWindow:
    def test_persisted_window_is_used_verbatim(self, settings):
        persisted = DateRange(datetime(2023, 11, 1, tzinfo=UTC), datetime(2023, 12, 1, tzinfo=UTC))
        window, exact = resolve_replay_window(persisted, settings, datetime(2024, 5, 20, tzinfo=UTC))
        assert window == persisted
        assert exact is True

    def test_missing_window_recomputed_from_now(self, settings, caplog):
        caplog.set_level("INFO")
        window, exact = resolve_replay_window(None, settings, datetime(2024, 5, 20, tzinfo=UTC))
        assert window == DateRange(datetime(2024, 4, 1, tzinfo=UTC), datetime(2024, 5, 1, tzinfo=UTC))
        assert exact is False
        assert "Unable to locate generation date range" in caplog.text

    def test_recompute_uses_anchor_day(self, settings):
        window, _ = resolve_replay_window(
            None, settings.model_copy(update={"anchor_day": 15}), datetime(2024, 5, 20, tzinfo=UTC)
        )
        assert window.start == datetime(2024, 4, 15, tzinfo=UTC)


class TestSchedule:
    def test_install_replaces_previous_schedule(self, registry):
        install_schedule(registry, 1, 0)
        latest = install_schedule(registry, 2, 6)
        assert registry.list_triggers(handler=SCHEDULE_HANDLER) == [latest]

    @pytest.mark.parametrize("day,hour", [(0, 0), (32, 0), (1, 24), (1, -1)])
    def test_invalid_schedule(self, registry, day, hour):
        with pytest.raises(ValueError):
            install_schedule(registry, day, hour)

    def test_fire_time_clamped_to_month_end(self, registry):
        trigger = install_schedule(registry, 31, 2)
        fire = scheduled_fire_time(trigger, datetime(2024, 2, 10, tzinfo=UTC), "UTC")
        assert fire == datetime(2024, 2, 29, 2, tzinfo=UTC)

    def test_due_once_per_month(self, registry):
        trigger = install_schedule(registry, 1, 0)
        now = datetime(2024, 3, 1, 0, 30, tzinfo=UTC)
        assert is_due(trigger, now, "UTC")

        registry.mark_fired(trigger.id, now)
        fired = registry.list_triggers(event_type=MONTHLY)[0]
        assert not is_due(fired, datetime(2024, 3, 20, tzinfo=UTC), "UTC")
        assert is_due(fired, datetime(2024, 4, 1, 1, tzinfo=UTC), "UTC")

    def test_not_due_before_fire_time(self, registry):
        trigger = install_schedule(registry, 5, 9)
        assert not is_due(trigger, datetime(2024, 3, 5, 8, 59, tzinfo=UTC), "UTC")
        assert is_due(trigger, datetime(2024, 3, 5, 9, tzinfo=UTC), "UTC")

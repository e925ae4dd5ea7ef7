"""Tests for services.reports: workbook layout and persisted window."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from openpyxl import Workbook
from openpyxl.workbook.defined_name import DefinedName

from core.config import ABOUT_SHEET_TITLE, DETAIL_HEADERS, GENERATION_RANGE_NAME
from models.events import CalendarRecord, CalendarSheetData, DateRange, EventRow
from services.reports import (
    build_document,
    create_summary_workbook,
    document_name,
    read_persisted_window,
    sheet_rows,
    sheet_title,
)

UTC = ZoneInfo("UTC")
WINDOW = DateRange(datetime(2024, 2, 1, tzinfo=UTC), datetime(2024, 3, 1, tzinfo=UTC))
GENERATED_AT = datetime(2024, 3, 1, 0, 5, tzinfo=UTC)

WORK = CalendarRecord(id="cal-work", display_name="Work")
EMPTY = CalendarRecord(id="cal-empty", display_name="Empty")


def _work_data():
    return CalendarSheetData(
        calendar=WORK,
        rows=[
            EventRow("2024-02-10", "10:00-12:00", "Client Call", 2.0),
            EventRow("2024-02-11", "09:00-09:30", "Follow-up", 0.5),
        ],
        total_formula="=SUMPRODUCT(D2:D3,--(E2:E3=TRUE))",
    )


def _empty_data():
    return CalendarSheetData(calendar=EMPTY, rows=[], total_formula="=0")


def _values(ws):
    return [list(row) for row in ws.iter_rows(values_only=True)]


class TestCreateSummaryWorkbook:
    def test_sheet_order_and_active_sheet(self):
        wb = create_summary_workbook(WINDOW, {WORK: _work_data(), EMPTY: _empty_data()}, GENERATED_AT)
        assert wb.sheetnames == ["Work", "Empty", ABOUT_SHEET_TITLE]
        assert wb.active.title == "Work"
        assert [ws.sheet_view.tabSelected for ws in wb.worksheets] == [True, False, False]

    def test_calendar_sheet_block(self):
        wb = create_summary_workbook(WINDOW, {WORK: _work_data()}, GENERATED_AT)
        assert _values(wb["Work"]) == [
            DETAIL_HEADERS,
            ["2024-02-10", "10:00-12:00", "Client Call", 2.0, True],
            ["2024-02-11", "09:00-09:30", "Follow-up", 0.5, True],
            [None, None, "Total: ", "=SUMPRODUCT(D2:D3,--(E2:E3=TRUE))", None],
        ]

    def test_header_and_total_rows_bold(self):
        ws = create_summary_workbook(WINDOW, {WORK: _work_data()}, GENERATED_AT)["Work"]
        assert all(ws.cell(row=1, column=c).font.bold for c in range(1, 6))
        assert all(ws.cell(row=4, column=c).font.bold for c in range(1, 6))
        assert not ws.cell(row=2, column=3).font.bold

    def test_checkbox_validation_on_data_rows_only(self):
        ws = create_summary_workbook(WINDOW, {WORK: _work_data()}, GENERATED_AT)["Work"]
        validations = ws.data_validations.dataValidation
        assert len(validations) == 1
        assert validations[0].type == "list"
        assert str(validations[0].sqref) == "E2:E3"

    def test_empty_calendar_has_no_validation(self):
        ws = create_summary_workbook(WINDOW, {EMPTY: _empty_data()}, GENERATED_AT)["Empty"]
        assert ws.data_validations.dataValidation == []
        assert _values(ws) == [DETAIL_HEADERS, [None, None, "Total: ", "=0", None]]

    def test_column_widths(self):
        ws = create_summary_workbook(WINDOW, {WORK: _work_data()}, GENERATED_AT)["Work"]
        widths = [ws.column_dimensions[c].width for c in "ABCDE"]
        assert widths == [14, 14, 25, 14, 14]

    def test_about_sheet_contents(self):
        ws = create_summary_workbook(WINDOW, {}, GENERATED_AT)[ABOUT_SHEET_TITLE]
        assert ws["A2"].value == "2024-03-01T00:05:00+00:00"
        assert ws["A5"].value == "2024-02-01T00:00:00+00:00"
        assert ws["A6"].value == "2024-03-01T00:00:00+00:00"

    def test_no_calendars_leaves_about_only(self):
        wb = create_summary_workbook(WINDOW, {}, GENERATED_AT)
        assert wb.sheetnames == [ABOUT_SHEET_TITLE]

    def test_duplicate_calendar_names_are_renamed_by_openpyxl(self):
        twin = CalendarRecord(id="cal-twin", display_name="Work")
        wb = create_summary_workbook(
            WINDOW,
            {WORK: _work_data(), twin: CalendarSheetData(calendar=twin)},
            GENERATED_AT,
        )
        assert wb.sheetnames[0] == "Work"
        assert len(set(wb.sheetnames)) == 3

    def test_punctuated_calendar_name_does_not_abort(self):
        clients = CalendarRecord(id="cal-clients", display_name="Clients: ACME")
        wb = create_summary_workbook(
            WINDOW,
            {clients: CalendarSheetData(calendar=clients), WORK: _work_data()},
            GENERATED_AT,
        )
        assert wb.sheetnames == ["Clients_ ACME", "Work", ABOUT_SHEET_TITLE]

    def test_long_calendar_name_is_truncated(self):
        holidays = CalendarRecord(id="cal-holidays", display_name="Holidays in the United States of America")
        wb = create_summary_workbook(WINDOW, {holidays: CalendarSheetData(calendar=holidays)}, GENERATED_AT)
        assert wb.sheetnames == ["Holidays in the United States o", ABOUT_SHEET_TITLE]


class TestSheetTitle:
    def test_plain_name_unchanged(self, caplog):
        assert sheet_title("Personal (shared)") == "Personal (shared)"
        assert caplog.text == ""

    @pytest.mark.parametrize(
        "name,title",
        [
            ("Clients: ACME", "Clients_ ACME"),
            ("R&D / Ops", "R&D _ Ops"),
            ("[Team] *billable*?", "_Team_ _billable__"),
            ("Back\\Office", "Back_Office"),
        ],
    )
    def test_invalid_characters_replaced(self, name, title):
        assert sheet_title(name) == title

    def test_truncated_to_31_characters(self, caplog):
        title = sheet_title("Holidays in the United States of America")
        assert len(title) == 31
        assert "Holidays in the United States of America" in caplog.text


class TestReadPersistedWindow:
    def test_round_trips_through_file(self, tmp_path):
        path = tmp_path / "doc.xlsx"
        create_summary_workbook(WINDOW, {WORK: _work_data()}, GENERATED_AT).save(path)
        from openpyxl import load_workbook

        assert read_persisted_window(load_workbook(path)) == WINDOW

    def test_missing_name(self):
        assert read_persisted_window(Workbook()) is None

    @pytest.mark.parametrize(
        "start,end",
        [
            ("not a date", "2024-03-01T00:00:00+00:00"),
            ("2024-03-01T00:00:00+00:00", "2024-02-01T00:00:00+00:00"),
            (None, None),
        ],
    )
    def test_malformed_values(self, start, end):
        wb = create_summary_workbook(WINDOW, {}, GENERATED_AT)
        about = wb[ABOUT_SHEET_TITLE]
        about["A5"] = start
        about["A6"] = end
        assert read_persisted_window(wb) is None

    def test_naive_values_read_in_configured_timezone(self):
        berlin = ZoneInfo("Europe/Berlin")
        wb = create_summary_workbook(WINDOW, {}, GENERATED_AT)
        about = wb[ABOUT_SHEET_TITLE]
        about["A5"] = "2024-02-01T00:00:00"
        about["A6"] = datetime(2024, 3, 1)

        window = read_persisted_window(wb, "Europe/Berlin")
        assert window == DateRange(datetime(2024, 2, 1, tzinfo=berlin), datetime(2024, 3, 1, tzinfo=berlin))
        assert window.start.utcoffset().total_seconds() == 3600

    def test_name_pointing_at_missing_sheet(self):
        wb = Workbook()
        wb.defined_names[GENERATION_RANGE_NAME] = DefinedName(
            GENERATION_RANGE_NAME, attr_text="'Gone'!$A$5:$A$6"
        )
        assert read_persisted_window(wb) is None


class TestBuildDocument:
    def test_creates_document_in_folder_with_trigger(self, settings, store, registry):
        (store.root / "monthly").mkdir()
        folder = store.get_target_folder("monthly")

        generated = build_document(
            WINDOW, {WORK: _work_data()}, folder, store, registry, settings, generated_at=GENERATED_AT
        )

        document = generated.document
        assert document.name == document_name(WINDOW) == "Monthly Calendar Summary 2024-02-01 - 2024-03-01"
        assert document.path.parent == folder.path
        assert generated.sheet_names == ["Work"]
        assert generated.total_events == 2
        assert read_persisted_window(store.load_workbook(document)) == WINDOW
        assert [t.source_id for t in registry.list_triggers()] == [document.id]

    def test_rewrites_existing_document_in_place(self, settings, store, registry):
        folder = store.root_folder()
        first = build_document(WINDOW, {WORK: _work_data()}, folder, store, registry, settings)
        second = build_document(
            WINDOW, {EMPTY: _empty_data()}, folder, store, registry, settings, document=first.document
        )
        assert second.document == first.document
        assert store.load_workbook(first.document).sheetnames == ["Empty", ABOUT_SHEET_TITLE]
        assert len(registry.list_triggers()) == 1

    def test_failure_trashes_new_document(self, settings, store, registry, monkeypatch):
        def broken_save(document, workbook):
            raise OSError("disk full")

        monkeypatch.setattr(store, "save_workbook", broken_save)
        with pytest.raises(OSError):
            build_document(WINDOW, {WORK: _work_data()}, store.root_folder(), store, registry, settings)

        assert list(store.list_files(store.root_folder())) == []
        assert registry.list_triggers() == []

    def test_failure_keeps_existing_document(self, settings, store, registry, monkeypatch):
        first = build_document(WINDOW, {WORK: _work_data()}, store.root_folder(), store, registry, settings)

        def broken_save(document, workbook):
            raise OSError("disk full")

        monkeypatch.setattr(store, "save_workbook", broken_save)
        with pytest.raises(OSError):
            build_document(
                WINDOW, {}, store.root_folder(), store, registry, settings, document=first.document
            )

        assert store.file_exists(first.document.id)
        assert store.load_workbook(first.document).sheetnames == ["Work", ABOUT_SHEET_TITLE]


def test_sheet_rows_shape():
    rows = sheet_rows(_work_data())
    assert len(rows) == 4
    assert all(len(r) == 5 for r in rows)

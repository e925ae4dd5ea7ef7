"""
Spreadsheet document generation.

Builds the monthly summary workbook: one sheet per calendar plus an About
sheet that records when the document was generated and which window it
covers. The window is stored under a workbook-level defined name so a later
regeneration can reuse it exactly.
"""

import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.workbook.defined_name import DefinedName
from openpyxl.worksheet.datavalidation import DataValidation

from core.config import (
    ABOUT_INFO_CELL,
    ABOUT_RANGE_END_CELL,
    ABOUT_RANGE_LABEL_CELL,
    ABOUT_RANGE_START_CELL,
    ABOUT_SHEET_TITLE,
    ABOUT_TIMESTAMP_CELL,
    DEFAULT_COLUMN_WIDTH,
    DETAIL_HEADERS,
    GENERATION_RANGE_NAME,
    HEADINGS,
    SHEET_FILE_NAME_PREFIX,
    SHEET_GENERATION_INFO,
    SHEET_TIME_RANGE_TEXT,
    TITLE_COLUMN_WIDTH,
    TOTAL_ROW_LABEL,
    Settings,
)
from core.dates import format_window_label
from models.events import (
    CalendarRecord,
    CalendarSheetData,
    DateRange,
    Document,
    Folder,
    GeneratedDocument,
)
from services.triggers import install_regeneration_trigger

logger = logging.getLogger(__name__)

TITLE_COLUMN = DETAIL_HEADERS.index(HEADINGS["title"]) + 1
INCLUSION_COLUMN = DETAIL_HEADERS.index(HEADINGS["total_inclusion"]) + 1

# Excel limits
INVALID_TITLE_CHARS = re.compile(r"[\\*?:/\[\]]")
MAX_SHEET_TITLE_LENGTH = 31


def document_name(window: DateRange) -> str:
    """Document name, e.g. 'Monthly Calendar Summary 2024-02-01 - 2024-03-01'."""
    return f"{SHEET_FILE_NAME_PREFIX} {format_window_label(window)}"


def sheet_rows(data: CalendarSheetData) -> list[list]:
    """Header, data rows and total row as one rectangular block."""
    rows = [list(DETAIL_HEADERS)]
    rows.extend(row.as_cells() for row in data.rows)
    rows.append([None, None, TOTAL_ROW_LABEL, data.total_formula, None])
    return rows


def sheet_title(display_name: str) -> str:
    """
    Sheet title for a calendar display name.

    Characters Excel rejects in sheet titles become '_' and the result is cut
    to 31 characters. Repeated titles are still left to openpyxl to suffix.
    """
    title = INVALID_TITLE_CHARS.sub("_", display_name).strip("'")[:MAX_SHEET_TITLE_LENGTH]
    title = title or "_"
    if title != display_name:
        logger.warning("Calendar %r written to sheet %r", display_name, title)
    return title


def checkbox_validation() -> DataValidation:
    """TRUE/FALSE validation used for the inclusion checkboxes."""
    return DataValidation(
        type="list",
        formula1='"TRUE,FALSE"',
        allow_blank=False,
        showDropDown=False,
    )


# =============================================================================
# SHEET WRITERS
# =============================================================================


def write_about_sheet(ws, window: DateRange, generated_at: datetime):
    """
    Write the About sheet and its window cells.

    Window boundaries are stored as ISO-8601 text so the timezone survives.
    """
    ws.title = ABOUT_SHEET_TITLE
    ws[ABOUT_INFO_CELL] = SHEET_GENERATION_INFO
    ws[ABOUT_TIMESTAMP_CELL] = generated_at.isoformat(timespec="seconds")
    ws[ABOUT_RANGE_LABEL_CELL] = SHEET_TIME_RANGE_TEXT
    ws[ABOUT_RANGE_START_CELL] = window.start.isoformat()
    ws[ABOUT_RANGE_END_CELL] = window.end.isoformat()
    ws.column_dimensions["A"].width = 90


def define_generation_range(wb: Workbook):
    """Point the generation range name at the About sheet window cells."""
    start = ABOUT_RANGE_START_CELL
    end = ABOUT_RANGE_END_CELL
    reference = (
        f"'{ABOUT_SHEET_TITLE}'!${start[0]}${start[1:]}:${end[0]}${end[1:]}"
    )
    if GENERATION_RANGE_NAME in wb.defined_names:
        del wb.defined_names[GENERATION_RANGE_NAME]
    wb.defined_names[GENERATION_RANGE_NAME] = DefinedName(GENERATION_RANGE_NAME, attr_text=reference)


def write_calendar_sheet(ws, data: CalendarSheetData):
    """
    Write one calendar's rows and formatting.

    Columns: Day, Timestamps, Event Title, Hours Count, Include In Total.
    The last row holds the total formula.
    """
    rows = sheet_rows(data)
    for row_idx, values in enumerate(rows, start=1):
        for col_idx, value in enumerate(values, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    last_row = len(rows)
    column_count = len(DETAIL_HEADERS)

    # Checkboxes only on data rows, never on the header or total
    if data.rows:
        inclusion = get_column_letter(INCLUSION_COLUMN)
        validation = checkbox_validation()
        ws.add_data_validation(validation)
        validation.add(f"{inclusion}2:{inclusion}{last_row - 1}")

    bold = Font(bold=True)
    for col_idx in range(1, column_count + 1):
        ws.cell(row=1, column=col_idx).font = bold
        ws.cell(row=last_row, column=col_idx).font = bold

    for col_idx in range(1, column_count + 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = DEFAULT_COLUMN_WIDTH
    ws.column_dimensions[get_column_letter(TITLE_COLUMN)].width = TITLE_COLUMN_WIDTH


def arrange_sheets(wb: Workbook):
    """Move the About sheet last and make the first sheet active."""
    about = wb[ABOUT_SHEET_TITLE]
    wb.move_sheet(about, offset=len(wb.sheetnames) - 1 - wb.sheetnames.index(ABOUT_SHEET_TITLE))
    for ws in wb.worksheets:
        ws.sheet_view.tabSelected = False
    wb.active = 0
    wb.active.sheet_view.tabSelected = True


def create_summary_workbook(
    window: DateRange,
    data: dict[CalendarRecord, CalendarSheetData],
    generated_at: datetime,
) -> Workbook:
    """Assemble the full workbook in memory."""
    wb = Workbook()

    write_about_sheet(wb.active, window, generated_at)
    define_generation_range(wb)

    for calendar, sheet_data in data.items():
        title = sheet_title(calendar.display_name)
        # Duplicate titles are renamed by openpyxl (e.g. "Work1")
        ws = wb.create_sheet(title=title)
        if ws.title != title:
            logger.warning(
                "Sheet name %r already used, openpyxl renamed it to %r",
                title,
                ws.title,
            )
        write_calendar_sheet(ws, sheet_data)

    arrange_sheets(wb)
    return wb


# =============================================================================
# PERSISTED WINDOW
# =============================================================================


def _localize(value: datetime, tz: ZoneInfo) -> datetime:
    return value.replace(tzinfo=tz) if value.tzinfo is None else value


def read_persisted_window(wb: Workbook, timezone: str = "UTC") -> DateRange | None:
    """
    Read the generation window back from a workbook.

    Returns None when the name is missing or its cells do not hold two
    ISO-8601 instants with start before end. Values without an offset (for
    example dates typed over the stored text) are read in `timezone`.
    """
    tz = ZoneInfo(timezone)
    defined = wb.defined_names.get(GENERATION_RANGE_NAME)
    if defined is None:
        return None

    values = []
    try:
        for title, coordinate in defined.destinations:
            cells = wb[title][coordinate.replace("$", "")]
            if not isinstance(cells, tuple):
                cells = ((cells,),)
            values.extend(cell.value for row in cells for cell in row)
    except (KeyError, ValueError) as e:
        logger.info("Generation range %s is unreadable: %s", GENERATION_RANGE_NAME, e)
        return None

    if len(values) != 2:
        return None

    try:
        start, end = (
            v if isinstance(v, datetime) else datetime.fromisoformat(str(v).strip())
            for v in values
        )
        return DateRange(start=_localize(start, tz), end=_localize(end, tz))
    except (TypeError, ValueError) as e:
        logger.info("Generation range %s is malformed: %s", GENERATION_RANGE_NAME, e)
        return None


# =============================================================================
# DOCUMENT BUILDER
# =============================================================================


def build_document(
    window: DateRange,
    data: dict[CalendarRecord, CalendarSheetData],
    folder: Folder,
    store,
    registry,
    settings: Settings,
    document: Document | None = None,
    generated_at: datetime | None = None,
) -> GeneratedDocument:
    """
    Create (or rewrite) the summary document and install its replay trigger.

    A new document is created in `folder` unless `document` is given, in which
    case that document is rewritten in place and keeps its id. If anything
    fails after a new document was created, the document is trashed and the
    error re-raised.
    """
    generated_at = generated_at or datetime.now(ZoneInfo(settings.timezone))
    created = document is None

    if created:
        document = store.create_document(document_name(window))
        document = store.move_document(document, folder)
        logger.info("Created a new monthly document: %s", document.path)

    try:
        wb = create_summary_workbook(window, data, generated_at)
        sheet_names = [ws.title for ws in wb.worksheets if ws.title != ABOUT_SHEET_TITLE]
        store.save_workbook(document, wb)
        install_regeneration_trigger(document, registry, store)
    except Exception:
        if created:
            logger.error("Generation failed, removing partially built document %s", document.id)
            store.trash_document(document.id)
        raise

    logger.info("Finished populating %s with %d calendar sheet(s)", document.name, len(sheet_names))
    return GeneratedDocument(
        document=document,
        window=window,
        sheet_names=sheet_names,
        generated_at=generated_at,
        total_events=sum(len(d.rows) for d in data.values()),
    )

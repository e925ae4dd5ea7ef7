"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "calendar-summary.db"
OUTPUT_DIR = PROJECT_ROOT / "output"
TRASH_DIR_NAME = ".trash"

# =============================================================================
# DOCUMENT STRINGS
# =============================================================================

SHEET_FILE_NAME_PREFIX = "Monthly Calendar Summary"
ABOUT_SHEET_TITLE = "About"

SHEET_GENERATION_INFO = """This spreadsheet has been created by the monthly calendar summary generator.

Each calendar sheet lists last month's timed events. Untick "Include In Total"
to leave a row out of the total hours.

Sheet generation timestamp:"""

SHEET_TIME_RANGE_TEXT = (
    "This generation's time range (this data is used for regenerating this sheet):"
)

HEADINGS = {
    "day": "Day",
    "time": "Timestamps",
    "title": "Event Title",
    "hours": "Hours Count",
    "total_inclusion": "Include In Total",
}
DETAIL_HEADERS = list(HEADINGS.values())
TOTAL_ROW_LABEL = "Total: "

# =============================================================================
# REPORT CONFIGURATION
# =============================================================================

DATE_LABEL_FORMAT = "%Y-%m-%d"
TIME_LABEL_FORMAT = "%H:%M"  # 24-hour

# Column widths in Excel character units
DEFAULT_COLUMN_WIDTH = 14
TITLE_COLUMN_WIDTH = 25

# Do not change, or regeneration of old documents won't work
GENERATION_RANGE_NAME = "GatheredCalendarDataDateRange"

# About sheet cells holding the persisted window
ABOUT_INFO_CELL = "A1"
ABOUT_TIMESTAMP_CELL = "A2"
ABOUT_RANGE_LABEL_CELL = "A4"
ABOUT_RANGE_START_CELL = "A5"
ABOUT_RANGE_END_CELL = "A6"

# =============================================================================
# TRIGGER CONFIGURATION
# =============================================================================

# Opening a document only offers the regenerate action; replay runs when it is chosen
MENU_HANDLER = "create_regenerate_menu"
SCHEDULE_HANDLER = "generate_on_schedule"

APP_MENU_TITLE = "Monthly Calendar Summary Generator"
REGENERATE_MENU_ITEM = "Regenerate this sheet"

API_VERSION = "1.0.0"


# =============================================================================
# RUNTIME SETTINGS (from environment)
# =============================================================================


class Settings(BaseModel):
    """Runtime options, built once at process entry and passed to every component."""

    model_config = ConfigDict(frozen=True)

    folder_id: str | None = None
    calendar_name_filter: str | None = None
    anchor_day: int = 1
    timezone: str = "UTC"

    calendar_user_id: str = ""
    output_dir: Path = OUTPUT_DIR
    db_path: Path = DB_PATH

    graph_tenant_id: str = ""
    graph_app_id: str = ""
    graph_client_secret: str = ""

    from_email: str = ""
    error_email: str = ""

    api_key: str = ""
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    @field_validator("anchor_day")
    @classmethod
    def _check_anchor_day(cls, value: int) -> int:
        if not 1 <= value <= 31:
            raise ValueError(f"anchor day must be between 1 and 31, got {value}")
        return value

    @field_validator("folder_id", "calendar_name_filter")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        return value or None

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment (and .env)."""
        env = os.environ
        return cls(
            folder_id=env.get("MONTHLY_SHEET_FOLDER_ID"),
            calendar_name_filter=env.get("CALENDAR_NAME_FILTER"),
            anchor_day=int(env.get("DATE_RANGE_DAY", "1")),
            timezone=env.get("REPORT_TIMEZONE", "UTC"),
            calendar_user_id=env.get("CALENDAR_USER_ID", ""),
            output_dir=Path(env.get("OUTPUT_DIR", str(OUTPUT_DIR))),
            db_path=Path(env.get("DB_PATH", str(DB_PATH))),
            graph_tenant_id=env.get("MICROSOFT_GRAPH_TENANT_ID", ""),
            graph_app_id=env.get("MICROSOFT_GRAPH_APP_ID", ""),
            graph_client_secret=env.get("MICROSOFT_GRAPH_CLIENT_SECRET", ""),
            from_email=env.get("FROM_EMAIL", ""),
            error_email=env.get("ERROR_EMAIL", ""),
            api_key=env.get("CALENDAR_SUMMARY_API_KEY", ""),
            api_host=env.get("API_HOST", "0.0.0.0"),
            api_port=int(env.get("API_PORT", "8000")),
            api_debug=env.get("API_DEBUG", "false").lower() == "true",
        )

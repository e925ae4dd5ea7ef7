"""
SQLite database operations for the document index and trigger registry.
"""

import sqlite3
from pathlib import Path


def get_connection(db_path: Path) -> sqlite3.Connection:
    """
    Get a database connection.

    The API opens a connection in one thread and uses it on the event loop
    thread, so same-thread checking is off; access is still sequential.
    """
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection):
    """Create all tables and indexes if they don't exist."""
    cursor = conn.cursor()

    # Stored spreadsheet documents
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS documents (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            path TEXT NOT NULL,
            trashed INTEGER NOT NULL DEFAULT 0,
            create_date TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Registered triggers (document-open and monthly schedule)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS triggers (
            id TEXT PRIMARY KEY,
            handler TEXT NOT NULL,
            event_type TEXT NOT NULL CHECK(event_type IN ('on_open', 'monthly')),
            source_id TEXT,
            day_of_month INTEGER,
            hour INTEGER,
            last_fired_at TEXT,
            create_date TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # API request logging
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS api_requests (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            request_id TEXT UNIQUE NOT NULL,
            timestamp TEXT NOT NULL,
            endpoint TEXT NOT NULL,
            method TEXT NOT NULL,
            client_ip TEXT,
            document_id TEXT,
            window_start TEXT,
            window_end TEXT,
            status_code INTEGER NOT NULL,
            error_code TEXT,
            error_message TEXT,
            processing_time_ms INTEGER NOT NULL,
            sheets_generated INTEGER,
            total_events INTEGER
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS api_request_details (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            request_id TEXT NOT NULL,
            detail_type TEXT NOT NULL CHECK(detail_type IN ('sheet_generated', 'warning')),
            message TEXT NOT NULL,
            FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_triggers_handler ON triggers(handler)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_api_request_details_request ON api_request_details(request_id)"
    )

    conn.commit()

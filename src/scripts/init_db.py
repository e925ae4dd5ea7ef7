#!/usr/bin/env python3
"""Create the calendar-summary SQLite3 database with documents, triggers and API log tables."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Settings
from core.database import create_schema, get_connection


def create_database(settings: Settings):
    """Create the database and tables if they don't exist."""
    # Ensure directory exists
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(settings.db_path)
    try:
        create_schema(conn)
    finally:
        conn.close()
    print(f"Database created successfully at: {settings.db_path}")


if __name__ == "__main__":
    create_database(Settings.from_env())

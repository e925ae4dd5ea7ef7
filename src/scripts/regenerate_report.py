#!/usr/bin/env python3
"""
Regenerate a previously generated summary document.

By default the document is rewritten for the window stored inside it. With
--open the document's open triggers are fired instead, the same way opening
the document through the API does, which only lists the regenerate menu.

Usage:
    uv run python src/scripts/regenerate_report.py <document_id>
    uv run python src/scripts/regenerate_report.py <document_id> --open
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Settings
from core.database import create_schema, get_connection
from core.dates import format_window_label
from services.email import send_error_email
from services.generation import build_context, deliver_open_event, regenerate_document

logger = logging.getLogger(__name__)


async def main(document_id: str, via_open_event: bool = False):
    settings = Settings.from_env()
    conn = get_connection(settings.db_path)
    try:
        create_schema(conn)
        ctx = build_context(settings, conn)

        if via_open_event:
            menus = await deliver_open_event(document_id, ctx)
            if not menus:
                print(f"No open trigger installed for {document_id}")
            for menu in menus:
                window = format_window_label(menu.window) if menu.window else "no stored window"
                print(f"{menu.title} > {menu.item} ({window})")
            return

        result = await regenerate_document(document_id, ctx)
        kind = "stored" if result.exact_window else "recomputed"
        print(f"Regenerated {result.generated.document.path} using the {kind} window")

    except Exception as e:
        logger.exception("Regeneration failed: %s", e)
        await send_error_email(settings, e, action=f"regenerating document {document_id}")
        raise
    finally:
        conn.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Regenerate a monthly calendar summary document")
    parser.add_argument("document_id", help="Document ID printed when it was generated")
    parser.add_argument("--open", action="store_true", help="Fire the document's open triggers and show the menu they offer")
    args = parser.parse_args()

    try:
        asyncio.run(main(args.document_id, args.open))
    except Exception:
        sys.exit(1)

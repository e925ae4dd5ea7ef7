"""Health check endpoint."""

import os
import sqlite3
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_settings
from api.models.responses import HealthResponse
from core.config import API_VERSION, Settings
from core.database import get_connection

router = APIRouter()


def _database_available(settings: Settings) -> bool:
    if not settings.db_path.exists():
        return False
    try:
        conn = get_connection(settings.db_path)
        try:
            conn.execute("SELECT 1 FROM documents LIMIT 1")
        finally:
            conn.close()
    except sqlite3.Error:
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if unhealthy.
    """
    database_available = _database_available(settings)
    output_dir_writable = settings.output_dir.is_dir() and os.access(settings.output_dir, os.W_OK)
    timestamp = datetime.now(timezone.utc).isoformat()

    if database_available and output_dir_writable:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            database_available=True,
            output_dir_writable=True,
            timestamp=timestamp,
        )

    return JSONResponse(
        status_code=503,
        content=HealthResponse(
            status="unhealthy",
            version=API_VERSION,
            database_available=database_available,
            output_dir_writable=output_dir_writable,
            timestamp=timestamp,
            error="Database not initialized" if not database_available else "Output directory not writable",
        ).model_dump(),
    )

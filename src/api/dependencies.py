"""FastAPI dependencies for authentication and shared resources."""

import secrets
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from core.config import Settings
from core.database import create_schema, get_connection
from services.generation import GenerationContext, build_context


@lru_cache
def get_settings() -> Settings:
    """Settings read once per process."""
    return Settings.from_env()


async def get_db(settings: Settings = Depends(get_settings)):
    """Per-request SQLite connection (opened on the event loop thread)."""
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(settings.db_path)
    try:
        create_schema(conn)
        yield conn
    finally:
        conn.close()


async def get_context(
    settings: Settings = Depends(get_settings),
    conn=Depends(get_db),
) -> GenerationContext:
    return build_context(settings, conn)


async def verify_api_key(
    x_api_key: str = Header(..., alias="X-API-Key"),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": "INTERNAL_ERROR",
                "details": [],
            },
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": "UNAUTHORIZED",
                "details": [],
            },
        )

    return x_api_key

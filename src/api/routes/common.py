"""Helpers shared by the generation routes."""

import time

from fastapi import HTTPException, Request, status

from api.logging import RequestLog
from api.models.responses import ErrorCodes, GenerationResponse, WindowModel
from models.events import GeneratedDocument


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def to_response(generated: GeneratedDocument, exact_window: bool | None = None) -> GenerationResponse:
    return GenerationResponse(
        document_id=generated.document.id,
        document_name=generated.document.name,
        path=str(generated.document.path),
        window=WindowModel(start=generated.window.start, end=generated.window.end),
        sheets=generated.sheet_names,
        total_events=generated.total_events,
        generated_at=generated.generated_at,
        exact_window=exact_window,
    )


def record_success(request_log: RequestLog, start_time: float, generated: list[GeneratedDocument]):
    request_log.status_code = 200
    request_log.sheets_generated = sum(len(g.sheet_names) for g in generated)
    request_log.total_events = sum(g.total_events for g in generated)
    if generated:
        request_log.window_start = generated[0].window.start.isoformat()
        request_log.window_end = generated[0].window.end.isoformat()
    for g in generated:
        for name in g.sheet_names:
            request_log.details.append(("sheet_generated", name))
    request_log.processing_time_ms = int((time.time() - start_time) * 1000)


def record_failure(
    request_log: RequestLog, start_time: float, status_code: int, code: str, message: str
):
    request_log.status_code = status_code
    request_log.error_code = code
    request_log.error_message = message
    request_log.processing_time_ms = int((time.time() - start_time) * 1000)


def not_found(document_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "Document not found",
            "code": ErrorCodes.NOT_FOUND,
            "details": [document_id],
        },
    )


def calendar_failure(error: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={
            "error": "Calendar service request failed",
            "code": ErrorCodes.CALENDAR_ERROR,
            "details": [str(error)],
        },
    )


def internal_failure() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "Internal server error",
            "code": ErrorCodes.INTERNAL_ERROR,
            "details": [],
        },
    )

"""Report generation endpoint."""

import time
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from api.dependencies import get_context, get_db, verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import ErrorCodes, GenerateRequest, GenerationResponse
from api.routes.common import (
    calendar_failure,
    get_client_ip,
    internal_failure,
    record_failure,
    record_success,
    to_response,
)
from models.events import DateRange
from services.calendar import CalendarError
from services.generation import GenerationContext, generate, generate_for_window

router = APIRouter(prefix="/v1")


def _window_from_request(body: GenerateRequest | None, timezone: str) -> DateRange | None:
    if body is None or body.start is None:
        return None
    tz = ZoneInfo(timezone)
    start = body.start if body.start.tzinfo else body.start.replace(tzinfo=tz)
    end = body.end if body.end.tzinfo else body.end.replace(tzinfo=tz)
    return DateRange(start=start, end=end)


@router.post("/reports/generate", response_model=GenerationResponse)
async def generate_report_endpoint(
    request: Request,
    body: Annotated[GenerateRequest | None, Body()] = None,
    ctx: GenerationContext = Depends(get_context),
    conn=Depends(get_db),
    _api_key: str = Depends(verify_api_key),
):
    """
    Generate a new summary document.

    Without a body the window is last month relative to now.
    """
    start_time = time.time()
    request_log = RequestLog(
        endpoint="/v1/reports/generate",
        method="POST",
        client_ip=get_client_ip(request),
    )

    try:
        window = _window_from_request(body, ctx.settings.timezone)
        if window is None:
            generated = await generate(ctx)
        else:
            generated = await generate_for_window(window, ctx)

        request_log.document_id = generated.document.id
        record_success(request_log, start_time, [generated])
        return to_response(generated)

    except CalendarError as e:
        error = calendar_failure(e)
        record_failure(request_log, start_time, error.status_code, ErrorCodes.CALENDAR_ERROR, str(e))
        raise error

    except HTTPException as e:
        record_failure(request_log, start_time, e.status_code, ErrorCodes.INVALID_REQUEST, str(e.detail))
        raise

    except Exception as e:
        record_failure(request_log, start_time, 500, ErrorCodes.INTERNAL_ERROR, str(e))
        raise internal_failure()

    finally:
        # Always log the request
        try:
            log_request(conn, request_log)
        except Exception:
            # Don't fail the request if logging fails
            pass

"""Document listing, open event and regeneration endpoints."""

import asyncio
import time

from fastapi import APIRouter, Depends, HTTPException, Request

from api.dependencies import get_context, get_db, verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import (
    DocumentSummary,
    ErrorCodes,
    GenerationResponse,
    MenuModel,
    OpenEventResponse,
    WindowModel,
)
from api.routes.common import (
    calendar_failure,
    get_client_ip,
    internal_failure,
    not_found,
    record_failure,
    record_success,
    to_response,
)
from models.events import Folder, RegenerateMenu
from services.calendar import CalendarError
from services.generation import (
    DocumentNotFoundError,
    GenerationContext,
    ReplayResult,
    deliver_open_event,
    regenerate_document,
)
from services.reports import read_persisted_window

router = APIRouter(prefix="/v1")


def _summarize(ctx: GenerationContext, folder: Folder) -> list[DocumentSummary]:
    summaries = []
    for document in ctx.store.list_files(folder):
        window = read_persisted_window(ctx.store.load_workbook(document), ctx.settings.timezone)
        summaries.append(
            DocumentSummary(
                document_id=document.id,
                document_name=document.name,
                window=WindowModel(start=window.start, end=window.end) if window else None,
                has_trigger=bool(ctx.registry.open_triggers_for(document.id)),
            )
        )
    return summaries


def _menu_response(menu: RegenerateMenu) -> MenuModel:
    return MenuModel(
        title=menu.title,
        item=menu.item,
        regenerate_url=f"/v1/documents/{menu.document_id}/regenerate",
        window=WindowModel(start=menu.window.start, end=menu.window.end) if menu.window else None,
    )


@router.get("/documents", response_model=list[DocumentSummary])
async def list_documents_endpoint(
    folder_id: str | None = None,
    ctx: GenerationContext = Depends(get_context),
    _api_key: str = Depends(verify_api_key),
):
    """List the documents of a folder (default: the configured folder) with their windows."""
    folder = ctx.store.get_target_folder(folder_id if folder_id is not None else ctx.settings.folder_id)

    # Use thread pool for workbook loading
    return await asyncio.to_thread(_summarize, ctx, folder)


async def _run_logged(request: Request, endpoint: str, document_id: str, conn, action):
    """Run a document action with request logging and error mapping."""
    start_time = time.time()
    request_log = RequestLog(
        endpoint=endpoint,
        method="POST",
        client_ip=get_client_ip(request),
        document_id=document_id,
    )

    try:
        results = await action()
        replays = [r for r in results if isinstance(r, ReplayResult)]
        record_success(request_log, start_time, [r.generated for r in replays])
        for r in replays:
            if not r.exact_window:
                request_log.details.append(("warning", "No stored window, recomputed last month"))
        return results

    except DocumentNotFoundError as e:
        error = not_found(document_id)
        record_failure(request_log, start_time, error.status_code, ErrorCodes.NOT_FOUND, str(e))
        raise error

    except CalendarError as e:
        error = calendar_failure(e)
        record_failure(request_log, start_time, error.status_code, ErrorCodes.CALENDAR_ERROR, str(e))
        raise error

    except HTTPException:
        raise

    except Exception as e:
        record_failure(request_log, start_time, 500, ErrorCodes.INTERNAL_ERROR, str(e))
        raise internal_failure()

    finally:
        try:
            log_request(conn, request_log)
        except Exception:
            pass


@router.post("/documents/{document_id}/open", response_model=OpenEventResponse)
async def open_document_endpoint(
    document_id: str,
    request: Request,
    ctx: GenerationContext = Depends(get_context),
    conn=Depends(get_db),
    _api_key: str = Depends(verify_api_key),
):
    """
    Deliver a "document opened" event.

    The document's open triggers return the regenerate menu; the document
    itself is left untouched.
    """
    menus = await _run_logged(
        request,
        f"/v1/documents/{document_id}/open",
        document_id,
        conn,
        lambda: deliver_open_event(document_id, ctx),
    )
    return OpenEventResponse(
        document_id=document_id,
        triggers_fired=len(menus),
        menus=[_menu_response(m) for m in menus],
    )


@router.post("/documents/{document_id}/regenerate", response_model=GenerationResponse)
async def regenerate_document_endpoint(
    document_id: str,
    request: Request,
    ctx: GenerationContext = Depends(get_context),
    conn=Depends(get_db),
    _api_key: str = Depends(verify_api_key),
):
    """Regenerate a document (the regenerate menu item), with or without an installed trigger."""

    async def action():
        return [await regenerate_document(document_id, ctx)]

    results = await _run_logged(
        request,
        f"/v1/documents/{document_id}/regenerate",
        document_id,
        conn,
        action,
    )
    return to_response(results[0].generated, results[0].exact_window)

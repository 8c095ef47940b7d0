"""FastAPI application exposing the bridge operations over HTTP.

WHY: The Slack bot runs as a separate process, and n8n or curl may want
to list projects, forward events, or check a file's status. FastAPI gives
request validation, OpenAPI docs, and a simple place to hold the
process-wide status store.

HOW: Each request gets a fresh FileDispatcher through the get_dispatcher
dependency (tests override it with a MockTransport-backed one). Every
endpoint is a thin wrapper over one dispatcher or directory call.

RULES:
- POST /dispatch always answers 200; the body's success flag tells the outcome
- Airtable and n8n failures on the other endpoints map to 502
- GET /files/{file_id}/status answers 404 for files never dispatched
- One FileStatusStore per process, cleaned up periodically
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator, Dict, List

from fastapi import Body, Depends, FastAPI, HTTPException, Query

from project_bridge import __version__
from project_bridge.api.airtable import DirectoryFetchError
from project_bridge.api.n8n import AnalyticsError, FileDispatcher, ForwardError
from project_bridge.api.status import FileStatusStore
from project_bridge.config import load_settings
from project_bridge.server.models import (
    AnalyticsRequest,
    DispatchRequest,
    DispatchResponse,
    ErrorResponse,
    FileStatusResponse,
    HealthResponse,
    ProjectResponse,
    SelectionResponse,
    WebhookResponse,
)
from project_bridge.slack.messages import render_selection

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

status_store = FileStatusStore()

_CLEANUP_INTERVAL_S = 300


async def _periodic_cleanup() -> None:
    """Drop expired file statuses every 5 minutes."""
    while True:
        await asyncio.sleep(_CLEANUP_INTERVAL_S)
        status_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Project Bridge API",
    description=(
        "Connects Slack file uploads to an n8n workflow. Lists projects "
        "from Airtable, renders the project-selection message, dispatches "
        "files with the chosen project, and reports dispatch status."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


async def get_dispatcher() -> AsyncIterator[FileDispatcher]:
    """Provide a FileDispatcher bound to the process-wide status store."""
    async with FileDispatcher(load_settings(), status_store=status_store) as dispatcher:
        yield dispatcher


Dispatcher = Annotated[FileDispatcher, Depends(get_dispatcher)]

_BAD_GATEWAY = {502: {"model": ErrorResponse, "description": "Airtable or n8n call failed"}}


# ---------------------------------------------------------------------------
# Endpoints: Projects
# ---------------------------------------------------------------------------


@app.get(
    "/projects",
    response_model=List[ProjectResponse],
    tags=["projects"],
    summary="List projects",
    description="Reads the Airtable project table (first page only, never cached).",
    responses=_BAD_GATEWAY,
)
async def list_projects(dispatcher: Dispatcher) -> List[ProjectResponse]:
    try:
        projects = await dispatcher.directory.fetch_projects()
    except DirectoryFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return [ProjectResponse.from_project(p) for p in projects]


@app.get(
    "/projects/selection",
    response_model=SelectionResponse,
    tags=["projects"],
    summary="Render the project-selection message",
    description=(
        "Returns Block Kit blocks with one button per project for the "
        "given Slack file, plus a cancel button."
    ),
    responses=_BAD_GATEWAY,
)
async def project_selection(
    dispatcher: Dispatcher,
    file_id: Annotated[str, Query(description="Slack file id carried in every button.")],
) -> SelectionResponse:
    try:
        projects = await dispatcher.directory.fetch_projects()
    except DirectoryFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return SelectionResponse(blocks=render_selection(projects, file_id))


# ---------------------------------------------------------------------------
# Endpoints: n8n
# ---------------------------------------------------------------------------


@app.post(
    "/dispatch",
    response_model=DispatchResponse,
    tags=["n8n"],
    summary="Dispatch a file with the chosen project",
    description=(
        "Resolves the project against a fresh Airtable read and posts the "
        "file job to n8n. Failures are reported in the body, not as HTTP errors."
    ),
)
async def dispatch_file(request: DispatchRequest, dispatcher: Dispatcher) -> DispatchResponse:
    result = await dispatcher.dispatch_file_with_project(
        file_content=request.file_content,
        file_name=request.file_name,
        project_id=request.project_id,
        user_id=request.user_id,
        channel_id=request.channel_id,
        ts=request.ts,
        file_id=request.file_id,
    )
    return DispatchResponse(
        success=result.success,
        project=ProjectResponse.from_project(result.project) if result.project else None,
        response=result.response,
        error=result.error,
    )


@app.post(
    "/events",
    response_model=WebhookResponse,
    tags=["n8n"],
    summary="Forward a raw Slack event",
    responses=_BAD_GATEWAY,
)
async def forward_event(
    event: Annotated[Dict[str, Any], Body(description="Slack event object, forwarded as-is.")],
    dispatcher: Dispatcher,
) -> WebhookResponse:
    try:
        data = await dispatcher.forward_upload_event(event)
    except ForwardError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return WebhookResponse(response=data)


@app.post(
    "/analytics",
    response_model=WebhookResponse,
    tags=["n8n"],
    summary="Send an analytics event",
    responses=_BAD_GATEWAY,
)
async def send_analytics(request: AnalyticsRequest, dispatcher: Dispatcher) -> WebhookResponse:
    try:
        data = await dispatcher.send_analytics(request.data)
    except AnalyticsError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return WebhookResponse(response=data)


# ---------------------------------------------------------------------------
# Endpoints: Files
# ---------------------------------------------------------------------------


@app.get(
    "/files",
    response_model=List[FileStatusResponse],
    tags=["files"],
    summary="List tracked file statuses",
    description="Every file this process has dispatched and not yet expired, oldest update first.",
)
async def list_file_statuses(dispatcher: Dispatcher) -> List[FileStatusResponse]:
    return [FileStatusResponse.from_status(s) for s in dispatcher.list_file_statuses()]


@app.get(
    "/files/{file_id}/status",
    response_model=FileStatusResponse,
    tags=["files"],
    summary="Get a file's dispatch status",
    responses={404: {"model": ErrorResponse, "description": "File was never dispatched"}},
)
async def get_file_status(file_id: str, dispatcher: Dispatcher) -> FileStatusResponse:
    status = dispatcher.get_file_status(file_id)
    if status is None:
        raise HTTPException(status_code=404, detail="No status for file: {}".format(file_id))
    return FileStatusResponse.from_status(status)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api() -> None:
    """Entry point for the project-bridge-api console script."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    uvicorn.run(app, host=host, port=port)

"""Async dispatcher posting file jobs, raw events, and analytics to n8n.

WHY: The n8n workflow does the actual work (committing the uploaded text
into the chosen repository). This module pairs an upload with the
project the user picked and hands the result to n8n, and it also exposes
two side channels: forwarding raw Slack events and sending analytics.

HOW: FileDispatcher wraps an httpx.AsyncClient for the n8n webhook plus a
ProjectDirectoryClient for the Airtable lookup. Use it as an async
context manager. dispatch_file_with_project() re-reads the directory,
resolves the project, builds a FileJob and POSTs it.

RULES:
- dispatch_file_with_project() never raises; failures come back as
  DispatchResult(success=False, error=..., project=None)
- No POST is made when the project id is not in the directory
- forward_upload_event() and send_analytics() raise on failure
- Timeouts: 30 s dispatch, 15 s event forward, 10 s analytics; no retries
- Response bodies are parsed as JSON when possible, else returned as text
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from project_bridge.api.airtable import DirectoryFetchError, ProjectDirectoryClient
from project_bridge.api.models import DispatchResult, FileJob, FileStatus, Project, utc_timestamp
from project_bridge.api.status import (
    STATUS_DISPATCHED,
    STATUS_FAILED,
    STATUS_PROCESSING,
    FileStatusStore,
)
from project_bridge.config import (
    ANALYTICS_PATH,
    ANALYTICS_SOURCE,
    ANALYTICS_TIMEOUT_S,
    DISPATCH_TIMEOUT_S,
    FORWARD_TIMEOUT_S,
    BridgeSettings,
)

logger = logging.getLogger(__name__)


class ProjectNotFound(LookupError):
    """Raised when the chosen project id is absent from the directory.

    RULES:
    - Never escapes dispatch_file_with_project(); it becomes a failed result
    """

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project with ID {project_id} not found")


class WebhookError(Exception):
    """Base class for failed calls to the n8n webhook.

    RULES:
    - status_code is set when n8n answered with a non-2xx status
    - The underlying httpx exception, if any, is chained via ``raise ... from``
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class DownstreamDispatchError(WebhookError):
    """n8n rejected or never received a file job."""


class ForwardError(WebhookError):
    """A raw Slack event could not be forwarded to n8n."""


class AnalyticsError(WebhookError):
    """An analytics event could not be delivered to n8n."""


class FileDispatcher:
    """Async client for the n8n webhook with an Airtable project lookup.

    RULES:
    - Use as: async with FileDispatcher(settings) as dispatcher: ...
    - status_store defaults to a private FileStatusStore; the HTTP API
      passes its process-wide store
    - transport is only for tests (httpx.MockTransport); it is shared with
      the directory client
    """

    def __init__(
        self,
        settings: BridgeSettings,
        status_store: Optional[FileStatusStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._endpoint = settings.n8n_endpoint
        self._status_store = status_store if status_store is not None else FileStatusStore()
        self._transport = transport
        self._directory = ProjectDirectoryClient(settings, transport=transport)
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> FileDispatcher:
        await self._directory.__aenter__()
        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=DISPATCH_TIMEOUT_S,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None
        await self._directory.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def directory(self) -> ProjectDirectoryClient:
        return self._directory

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "FileDispatcher must be used as an async context manager: "
                "async with FileDispatcher(settings) as dispatcher: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # File dispatch
    # ------------------------------------------------------------------

    async def dispatch_file_with_project(
        self,
        file_content: str,
        file_name: str,
        project_id: str,
        user_id: str,
        channel_id: str,
        ts: str,
        file_id: Optional[str] = None,
    ) -> DispatchResult:
        """Send an uploaded file to n8n together with the chosen project.

        WHY: This runs right after a user clicks a project button, so a
        failure must come back as a message the bot can show, not as an
        exception.

        HOW: Fresh directory read, exact match on Project.id, build the
        FileJob, POST it with a 30 s timeout.

        RULES:
        - Unknown project id -> failed result, no POST
        - Airtable or n8n failure -> failed result carrying the error message
        - Success -> result with the project and the parsed n8n response
        - When file_id is given, the status store tracks
          processing -> dispatched | failed
        """
        logger.info("Processing file %s with project %s", file_name, project_id)
        if file_id:
            self._status_store.record(file_id, STATUS_PROCESSING, project_id=project_id)

        try:
            project = await self._resolve_project(project_id)
            job = FileJob(
                file_name=file_name,
                file_content=file_content,
                uploaded_by=user_id,
                channel=channel_id,
                file_timestamp=ts,
                project=project,
                dispatched_at=utc_timestamp(),
            )
            response = await self._post_job(job)
        except (ProjectNotFound, DirectoryFetchError, DownstreamDispatchError) as exc:
            logger.error("Error processing file %s with project %s: %s", file_name, project_id, exc)
            if file_id:
                self._status_store.record(
                    file_id, STATUS_FAILED, project_id=project_id, error=str(exc),
                )
            return DispatchResult.failed(str(exc))

        if file_id:
            self._status_store.record(file_id, STATUS_DISPATCHED, project_id=project_id)
        return DispatchResult(success=True, project=project, response=response)

    async def _resolve_project(self, project_id: str) -> Project:
        projects = await self._directory.fetch_projects()
        for project in projects:
            if project.id == project_id:
                logger.debug("Selected project: %s", project)
                return project
        raise ProjectNotFound(project_id)

    async def _post_job(self, job: FileJob) -> Any:
        payload = job.to_payload()
        logger.debug("Sending file job to n8n for project %s", job.project.id)
        try:
            return await self._post(self._endpoint, payload, DISPATCH_TIMEOUT_S)
        except WebhookError as exc:
            raise DownstreamDispatchError(exc.message, exc.status_code) from exc

    # ------------------------------------------------------------------
    # Side channels
    # ------------------------------------------------------------------

    async def forward_upload_event(self, raw_event: dict[str, Any]) -> Any:
        """Forward a raw Slack file upload event to n8n.

        RULES:
        - Body: {"type": "event_callback", "event": raw_event, "timestamp": now}
        - 15 s timeout; raises ForwardError on any failure
        """
        payload = {
            "type": "event_callback",
            "event": raw_event,
            "timestamp": utc_timestamp(),
        }
        try:
            data = await self._post(self._endpoint, payload, FORWARD_TIMEOUT_S)
        except WebhookError as exc:
            logger.error("Error sending file upload to n8n: %s", exc)
            raise ForwardError(exc.message, exc.status_code) from exc

        logger.info("Sent file upload event to n8n")
        return data

    async def send_analytics(self, data: dict[str, Any]) -> Any:
        """Send an analytics event to the n8n analytics webhook.

        RULES:
        - POST {endpoint}/webhook/slack-analytics
        - data is copied and tagged with source="airtable-integration"
        - 10 s timeout; raises AnalyticsError on any failure
        """
        url = self._endpoint.rstrip("/") + ANALYTICS_PATH
        payload = {
            "type": "analytics",
            "data": {**data, "source": ANALYTICS_SOURCE},
            "timestamp": utc_timestamp(),
        }
        try:
            return await self._post(url, payload, ANALYTICS_TIMEOUT_S)
        except WebhookError as exc:
            logger.error("Error sending analytics to n8n: %s", exc)
            raise AnalyticsError(exc.message, exc.status_code) from exc

    def get_file_status(self, file_id: str) -> Optional[FileStatus]:
        """Return the last recorded status for a file, or None if never dispatched."""
        return self._status_store.get(file_id)

    def list_file_statuses(self) -> list[FileStatus]:
        """Return every tracked file status, oldest update first."""
        return self._status_store.list_statuses()

    # ------------------------------------------------------------------
    # HTTP helper
    # ------------------------------------------------------------------

    async def _post(self, url: str, payload: dict[str, Any], timeout: float) -> Any:
        client = self._ensure_client()
        try:
            resp = await client.post(url, json=payload, timeout=timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise WebhookError(str(exc) or type(exc).__name__) from exc

        if not resp.is_success:
            raise WebhookError(
                f"n8n returned {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )
        return _parse_body(resp)


def _parse_body(resp: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to the raw text."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text

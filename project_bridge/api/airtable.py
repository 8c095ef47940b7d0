"""Async HTTP client for the Airtable project directory.

WHY: Every project-selection message and every dispatch starts from the
list of projects stored in Airtable. This module hides the Airtable REST
details (URL layout, Bearer auth, record shape) behind a single client
class that returns typed Project objects.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. ProjectDirectoryClient
is an async context manager; enter it to get an authenticated client,
exit to close the connection pool. fetch_projects() reads the table once
and maps each record through Project.from_record().

RULES:
- Always use the async context manager (async with ProjectDirectoryClient(...) as d:)
- No caching: every fetch_projects() call is a fresh read
- Only the first Airtable page is read; a warning is logged if more exist
- All failures surface as DirectoryFetchError; nothing is retried
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from project_bridge.api.models import Project
from project_bridge.config import AIRTABLE_TABLE, DIRECTORY_TIMEOUT_S, BridgeSettings

logger = logging.getLogger(__name__)


class DirectoryFetchError(Exception):
    """Raised when the project list cannot be read from Airtable.

    WHY: Callers need one typed exception for "Airtable unreachable, timed
    out, refused us, or returned garbage", regardless of the cause.

    RULES:
    - status_code is set when Airtable answered with a non-2xx status
    - The underlying exception is chained via ``raise ... from``
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Failed to fetch projects: {message}")


class ProjectDirectoryClient:
    """Async client for the Airtable ``project_id`` table.

    RULES:
    - Use as: async with ProjectDirectoryClient(settings) as directory: ...
    - transport is only for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        settings: BridgeSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.airtable_api_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> ProjectDirectoryClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._settings.airtable_token}",
                "Content-Type": "application/json",
            },
            timeout=DIRECTORY_TIMEOUT_S,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "ProjectDirectoryClient must be used as an async context manager: "
                "async with ProjectDirectoryClient(settings) as directory: ..."
            )
        return self._client

    async def fetch_projects(self) -> list[Project]:
        """Fetch all projects from Airtable, in the order Airtable returns them.

        WHY: The selection message and the dispatch lookup both need the
        current project list. It is never cached, so edits in Airtable
        show up on the next upload.

        HOW: GET /{base}/project_id with a 10 s timeout, then map each
        record in ``records`` to a Project.

        RULES:
        - Raises DirectoryFetchError on transport errors and timeouts
        - Raises DirectoryFetchError on non-2xx responses (with status_code)
        - Raises DirectoryFetchError when the body has no record list or a
          record has no id
        - Returns an empty list for an empty table
        """
        client = self._ensure_client()
        path = f"/{self._settings.airtable_base}/{AIRTABLE_TABLE}"

        try:
            resp = await client.get(path, timeout=DIRECTORY_TIMEOUT_S)
        except httpx.HTTPError as exc:
            logger.error("Error fetching projects from Airtable: %s", exc)
            raise DirectoryFetchError(str(exc) or type(exc).__name__) from exc

        if not resp.is_success:
            logger.error(
                "Airtable returned %s while fetching projects: %s",
                resp.status_code, resp.text,
            )
            raise DirectoryFetchError(
                f"Airtable returned {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
            records = data["records"]
            projects = [Project.from_record(record) for record in records]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Malformed Airtable response: %s", exc)
            raise DirectoryFetchError(f"malformed Airtable response: {exc!r}") from exc

        if data.get("offset"):
            logger.warning(
                "Airtable returned more than one page; only the first %d projects are used",
                len(projects),
            )

        logger.info("Found %d projects in Airtable", len(projects))
        return projects

"""In-memory file status store written by the dispatch path.

WHY: Slack users and n8n workflows want to know what happened to an
uploaded file after a project was picked. The dispatcher records each
transition here, and the HTTP API reads it back.

HOW: A dict keyed by Slack file id, holding the last FileStatus. All
access goes through a threading.Lock because the API serves requests
concurrently and the Slack bot dispatches from background threads.
Entries older than the TTL are dropped by cleanup_expired().

RULES:
- Only the latest status per file id is kept
- get() returns None for unknown file ids (no exceptions, no synthetic data)
- Statuses live for the process lifetime only; nothing is persisted
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List, Optional, Tuple

from project_bridge.api.models import FileStatus, utc_timestamp

logger = logging.getLogger(__name__)

# Default time-to-live for status entries (seconds)
DEFAULT_TTL_SECONDS = 24 * 3600

STATUS_PROCESSING = "processing"
STATUS_DISPATCHED = "dispatched"
STATUS_FAILED = "failed"


class FileStatusStore:
    """Thread-safe map of file id -> last known FileStatus."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._entries: Dict[str, Tuple[float, FileStatus]] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds

    def record(
        self,
        file_id: str,
        status: str,
        project_id: Optional[str] = None,
        error: Optional[str] = None,
    ) -> FileStatus:
        """Store a new status for a file, replacing any previous one."""
        entry = FileStatus(
            file_id=file_id,
            status=status,
            timestamp=utc_timestamp(),
            project_id=project_id,
            error=error,
        )
        with self._lock:
            self._entries[file_id] = (time.time(), entry)
        logger.debug("File %s -> %s", file_id, status)
        return entry

    def get(self, file_id: str) -> Optional[FileStatus]:
        with self._lock:
            item = self._entries.get(file_id)
        return item[1] if item else None

    def list_statuses(self) -> List[FileStatus]:
        """Return all statuses, oldest update first."""
        with self._lock:
            items = sorted(self._entries.values(), key=lambda pair: pair[0])
        return [entry for _, entry in items]

    def cleanup_expired(self) -> int:
        """Remove entries not updated within the TTL. Returns the count removed."""
        cutoff = time.time() - self._ttl_seconds
        with self._lock:
            expired = [
                file_id for file_id, (updated, _) in self._entries.items()
                if updated < cutoff
            ]
            for file_id in expired:
                del self._entries[file_id]

        if expired:
            logger.info("Removed %d expired file statuses", len(expired))
        return len(expired)

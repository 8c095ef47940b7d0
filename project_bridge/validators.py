"""Upload and project-id checks used by the bot and the HTTP API.

RULES:
- Only Slack files with filetype "txt" are processed
- Project ids in path form are "ORGANIZATION / OWNER / REPO [/ PATH ...]"
- None of these functions raise; bad input yields False or ""
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from project_bridge.config import SUPPORTED_FILETYPE

_SUPPORTED_SUFFIX = re.compile(r"\.{}$".format(re.escape(SUPPORTED_FILETYPE)), re.IGNORECASE)


def is_supported_file(file: Optional[Mapping[str, Any]]) -> bool:
    """Check whether a Slack file object is a supported upload.

    RULES:
    - None, a missing filetype, or an empty filetype -> False
    - True only when filetype equals "txt" exactly
    """
    if not file or not file.get("filetype"):
        return False
    return file["filetype"] == SUPPORTED_FILETYPE


def extract_project_id(filename: Optional[str]) -> str:
    """Derive a project id from an uploaded filename.

    Strips a trailing ".txt" (any case) and surrounding whitespace:
    "my-repo.txt" -> "my-repo", "MY-REPO.TXT" -> "MY-REPO".
    """
    if not filename:
        return ""
    return _SUPPORTED_SUFFIX.sub("", filename).strip()


def is_valid_project_id(project_id: Any) -> bool:
    """Check that a project id has at least org/owner/repo segments.

    RULES:
    - Non-strings and empty strings -> False
    - Split on "/", each segment trimmed; at least 3 segments, none empty
    """
    if not project_id or not isinstance(project_id, str):
        return False
    parts = [part.strip() for part in project_id.split("/")]
    return len(parts) >= 3 and all(parts)

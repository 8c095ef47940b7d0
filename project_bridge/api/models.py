"""Dataclasses for Airtable projects, n8n file jobs, and dispatch results.

WHY: Airtable returns loosely typed records and n8n expects a fixed JSON
shape. Typed dataclasses make both structures explicit and keep the
field-name mapping in one place instead of scattered dict lookups.

HOW: Project.from_record() maps an Airtable record with explicit default
fallbacks. FileJob.to_payload() produces the exact JSON body posted to
n8n. DispatchResult and FileStatus carry outcomes back to callers.

RULES:
- Only the Airtable record id is required; optional fields never raise
- Project is immutable and rebuilt on every directory fetch
- Timestamps are ISO-8601 UTC with millisecond precision and a "Z" suffix
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from project_bridge.config import DEFAULT_BRANCH, DEFAULT_EMOJI


def utc_timestamp() -> str:
    """Return the current UTC time as e.g. "2026-01-31T12:00:00.000Z"."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Project:
    """A project record from the Airtable ``project_id`` table.

    WHY: A project maps an uploaded file to a code-repository destination
    (owner/repo/path/branch). The bridge renders projects as buttons and
    resolves the clicked one before dispatching to n8n.

    RULES:
    - id: Airtable record id, the only identity used for lookups
    - description defaults to "" and emoji to the folder glyph
    - branch defaults to "main" when the record has none
    - Duplicate ids are not detected here
    """

    id: str
    name: str
    owner: str
    repo: str
    path_prefix: str
    description: str = ""
    emoji: str = DEFAULT_EMOJI
    branch: str = DEFAULT_BRANCH

    @classmethod
    def from_record(cls, record: dict) -> Project:
        """Parse a Project from a raw Airtable record dict.

        HOW: Reads ``record["id"]`` and the ``fields`` mapping. Field names
        follow the Airtable table: ``Name`` (capitalized), ``owner``,
        ``repo``, ``path_prefix``, ``description``, ``emoji``, ``branch``.

        RULES:
        - Raises KeyError when the record has no id
        - Missing or empty description/emoji/branch take their defaults
        - Missing name/owner/repo/path_prefix become ""
        """
        fields = record.get("fields") or {}
        return cls(
            id=record["id"],
            name=fields.get("Name", ""),
            owner=fields.get("owner", ""),
            repo=fields.get("repo", ""),
            path_prefix=fields.get("path_prefix", ""),
            description=fields.get("description") or "",
            emoji=fields.get("emoji") or DEFAULT_EMOJI,
            branch=fields.get("branch") or DEFAULT_BRANCH,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "repo": self.repo,
            "path_prefix": self.path_prefix,
            "description": self.description,
            "emoji": self.emoji,
            "branch": self.branch,
        }


@dataclass(frozen=True)
class FileJob:
    """A file paired with its destination project, ready for n8n.

    WHY: n8n's file-processing workflow needs the file text, who uploaded
    it and where, plus the repository coordinates to commit it to.

    RULES:
    - Only built after the project was found in a fresh directory fetch
    - file_timestamp is the Slack message ts; dispatched_at is dispatch time
    """

    file_name: str
    file_content: str
    uploaded_by: str
    channel: str
    file_timestamp: str
    project: Project
    dispatched_at: str

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body posted to the n8n webhook."""
        return {
            "type": "file_processing",
            "file": {
                "name": self.file_name,
                "content": self.file_content,
                "uploaded_by": self.uploaded_by,
                "channel": self.channel,
                "timestamp": self.file_timestamp,
            },
            "project": {
                "id": self.project.id,
                "name": self.project.name,
                "owner": self.project.owner,
                "repo": self.project.repo,
                "path_prefix": self.project.path_prefix,
                "branch": self.project.branch or DEFAULT_BRANCH,
            },
            "timestamp": self.dispatched_at,
        }


@dataclass
class DispatchResult:
    """Outcome of dispatching a file with a chosen project.

    RULES:
    - success=True: project is set, response holds the parsed n8n body
    - success=False: project is None, error is a non-empty message
    """

    success: bool
    project: Optional[Project] = None
    response: Any = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> DispatchResult:
        return cls(success=False, project=None, error=error)


@dataclass
class FileStatus:
    """Last known processing status of an uploaded file.

    RULES:
    - status is one of "processing", "dispatched", "failed"
    - project_id is the project the file was dispatched with, if any
    - error is set only when status is "failed"
    """

    file_id: str
    status: str
    timestamp: str
    project_id: Optional[str] = None
    error: Optional[str] = None

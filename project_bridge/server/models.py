"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation.

HOW: One model per request/response body. Dataclasses from
project_bridge.api.models are converted with the from_* helpers so the
HTTP layer never leaks internal types.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Field names are snake_case; the Block Kit payload keeps Slack's camelCase
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from project_bridge.api.models import FileStatus, Project


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class DispatchRequest(BaseModel):
    """A file upload paired with the project the user picked.

    RULES:
    - project_id is the Airtable record id from the clicked button
    - ts is the Slack message timestamp of the upload
    - file_id is optional; when present the dispatch is tracked in /files
    """

    file_content: str = Field(description="Text content of the uploaded file.")
    file_name: str = Field(description="Original filename of the upload.")
    project_id: str = Field(description="Airtable record id of the chosen project.")
    user_id: str = Field(description="Slack user id of the uploader.")
    channel_id: str = Field(description="Slack channel id the file was shared in.")
    ts: str = Field(description="Slack timestamp of the upload message.")
    file_id: Optional[str] = Field(
        default=None,
        description="Slack file id, used to track processing status.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "file_content": "meeting notes...",
                "file_name": "notes.txt",
                "project_id": "recA1b2C3d4E5f6G7",
                "user_id": "U012ABCDEF",
                "channel_id": "C012ABCDEF",
                "ts": "1739959200.000100",
                "file_id": "F012ABCDEF",
            }
        ]
    }}


class AnalyticsRequest(BaseModel):
    """Arbitrary analytics data forwarded to n8n."""

    data: Dict[str, Any] = Field(description="Analytics fields; 'source' is added by the bridge.")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ProjectResponse(BaseModel):
    """A project from the Airtable directory."""

    id: str = Field(description="Airtable record id.")
    name: str = Field(description="Project display name.")
    owner: str = Field(description="Repository owner.")
    repo: str = Field(description="Repository name.")
    path_prefix: str = Field(description="Path inside the repository files are written to.")
    description: str = Field(description="Free-text project description.")
    emoji: str = Field(description="Emoji shown on the selection button.")
    branch: str = Field(description="Target branch.")

    @classmethod
    def from_project(cls, project: Project) -> ProjectResponse:
        return cls(**project.to_dict())


class SelectionResponse(BaseModel):
    """Block Kit blocks for the project-selection message."""

    blocks: List[Dict[str, Any]] = Field(description="Block Kit blocks, ready for chat.postMessage.")


class DispatchResponse(BaseModel):
    """Outcome of a file dispatch.

    RULES:
    - success=True: project and response are set
    - success=False: project is null and error explains why
    """

    success: bool = Field(description="Whether n8n accepted the file job.")
    project: Optional[ProjectResponse] = Field(default=None, description="The resolved project.")
    response: Any = Field(default=None, description="Body returned by the n8n webhook.")
    error: Optional[str] = Field(default=None, description="Failure reason, only when success is false.")


class WebhookResponse(BaseModel):
    """Body returned by the n8n webhook for a forwarded event or analytics call."""

    response: Any = Field(default=None, description="Parsed n8n response body.")


class FileStatusResponse(BaseModel):
    """Last known processing status of an uploaded file."""

    file_id: str = Field(description="Slack file id.")
    status: str = Field(description="One of 'processing', 'dispatched', 'failed'.")
    timestamp: str = Field(description="ISO-8601 UTC time of the last status change.")
    project_id: Optional[str] = Field(default=None, description="Project the file was dispatched with.")
    error: Optional[str] = Field(default=None, description="Failure reason, only when status is 'failed'.")

    @classmethod
    def from_status(cls, status: FileStatus) -> FileStatusResponse:
        return cls(
            file_id=status.file_id,
            status=status.status,
            timestamp=status.timestamp,
            project_id=status.project_id,
            error=status.error,
        )


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})

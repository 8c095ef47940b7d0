"""Airtable and n8n clients: async HTTP interfaces to the bridge's backends.

WHY: The bridge reads projects from Airtable and writes file jobs, raw
events, and analytics to an n8n webhook. This package keeps all of that
HTTP traffic behind two client classes with typed results.

HOW: Both clients wrap httpx.AsyncClient and are async context managers.
Response data is parsed into the dataclasses defined in models.py.

RULES:
- All outbound HTTP goes through ProjectDirectoryClient or FileDispatcher
- Airtable authentication is via Bearer token from BridgeSettings
- Every call has its own timeout and none is retried
"""

from project_bridge.api.airtable import DirectoryFetchError, ProjectDirectoryClient
from project_bridge.api.models import DispatchResult, FileJob, FileStatus, Project
from project_bridge.api.n8n import (
    AnalyticsError,
    DownstreamDispatchError,
    FileDispatcher,
    ForwardError,
    ProjectNotFound,
    WebhookError,
)

__all__ = [
    "AnalyticsError",
    "DirectoryFetchError",
    "DispatchResult",
    "DownstreamDispatchError",
    "FileDispatcher",
    "FileJob",
    "FileStatus",
    "ForwardError",
    "Project",
    "ProjectDirectoryClient",
    "ProjectNotFound",
    "WebhookError",
]

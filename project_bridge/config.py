"""Configuration constants, settings object, and .env loading.

WHY: Airtable credentials, the n8n webhook URL, per-call timeouts, and
the Block Kit defaults are all tunable values. Keeping them in one place
as plain data makes them easy to find and override.

HOW: python-dotenv loads the .env file on import. Constants are
module-level values. Credentials and endpoints are bundled into a frozen
BridgeSettings dataclass that every client receives at construction, so
tests can inject fake values instead of patching os.environ.

RULES:
- Settings are read once by load_settings() and never mutated
- Missing credentials are NOT validated here; Airtable/n8n reject them later
- Every outbound call has its own timeout (see *_TIMEOUT_S)
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Airtable
# ---------------------------------------------------------------------------

AIRTABLE_API_URL = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0")
AIRTABLE_TABLE = "project_id"
"""Name of the Airtable table holding one record per project."""

# ---------------------------------------------------------------------------
# Timeouts (seconds); no retry layer sits on top of these
# ---------------------------------------------------------------------------

DIRECTORY_TIMEOUT_S = 10.0
DISPATCH_TIMEOUT_S = 30.0
FORWARD_TIMEOUT_S = 15.0
ANALYTICS_TIMEOUT_S = 10.0

# ---------------------------------------------------------------------------
# Project defaults and file types
# ---------------------------------------------------------------------------

DEFAULT_EMOJI = "\U0001f4c1"  # folder glyph
DEFAULT_BRANCH = "main"

SUPPORTED_FILETYPE = "txt"
"""Slack filetype tag of the only uploads the bridge processes."""

# ---------------------------------------------------------------------------
# n8n webhook
# ---------------------------------------------------------------------------

ANALYTICS_PATH = "/webhook/slack-analytics"
ANALYTICS_SOURCE = "airtable-integration"


@dataclass(frozen=True)
class BridgeSettings:
    """Credentials and endpoints shared by the Airtable and n8n clients.

    RULES:
    - airtable_base: Airtable base id (e.g. "appXXXXXXXXXXXXXX")
    - airtable_token: personal access token sent as a Bearer token
    - n8n_endpoint: full URL of the n8n webhook receiving file jobs
    - airtable_api_url: API root, overridable for tests and proxies
    """

    airtable_base: str
    airtable_token: str
    n8n_endpoint: str
    airtable_api_url: str = AIRTABLE_API_URL


def load_settings() -> BridgeSettings:
    """Build BridgeSettings from the process environment.

    WHY: Entry points (API server, Slack bot) need one place that turns
    environment variables into the settings object.

    RULES:
    - Reads AIRTABLE_BASE, AIRTABLE_TOKEN, N8N_WEBHOOK_URL, AIRTABLE_API_URL
    - Absent values become empty strings; nothing is raised here
    """
    return BridgeSettings(
        airtable_base=os.getenv("AIRTABLE_BASE", "").strip(),
        airtable_token=os.getenv("AIRTABLE_TOKEN", "").strip(),
        n8n_endpoint=os.getenv("N8N_WEBHOOK_URL", "").strip(),
        airtable_api_url=os.getenv("AIRTABLE_API_URL", AIRTABLE_API_URL).strip(),
    )

"""Shared test fixtures for the project_bridge test suite.

WHY: The directory, dispatcher, and API tests all need the same fake
Airtable table and fake n8n webhook. Centralizing them here keeps every
test module talking to identical backends.

HOW: FakeBackend is an httpx.MockTransport handler that answers Airtable
and n8n requests from configurable state and records every request it
sees. Clients receive its transport, so no real HTTP is ever made.

RULES:
- Airtable lives at https://airtable.test/v0, n8n at https://n8n.test
- Every test gets a fresh FakeBackend (no shared mutable state)
- Failures are injected by setting status codes or raise_on
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from project_bridge.config import BridgeSettings

AIRTABLE_API_URL = "https://airtable.test/v0"
AIRTABLE_HOST = "airtable.test"
N8N_ENDPOINT = "https://n8n.test/webhook/file-processing"
N8N_HOST = "n8n.test"


def airtable_record(record_id: str, **fields: Any) -> Dict[str, Any]:
    """Build a raw Airtable record the way the REST API returns it."""
    return {"id": record_id, "createdTime": "2026-01-01T00:00:00.000Z", "fields": fields}


DEMO_RECORD = airtable_record(
    "p1", Name="Demo", owner="acme", repo="demo", path_prefix="src",
)
DOCS_RECORD = airtable_record(
    "p2",
    Name="Docs",
    owner="acme",
    repo="docs",
    path_prefix="content/notes",
    description="Documentation site",
    emoji="\U0001f4da",
    branch="develop",
)


class FakeBackend:
    """MockTransport handler standing in for Airtable and n8n."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None) -> None:
        self.records = list(records or [])
        self.requests: List[httpx.Request] = []
        self.airtable_status = 200
        self.airtable_body: Any = None
        self.n8n_status = 200
        self.n8n_body: Any = {"status": "accepted"}
        self.n8n_text: Optional[str] = None
        self.raise_on: Optional[str] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.raise_on == request.url.host:
            raise httpx.ReadTimeout("timed out", request=request)

        if request.url.host == AIRTABLE_HOST:
            body = self.airtable_body if self.airtable_body is not None else {"records": self.records}
            return httpx.Response(self.airtable_status, json=body)

        if self.n8n_text is not None:
            return httpx.Response(self.n8n_status, text=self.n8n_text)
        return httpx.Response(self.n8n_status, json=self.n8n_body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def airtable_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == AIRTABLE_HOST]

    def n8n_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == N8N_HOST]

    def last_n8n_json(self) -> Dict[str, Any]:
        return json.loads(self.n8n_requests()[-1].content)


@pytest.fixture
def settings() -> BridgeSettings:
    return BridgeSettings(
        airtable_base="appTEST123",
        airtable_token="pat-test-token",
        n8n_endpoint=N8N_ENDPOINT,
        airtable_api_url=AIRTABLE_API_URL,
    )


@pytest.fixture
def backend() -> FakeBackend:
    """Airtable table with the Demo and Docs projects, n8n accepting jobs."""
    return FakeBackend(records=[DEMO_RECORD, DOCS_RECORD])


@pytest.fixture
def demo_record() -> Dict[str, Any]:
    """Record with only the required fields (no description/emoji/branch)."""
    return dict(DEMO_RECORD)


@pytest.fixture
def docs_record() -> Dict[str, Any]:
    """Record with every optional field filled in."""
    return dict(DOCS_RECORD)


@pytest.fixture
def make_backend():
    """Factory for a FakeBackend over an arbitrary record list."""
    return FakeBackend


@pytest.fixture
def make_record():
    """Factory for raw Airtable records: make_record("rec1", Name="X")."""
    return airtable_record

"""Shared fakes for the ingestion worker test suite."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from copilot_audit.config import Settings
from copilot_audit.http import HttpClient

TENANT_ID = "00000000-1111-2222-3333-444444444444"
WORKSPACE_ID = "ws-0001"
SHARED_KEY = "dGVzdC1zaGFyZWQta2V5"  # base64("test-shared-key")
MANAGEMENT_BASE = "https://manage.office.com/api/v1.0"
FEED_URL = f"{MANAGEMENT_BASE}/{TENANT_ID}/activity/feed/subscriptions"
T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def build_settings(**sections: dict[str, Any]) -> Settings:
    """Build settings with test credentials, merging per-section overrides."""
    data: dict[str, dict[str, Any]] = {
        "identity": {
            "tenant_id": TENANT_ID,
            "client_id": "client-id",
            "client_secret": "client-secret",
        },
        "workspace": {"workspace_id": WORKSPACE_ID, "shared_key": SHARED_KEY},
    }
    for name, values in sections.items():
        data.setdefault(name, {}).update(values)
    return Settings(**data)


class FrozenClock:
    """Mutable clock for deterministic expiry tests."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def blob_uri(name: str) -> str:
    return f"{MANAGEMENT_BASE}/{TENANT_ID}/activity/feed/audit/{name}"


@dataclass
class FakeCloud:
    """Routes identity, Management Activity API and collector requests.

    Every request is recorded in ``requests``. Responses are configured by
    mutating the public attributes before running the code under test.
    """

    token_status: int = 200
    token_expires_in: int = 3600
    token_body: Any = None
    subscription_status: int = 200
    subscription_body: Any = field(default_factory=lambda: {"status": "enabled"})
    listing_pages: list[list[dict[str, Any]]] = field(default_factory=lambda: [[]])
    listing_status: int = 200
    blobs: dict[str, tuple[int, Any]] = field(default_factory=dict)
    collector_status: int = 200
    requests: list[httpx.Request] = field(default_factory=list)
    issued_tokens: int = 0

    def add_blob(self, name: str, records: Any, status: int = 200) -> dict[str, Any]:
        """Register a blob and return its listing element."""
        self.blobs[name] = (status, records)
        return {
            "contentType": "Audit.General",
            "contentId": name,
            "contentUri": blob_uri(name),
            "contentCreated": "2024-01-01T11:30:00.000Z",
            "contentExpiration": "2024-01-08T11:30:00.000Z",
        }

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def http(self) -> HttpClient:
        return HttpClient(transport=self.transport())

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path
        if host == "login.microsoftonline.com":
            return self._token(request)
        if host.endswith(".ods.opinsights.azure.com"):
            return httpx.Response(self.collector_status, text="", request=request)
        if "/activity/feed/audit/" in path:
            name = path.rsplit("/", 1)[-1]
            status, records = self.blobs.get(name, (404, {"error": "missing"}))
            return httpx.Response(status, json=records, request=request)
        if path.endswith("/subscriptions/start"):
            return httpx.Response(
                self.subscription_status, json=self.subscription_body, request=request
            )
        if path.endswith("/subscriptions/content"):
            return self._listing(request)
        return httpx.Response(404, request=request)

    def requests_to(self, fragment: str) -> list[httpx.Request]:
        return [request for request in self.requests if fragment in str(request.url)]

    def _token(self, request: httpx.Request) -> httpx.Response:
        if self.token_status != 200:
            return httpx.Response(
                self.token_status,
                json={"error": "invalid_client", "error_description": "bad secret"},
                request=request,
            )
        self.issued_tokens += 1
        body = self.token_body or {
            "token_type": "Bearer",
            "expires_in": self.token_expires_in,
            "access_token": f"token-{self.issued_tokens}",
        }
        return httpx.Response(200, json=body, request=request)

    def _listing(self, request: httpx.Request) -> httpx.Response:
        if self.listing_status != 200:
            return httpx.Response(self.listing_status, text="listing unavailable", request=request)
        page = int(request.url.params.get("nextPage", "1"))
        headers = {}
        if page < len(self.listing_pages):
            headers["NextPageUri"] = f"{FEED_URL}/content?contentType=Audit.General&nextPage={page + 1}"
        return httpx.Response(
            200,
            content=json.dumps(self.listing_pages[page - 1]).encode("utf-8"),
            headers={"Content-Type": "application/json", **headers},
            request=request,
        )

"""Shared-key request signing for the Log Analytics HTTP Data Collector API."""

from __future__ import annotations

import base64
import hashlib
import hmac
from datetime import datetime, timezone
from email.utils import format_datetime

RESOURCE_PATH = "/api/logs"
CONTENT_TYPE = "application/json"


def rfc1123_date(value: datetime) -> str:
    """Format ``value`` for the ``x-ms-date`` header, e.g. ``Mon, 01 Jan 2024 00:00:00 GMT``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def string_to_sign(
    *,
    content_length: int,
    date: str,
    method: str = "POST",
    content_type: str = CONTENT_TYPE,
    resource: str = RESOURCE_PATH,
) -> str:
    """Build the canonical string the collector expects to be signed."""
    return f"{method}\n{content_length}\n{content_type}\nx-ms-date:{date}\n{resource}"


def build_signature(
    workspace_id: str,
    shared_key: str,
    *,
    content_length: int,
    date: str,
    method: str = "POST",
    content_type: str = CONTENT_TYPE,
    resource: str = RESOURCE_PATH,
) -> str:
    """Return the ``Authorization`` header value for one collector request.

    ``shared_key`` is the base64 workspace key; the HMAC-SHA256 digest is
    computed with its decoded bytes and base64-encoded again.
    """
    message = string_to_sign(
        content_length=content_length,
        date=date,
        method=method,
        content_type=content_type,
        resource=resource,
    )
    key = base64.b64decode(shared_key)
    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    encoded = base64.b64encode(digest).decode("ascii")
    return f"SharedKey {workspace_id}:{encoded}"

"""Value types returned by the Management Activity API client."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class SubscriptionOutcome(Enum):
    """Result of ensuring the content subscription."""

    STARTED = "started"
    ALREADY_ENABLED = "already_enabled"
    FAILED = "failed"


@dataclass(frozen=True)
class ContentBlobReference:
    """One retrievable batch of raw audit records for a time window."""

    content_id: str
    content_uri: str
    content_type: str = ""
    content_created: str | None = None
    content_expiration: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ContentBlobReference:
        """Build a reference from one element of the content listing.

        Raises:
            ValueError: ``contentUri`` is missing or blank.
        """
        uri = payload.get("contentUri")
        if not isinstance(uri, str) or not uri.strip():
            raise ValueError("content listing element has no contentUri")
        return cls(
            content_id=str(payload.get("contentId") or ""),
            content_uri=uri,
            content_type=str(payload.get("contentType") or ""),
            content_created=payload.get("contentCreated"),
            content_expiration=payload.get("contentExpiration"),
        )


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds and a ``Z`` suffix.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"

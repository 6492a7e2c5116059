"""Summary of one ingestion invocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..activity import SubscriptionOutcome, format_timestamp


@dataclass
class IngestionReport:
    """Counts and degraded stages for one run."""

    invocation_id: str
    window_start: datetime
    window_end: datetime
    dry_run: bool = False
    subscription: SubscriptionOutcome | None = None
    blobs_listed: int = 0
    records_fetched: int = 0
    records_relevant: int = 0
    records_sent: int = 0
    degraded_stages: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.degraded_stages)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable view of the report."""
        return {
            "invocation_id": self.invocation_id,
            "window_start": format_timestamp(self.window_start),
            "window_end": format_timestamp(self.window_end),
            "dry_run": self.dry_run,
            "subscription": self.subscription.value if self.subscription else None,
            "blobs_listed": self.blobs_listed,
            "records_fetched": self.records_fetched,
            "records_relevant": self.records_relevant,
            "records_sent": self.records_sent,
            "degraded_stages": list(self.degraded_stages),
        }

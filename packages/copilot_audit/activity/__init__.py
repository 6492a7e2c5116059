"""Office 365 Management Activity API access."""

from .client import ActivityFeedClient
from .models import ContentBlobReference, SubscriptionOutcome, format_timestamp

__all__ = [
    "ActivityFeedClient",
    "ContentBlobReference",
    "format_timestamp",
    "SubscriptionOutcome",
]

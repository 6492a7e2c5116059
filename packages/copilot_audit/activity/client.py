"""Client for the Office 365 Management Activity API subscription feed."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from ..config import ManagementConfig
from ..errors import ContentListingError, RecordFetchError, SubscriptionError
from ..http import HttpClient, HttpError, HttpStatusError, decode_json, response_text
from .models import ContentBlobReference, SubscriptionOutcome, format_timestamp

logger = logging.getLogger(__name__)

ALREADY_ENABLED_MARKER = "already enabled"
NEXT_PAGE_HEADER = "NextPageUri"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class ActivityFeedClient:
    """Subscription, content listing and blob retrieval for one tenant.

    Every method raises a typed :class:`~copilot_audit.errors.ActivityApiError`
    subclass on failure; deciding whether a failure aborts the run is left to
    the caller.
    """

    def __init__(self, http: HttpClient, management: ManagementConfig, tenant_id: str) -> None:
        self._http = http
        self._management = management
        self._tenant_id = tenant_id

    @property
    def content_type(self) -> str:
        return self._management.content_type

    @property
    def feed_url(self) -> str:
        """Return the subscriptions root for the tenant."""
        base = self._management.base_url.rstrip("/")
        return f"{base}/{self._tenant_id}/activity/feed/subscriptions"

    def start_subscription(self, token: str) -> SubscriptionOutcome:
        """Start the content subscription, treating "already enabled" as success.

        Raises:
            SubscriptionError: Any other failure.
        """
        url = f"{self.feed_url}/start"
        try:
            response = self._http.post(
                url,
                params={"contentType": self.content_type},
                headers=_bearer(token),
                raise_for_status=False,
            )
        except HttpError as exc:
            raise SubscriptionError(f"Failed to ensure subscription: {exc}") from exc

        if response.is_success:
            logger.info("Subscription ensured successfully for %s content type", self.content_type)
            return SubscriptionOutcome.STARTED

        body = response_text(response)
        if response.status_code == 400 and ALREADY_ENABLED_MARKER in body.lower():
            logger.info("Subscription already enabled for %s content type", self.content_type)
            return SubscriptionOutcome.ALREADY_ENABLED

        raise SubscriptionError(
            f"Failed to ensure subscription: HTTP {response.status_code}",
            status_code=response.status_code,
            response_body=body,
        )

    def list_content(
        self, token: str, start: datetime, end: datetime
    ) -> list[ContentBlobReference]:
        """List content blobs available in ``[start, end]``, following pagination.

        Raises:
            ContentListingError: Any page failed or returned a non-array body.
        """
        url: str | None = f"{self.feed_url}/content"
        params: dict[str, str] | None = {
            "contentType": self.content_type,
            "startTime": format_timestamp(start),
            "endTime": format_timestamp(end),
        }
        references: list[ContentBlobReference] = []
        pages = 0

        while url is not None:
            if pages >= self._management.max_pages:
                logger.warning(
                    "Stopped following content pages after %d pages; remaining pages skipped",
                    pages,
                )
                break
            payload, next_url = self._get_page(url, params, token)
            pages += 1
            references.extend(self._parse_listing(payload))
            url, params = next_url, None

        logger.info(
            "Found %d content blobs to process from %s", len(references), self.content_type
        )
        return references

    def fetch_records(self, token: str, content_uri: str) -> list[Any]:
        """Fetch one content blob and return its raw audit records.

        Raises:
            RecordFetchError: The request failed or the body is not a JSON array.
        """
        try:
            payload = self._http.get_json(content_uri, headers=_bearer(token))
        except HttpStatusError as exc:
            raise RecordFetchError(
                f"Failed to get audit records from {content_uri}: HTTP {exc.status_code}",
                status_code=exc.status_code,
                response_body=exc.response_body,
            ) from exc
        except HttpError as exc:
            raise RecordFetchError(f"Failed to get audit records from {content_uri}: {exc}") from exc

        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RecordFetchError(
                f"Audit records from {content_uri} are not a JSON array"
            )
        return payload

    def _get_page(
        self, url: str, params: dict[str, str] | None, token: str
    ) -> tuple[Any, str | None]:
        try:
            response = self._http.get(url, params=params, headers=_bearer(token))
            payload = decode_json(response)
        except HttpStatusError as exc:
            raise ContentListingError(
                f"Failed to get available content: HTTP {exc.status_code}",
                status_code=exc.status_code,
                response_body=exc.response_body,
            ) from exc
        except HttpError as exc:
            raise ContentListingError(f"Failed to get available content: {exc}") from exc

        next_url = response.headers.get(NEXT_PAGE_HEADER) or None
        return payload, next_url

    def _parse_listing(self, payload: Any) -> list[ContentBlobReference]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ContentListingError("Content listing is not a JSON array")

        references: list[ContentBlobReference] = []
        for element in payload:
            if not isinstance(element, dict):
                logger.warning("Skipping content listing element that is not an object")
                continue
            try:
                references.append(ContentBlobReference.from_payload(element))
            except ValueError:
                logger.warning(
                    "Skipping content listing element without contentUri: %s",
                    element.get("contentId"),
                )
        return references

"""Domain errors raised by the ingestion worker."""

from __future__ import annotations


class CopilotAuditError(Exception):
    """Base class for ingestion worker failures."""


class ConfigurationError(CopilotAuditError):
    """Settings are missing or invalid."""


class TokenAcquisitionError(CopilotAuditError):
    """The client-credential exchange failed or returned an unusable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ActivityApiError(CopilotAuditError):
    """A Management Activity API call failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class SubscriptionError(ActivityApiError):
    """Starting the content subscription failed."""


class ContentListingError(ActivityApiError):
    """Listing available content blobs failed."""


class RecordFetchError(ActivityApiError):
    """Fetching one content blob failed or returned an unexpected body."""


class DeliveryError(CopilotAuditError):
    """The log collector rejected the batch or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str = "",
        record_count: int = 0,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.record_count = record_count


class StageFailedError(CopilotAuditError):
    """A pipeline stage with a fatal policy failed."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause

"""Forward record batches to a Log Analytics custom table."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from ..clock import Clock, utc_now
from ..config import WorkspaceConfig
from ..errors import DeliveryError
from ..http import HttpClient, HttpError, HttpStatusError
from .signature import CONTENT_TYPE, RESOURCE_PATH, build_signature, rfc1123_date

logger = logging.getLogger(__name__)

CUSTOM_LOG_SUFFIX = "_CL"


def log_type_for(table_name: str) -> str:
    """Return the ``Log-Type`` header value for a custom table name.

    The collector appends ``_CL`` itself, so a trailing suffix is removed.
    """
    if table_name.upper().endswith(CUSTOM_LOG_SUFFIX):
        return table_name[: -len(CUSTOM_LOG_SUFFIX)]
    return table_name


class SentinelForwarder:
    """Sign and POST a JSON array of records to the HTTP Data Collector API."""

    def __init__(
        self,
        http: HttpClient,
        workspace: WorkspaceConfig,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._http = http
        self._workspace = workspace
        self._clock = clock

    @property
    def endpoint(self) -> str:
        ws = self._workspace
        return (
            f"https://{ws.workspace_id}.{ws.endpoint_suffix}{RESOURCE_PATH}"
            f"?api-version={ws.api_version}"
        )

    def build_headers(self, content_length: int) -> dict[str, str]:
        """Return the signed request headers for a body of ``content_length`` bytes."""
        date = rfc1123_date(self._clock())
        headers = {
            "Authorization": build_signature(
                self._workspace.workspace_id,
                self._workspace.shared_key,
                content_length=content_length,
                date=date,
            ),
            "Log-Type": log_type_for(self._workspace.table_name),
            "x-ms-date": date,
            "Content-Type": CONTENT_TYPE,
        }
        if self._workspace.time_generated_field:
            headers["time-generated-field"] = self._workspace.time_generated_field
        return headers

    def send_batch(self, records: Sequence[Any]) -> int:
        """Send ``records`` as one request and return how many were sent.

        Raises:
            DeliveryError: The collector rejected the batch or was unreachable.
        """
        if not records:
            return 0

        body = json.dumps(list(records), default=str).encode("utf-8")
        headers = self.build_headers(len(body))
        table = self._workspace.table_name

        try:
            response = self._http.post(self.endpoint, content=body, headers=headers)
        except HttpStatusError as exc:
            logger.error(
                "Failed to send data to Sentinel. Status: %s, Response: %s",
                exc.status_code,
                exc.response_body,
            )
            raise DeliveryError(
                f"Log collector rejected {len(records)} records: HTTP {exc.status_code}",
                status_code=exc.status_code,
                response_body=exc.response_body,
                record_count=len(records),
            ) from exc
        except HttpError as exc:
            logger.error("Failed to send data to Sentinel: %s", exc)
            raise DeliveryError(
                f"Log collector unreachable: {exc}", record_count=len(records)
            ) from exc

        logger.info(
            "Successfully sent %d records to Sentinel table %s (status %s)",
            len(records),
            table,
            response.status_code,
        )
        return len(records)

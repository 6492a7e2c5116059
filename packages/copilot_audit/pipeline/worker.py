"""One-pass ingestion of Copilot audit records into Log Analytics.

Each :meth:`AuditIngestionWorker.run` call is a single bounded pass:

    window -> token -> subscription -> listing -> fetch each blob
           -> filter -> send (only when something is relevant)

Stage failures follow the policy table from :mod:`.policy`. Anything that
escapes is logged with its traceback and re-raised so the external scheduler
records the run as failed; there is no internal retry.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, TypeVar

from ..activity import ActivityFeedClient, ContentBlobReference, SubscriptionOutcome
from ..auth import TokenCache
from ..clock import Clock, utc_now
from ..config import Settings
from ..errors import ActivityApiError, CopilotAuditError, StageFailedError
from ..http import HttpClient
from ..logging import invocation_scope, stage_scope
from ..relevance import filter_relevant
from ..sentinel import SentinelForwarder
from .policy import Stage, StagePolicy, resolve_policies
from .report import IngestionReport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuditIngestionWorker:
    """Fetch, filter and forward Copilot audit records for one tenant.

    Collaborators are built from ``settings`` unless passed in. The worker owns
    the HTTP client it creates and closes it on exit.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        http: HttpClient | None = None,
        clock: Clock = utc_now,
        token_cache: TokenCache | None = None,
        activity: ActivityFeedClient | None = None,
        forwarder: SentinelForwarder | None = None,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._owns_http = http is None
        self._http = http or HttpClient(
            timeout_seconds=settings.http.timeout_seconds,
            connect_timeout_seconds=settings.http.connect_timeout_seconds,
        )
        self._tokens = token_cache or TokenCache(self._http, settings.identity, clock=clock)
        self._activity = activity or ActivityFeedClient(
            self._http, settings.management, settings.identity.tenant_id
        )
        self._forwarder = forwarder or SentinelForwarder(
            self._http, settings.workspace, clock=clock
        )
        self._policies = resolve_policies(settings.pipeline)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> AuditIngestionWorker:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    @property
    def policies(self) -> dict[Stage, StagePolicy]:
        return dict(self._policies)

    def window(self, now: datetime | None = None) -> tuple[datetime, datetime]:
        """Return the ``[now - lookback, now]`` listing window."""
        end = now or self._clock()
        start = end - timedelta(hours=self._settings.management.lookback_hours)
        return start, end

    def get_token(self) -> str:
        """Return a valid bearer token; failure always aborts the invocation."""
        return self._run_stage(Stage.TOKEN, lambda: self._tokens.get_token().value, None)

    def ensure_subscription(
        self, token: str, report: IngestionReport | None = None
    ) -> SubscriptionOutcome:
        """Ensure the content subscription is active."""
        return self._run_stage(
            Stage.SUBSCRIPTION,
            lambda: self._activity.start_subscription(token),
            SubscriptionOutcome.FAILED,
            report,
        )

    def list_content(
        self,
        token: str,
        start: datetime,
        end: datetime,
        report: IngestionReport | None = None,
    ) -> list[ContentBlobReference]:
        """List content blobs in ``[start, end]``; degrades to an empty list."""
        return self._run_stage(
            Stage.LISTING,
            lambda: self._activity.list_content(token, start, end),
            [],
            report,
        )

    def fetch_records(
        self, token: str, blob_uri: str, report: IngestionReport | None = None
    ) -> list[Any]:
        """Fetch one blob's records; degrades to an empty list."""
        return self._run_stage(
            Stage.FETCH,
            lambda: self._activity.fetch_records(token, blob_uri),
            [],
            report,
        )

    def send_batch(self, records: list[Any]) -> int:
        """Forward ``records``; failure always fails the invocation."""
        return self._run_stage(Stage.DELIVERY, lambda: self._forwarder.send_batch(records), 0)

    def run(self, now: datetime | None = None, *, dry_run: bool = False) -> IngestionReport:
        """Execute one ingestion pass and return its report.

        Raises:
            StageFailedError: A fatal stage failed.
        """
        # Each pass exchanges credentials afresh; tokens never carry over.
        self._tokens.invalidate()
        start, end = self.window(now)
        report = IngestionReport(
            invocation_id=uuid.uuid4().hex,
            window_start=start,
            window_end=end,
            dry_run=dry_run,
        )
        with invocation_scope(report.invocation_id):
            logger.info(
                "Starting Copilot audit log processing for period: %s to %s",
                start.isoformat(),
                end.isoformat(),
            )
            try:
                self._run_pipeline(report)
            except Exception:
                logger.exception("Critical error during processing")
                raise
            logger.info(
                "Successfully processed %d Copilot audit records", report.records_relevant
            )
        return report

    def _run_pipeline(self, report: IngestionReport) -> None:
        report.subscription = self.ensure_subscription(self.get_token(), report)

        blobs = self.list_content(
            self.get_token(), report.window_start, report.window_end, report
        )
        report.blobs_listed = len(blobs)

        records: list[Any] = []
        for blob in blobs:
            records.extend(self.fetch_records(self.get_token(), blob.content_uri, report))
        report.records_fetched = len(records)

        relevant = filter_relevant(records)
        report.records_relevant = len(relevant)
        logger.info(
            "Filtered %d Copilot records from %d total records", len(relevant), len(records)
        )

        if not relevant:
            return
        if report.dry_run:
            logger.info("Dry run: skipping delivery of %d records", len(relevant))
            return
        report.records_sent = self.send_batch(relevant)

    def _run_stage(
        self,
        stage: Stage,
        action: Callable[[], T],
        fallback: T,
        report: IngestionReport | None = None,
    ) -> T:
        with stage_scope(stage.value):
            try:
                return action()
            except CopilotAuditError as exc:
                if self._policies[stage] is StagePolicy.FATAL:
                    raise StageFailedError(stage.value, exc) from exc
                self._log_degraded(stage, exc)
                if report is not None and stage.value not in report.degraded_stages:
                    report.degraded_stages.append(stage.value)
                return fallback

    def _log_degraded(self, stage: Stage, exc: CopilotAuditError) -> None:
        if isinstance(exc, ActivityApiError) and exc.status_code is not None:
            logger.error(
                "%s. Status: %s, Response: %s; continuing",
                exc,
                exc.status_code,
                exc.response_body,
            )
            return
        logger.error("%s; continuing", exc)

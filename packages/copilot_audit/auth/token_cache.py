"""In-memory bearer token cache for the client-credential flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..clock import Clock, utc_now
from ..config import IdentityConfig
from ..errors import TokenAcquisitionError
from ..http import HttpClient, HttpError, HttpStatusError, decode_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessToken:
    """Bearer token paired with the instant it stops being reused.

    ``expires_at`` already has the safety margin subtracted.
    """

    value: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """Return whether the token may still be reused at ``now``."""
        return now < self.expires_at


class TokenCache:
    """Acquire and memoize one access token for the lifetime of this object.

    The cache is scoped to whoever constructs it; the worker owns one per
    process and tests construct their own with a fake clock.
    """

    def __init__(
        self,
        http: HttpClient,
        identity: IdentityConfig,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._http = http
        self._identity = identity
        self._clock = clock
        self._token: AccessToken | None = None

    @property
    def cached(self) -> AccessToken | None:
        """Return the currently cached token, valid or not."""
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs an exchange."""
        self._token = None

    def get_token(self) -> AccessToken:
        """Return a valid token, exchanging client credentials when needed.

        Raises:
            TokenAcquisitionError: The exchange failed or its body was unusable.
        """
        now = self._clock()
        if self._token is not None and self._token.is_valid(now):
            return self._token

        self._token = self._exchange(now)
        return self._token

    def _exchange(self, now: datetime) -> AccessToken:
        form = {
            "client_id": self._identity.client_id,
            "client_secret": self._identity.client_secret,
            "scope": self._identity.scope,
            "grant_type": "client_credentials",
        }
        try:
            response = self._http.post(self._identity.token_url, data=form)
            payload = decode_json(response)
        except HttpStatusError as exc:
            logger.error(
                "Failed to acquire access token. Status: %s, Response: %s",
                exc.status_code,
                exc.response_body,
            )
            raise TokenAcquisitionError(
                f"Failed to acquire access token: HTTP {exc.status_code}",
                status_code=exc.status_code,
            ) from exc
        except HttpError as exc:
            logger.error("Failed to acquire access token: %s", exc)
            raise TokenAcquisitionError(f"Failed to acquire access token: {exc}") from exc

        return self._parse(payload, now)

    def _parse(self, payload: object, now: datetime) -> AccessToken:
        if not isinstance(payload, dict):
            raise TokenAcquisitionError("Token response is not a JSON object")
        value = payload.get("access_token")
        expires_in = payload.get("expires_in")
        if not isinstance(value, str) or not value:
            raise TokenAcquisitionError("Token response is missing access_token")
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError) as exc:
            raise TokenAcquisitionError("Token response has an invalid expires_in") from exc

        expires_at = now + timedelta(seconds=seconds - self._identity.expiry_margin_seconds)
        logger.info("Acquired access token valid until %s", expires_at.isoformat())
        return AccessToken(value=value, expires_at=expires_at)

"""Minimal synchronous HTTP client wrapper over httpx."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from .errors import HttpJsonDecodeError, HttpRequestError, HttpStatusError


def response_text(response: httpx.Response) -> str:
    """Return response text without raising secondary decode errors."""
    try:
        return response.text
    except Exception:
        return ""


def status_error(response: httpx.Response) -> HttpStatusError:
    """Build a typed status error from one HTTP response."""
    status_code = response.status_code
    return HttpStatusError(
        message=f"HTTP {status_code} for {response.request.method} {response.request.url}",
        method=response.request.method,
        url=str(response.request.url),
        status_code=status_code,
        response_body=response_text(response),
    )


def _bound_request(exc: httpx.RequestError) -> httpx.Request | None:
    """Return the request attached to a transport error, if any."""
    try:
        return exc.request
    except RuntimeError:
        return None


class HttpClient:
    """Thin synchronous wrapper over ``httpx.Client``.

    Transport failures become :class:`HttpRequestError`, non-2xx responses
    become :class:`HttpStatusError` unless ``raise_for_status=False`` is passed.
    Tests inject an ``httpx.MockTransport`` through ``transport``.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
            headers=dict(headers or {}),
            transport=transport,
        )

    def close(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def request(
        self,
        method: str,
        url: str,
        *,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one request and map transport/status failures to typed errors."""
        try:
            response = self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            request = _bound_request(exc)
            request_url = str(request.url) if request is not None else url
            request_method = request.method if request is not None else method.upper()
            raise HttpRequestError(
                message=f"HTTP request failed for {request_method} {request_url}: {exc}",
                method=request_method,
                url=request_url,
                cause=exc,
            ) from exc

        if raise_for_status and response.is_error:
            raise status_error(response)
        return response

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one GET request."""
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one POST request."""
        return self.request("POST", url, **kwargs)

    def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Issue one request and decode JSON from a successful response."""
        response = self.request(method, url, **kwargs)
        return decode_json(response)

    def get_json(self, url: str, **kwargs: Any) -> Any:
        """Issue one GET request and decode JSON."""
        return self.request_json("GET", url, **kwargs)


def decode_json(response: httpx.Response) -> Any:
    """Decode a response body as JSON, raising a typed error when invalid."""
    try:
        return response.json()
    except ValueError as exc:
        raise HttpJsonDecodeError(
            message=f"Invalid JSON response for {response.request.method} {response.request.url}",
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
            response_body=response_text(response),
            cause=exc,
        ) from exc

"""Typed errors raised by the outbound HTTP wrapper.

These are mutable dataclasses: context managers assign ``__traceback__`` on
exceptions passing through them, which a frozen dataclass rejects.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class HttpError(Exception):
    """Base error type for outbound HTTP failures."""

    message: str
    method: str
    url: str

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message


@dataclass(eq=False)
class HttpRequestError(HttpError):
    """Transport-level failure (DNS, connect, read timeout)."""

    cause: Exception | None = None


@dataclass(eq=False)
class HttpStatusError(HttpError):
    """Non-success status code returned by the remote side."""

    status_code: int = 0
    response_body: str = ""


@dataclass(eq=False)
class HttpJsonDecodeError(HttpError):
    """Successful response whose body is not valid JSON."""

    status_code: int = 0
    response_body: str = ""
    cause: Exception | None = None

"""Outbound HTTP helpers shared by the identity, activity and collector clients."""

from .client import HttpClient, decode_json, response_text
from .errors import HttpError, HttpJsonDecodeError, HttpRequestError, HttpStatusError

__all__ = [
    "decode_json",
    "HttpClient",
    "HttpError",
    "HttpJsonDecodeError",
    "HttpRequestError",
    "HttpStatusError",
    "response_text",
]

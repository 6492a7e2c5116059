"""Delivery to a Log Analytics custom table."""

from .forwarder import SentinelForwarder, log_type_for
from .signature import build_signature, rfc1123_date, string_to_sign

__all__ = [
    "build_signature",
    "log_type_for",
    "rfc1123_date",
    "SentinelForwarder",
    "string_to_sign",
]

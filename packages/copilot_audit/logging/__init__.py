"""Structured stdout logging for the ingestion worker."""

from .config import ContextFilter, JsonFormatter, PlainFormatter, configure_logging
from .context import get_context, invocation_scope, stage_scope

__all__ = [
    "configure_logging",
    "ContextFilter",
    "get_context",
    "invocation_scope",
    "JsonFormatter",
    "PlainFormatter",
    "stage_scope",
]

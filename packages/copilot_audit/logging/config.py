"""Stdout logging for the ingestion worker.

Every line goes to stdout, where the scheduler's run history picks it up.
JSON is the default shape; ``--plain-logs`` switches to one readable line per
record for interactive runs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, Mapping

from . import fields
from .context import get_context

# Correlation fields shown by the plain formatter, in display order.
PLAIN_FIELDS = (fields.INVOCATION_ID, fields.STAGE)

# Transport loggers that announce every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")


class ContextFilter(logging.Filter):
    """Attach deployment fields and the active invocation scope to records.

    ``static`` holds values fixed for the process (service, environment).
    Scoped fields win on a name clash.
    """

    def __init__(self, static: Mapping[str, str | None] | None = None) -> None:
        super().__init__()
        self.static = {key: value for key, value in (static or {}).items() if value}

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = {**self.static, **get_context()}
        return True


def _context_of(record: logging.LogRecord) -> dict[str, str]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; correlation fields sit beside the message."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
            **_context_of(record),
        }
        if record.exc_info:
            payload[fields.EXCEPTION] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Readable line ending in the invocation id and stage, when bound."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        tags = [f"{name}={context[name]}" for name in PLAIN_FIELDS if name in context]
        return " ".join([line, *tags])


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
) -> logging.Handler:
    """Install a single stdout handler on the root logger and return it.

    Calling this again replaces the previous handler.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level.upper())
    handler.addFilter(
        ContextFilter({fields.SERVICE: service, fields.ENVIRONMENT: environment})
    )
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler

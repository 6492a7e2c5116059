"""Classify raw audit records as Copilot interactions.

The audit schema has drifted over time, so relevance is decided by a chain of
independent checks tried in order:

1. ``RecordType`` is 261 (CopilotInteraction);
2. ``Operation`` equals ``CopilotInteraction``, ignoring case;
3. ``Workload`` equals ``Copilot``, ignoring case;
4. the serialized record mentions one of a few Copilot markers.

If a structured check raises, only the textual check is applied.
:func:`is_relevant` never raises.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

COPILOT_INTERACTION_RECORD_TYPE = 261
COPILOT_OPERATION = "copilotinteraction"
COPILOT_WORKLOAD = "copilot"
TEXT_MARKERS = ("copilot", "microsoft365copilot", "copiloteventdata")


@dataclass(frozen=True)
class RelevanceCheck:
    """A named predicate over one audit record."""

    name: str
    predicate: Callable[[Any], bool]

    def __call__(self, record: Any) -> bool:
        return self.predicate(record)


def matches_record_type(record: Any) -> bool:
    """Return True when ``RecordType`` is the CopilotInteraction code."""
    value = record.get("RecordType")
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value == COPILOT_INTERACTION_RECORD_TYPE


def matches_operation(record: Any) -> bool:
    """Return True when ``Operation`` is CopilotInteraction in any case."""
    value = record.get("Operation")
    if value is None:
        return False
    return value.lower() == COPILOT_OPERATION


def matches_workload(record: Any) -> bool:
    """Return True when ``Workload`` is Copilot in any case."""
    value = record.get("Workload")
    if value is None:
        return False
    return value.lower() == COPILOT_WORKLOAD


def serialize_record(record: Any) -> str:
    """Serialize a record for text matching without ever raising."""
    try:
        return json.dumps(record, default=str)
    except (TypeError, ValueError):
        return repr(record)


def matches_text(record: Any) -> bool:
    """Return True when the serialized record mentions a Copilot marker."""
    text = serialize_record(record).lower()
    return any(marker in text for marker in TEXT_MARKERS)


STRUCTURED_CHECKS: tuple[RelevanceCheck, ...] = (
    RelevanceCheck("record_type", matches_record_type),
    RelevanceCheck("operation", matches_operation),
    RelevanceCheck("workload", matches_workload),
)
FALLBACK_CHECK = RelevanceCheck("text", matches_text)


def classify(record: Any) -> str | None:
    """Return the name of the first check that matched, or None."""
    try:
        for check in STRUCTURED_CHECKS:
            if check(record):
                return check.name
    except Exception as exc:
        logger.warning(
            "Error checking if record is a Copilot record, falling back to text matching: %s",
            exc,
        )
    try:
        return FALLBACK_CHECK.name if FALLBACK_CHECK(record) else None
    except Exception:
        logger.warning("Text matching failed for record; treating it as not relevant")
        return None


def is_relevant(record: Any) -> bool:
    """Return whether ``record`` belongs to the Copilot interaction category."""
    return classify(record) is not None


def filter_relevant(records: Iterable[Any]) -> list[Any]:
    """Return the relevant records in their original order."""
    return [record for record in records if is_relevant(record)]

"""Unit tests for Copilot record classification."""

from __future__ import annotations

import logging

import pytest

from copilot_audit.relevance import (
    classify,
    filter_relevant,
    is_relevant,
    matches_operation,
    matches_record_type,
    matches_text,
    matches_workload,
    serialize_record,
)

EXCHANGE_RECORD = {
    "RecordType": 2,
    "Operation": "MailItemsAccessed",
    "Workload": "Exchange",
    "UserId": "someone@contoso.com",
}


def test_record_type_signal_wins_regardless_of_other_fields() -> None:
    """RecordType 261 is relevant whatever the other fields say."""
    record = {**EXCHANGE_RECORD, "RecordType": 261}

    assert is_relevant(record) is True
    assert classify(record) == "record_type"


@pytest.mark.parametrize("operation", ["CopilotInteraction", "copilotinteraction", "COPILOTINTERACTION"])
def test_operation_signal_ignores_case(operation) -> None:
    """Operation CopilotInteraction matches in any case."""
    record = {**EXCHANGE_RECORD, "Operation": operation}

    assert is_relevant(record) is True
    assert classify(record) == "operation"


def test_workload_signal_ignores_case() -> None:
    """Workload Copilot matches in any case."""
    record = {**EXCHANGE_RECORD, "Workload": "COPILOT"}

    assert classify(record) == "workload"


def test_text_fallback_finds_nested_markers() -> None:
    """Markers nested deep in the record are found by the text check."""
    record = {**EXCHANGE_RECORD, "CopilotEventData": {"AppHost": "Teams"}}

    assert classify(record) == "text"


def test_unrelated_record_is_not_relevant() -> None:
    """Records with no Copilot signal are not relevant."""
    assert is_relevant(EXCHANGE_RECORD) is False
    assert classify(EXCHANGE_RECORD) is None


def test_record_type_check_requires_an_integer() -> None:
    """Only an integer RecordType satisfies the record-type check."""
    assert matches_record_type({"RecordType": "261"}) is False
    assert matches_record_type({"RecordType": True}) is False
    assert matches_record_type({"RecordType": 261}) is True


def test_individual_predicates() -> None:
    """Each predicate answers for its own field only."""
    assert matches_operation({"Operation": "copilotInteraction"}) is True
    assert matches_operation({}) is False
    assert matches_workload({"Workload": "Copilot"}) is True
    assert matches_workload({"Workload": "SharePoint"}) is False
    assert matches_text({"AppName": "Microsoft365Copilot"}) is True
    assert matches_text({"AppName": "Outlook"}) is False


@pytest.mark.parametrize(
    "record",
    [
        {},
        None,
        42,
        "plain text",
        ["a", "list"],
        {"Operation": {"nested": "value"}},
        {"Workload": 7, "Operation": None},
        {"RecordType": [261]},
        {"Operation": b"bytes"},
        {"When": object()},
    ],
)
def test_is_relevant_never_throws(record) -> None:
    """Malformed records are classified without raising."""
    assert is_relevant(record) in (True, False)


def test_structured_error_falls_back_to_text_search(caplog) -> None:
    """A non-string Operation raises internally; text matching still applies."""
    record = {"Operation": 5, "Detail": "copilot prompt"}

    with caplog.at_level(logging.WARNING, logger="copilot_audit.relevance"):
        assert classify(record) == "text"

    assert "falling back to text matching" in caplog.text


def test_structured_error_without_marker_is_not_relevant() -> None:
    """A structured-check error falls back to text and finds nothing."""
    assert is_relevant({"Operation": 5, "Detail": "mailbox"}) is False


def test_non_mapping_string_record_is_searched_as_text() -> None:
    """A bare string record is matched on its text."""
    assert is_relevant("a Copilot interaction") is True


def test_serialize_record_handles_unserializable_values() -> None:
    """Unserializable values are stringified rather than raising."""
    circular: dict = {}
    circular["self"] = circular

    assert "self" in serialize_record(circular)
    assert serialize_record({"x": 1}) == '{"x": 1}'


def test_filter_relevant_preserves_order() -> None:
    """filter_relevant keeps matching records in input order."""
    records = [
        {"Id": 1, "RecordType": 261},
        EXCHANGE_RECORD,
        {"Id": 3, "Workload": "Copilot"},
        {"Id": 4, "Operation": "CopilotInteraction"},
    ]

    assert [r["Id"] for r in filter_relevant(records)] == [1, 3, 4]

"""Tests for domain enums."""

from fieldops.domain.value_objects.enums import (
    AssignmentMode,
    AssignmentStatus,
    ProposedBy,
    RiskStatus,
)


def test_status_values():
    assert AssignmentStatus.PENDING.value == "PENDING"
    assert AssignmentStatus("TIMEOUT") == AssignmentStatus.TIMEOUT


def test_only_pending_is_non_terminal():
    terminal = {s for s in AssignmentStatus if s.is_terminal}
    assert terminal == {AssignmentStatus.ACCEPTED, AssignmentStatus.REFUSED, AssignmentStatus.TIMEOUT}


def test_modes():
    assert {m.value for m in AssignmentMode} == {"DIRECT", "OFFER", "BROADCAST", "AUTO_ACCEPT"}


def test_str_enum_compares_to_plain_string():
    assert ProposedBy.CUSTOMER == "CUSTOMER"
    assert RiskStatus.ON_WATCH == "ON_WATCH"

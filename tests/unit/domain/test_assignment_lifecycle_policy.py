"""Tests for the assignment state machine transitions."""

from datetime import timedelta

import pytest

from fakes import NOW
from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.entities.date_negotiation import DateNegotiation
from fieldops.domain.errors import InvalidStateTransition
from fieldops.domain.policies.assignment_lifecycle import (
    AWAITING_OPERATOR,
    accept,
    accept_counter_proposal,
    mark_timeout,
    refuse,
    refuse_counter_proposal,
    resolve_manually,
)
from fieldops.domain.value_objects.enums import (
    AssignmentMode,
    AssignmentStatus,
    ManualOutcome,
    ProposedBy,
)

ORIGINAL = NOW + timedelta(days=3)


def _pending(**kwargs) -> Assignment:
    defaults = dict(
        id=1, service_order_id=10, provider_id=100,
        status=AssignmentStatus.PENDING, assignment_mode=AssignmentMode.DIRECT,
        original_date=ORIGINAL, proposed_date=ORIGINAL,
        offer_expires_at=NOW + timedelta(hours=4),
    )
    defaults.update(kwargs)
    return Assignment(**defaults)


def _negotiated(rounds: int, last_by: ProposedBy = ProposedBy.PROVIDER) -> Assignment:
    negotiations = tuple(
        DateNegotiation(
            round=r,
            proposed_date=ORIGINAL + timedelta(days=r),
            proposed_by=last_by if r == rounds else ProposedBy.CUSTOMER,
        )
        for r in range(1, rounds + 1)
    )
    return _pending(
        date_negotiation_round=rounds,
        negotiations=negotiations,
        proposed_date=ORIGINAL + timedelta(days=rounds),
    )


# ─── accept ─────────────────────────────────────────────────────────


def test_accept_sets_accepted_fields():
    result = accept(_pending(), NOW)
    a = result.assignment
    assert a.status == AssignmentStatus.ACCEPTED
    assert a.accepted_at == NOW
    assert a.accepted_date == ORIGINAL


def test_accept_uses_current_proposed_date():
    a = accept(_negotiated(1), NOW).assignment
    assert a.accepted_date == ORIGINAL + timedelta(days=1)


def test_accept_terminal_raises():
    with pytest.raises(InvalidStateTransition) as exc:
        accept(_pending(status=AssignmentStatus.REFUSED), NOW)
    assert exc.value.current_status == AssignmentStatus.REFUSED


def test_accept_expired_raises():
    with pytest.raises(InvalidStateTransition):
        accept(_pending(), NOW + timedelta(hours=5))


def test_accept_at_last_round_needs_operator():
    with pytest.raises(InvalidStateTransition) as exc:
        accept(_negotiated(3), NOW)
    assert exc.value.details["reason"] == AWAITING_OPERATOR


def test_broadcast_candidate_claims_assignment():
    a = _pending(assignment_mode=AssignmentMode.BROADCAST, candidate_provider_ids=(100, 200, 300))
    result = accept(a, NOW, provider_id=200)
    assert result.assignment.provider_id == 200


def test_non_candidate_cannot_accept():
    a = _pending(assignment_mode=AssignmentMode.BROADCAST, candidate_provider_ids=(100, 200))
    with pytest.raises(InvalidStateTransition):
        accept(a, NOW, provider_id=999)


def test_other_provider_cannot_accept_direct_offer():
    with pytest.raises(InvalidStateTransition):
        accept(_pending(candidate_provider_ids=(100,)), NOW, provider_id=200)


# ─── refuse ─────────────────────────────────────────────────────────


def test_refuse_is_terminal_without_alternative():
    a = refuse(_pending(), "No technician", NOW).assignment
    assert a.status == AssignmentStatus.REFUSED
    assert a.refused_at == NOW
    assert a.refusal_reason == "No technician"


def test_refuse_with_alternative_date_opens_negotiation():
    alt = ORIGINAL + timedelta(days=2)
    result = refuse(_pending(), "Busy that day", NOW, alternative_date=alt)
    assert result.assignment.status == AssignmentStatus.PENDING
    assert result.assignment.date_negotiation_round == 1
    assert result.assignment.proposed_date == alt
    assert result.negotiation.proposed_by == ProposedBy.PROVIDER
    assert result.negotiation.notes == "Busy that day"


def test_refuse_at_last_round_needs_operator():
    with pytest.raises(InvalidStateTransition) as exc:
        refuse(_negotiated(3), "Still busy", NOW, alternative_date=ORIGINAL + timedelta(days=9))
    assert exc.value.details["reason"] == AWAITING_OPERATOR
    with pytest.raises(InvalidStateTransition):
        refuse(_negotiated(3), "Still busy", NOW)


# ─── mark_timeout ───────────────────────────────────────────────────


def test_mark_timeout_expired():
    result = mark_timeout(_pending(), NOW + timedelta(hours=5))
    assert result.changed
    assert result.assignment.status == AssignmentStatus.TIMEOUT


def test_mark_timeout_terminal_is_noop():
    accepted = _pending(status=AssignmentStatus.ACCEPTED)
    result = mark_timeout(accepted, NOW + timedelta(days=1))
    assert not result.changed
    assert result.assignment is accepted


def test_mark_timeout_before_expiry_raises():
    with pytest.raises(InvalidStateTransition):
        mark_timeout(_pending(), NOW)


def test_mark_timeout_skips_exhausted_negotiation():
    with pytest.raises(InvalidStateTransition) as exc:
        mark_timeout(_negotiated(3), NOW + timedelta(days=2))
    assert exc.value.details["reason"] == AWAITING_OPERATOR


# ─── counter-proposals ──────────────────────────────────────────────


def test_accept_counter_proposal_uses_provider_date():
    a = accept_counter_proposal(_negotiated(2), NOW).assignment
    assert a.status == AssignmentStatus.ACCEPTED
    assert a.accepted_date == ORIGINAL + timedelta(days=2)


def test_accept_counter_proposal_at_last_round_needs_operator():
    with pytest.raises(InvalidStateTransition):
        accept_counter_proposal(_negotiated(3), NOW)


def test_accept_counter_proposal_requires_provider_proposal():
    with pytest.raises(InvalidStateTransition):
        accept_counter_proposal(_negotiated(1, last_by=ProposedBy.CUSTOMER), NOW)
    with pytest.raises(InvalidStateTransition):
        accept_counter_proposal(_pending(), NOW)


def test_refuse_counter_proposal_without_negotiation_raises():
    with pytest.raises(InvalidStateTransition):
        refuse_counter_proposal(_pending(), "no", NOW)


def test_refuse_counter_proposal_keeps_negotiation_open():
    result = refuse_counter_proposal(_negotiated(1), "Customer unavailable", NOW)
    assert not result.changed
    assert result.assignment.status == AssignmentStatus.PENDING


def test_refuse_counter_proposal_with_alternative_adds_customer_round():
    result = refuse_counter_proposal(
        _negotiated(1), "Prefer Friday", NOW, alternative_date=ORIGINAL + timedelta(days=4)
    )
    assert result.assignment.date_negotiation_round == 2
    assert result.negotiation.proposed_by == ProposedBy.CUSTOMER


def test_refuse_counter_proposal_at_round_three_refuses():
    result = refuse_counter_proposal(
        _negotiated(3), "No agreement", NOW, alternative_date=ORIGINAL + timedelta(days=9)
    )
    assert result.assignment.status == AssignmentStatus.REFUSED
    assert result.assignment.date_negotiation_round == 3
    assert result.escalated
    assert "after 3 rounds" in result.assignment.refusal_reason


# ─── resolve_manually ───────────────────────────────────────────────


def test_resolve_manually_accepts_last_proposal():
    a = resolve_manually(_negotiated(3), ManualOutcome.ACCEPT, NOW).assignment
    assert a.status == AssignmentStatus.ACCEPTED
    assert a.accepted_date == ORIGINAL + timedelta(days=3)


def test_resolve_manually_refuses():
    a = resolve_manually(_negotiated(3), ManualOutcome.REFUSE, NOW, reason="Reassign").assignment
    assert a.status == AssignmentStatus.REFUSED
    assert a.refusal_reason == "Reassign"


def test_resolve_manually_before_last_round_raises():
    with pytest.raises(InvalidStateTransition):
        resolve_manually(_negotiated(2), ManualOutcome.ACCEPT, NOW)

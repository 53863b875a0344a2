"""DateNegotiationPolicy — round-based alternative-date proposals."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from fieldops.domain.entities.assignment import MAX_NEGOTIATION_ROUNDS, Assignment
from fieldops.domain.entities.date_negotiation import DateNegotiation
from fieldops.domain.errors import InvalidStateTransition, MaxRoundsExceeded
from fieldops.domain.value_objects.enums import AssignmentStatus, ProposedBy


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a pure transition: the new snapshot and what else to persist."""

    assignment: Assignment
    negotiation: DateNegotiation | None = None
    changed: bool = True
    escalated: bool = False


def require_pending(assignment: Assignment, transition: str, now: datetime) -> None:
    if assignment.status != AssignmentStatus.PENDING:
        raise InvalidStateTransition(transition, assignment.status)
    if assignment.is_expired(now):
        raise InvalidStateTransition(
            transition,
            assignment.status,
            f"offer expired at {assignment.offer_expires_at.isoformat()}",
        )


def propose_alternative_date(
    assignment: Assignment,
    proposed_date: datetime,
    proposed_by: ProposedBy,
    now: datetime,
    notes: str | None = None,
    enforce_alternation: bool = False,
) -> TransitionResult:
    """Append the next negotiation round and move the proposal to ``proposed_date``.

    Either party may propose twice in a row unless ``enforce_alternation`` is set.
    Reaching the last round flags the result as escalated: the assignment stays
    PENDING but only an operator can settle it from there.
    """
    transition = "propose_alternative_date"
    require_pending(assignment, transition, now)

    if assignment.date_negotiation_round >= MAX_NEGOTIATION_ROUNDS:
        raise MaxRoundsExceeded(assignment.id, MAX_NEGOTIATION_ROUNDS)

    last = assignment.last_negotiation
    if enforce_alternation and last is not None and last.proposed_by == proposed_by:
        raise InvalidStateTransition(
            transition,
            assignment.status,
            f"{proposed_by.value} already proposed round {last.round}",
        )

    next_round = assignment.date_negotiation_round + 1
    negotiation = DateNegotiation(
        round=next_round,
        proposed_date=proposed_date,
        proposed_by=proposed_by,
        notes=notes,
        created_at=now,
    )
    updated = replace(
        assignment,
        proposed_date=proposed_date,
        date_negotiation_round=next_round,
        negotiations=assignment.negotiations + (negotiation,),
        updated_at=now,
    )
    return TransitionResult(
        assignment=updated,
        negotiation=negotiation,
        escalated=next_round >= MAX_NEGOTIATION_ROUNDS,
    )

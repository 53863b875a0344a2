"""AssignmentLifecycle — legal transitions of the assignment state machine.

PENDING is the only non-terminal state. Every function here is pure: it takes a
snapshot plus the current instant and returns a ``TransitionResult`` or raises
a domain error. Persisting the result atomically is the caller's job.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from fieldops.domain.entities.assignment import MAX_NEGOTIATION_ROUNDS, Assignment
from fieldops.domain.errors import InvalidStateTransition
from fieldops.domain.policies.date_negotiation import (
    TransitionResult,
    propose_alternative_date,
    require_pending,
)
from fieldops.domain.value_objects.enums import (
    AssignmentMode,
    AssignmentStatus,
    ManualOutcome,
    ProposedBy,
)

AWAITING_OPERATOR = "negotiation exhausted, awaiting manual resolution"


def require_open_negotiation(assignment: Assignment, transition: str) -> None:
    """After the last round only an operator (or a final customer refusal) may settle."""
    if assignment.requires_manual_resolution:
        raise InvalidStateTransition(transition, assignment.status, AWAITING_OPERATOR)


def accept(assignment: Assignment, now: datetime, provider_id: int | None = None) -> TransitionResult:
    """Provider accepts the current proposal.

    For BROADCAST offers the first accepting candidate becomes the provider.
    """
    transition = "accept"
    require_pending(assignment, transition, now)
    require_open_negotiation(assignment, transition)

    chosen_provider = assignment.provider_id
    if provider_id is not None and provider_id != assignment.provider_id:
        if (
            assignment.assignment_mode != AssignmentMode.BROADCAST
            or provider_id not in assignment.candidate_provider_ids
        ):
            raise InvalidStateTransition(
                transition,
                assignment.status,
                f"provider {provider_id} was not offered this assignment",
            )
        chosen_provider = provider_id

    updated = replace(
        assignment,
        provider_id=chosen_provider,
        status=AssignmentStatus.ACCEPTED,
        accepted_at=now,
        accepted_date=assignment.proposed_date,
        updated_at=now,
    )
    return TransitionResult(assignment=updated)


def refuse(
    assignment: Assignment,
    reason: str,
    now: datetime,
    alternative_date: datetime | None = None,
    enforce_alternation: bool = False,
) -> TransitionResult:
    """Provider refuses the offer.

    A refusal that carries an alternative date opens a negotiation round on the
    provider's behalf; otherwise it is terminal.
    """
    require_pending(assignment, "refuse", now)
    require_open_negotiation(assignment, "refuse")

    if alternative_date is not None:
        return propose_alternative_date(
            assignment,
            alternative_date,
            ProposedBy.PROVIDER,
            now,
            notes=reason,
            enforce_alternation=enforce_alternation,
        )

    updated = replace(
        assignment,
        status=AssignmentStatus.REFUSED,
        refused_at=now,
        refusal_reason=reason,
        updated_at=now,
    )
    return TransitionResult(assignment=updated)


def mark_timeout(assignment: Assignment, now: datetime) -> TransitionResult:
    """Expire a stale PENDING offer. Terminal assignments are returned unchanged."""
    if assignment.is_terminal:
        return TransitionResult(assignment=assignment, changed=False)
    require_open_negotiation(assignment, "mark_timeout")

    if not assignment.is_expired(now):
        raise InvalidStateTransition(
            "mark_timeout",
            assignment.status,
            "offer has not expired",
        )

    updated = replace(assignment, status=AssignmentStatus.TIMEOUT, updated_at=now)
    return TransitionResult(assignment=updated)


def accept_counter_proposal(assignment: Assignment, now: datetime) -> TransitionResult:
    """Customer accepts the provider's latest counter-proposal."""
    transition = "accept_counter_proposal"
    require_pending(assignment, transition, now)
    require_open_negotiation(assignment, transition)

    last = assignment.last_negotiation
    if last is None or last.proposed_by != ProposedBy.PROVIDER:
        raise InvalidStateTransition(
            transition,
            assignment.status,
            "no provider counter-proposal pending",
        )

    updated = replace(
        assignment,
        status=AssignmentStatus.ACCEPTED,
        accepted_at=now,
        accepted_date=last.proposed_date,
        proposed_date=last.proposed_date,
        updated_at=now,
    )
    return TransitionResult(assignment=updated)


def refuse_counter_proposal(
    assignment: Assignment,
    reason: str,
    now: datetime,
    alternative_date: datetime | None = None,
    enforce_alternation: bool = False,
) -> TransitionResult:
    """Customer refuses the latest counter-proposal.

    - last round reached  →  REFUSED, escalated for manual reassignment
    - alternative date    →  next round proposed by the customer
    - otherwise           →  negotiation stays open for the provider's next proposal
    """
    transition = "refuse_counter_proposal"
    require_pending(assignment, transition, now)

    if assignment.date_negotiation_round == 0:
        raise InvalidStateTransition(transition, assignment.status, "no counter-proposal to refuse")

    if assignment.date_negotiation_round >= MAX_NEGOTIATION_ROUNDS:
        updated = replace(
            assignment,
            status=AssignmentStatus.REFUSED,
            refused_at=now,
            refusal_reason=f"Date negotiation failed after {MAX_NEGOTIATION_ROUNDS} rounds: {reason}",
            updated_at=now,
        )
        return TransitionResult(assignment=updated, escalated=True)

    if alternative_date is not None:
        return propose_alternative_date(
            assignment,
            alternative_date,
            ProposedBy.CUSTOMER,
            now,
            notes=reason,
            enforce_alternation=enforce_alternation,
        )

    return TransitionResult(assignment=assignment, changed=False)


def resolve_manually(
    assignment: Assignment,
    outcome: ManualOutcome,
    now: datetime,
    reason: str | None = None,
) -> TransitionResult:
    """Operator settles a negotiation that used up all its rounds."""
    transition = "resolve_manually"
    require_pending(assignment, transition, now)

    if not assignment.requires_manual_resolution:
        raise InvalidStateTransition(
            transition,
            assignment.status,
            f"negotiation is at round {assignment.date_negotiation_round} of {MAX_NEGOTIATION_ROUNDS}",
        )

    if outcome == ManualOutcome.ACCEPT:
        updated = replace(
            assignment,
            status=AssignmentStatus.ACCEPTED,
            accepted_at=now,
            accepted_date=assignment.current_proposal,
            updated_at=now,
        )
    else:
        updated = replace(
            assignment,
            status=AssignmentStatus.REFUSED,
            refused_at=now,
            refusal_reason=reason or "Refused by operator after negotiation",
            updated_at=now,
        )
    return TransitionResult(assignment=updated)

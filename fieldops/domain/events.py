"""Assignment domain events — facts other subsystems react to."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from fieldops.domain.entities.assignment import Assignment

ASSIGNMENT_CREATED = "assignment.created"
ASSIGNMENT_AUTO_ACCEPTED = "assignment.auto_accepted"
OFFER_ACCEPTED = "assignment.accepted"
OFFER_REFUSED = "assignment.refused"
OFFER_TIMED_OUT = "assignment.timed_out"
DATE_PROPOSED = "assignment.date_proposed"
COUNTER_PROPOSAL_REFUSED = "assignment.counter_proposal_refused"
NEGOTIATION_ESCALATED = "assignment.negotiation_escalated"


@dataclass(frozen=True)
class AssignmentEvent:
    name: str
    assignment_id: int
    service_order_id: int
    provider_id: int
    occurred_at: datetime
    payload: dict = field(default_factory=dict, compare=False)

    @classmethod
    def of(cls, name: str, assignment: Assignment, occurred_at: datetime, **payload) -> "AssignmentEvent":
        return cls(
            name=name,
            assignment_id=assignment.id,
            service_order_id=assignment.service_order_id,
            provider_id=assignment.provider_id,
            occurred_at=occurred_at,
            payload=payload,
        )

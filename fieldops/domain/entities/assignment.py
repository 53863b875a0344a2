"""Assignment entity — a service order offered to a provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from fieldops.domain.entities.date_negotiation import DateNegotiation
from fieldops.domain.value_objects.enums import AssignmentMode, AssignmentStatus

MAX_NEGOTIATION_ROUNDS = 3


@dataclass(frozen=True)
class Assignment:
    """Immutable snapshot of an assignment row and its negotiation history.

    Transitions never mutate a snapshot; they build a new one with
    ``dataclasses.replace`` and hand both to the repository, which applies the
    change only if the stored ``version`` still matches.
    """

    id: int | None
    service_order_id: int
    provider_id: int
    status: AssignmentStatus
    assignment_mode: AssignmentMode
    original_date: datetime | None
    proposed_date: datetime | None
    work_team_id: int | None = None
    accepted_date: datetime | None = None
    date_negotiation_round: int = 0
    offer_expires_at: datetime | None = None
    accepted_at: datetime | None = None
    refused_at: datetime | None = None
    refusal_reason: str | None = None
    provider_score: float | None = None
    funnel: list[dict] | None = field(default=None, compare=False)
    candidate_provider_ids: tuple[int, ...] = ()
    negotiations: tuple[DateNegotiation, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 1

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_expired(self, now: datetime) -> bool:
        """An exhausted negotiation waits for an operator and never expires."""
        return (
            self.status == AssignmentStatus.PENDING
            and self.date_negotiation_round < MAX_NEGOTIATION_ROUNDS
            and self.offer_expires_at is not None
            and now > self.offer_expires_at
        )

    @property
    def is_auto_accepted(self) -> bool:
        """System auto-accept leaves ``accepted_at`` unset."""
        return self.status == AssignmentStatus.ACCEPTED and self.accepted_at is None

    @property
    def requires_manual_resolution(self) -> bool:
        return (
            self.status == AssignmentStatus.PENDING
            and self.date_negotiation_round >= MAX_NEGOTIATION_ROUNDS
        )

    @property
    def last_negotiation(self) -> DateNegotiation | None:
        if not self.negotiations:
            return None
        return max(self.negotiations, key=lambda n: n.round)

    @property
    def current_proposal(self) -> datetime | None:
        last = self.last_negotiation
        return last.proposed_date if last else self.original_date

"""AssignmentLifecycleUseCase — apply state machine transitions atomically."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from fieldops.application.clock import Clock, utcnow
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.event_publisher import EventPublisher
from fieldops.domain.entities.assignment import MAX_NEGOTIATION_ROUNDS, Assignment
from fieldops.domain.errors import AssignmentNotFound, InvalidStateTransition
from fieldops.domain.events import (
    COUNTER_PROPOSAL_REFUSED,
    DATE_PROPOSED,
    NEGOTIATION_ESCALATED,
    OFFER_ACCEPTED,
    OFFER_REFUSED,
    OFFER_TIMED_OUT,
    AssignmentEvent,
)
from fieldops.domain.policies import assignment_lifecycle as lifecycle
from fieldops.domain.policies.date_negotiation import (
    TransitionResult,
    propose_alternative_date,
)
from fieldops.domain.value_objects.enums import AssignmentStatus, ManualOutcome, ProposedBy

logger = logging.getLogger(__name__)

_STATUS_EVENTS = {
    AssignmentStatus.ACCEPTED: OFFER_ACCEPTED,
    AssignmentStatus.REFUSED: OFFER_REFUSED,
    AssignmentStatus.TIMEOUT: OFFER_TIMED_OUT,
}

Transition = Callable[[Assignment, datetime], TransitionResult]


class AssignmentLifecycleUseCase:
    """Every write to an assignment goes through here.

    Each transition reads the current snapshot, runs the pure state machine
    function and stores the result with a version check. A lost race is
    reported as InvalidStateTransition; nothing is retried.
    """

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        events: EventPublisher,
        clock: Clock = utcnow,
        enforce_alternation: bool = False,
    ):
        self._assignments = assignment_repo
        self._events = events
        self._clock = clock
        self._enforce_alternation = enforce_alternation

    # ─── Reads ──────────────────────────────────────────────────────

    async def get(self, assignment_id: int) -> Assignment:
        """Load an assignment, timing it out first if its offer went stale."""
        current = await self._load(assignment_id)
        now = self._clock()
        if current.is_expired(now):
            current = await self._expire(current, now)
        return current

    # ─── Transitions ────────────────────────────────────────────────

    async def accept(self, assignment_id: int, provider_id: int | None = None) -> Assignment:
        return await self._apply(
            assignment_id,
            "accept",
            lambda a, now: lifecycle.accept(a, now, provider_id=provider_id),
        )

    async def refuse(
        self,
        assignment_id: int,
        reason: str,
        alternative_date: datetime | None = None,
    ) -> Assignment:
        return await self._apply(
            assignment_id,
            "refuse",
            lambda a, now: lifecycle.refuse(
                a, reason, now,
                alternative_date=alternative_date,
                enforce_alternation=self._enforce_alternation,
            ),
        )

    async def propose_alternative_date(
        self,
        assignment_id: int,
        proposed_date: datetime,
        proposed_by: ProposedBy,
        notes: str | None = None,
    ) -> Assignment:
        return await self._apply(
            assignment_id,
            "propose_alternative_date",
            lambda a, now: propose_alternative_date(
                a, proposed_date, proposed_by, now,
                notes=notes,
                enforce_alternation=self._enforce_alternation,
            ),
        )

    async def accept_counter_proposal(self, assignment_id: int) -> Assignment:
        return await self._apply(
            assignment_id, "accept_counter_proposal", lifecycle.accept_counter_proposal
        )

    async def refuse_counter_proposal(
        self,
        assignment_id: int,
        reason: str,
        alternative_date: datetime | None = None,
    ) -> Assignment:
        assignment = await self._apply(
            assignment_id,
            "refuse_counter_proposal",
            lambda a, now: lifecycle.refuse_counter_proposal(
                a, reason, now,
                alternative_date=alternative_date,
                enforce_alternation=self._enforce_alternation,
            ),
        )
        if assignment.status == AssignmentStatus.PENDING and alternative_date is None:
            # Nothing stored, but the provider still has to hear about it
            await self._events.publish(
                AssignmentEvent.of(COUNTER_PROPOSAL_REFUSED, assignment, self._clock(), reason=reason)
            )
        return assignment

    async def resolve_manually(
        self,
        assignment_id: int,
        outcome: ManualOutcome,
        reason: str | None = None,
    ) -> Assignment:
        return await self._apply(
            assignment_id,
            "resolve_manually",
            lambda a, now: lifecycle.resolve_manually(a, outcome, now, reason=reason),
        )

    async def mark_timeout(self, assignment_id: int) -> Assignment:
        """Idempotent: a terminal assignment comes back unchanged."""
        current = await self._load(assignment_id)
        now = self._clock()
        result = lifecycle.mark_timeout(current, now)
        if not result.changed:
            return current

        stored = await self._assignments.apply_transition(current, result.assignment)
        if stored is None:
            latest = await self._load(assignment_id)
            if latest.is_terminal:
                return latest
            raise InvalidStateTransition(
                "mark_timeout", latest.status, "assignment was modified concurrently"
            )

        await self._publish(current, result, stored, now)
        logger.info("Assignment %d timed out", stored.id)
        return stored

    # ─── Internals ──────────────────────────────────────────────────

    async def _load(self, assignment_id: int) -> Assignment:
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise AssignmentNotFound(assignment_id)
        return assignment

    async def _apply(self, assignment_id: int, name: str, transition: Transition) -> Assignment:
        current = await self._load(assignment_id)
        now = self._clock()

        if current.is_expired(now):
            # Lazy timeout: the offer is gone whatever the caller wanted to do
            latest = await self._expire(current, now)
            if latest.status == AssignmentStatus.TIMEOUT:
                raise InvalidStateTransition(name, latest.status, "offer expired")
            raise InvalidStateTransition(name, latest.status, "assignment was modified concurrently")

        result = transition(current, now)
        if not result.changed:
            return result.assignment

        stored = await self._assignments.apply_transition(current, result.assignment, result.negotiation)
        if stored is None:
            latest = await self._load(assignment_id)
            logger.warning(
                "Assignment %d: %s lost a concurrent update (now %s)",
                assignment_id, name, latest.status.value,
            )
            raise InvalidStateTransition(name, latest.status, "assignment was modified concurrently")

        await self._publish(current, result, stored, now)
        logger.info(
            "Assignment %d: %s → status=%s round=%d/%d",
            assignment_id, name, stored.status.value,
            stored.date_negotiation_round, MAX_NEGOTIATION_ROUNDS,
        )
        return stored

    async def _expire(self, current: Assignment, now: datetime) -> Assignment:
        """Persist TIMEOUT and return the row as it now stands.

        When another writer got there first the re-read snapshot comes back
        instead, so callers report the status that actually won.
        """
        result = lifecycle.mark_timeout(current, now)
        stored = await self._assignments.apply_transition(current, result.assignment)
        if stored is None:
            return await self._load(current.id)
        await self._publish(current, result, stored, now)
        logger.info("Assignment %d timed out on access", stored.id)
        return stored

    async def _publish(
        self,
        before: Assignment,
        result: TransitionResult,
        stored: Assignment,
        now: datetime,
    ) -> None:
        if result.negotiation is not None:
            await self._events.publish(
                AssignmentEvent.of(
                    DATE_PROPOSED, stored, now,
                    round=result.negotiation.round,
                    proposed_by=result.negotiation.proposed_by.value,
                    proposed_date=result.negotiation.proposed_date.isoformat(),
                )
            )
        if stored.status != before.status:
            await self._events.publish(
                AssignmentEvent.of(_STATUS_EVENTS[stored.status], stored, now)
            )
        if result.escalated:
            logger.warning(
                "Assignment %d reached %d negotiation rounds, manual resolution needed",
                stored.id, MAX_NEGOTIATION_ROUNDS,
            )
            await self._events.publish(
                AssignmentEvent.of(NEGOTIATION_ESCALATED, stored, now, round=stored.date_negotiation_round)
            )

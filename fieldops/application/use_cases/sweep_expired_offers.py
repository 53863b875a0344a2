"""SweepExpiredOffersUseCase — batch timeout of stale PENDING offers."""

from __future__ import annotations

import logging

from fieldops.application.clock import Clock, utcnow
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.event_publisher import EventPublisher
from fieldops.domain.events import OFFER_TIMED_OUT, AssignmentEvent
from fieldops.domain.policies.assignment_lifecycle import mark_timeout

logger = logging.getLogger(__name__)


class SweepExpiredOffersUseCase:
    """Marks every expired PENDING assignment as TIMEOUT.

    Safe to run concurrently with other sweeps and with provider actions: a
    row that changed since it was read is skipped, not failed.
    """

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        events: EventPublisher,
        clock: Clock = utcnow,
    ):
        self._assignments = assignment_repo
        self._events = events
        self._clock = clock

    async def execute(self, country_code: str | None = None) -> int:
        """Return the number of assignments this sweep transitioned."""
        now = self._clock()
        expired = await self._assignments.get_expired(now, country_code)
        logger.info("Sweeping %d expired offer(s)", len(expired))

        transitioned = 0
        for assignment in expired:
            result = mark_timeout(assignment, now)
            if not result.changed:
                continue
            stored = await self._assignments.apply_transition(assignment, result.assignment)
            if stored is None:
                logger.debug("Assignment %d changed during sweep, skipping", assignment.id)
                continue
            transitioned += 1
            await self._events.publish(AssignmentEvent.of(OFFER_TIMED_OUT, stored, now))

        logger.info("Sweep complete: %d/%d timed out", transitioned, len(expired))
        return transitioned

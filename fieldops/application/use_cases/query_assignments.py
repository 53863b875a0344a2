"""Read-side use cases: listings, expired offers, funnel and statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from fieldops.application.clock import Clock, utcnow
from fieldops.application.ports.assignment_repo import (
    AssignmentFilter,
    AssignmentRepository,
    AssignmentStatistics,
)
from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.errors import AssignmentNotFound

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class AssignmentPage:
    items: list[Assignment]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


class QueryAssignmentsUseCase:
    def __init__(self, assignment_repo: AssignmentRepository, clock: Clock = utcnow):
        self._assignments = assignment_repo
        self._clock = clock

    async def list(self, filters: AssignmentFilter, expired: bool = False) -> AssignmentPage:
        """Paginated listing; ``expired`` restricts to PENDING offers past their expiry."""
        limit = max(1, min(filters.limit, MAX_PAGE_SIZE))
        page = max(1, filters.page)
        filters = replace(filters, page=page, limit=limit)
        if expired:
            filters = replace(filters, expired_before=self._clock())

        items = await self._assignments.find(filters)
        total = await self._assignments.count(filters)
        return AssignmentPage(items=items, total=total, page=page, limit=limit)

    async def expired_offers(self, country_code: str | None = None) -> list[Assignment]:
        return await self._assignments.get_expired(self._clock(), country_code)

    async def funnel(self, assignment_id: int) -> dict:
        """Scoring transparency for one assignment."""
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise AssignmentNotFound(assignment_id)
        return {
            "assignment_id": assignment.id,
            "provider_id": assignment.provider_id,
            "assignment_mode": assignment.assignment_mode.value,
            "provider_score": assignment.provider_score,
            "candidate_provider_ids": list(assignment.candidate_provider_ids),
            "funnel": assignment.funnel or [],
        }

    async def statistics(
        self,
        country_code: str | None = None,
        provider_id: int | None = None,
    ) -> AssignmentStatistics:
        stats = await self._assignments.get_statistics(self._clock(), country_code, provider_id)
        logger.debug("Assignment statistics: %d total, %d expired", stats.total, stats.expired_offers)
        return stats

"""Port interface for assignment persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.entities.date_negotiation import DateNegotiation
from fieldops.domain.value_objects.enums import AssignmentMode, AssignmentStatus


@dataclass(frozen=True)
class AssignmentFilter:
    status: AssignmentStatus | None = None
    mode: AssignmentMode | None = None
    provider_id: int | None = None
    service_order_id: int | None = None
    country_code: str | None = None
    expired_before: datetime | None = None  # PENDING offers expired before this instant
    page: int = 1
    limit: int = 20


@dataclass
class AssignmentStatistics:
    total: int
    by_status: dict[str, int] = field(default_factory=dict)
    with_date_negotiation: int = 0
    expired_offers: int = 0
    average_acceptance_time_hours: float | None = None


class AssignmentRepository(ABC):
    @abstractmethod
    async def add(self, assignment: Assignment) -> Assignment:
        """Insert a new assignment and return it with its id.

        Raises DuplicateActiveAssignment if the service order already has a
        PENDING assignment.
        """
        ...

    @abstractmethod
    async def get_by_id(self, assignment_id: int) -> Assignment | None:
        ...

    @abstractmethod
    async def get_active_for_order(self, service_order_id: int) -> Assignment | None:
        """Return the PENDING assignment of a service order, if any."""
        ...

    @abstractmethod
    async def apply_transition(
        self,
        current: Assignment,
        updated: Assignment,
        negotiation: DateNegotiation | None = None,
    ) -> Assignment | None:
        """Atomically replace ``current`` with ``updated``.

        The write only happens if the stored version still equals
        ``current.version``; the negotiation row (if any) is inserted in the
        same unit. Returns the stored snapshot, or None when another writer got
        there first.
        """
        ...

    @abstractmethod
    async def find(self, filters: AssignmentFilter) -> list[Assignment]:
        ...

    @abstractmethod
    async def count(self, filters: AssignmentFilter) -> int:
        ...

    @abstractmethod
    async def get_expired(self, now: datetime, country_code: str | None = None) -> list[Assignment]:
        """Return PENDING assignments whose offer expired before ``now``."""
        ...

    @abstractmethod
    async def get_statistics(
        self,
        now: datetime,
        country_code: str | None = None,
        provider_id: int | None = None,
    ) -> AssignmentStatistics:
        ...

"""CreateAssignmentUseCase — rank providers, pick a mode, open the offer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from fieldops.application.clock import Clock, utcnow
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.event_publisher import EventPublisher
from fieldops.application.ports.provider_repo import ProviderRepository
from fieldops.application.ports.service_order_repo import ServiceOrderRepository
from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.errors import (
    AssignmentError,
    DuplicateActiveAssignment,
    NoQualifiedProvider,
    ServiceOrderNotFound,
    WorkTeamMismatch,
)
from fieldops.domain.events import (
    ASSIGNMENT_AUTO_ACCEPTED,
    ASSIGNMENT_CREATED,
    OFFER_TIMED_OUT,
    AssignmentEvent,
)
from fieldops.domain.policies.assignment_lifecycle import mark_timeout
from fieldops.domain.policies.dispatch_mode import (
    DispatchPolicy,
    compute_offer_expiry,
    select_mode,
)
from fieldops.domain.policies.provider_scoring import rank_providers
from fieldops.domain.value_objects.enums import AssignmentMode, AssignmentStatus

logger = logging.getLogger(__name__)


class CreateAssignmentUseCase:
    """Orchestrates the offer dispatch for one service order."""

    def __init__(
        self,
        service_order_repo: ServiceOrderRepository,
        provider_repo: ProviderRepository,
        assignment_repo: AssignmentRepository,
        events: EventPublisher,
        policy: DispatchPolicy | None = None,
        clock: Clock = utcnow,
    ):
        self._orders = service_order_repo
        self._providers = provider_repo
        self._assignments = assignment_repo
        self._events = events
        self._policy = policy or DispatchPolicy()
        self._clock = clock

    async def execute(
        self,
        service_order_id: int,
        mode: AssignmentMode | None = None,
        provider_ids: list[int] | None = None,
        work_team_id: int | None = None,
        requested_date: datetime | None = None,
    ) -> Assignment:
        """Create the initial assignment of a service order.

        Pipeline:
        1. Load the order and make sure it has no live PENDING offer
        2. Filter + score the candidate pool (explicit ids or the country pool)
        3. Apply the country auto-accept rule / requested mode
        4. Persist the assignment with its expiry and scoring funnel
        """
        now = self._clock()

        order = await self._orders.get_by_id(service_order_id)
        if order is None:
            raise ServiceOrderNotFound(service_order_id)

        # Step 1: single active assignment per order
        existing = await self._assignments.get_active_for_order(order.id)
        if existing is not None:
            if not existing.is_expired(now):
                raise DuplicateActiveAssignment(order.id, existing.id)
            await self._expire_stale(existing, now)

        # Step 2: eligibility funnel + ranking
        if provider_ids:
            candidates = await self._providers.get_by_ids(provider_ids)
        else:
            candidates = await self._providers.get_candidates(order.country_code)

        ranking = rank_providers(order, candidates)
        if ranking.best is None:
            logger.warning(
                "Service order %d: none of %d providers qualified",
                order.id, ranking.evaluated,
            )
            raise NoQualifiedProvider(order.id, ranking.evaluated)

        # Step 3: mode + expiry
        country_policy = self._policy.for_country(order.country_code)
        selection = select_mode(
            mode or self._policy.default_mode, country_policy, len(ranking.rankings)
        )
        best = ranking.best

        if work_team_id is not None:
            team = await self._providers.get_work_team(work_team_id)
            if team is None or not team.active or team.provider_id != best.provider.id:
                raise WorkTeamMismatch(work_team_id, best.provider.id)

        # Step 4: persist
        original_date = requested_date or order.scheduled_date
        auto_accepted = selection.mode == AssignmentMode.AUTO_ACCEPT
        if selection.mode == AssignmentMode.BROADCAST:
            candidate_ids = tuple(c.provider.id for c in ranking.rankings)
        else:
            candidate_ids = (best.provider.id,)

        funnel = ranking.funnel_as_dicts()
        funnel.append({
            "step": "selection",
            "provider_id": best.provider.id,
            "passed": True,
            "reasons": [selection.reason],
            "score": best.score,
        })

        assignment = Assignment(
            id=None,
            service_order_id=order.id,
            provider_id=best.provider.id,
            work_team_id=work_team_id,
            status=AssignmentStatus.ACCEPTED if auto_accepted else AssignmentStatus.PENDING,
            assignment_mode=selection.mode,
            original_date=original_date,
            proposed_date=original_date,
            accepted_date=original_date if auto_accepted else None,
            offer_expires_at=compute_offer_expiry(
                selection.mode, now, country_policy, self._policy.offer_window_hours
            ),
            provider_score=best.score,
            funnel=funnel,
            candidate_provider_ids=candidate_ids,
            created_at=now,
            updated_at=now,
        )
        saved = await self._assignments.add(assignment)

        event_name = ASSIGNMENT_AUTO_ACCEPTED if auto_accepted else ASSIGNMENT_CREATED
        await self._events.publish(
            AssignmentEvent.of(event_name, saved, now, mode=saved.assignment_mode.value)
        )
        logger.info(
            "Service order %d → provider %d (mode=%s, score=%.1f, expires=%s)",
            order.id, best.provider.id, selection.mode.value, best.score,
            saved.offer_expires_at.isoformat() if saved.offer_expires_at else "never",
        )
        return saved

    async def _expire_stale(self, existing: Assignment, now: datetime) -> None:
        """Time out an expired offer that is still blocking a new one."""
        result = mark_timeout(existing, now)
        stored = await self._assignments.apply_transition(existing, result.assignment)
        if stored is None:
            latest = await self._assignments.get_by_id(existing.id)
            if latest is not None and latest.status == AssignmentStatus.PENDING:
                raise DuplicateActiveAssignment(existing.service_order_id, existing.id)
            return
        await self._events.publish(AssignmentEvent.of(OFFER_TIMED_OUT, stored, now))
        logger.info("Assignment %d timed out before re-dispatch", stored.id)


@dataclass
class BulkAssignmentResult:
    service_order_id: int
    assignment: Assignment | None = None
    error_code: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class BulkCreateAssignmentsUseCase:
    """Dispatch many service orders; one failure never stops the batch."""

    def __init__(self, create_assignment: CreateAssignmentUseCase):
        self._create = create_assignment

    async def execute(
        self,
        service_order_ids: list[int],
        mode: AssignmentMode | None = None,
        provider_ids: list[int] | None = None,
    ) -> list[BulkAssignmentResult]:
        results: list[BulkAssignmentResult] = []
        for order_id in service_order_ids:
            try:
                assignment = await self._create.execute(
                    order_id, mode=mode, provider_ids=provider_ids
                )
                results.append(BulkAssignmentResult(service_order_id=order_id, assignment=assignment))
            except AssignmentError as e:
                logger.warning("Failed to assign service order %d: %s", order_id, e.message)
                results.append(
                    BulkAssignmentResult(service_order_id=order_id, error_code=e.code, error=e.message)
                )

        successful = sum(1 for r in results if r.success)
        logger.info("Bulk assignment complete: %d/%d successful", successful, len(results))
        return results

"""SQLAlchemy repository implementations."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.adapters.persistence.models import (
    ACTIVE_ASSIGNMENT_INDEX,
    AssignmentModel,
    DateNegotiationModel,
    ProviderModel,
    ServiceOrderModel,
    WorkTeamModel,
)
from fieldops.application.ports.assignment_repo import (
    AssignmentFilter,
    AssignmentRepository,
    AssignmentStatistics,
)
from fieldops.application.ports.provider_repo import ProviderRepository
from fieldops.application.ports.service_order_repo import ServiceOrderRepository
from fieldops.domain.entities.assignment import MAX_NEGOTIATION_ROUNDS, Assignment
from fieldops.domain.entities.date_negotiation import DateNegotiation
from fieldops.domain.entities.provider import Provider, WorkTeam
from fieldops.domain.entities.service_order import ServiceOrder
from fieldops.domain.errors import DuplicateActiveAssignment
from fieldops.domain.value_objects.enums import (
    AssignmentMode,
    AssignmentStatus,
    ProposedBy,
    RiskStatus,
)

logger = logging.getLogger(__name__)

# ─── Mappers ─────────────────────────────────────────────────────────


def _service_order_to_domain(m: ServiceOrderModel) -> ServiceOrder:
    return ServiceOrder(
        id=m.id,
        country_code=m.country_code,
        service_type=m.service_type,
        scheduled_date=m.scheduled_date,
        status=m.status,
        required_certifications=set(m.required_certifications) if m.required_certifications else set(),
        external_ref=m.external_ref,
    )


def _provider_to_domain(m: ProviderModel) -> Provider:
    return Provider(
        id=m.id,
        name=m.name,
        country_code=m.country_code,
        tier=m.tier,
        risk_status=RiskStatus(m.risk_status),
        certifications=set(m.certifications) if m.certifications else set(),
        active=m.active,
        available=m.available,
    )


def _work_team_to_domain(m: WorkTeamModel) -> WorkTeam:
    return WorkTeam(
        id=m.id,
        provider_id=m.provider_id,
        name=m.name,
        active=m.active,
        certifications=set(m.certifications) if m.certifications else set(),
    )


def _negotiation_to_domain(m: DateNegotiationModel) -> DateNegotiation:
    return DateNegotiation(
        id=m.id,
        round=m.round,
        proposed_date=m.proposed_date,
        proposed_by=ProposedBy(m.proposed_by),
        notes=m.notes,
        created_at=m.created_at,
    )


def _assignment_to_domain(m: AssignmentModel) -> Assignment:
    return Assignment(
        id=m.id,
        service_order_id=m.service_order_id,
        provider_id=m.provider_id,
        work_team_id=m.work_team_id,
        status=AssignmentStatus(m.status),
        assignment_mode=AssignmentMode(m.assignment_mode),
        original_date=m.original_date,
        proposed_date=m.proposed_date,
        accepted_date=m.accepted_date,
        date_negotiation_round=m.date_negotiation_round,
        offer_expires_at=m.offer_expires_at,
        accepted_at=m.accepted_at,
        refused_at=m.refused_at,
        refusal_reason=m.refusal_reason,
        provider_score=m.provider_score,
        funnel=m.funnel,
        candidate_provider_ids=tuple(m.candidate_provider_ids or ()),
        negotiations=tuple(sorted((_negotiation_to_domain(n) for n in m.negotiations), key=lambda n: n.round)),
        created_at=m.created_at,
        updated_at=m.updated_at,
        version=m.version,
    )


def _assignment_values(a: Assignment) -> dict:
    """Mutable columns written by a transition."""
    return {
        "provider_id": a.provider_id,
        "status": a.status.value,
        "proposed_date": a.proposed_date,
        "accepted_date": a.accepted_date,
        "date_negotiation_round": a.date_negotiation_round,
        "offer_expires_at": a.offer_expires_at,
        "accepted_at": a.accepted_at,
        "refused_at": a.refused_at,
        "refusal_reason": a.refusal_reason,
        "updated_at": a.updated_at,
    }


# ─── Repositories ────────────────────────────────────────────────────


class SqlServiceOrderRepository(ServiceOrderRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, order: ServiceOrder) -> ServiceOrder:
        m = ServiceOrderModel(
            external_ref=order.external_ref,
            country_code=order.country_code,
            service_type=order.service_type,
            scheduled_date=order.scheduled_date,
            status=order.status,
            required_certifications=sorted(order.required_certifications),
        )
        self._s.add(m)
        await self._s.flush()
        order.id = m.id
        return order

    async def get_by_id(self, service_order_id: int) -> ServiceOrder | None:
        m = await self._s.get(ServiceOrderModel, service_order_id)
        return _service_order_to_domain(m) if m else None

    async def get_by_external_ref(self, external_ref: str) -> ServiceOrder | None:
        result = await self._s.execute(
            select(ServiceOrderModel).where(ServiceOrderModel.external_ref == external_ref)
        )
        m = result.scalar_one_or_none()
        return _service_order_to_domain(m) if m else None


class SqlProviderRepository(ProviderRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, provider: Provider) -> Provider:
        m = ProviderModel(
            name=provider.name,
            country_code=provider.country_code,
            tier=provider.tier,
            risk_status=provider.risk_status.value,
            certifications=sorted(provider.certifications),
            active=provider.active,
            available=provider.available,
        )
        self._s.add(m)
        await self._s.flush()
        provider.id = m.id
        return provider

    async def get_candidates(self, country_code: str) -> list[Provider]:
        result = await self._s.execute(
            select(ProviderModel)
            .where(ProviderModel.country_code == country_code)
            .order_by(ProviderModel.id)
        )
        return [_provider_to_domain(m) for m in result.scalars()]

    async def get_by_ids(self, provider_ids: list[int]) -> list[Provider]:
        result = await self._s.execute(
            select(ProviderModel)
            .where(ProviderModel.id.in_(provider_ids))
            .order_by(ProviderModel.id)
        )
        return [_provider_to_domain(m) for m in result.scalars()]

    async def get_by_name(self, name: str) -> Provider | None:
        result = await self._s.execute(select(ProviderModel).where(ProviderModel.name == name))
        m = result.scalar_one_or_none()
        return _provider_to_domain(m) if m else None

    async def save_work_team(self, team: WorkTeam) -> WorkTeam:
        m = WorkTeamModel(
            provider_id=team.provider_id,
            name=team.name,
            active=team.active,
            certifications=sorted(team.certifications),
        )
        self._s.add(m)
        await self._s.flush()
        team.id = m.id
        return team

    async def get_work_team(self, work_team_id: int) -> WorkTeam | None:
        m = await self._s.get(WorkTeamModel, work_team_id)
        return _work_team_to_domain(m) if m else None


class SqlAssignmentRepository(AssignmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, assignment: Assignment) -> Assignment:
        m = AssignmentModel(
            service_order_id=assignment.service_order_id,
            provider_id=assignment.provider_id,
            work_team_id=assignment.work_team_id,
            status=assignment.status.value,
            assignment_mode=assignment.assignment_mode.value,
            original_date=assignment.original_date,
            proposed_date=assignment.proposed_date,
            accepted_date=assignment.accepted_date,
            date_negotiation_round=assignment.date_negotiation_round,
            offer_expires_at=assignment.offer_expires_at,
            accepted_at=assignment.accepted_at,
            provider_score=assignment.provider_score,
            funnel=assignment.funnel,
            candidate_provider_ids=list(assignment.candidate_provider_ids),
            version=1,
            created_at=assignment.created_at,
            updated_at=assignment.updated_at,
        )
        try:
            async with self._s.begin_nested():
                self._s.add(m)
                await self._s.flush()
        except IntegrityError as e:
            if ACTIVE_ASSIGNMENT_INDEX not in str(e.orig):
                raise
            logger.info(
                "Concurrent dispatch for service order %d rejected by unique index",
                assignment.service_order_id,
            )
            raise DuplicateActiveAssignment(assignment.service_order_id) from e
        return replace(assignment, id=m.id, version=1)

    async def get_by_id(self, assignment_id: int) -> Assignment | None:
        # populate_existing: another session may have moved the row on
        result = await self._s.execute(
            select(AssignmentModel)
            .where(AssignmentModel.id == assignment_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _assignment_to_domain(m) if m else None

    async def get_active_for_order(self, service_order_id: int) -> Assignment | None:
        result = await self._s.execute(
            select(AssignmentModel)
            .where(
                AssignmentModel.service_order_id == service_order_id,
                AssignmentModel.status == AssignmentStatus.PENDING.value,
            )
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _assignment_to_domain(m) if m else None

    async def apply_transition(
        self,
        current: Assignment,
        updated: Assignment,
        negotiation: DateNegotiation | None = None,
    ) -> Assignment | None:
        result = await self._s.execute(
            update(AssignmentModel)
            .where(
                AssignmentModel.id == current.id,
                AssignmentModel.version == current.version,
            )
            .values(**_assignment_values(updated), version=current.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None

        if negotiation is not None:
            self._s.add(
                DateNegotiationModel(
                    assignment_id=current.id,
                    round=negotiation.round,
                    proposed_date=negotiation.proposed_date,
                    proposed_by=negotiation.proposed_by.value,
                    notes=negotiation.notes,
                    created_at=negotiation.created_at,
                )
            )
        await self._s.flush()
        return replace(updated, version=current.version + 1)

    def _filtered(self, stmt: Select, filters: AssignmentFilter) -> Select:
        if filters.status is not None:
            stmt = stmt.where(AssignmentModel.status == filters.status.value)
        if filters.mode is not None:
            stmt = stmt.where(AssignmentModel.assignment_mode == filters.mode.value)
        if filters.provider_id is not None:
            stmt = stmt.where(AssignmentModel.provider_id == filters.provider_id)
        if filters.service_order_id is not None:
            stmt = stmt.where(AssignmentModel.service_order_id == filters.service_order_id)
        if filters.country_code is not None:
            stmt = stmt.join(
                ServiceOrderModel, ServiceOrderModel.id == AssignmentModel.service_order_id
            ).where(ServiceOrderModel.country_code == filters.country_code)
        if filters.expired_before is not None:
            stmt = stmt.where(
                AssignmentModel.status == AssignmentStatus.PENDING.value,
                AssignmentModel.date_negotiation_round < MAX_NEGOTIATION_ROUNDS,
                AssignmentModel.offer_expires_at.is_not(None),
                AssignmentModel.offer_expires_at < filters.expired_before,
            )
        return stmt

    async def find(self, filters: AssignmentFilter) -> list[Assignment]:
        stmt = self._filtered(select(AssignmentModel), filters)
        result = await self._s.execute(
            stmt.order_by(AssignmentModel.created_at.desc(), AssignmentModel.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def count(self, filters: AssignmentFilter) -> int:
        stmt = self._filtered(select(func.count(AssignmentModel.id)), filters)
        return (await self._s.execute(stmt)).scalar() or 0

    async def get_expired(self, now: datetime, country_code: str | None = None) -> list[Assignment]:
        stmt = self._filtered(
            select(AssignmentModel),
            AssignmentFilter(country_code=country_code, expired_before=now),
        )
        result = await self._s.execute(stmt.order_by(AssignmentModel.offer_expires_at))
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def get_statistics(
        self,
        now: datetime,
        country_code: str | None = None,
        provider_id: int | None = None,
    ) -> AssignmentStatistics:
        scope = AssignmentFilter(country_code=country_code, provider_id=provider_id)

        total = await self.count(scope)

        status_rows = (
            await self._s.execute(
                self._filtered(
                    select(AssignmentModel.status, func.count(AssignmentModel.id)), scope
                ).group_by(AssignmentModel.status)
            )
        ).all()
        by_status = {row[0]: row[1] for row in status_rows}

        negotiated = (
            await self._s.execute(
                self._filtered(select(func.count(AssignmentModel.id)), scope).where(
                    AssignmentModel.date_negotiation_round > 0
                )
            )
        ).scalar() or 0

        expired = await self.count(replace(scope, expired_before=now))

        # Explicit accepts only: auto-accepted rows have no accepted_at
        avg_seconds = (
            await self._s.execute(
                self._filtered(
                    select(
                        func.avg(
                            func.extract("epoch", AssignmentModel.accepted_at - AssignmentModel.created_at)
                        )
                    ),
                    scope,
                ).where(AssignmentModel.accepted_at.is_not(None))
            )
        ).scalar()

        return AssignmentStatistics(
            total=total,
            by_status=by_status,
            with_date_negotiation=negotiated,
            expired_offers=expired,
            average_acceptance_time_hours=(
                round(float(avg_seconds) / 3600, 2) if avg_seconds is not None else None
            ),
        )

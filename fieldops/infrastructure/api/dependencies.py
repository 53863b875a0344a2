"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.adapters.events.logging_publisher import LoggingEventPublisher
from fieldops.adapters.persistence.database import async_session_factory
from fieldops.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlProviderRepository,
    SqlServiceOrderRepository,
)
from fieldops.application.use_cases.assignment_lifecycle import AssignmentLifecycleUseCase
from fieldops.application.use_cases.create_assignment import (
    BulkCreateAssignmentsUseCase,
    CreateAssignmentUseCase,
)
from fieldops.application.use_cases.query_assignments import QueryAssignmentsUseCase
from fieldops.application.use_cases.sweep_expired_offers import SweepExpiredOffersUseCase
from fieldops.config import settings
from fieldops.domain.errors import AssignmentError

# Singleton adapters (stateless)
_event_publisher = LoggingEventPublisher()
_dispatch_policy = settings.dispatch_policy()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """One transaction per request.

    Committed on success and on domain errors (a lazy TIMEOUT written before
    the error must survive), rolled back on anything else.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except AssignmentError:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise


def get_create_assignment_uc(
    session: AsyncSession = Depends(get_db_session),
) -> CreateAssignmentUseCase:
    return CreateAssignmentUseCase(
        service_order_repo=SqlServiceOrderRepository(session),
        provider_repo=SqlProviderRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
        events=_event_publisher,
        policy=_dispatch_policy,
    )


def get_bulk_create_uc(
    create_uc: CreateAssignmentUseCase = Depends(get_create_assignment_uc),
) -> BulkCreateAssignmentsUseCase:
    return BulkCreateAssignmentsUseCase(create_assignment=create_uc)


def get_lifecycle_uc(
    session: AsyncSession = Depends(get_db_session),
) -> AssignmentLifecycleUseCase:
    return AssignmentLifecycleUseCase(
        assignment_repo=SqlAssignmentRepository(session),
        events=_event_publisher,
        enforce_alternation=settings.enforce_negotiation_alternation,
    )


def get_query_uc(session: AsyncSession = Depends(get_db_session)) -> QueryAssignmentsUseCase:
    return QueryAssignmentsUseCase(assignment_repo=SqlAssignmentRepository(session))


def get_sweep_uc(session: AsyncSession = Depends(get_db_session)) -> SweepExpiredOffersUseCase:
    return SweepExpiredOffersUseCase(
        assignment_repo=SqlAssignmentRepository(session),
        events=_event_publisher,
    )

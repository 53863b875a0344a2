"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.adapters.persistence.models import AssignmentModel
from fieldops.config import settings
from fieldops.domain.entities.assignment import MAX_NEGOTIATION_ROUNDS
from fieldops.domain.value_objects.enums import AssignmentStatus
from fieldops.infrastructure.api.dependencies import get_db_session

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_db_session)):
    """Database connectivity plus the backlog of offers waiting for a sweep."""
    stale_offers = None
    try:
        stale_offers = await session.scalar(
            select(func.count(AssignmentModel.id)).where(
                AssignmentModel.status == AssignmentStatus.PENDING.value,
                AssignmentModel.date_negotiation_round < MAX_NEGOTIATION_ROUNDS,
                AssignmentModel.offer_expires_at < datetime.now(timezone.utc),
            )
        )
        db_status = "connected"
    except Exception as e:
        await session.rollback()
        db_status = f"error: {e}"

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "database": db_status,
        "stale_offers": stale_offers,
        "sweep_loop": settings.offer_sweep_interval_seconds > 0,
        "service": "FieldOps assignment service",
    }

"""Analytics endpoints — assignment statistics for dashboards."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fieldops.application.use_cases.query_assignments import QueryAssignmentsUseCase
from fieldops.infrastructure.api.dependencies import get_query_uc
from fieldops.infrastructure.api.serializers import serialize_statistics

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/assignments")
async def assignment_statistics(
    country_code: str | None = None,
    provider_id: int | None = None,
    uc: QueryAssignmentsUseCase = Depends(get_query_uc),
):
    """Totals by status, negotiation share, stale offers and mean time to accept."""
    stats = await uc.statistics(
        country_code=country_code.upper() if country_code else None,
        provider_id=provider_id,
    )
    return serialize_statistics(stats)

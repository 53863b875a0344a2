"""Assignment endpoints — dispatch, provider/customer actions, lookups."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from fieldops.application.ports.assignment_repo import AssignmentFilter
from fieldops.application.use_cases.assignment_lifecycle import AssignmentLifecycleUseCase
from fieldops.application.use_cases.create_assignment import (
    BulkCreateAssignmentsUseCase,
    CreateAssignmentUseCase,
)
from fieldops.application.use_cases.query_assignments import QueryAssignmentsUseCase
from fieldops.domain.value_objects.enums import (
    AssignmentMode,
    AssignmentStatus,
    ManualOutcome,
    ProposedBy,
)
from fieldops.infrastructure.api.dependencies import (
    get_bulk_create_uc,
    get_create_assignment_uc,
    get_lifecycle_uc,
    get_query_uc,
)
from fieldops.infrastructure.api.serializers import serialize_assignment

router = APIRouter(prefix="/assignments", tags=["assignments"])

# ── Request schemas ─────────────────────────────────────────────────


class CreateAssignmentRequest(BaseModel):
    service_order_id: int
    mode: AssignmentMode | None = None
    provider_ids: list[int] | None = None
    work_team_id: int | None = None
    requested_date: datetime | None = None


class BulkCreateRequest(BaseModel):
    service_order_ids: list[int] = Field(min_length=1)
    mode: AssignmentMode | None = None
    provider_ids: list[int] | None = None


class AcceptRequest(BaseModel):
    provider_id: int | None = None


class RefuseRequest(BaseModel):
    reason: str = Field(min_length=1)
    alternative_date: datetime | None = None


class ProposeDateRequest(BaseModel):
    proposed_date: datetime
    proposed_by: ProposedBy
    notes: str | None = None


class ResolveRequest(BaseModel):
    outcome: ManualOutcome
    reason: str | None = None


# ── Dispatch ────────────────────────────────────────────────────────


@router.post("", status_code=201)
async def create_assignment(
    body: CreateAssignmentRequest,
    uc: CreateAssignmentUseCase = Depends(get_create_assignment_uc),
):
    """Score candidates and open the initial offer for a service order."""
    assignment = await uc.execute(
        body.service_order_id,
        mode=body.mode,
        provider_ids=body.provider_ids,
        work_team_id=body.work_team_id,
        requested_date=body.requested_date,
    )
    return serialize_assignment(assignment)


@router.post("/bulk")
async def bulk_create_assignments(
    body: BulkCreateRequest,
    uc: BulkCreateAssignmentsUseCase = Depends(get_bulk_create_uc),
):
    results = await uc.execute(body.service_order_ids, mode=body.mode, provider_ids=body.provider_ids)
    successful = [r for r in results if r.success]
    return {
        "status": "ok",
        "total": len(results),
        "successful": len(successful),
        "failed": len(results) - len(successful),
        "results": [
            {
                "service_order_id": r.service_order_id,
                "assignment": serialize_assignment(r.assignment) if r.assignment else None,
                "error_code": r.error_code,
                "error": r.error,
            }
            for r in results
        ],
    }


# ── Lookups ─────────────────────────────────────────────────────────


@router.get("")
async def list_assignments(
    status: AssignmentStatus | None = None,
    mode: AssignmentMode | None = None,
    provider_id: int | None = None,
    service_order_id: int | None = None,
    country_code: str | None = None,
    expired: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    uc: QueryAssignmentsUseCase = Depends(get_query_uc),
):
    filters = AssignmentFilter(
        status=status,
        mode=mode,
        provider_id=provider_id,
        service_order_id=service_order_id,
        country_code=country_code.upper() if country_code else None,
        page=page,
        limit=limit,
    )
    result = await uc.list(filters, expired=expired)
    return {
        "total": result.total,
        "page": result.page,
        "limit": result.limit,
        "pages": result.pages,
        "assignments": [serialize_assignment(a) for a in result.items],
    }


@router.get("/expired")
async def list_expired_offers(
    country_code: str | None = None,
    uc: QueryAssignmentsUseCase = Depends(get_query_uc),
):
    """PENDING offers past their expiry that no sweep has handled yet."""
    items = await uc.expired_offers(country_code.upper() if country_code else None)
    return {"total": len(items), "assignments": [serialize_assignment(a) for a in items]}


@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: int,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    return serialize_assignment(await uc.get(assignment_id))


@router.get("/{assignment_id}/funnel")
async def get_assignment_funnel(
    assignment_id: int,
    uc: QueryAssignmentsUseCase = Depends(get_query_uc),
):
    """Why this provider was chosen: every candidate with its filter/score reasons."""
    return await uc.funnel(assignment_id)


# ── Provider / customer actions ─────────────────────────────────────


@router.post("/{assignment_id}/accept")
async def accept_assignment(
    assignment_id: int,
    body: AcceptRequest | None = None,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    provider_id = body.provider_id if body else None
    return serialize_assignment(await uc.accept(assignment_id, provider_id=provider_id))


@router.post("/{assignment_id}/refuse")
async def refuse_assignment(
    assignment_id: int,
    body: RefuseRequest,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    assignment = await uc.refuse(assignment_id, body.reason, alternative_date=body.alternative_date)
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/negotiations")
async def propose_alternative_date(
    assignment_id: int,
    body: ProposeDateRequest,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    assignment = await uc.propose_alternative_date(
        assignment_id, body.proposed_date, body.proposed_by, notes=body.notes
    )
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/counter-proposal/accept")
async def accept_counter_proposal(
    assignment_id: int,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    return serialize_assignment(await uc.accept_counter_proposal(assignment_id))


@router.post("/{assignment_id}/counter-proposal/refuse")
async def refuse_counter_proposal(
    assignment_id: int,
    body: RefuseRequest,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    assignment = await uc.refuse_counter_proposal(
        assignment_id, body.reason, alternative_date=body.alternative_date
    )
    return serialize_assignment(assignment)


@router.post("/{assignment_id}/timeout")
async def mark_timeout(
    assignment_id: int,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    return serialize_assignment(await uc.mark_timeout(assignment_id))


@router.post("/{assignment_id}/resolve")
async def resolve_manually(
    assignment_id: int,
    body: ResolveRequest,
    uc: AssignmentLifecycleUseCase = Depends(get_lifecycle_uc),
):
    """Operator decision on a negotiation that used all its rounds."""
    assignment = await uc.resolve_manually(assignment_id, body.outcome, reason=body.reason)
    return serialize_assignment(assignment)

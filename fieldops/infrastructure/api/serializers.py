"""Domain object → JSON-ready dict conversion for API responses."""

from __future__ import annotations

from datetime import datetime

from fieldops.application.ports.assignment_repo import AssignmentStatistics
from fieldops.domain.entities.assignment import MAX_NEGOTIATION_ROUNDS, Assignment
from fieldops.domain.entities.date_negotiation import DateNegotiation


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_negotiation(n: DateNegotiation) -> dict:
    return {
        "round": n.round,
        "proposed_date": _iso(n.proposed_date),
        "proposed_by": n.proposed_by.value,
        "notes": n.notes,
        "created_at": _iso(n.created_at),
    }


def serialize_assignment(a: Assignment) -> dict:
    return {
        "id": a.id,
        "service_order_id": a.service_order_id,
        "provider_id": a.provider_id,
        "work_team_id": a.work_team_id,
        "status": a.status.value,
        "assignment_mode": a.assignment_mode.value,
        "original_date": _iso(a.original_date),
        "proposed_date": _iso(a.proposed_date),
        "accepted_date": _iso(a.accepted_date),
        "date_negotiation_round": a.date_negotiation_round,
        "max_negotiation_rounds": MAX_NEGOTIATION_ROUNDS,
        "requires_manual_resolution": a.requires_manual_resolution,
        "is_auto_accepted": a.is_auto_accepted,
        "offer_expires_at": _iso(a.offer_expires_at),
        "accepted_at": _iso(a.accepted_at),
        "refused_at": _iso(a.refused_at),
        "refusal_reason": a.refusal_reason,
        "provider_score": a.provider_score,
        "candidate_provider_ids": list(a.candidate_provider_ids),
        "negotiations": [serialize_negotiation(n) for n in a.negotiations],
        "created_at": _iso(a.created_at),
        "updated_at": _iso(a.updated_at),
    }


def serialize_statistics(s: AssignmentStatistics) -> dict:
    return {
        "total": s.total,
        "by_status": s.by_status,
        "with_date_negotiation": s.with_date_negotiation,
        "expired_offers": s.expired_offers,
        "average_acceptance_time_hours": s.average_acceptance_time_hours,
    }

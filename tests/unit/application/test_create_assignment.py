"""Tests for CreateAssignmentUseCase and bulk dispatch with in-memory fakes."""

from __future__ import annotations

from datetime import timedelta

import pytest

from fakes import (
    NOW,
    FakeAssignmentRepo,
    FakeProviderRepo,
    FakeServiceOrderRepo,
    make_order,
    make_provider,
)
from fieldops.application.use_cases.create_assignment import (
    BulkCreateAssignmentsUseCase,
    CreateAssignmentUseCase,
)
from fieldops.domain.entities.provider import WorkTeam
from fieldops.domain.errors import (
    DuplicateActiveAssignment,
    NoQualifiedProvider,
    ServiceOrderNotFound,
    WorkTeamMismatch,
)
from fieldops.domain.events import (
    ASSIGNMENT_AUTO_ACCEPTED,
    ASSIGNMENT_CREATED,
    OFFER_TIMED_OUT,
)
from fieldops.domain.policies.dispatch_mode import DispatchPolicy
from fieldops.domain.value_objects.enums import (
    AssignmentMode,
    AssignmentStatus,
    RiskStatus,
)


def _make_use_case(orders, providers, clock, events, teams=None, policy=None):
    assignments = FakeAssignmentRepo()
    uc = CreateAssignmentUseCase(
        service_order_repo=FakeServiceOrderRepo(orders),
        provider_repo=FakeProviderRepo(providers, teams),
        assignment_repo=assignments,
        events=events,
        policy=policy,
        clock=clock,
    )
    return uc, assignments


@pytest.mark.asyncio
async def test_auto_accept_single_qualified_provider_in_spain(clock, events):
    """One qualified provider + country rule → ACCEPTED straight away, no acceptedAt."""
    order = make_order(country="ES")
    providers = [make_provider(1, country="ES"), make_provider(2, country="ES", risk=RiskStatus.SUSPENDED)]
    uc, _ = _make_use_case([order], providers, clock, events)

    a = await uc.execute(order.id)

    assert a.status == AssignmentStatus.ACCEPTED
    assert a.assignment_mode == AssignmentMode.AUTO_ACCEPT
    assert a.accepted_at is None
    assert a.is_auto_accepted
    assert a.accepted_date == order.scheduled_date
    assert a.offer_expires_at is None
    assert events.names == [ASSIGNMENT_AUTO_ACCEPTED]


@pytest.mark.asyncio
async def test_direct_offer_to_best_provider(clock, events):
    order = make_order(country="FR")
    providers = [make_provider(1, tier=3), make_provider(2, tier=1), make_provider(3, tier=2)]
    uc, _ = _make_use_case([order], providers, clock, events)

    a = await uc.execute(order.id)

    assert a.status == AssignmentStatus.PENDING
    assert a.assignment_mode == AssignmentMode.DIRECT
    assert a.provider_id == 2
    assert a.provider_score == 100.0
    assert a.offer_expires_at == NOW + timedelta(hours=4)
    assert a.original_date == a.proposed_date == order.scheduled_date
    assert a.date_negotiation_round == 0
    assert a.candidate_provider_ids == (2,)
    assert a.funnel[-1]["step"] == "selection"
    assert events.names == [ASSIGNMENT_CREATED]


@pytest.mark.asyncio
async def test_poland_direct_offer_gets_six_hours(clock, events):
    order = make_order(country="PL")
    uc, _ = _make_use_case([order], [make_provider(1, country="PL")], clock, events)

    a = await uc.execute(order.id)
    assert a.offer_expires_at == NOW + timedelta(hours=6)


@pytest.mark.asyncio
async def test_offer_mode_uses_offer_window(clock, events):
    order = make_order()
    uc, _ = _make_use_case([order], [make_provider(1)], clock, events)

    a = await uc.execute(order.id, mode=AssignmentMode.OFFER)
    assert a.assignment_mode == AssignmentMode.OFFER
    assert a.offer_expires_at == NOW + timedelta(hours=24)


@pytest.mark.asyncio
async def test_broadcast_records_all_qualified_candidates(clock, events):
    order = make_order(certifications={"GAS"})
    providers = [
        make_provider(1, certifications={"GAS"}, tier=2),
        make_provider(2, certifications={"GAS"}, tier=1),
        make_provider(3),
    ]
    uc, _ = _make_use_case([order], providers, clock, events)

    a = await uc.execute(order.id, mode=AssignmentMode.BROADCAST)
    assert a.assignment_mode == AssignmentMode.BROADCAST
    assert a.provider_id == 2
    assert a.candidate_provider_ids == (2, 1)


@pytest.mark.asyncio
async def test_no_qualified_provider(clock, events):
    order = make_order(certifications={"HVAC"})
    uc, assignments = _make_use_case([order], [make_provider(1), make_provider(2, active=False)], clock, events)

    with pytest.raises(NoQualifiedProvider) as exc:
        await uc.execute(order.id)
    assert exc.value.details["evaluated"] == 2
    assert assignments.rows == {}
    assert events.events == []


@pytest.mark.asyncio
async def test_unknown_service_order(clock, events):
    uc, _ = _make_use_case([], [make_provider(1)], clock, events)
    with pytest.raises(ServiceOrderNotFound):
        await uc.execute(42)


@pytest.mark.asyncio
async def test_second_pending_assignment_rejected(clock, events):
    order = make_order()
    uc, _ = _make_use_case([order], [make_provider(1), make_provider(2)], clock, events)

    first = await uc.execute(order.id)
    with pytest.raises(DuplicateActiveAssignment) as exc:
        await uc.execute(order.id)
    assert exc.value.details["existing_assignment_id"] == first.id


@pytest.mark.asyncio
async def test_expired_pending_assignment_is_timed_out_before_redispatch(clock, events):
    order = make_order()
    uc, assignments = _make_use_case([order], [make_provider(1), make_provider(2)], clock, events)

    first = await uc.execute(order.id)
    clock.advance(hours=5)
    second = await uc.execute(order.id)

    assert assignments.rows[first.id].status == AssignmentStatus.TIMEOUT
    assert second.status == AssignmentStatus.PENDING
    assert events.names == [ASSIGNMENT_CREATED, OFFER_TIMED_OUT, ASSIGNMENT_CREATED]


@pytest.mark.asyncio
async def test_explicit_providers_still_filtered(clock, events):
    order = make_order(country="FR")
    providers = [make_provider(1, tier=1, country="ES"), make_provider(2, tier=3)]
    uc, _ = _make_use_case([order], providers, clock, events)

    a = await uc.execute(order.id, provider_ids=[1, 2])
    assert a.provider_id == 2


@pytest.mark.asyncio
async def test_work_team_must_belong_to_selected_provider(clock, events):
    order = make_order()
    teams = [WorkTeam(id=5, provider_id=99, name="Crew A")]
    uc, _ = _make_use_case([order], [make_provider(1)], clock, events, teams=teams)

    with pytest.raises(WorkTeamMismatch):
        await uc.execute(order.id, work_team_id=5)


@pytest.mark.asyncio
async def test_work_team_of_selected_provider_is_kept(clock, events):
    order = make_order()
    teams = [WorkTeam(id=5, provider_id=1, name="Crew A")]
    uc, _ = _make_use_case([order], [make_provider(1)], clock, events, teams=teams)

    a = await uc.execute(order.id, work_team_id=5)
    assert a.work_team_id == 5


@pytest.mark.asyncio
async def test_custom_policy_disables_auto_accept(clock, events):
    order = make_order(country="ES")
    policy = DispatchPolicy(auto_accept_countries=frozenset())
    uc, _ = _make_use_case([order], [make_provider(1, country="ES")], clock, events, policy=policy)

    a = await uc.execute(order.id)
    assert a.status == AssignmentStatus.PENDING


@pytest.mark.asyncio
async def test_requested_date_overrides_scheduled_date(clock, events):
    order = make_order()
    uc, _ = _make_use_case([order], [make_provider(1)], clock, events)
    wanted = NOW + timedelta(days=12)

    a = await uc.execute(order.id, requested_date=wanted)
    assert a.original_date == wanted


# ─── Bulk ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_bulk_reports_per_order_outcome(clock, events):
    orders = [make_order(1), make_order(2, certifications={"HVAC"}), make_order(3)]
    create_uc, _ = _make_use_case(orders, [make_provider(1)], clock, events)
    bulk = BulkCreateAssignmentsUseCase(create_assignment=create_uc)

    results = await bulk.execute([1, 2, 3, 4])

    assert [r.success for r in results] == [True, False, True, False]
    assert results[1].error_code == "NO_QUALIFIED_PROVIDER"
    assert results[3].error_code == "SERVICE_ORDER_NOT_FOUND"
    assert results[0].assignment.service_order_id == 1

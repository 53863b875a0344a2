"""Tests for SweepExpiredOffersUseCase."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import timedelta

import pytest

from fakes import NOW, FakeAssignmentRepo
from fieldops.application.use_cases.assignment_lifecycle import AssignmentLifecycleUseCase
from fieldops.application.use_cases.sweep_expired_offers import SweepExpiredOffersUseCase
from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.events import OFFER_TIMED_OUT
from fieldops.domain.value_objects.enums import AssignmentMode, AssignmentStatus


def _assignment(order_id: int, expires_in_hours: float | None, status=AssignmentStatus.PENDING) -> Assignment:
    return Assignment(
        id=None, service_order_id=order_id, provider_id=1,
        status=status, assignment_mode=AssignmentMode.DIRECT,
        original_date=NOW + timedelta(days=2), proposed_date=NOW + timedelta(days=2),
        offer_expires_at=NOW + timedelta(hours=expires_in_hours) if expires_in_hours is not None else None,
        created_at=NOW, updated_at=NOW,
    )


@pytest.mark.asyncio
async def test_sweep_times_out_only_expired_pending(clock, events):
    repo = FakeAssignmentRepo()
    expired = await repo.add(_assignment(1, expires_in_hours=-1))
    fresh = await repo.add(_assignment(2, expires_in_hours=3))
    accepted = await repo.add(_assignment(3, expires_in_hours=-5, status=AssignmentStatus.ACCEPTED))
    auto = await repo.add(_assignment(4, expires_in_hours=None, status=AssignmentStatus.ACCEPTED))

    count = await SweepExpiredOffersUseCase(repo, events, clock=clock).execute()

    assert count == 1
    assert repo.rows[expired.id].status == AssignmentStatus.TIMEOUT
    assert repo.rows[fresh.id].status == AssignmentStatus.PENDING
    assert repo.rows[accepted.id].status == AssignmentStatus.ACCEPTED
    assert repo.rows[auto.id].status == AssignmentStatus.ACCEPTED
    assert events.names == [OFFER_TIMED_OUT]


@pytest.mark.asyncio
async def test_second_sweep_does_nothing(clock, events):
    repo = FakeAssignmentRepo()
    await repo.add(_assignment(1, expires_in_hours=-1))
    sweep = SweepExpiredOffersUseCase(repo, events, clock=clock)

    assert await sweep.execute() == 1
    assert await sweep.execute() == 0


@pytest.mark.asyncio
async def test_sweep_filters_by_country(clock, events):
    repo = FakeAssignmentRepo(order_countries={1: "ES", 2: "PL"})
    es = await repo.add(_assignment(1, expires_in_hours=-1))
    pl = await repo.add(_assignment(2, expires_in_hours=-1))

    count = await SweepExpiredOffersUseCase(repo, events, clock=clock).execute("PL")

    assert count == 1
    assert repo.rows[es.id].status == AssignmentStatus.PENDING
    assert repo.rows[pl.id].status == AssignmentStatus.TIMEOUT


@pytest.mark.asyncio
async def test_concurrent_sweeps_transition_each_offer_once(clock, events):
    repo = FakeAssignmentRepo()
    for order_id in range(1, 4):
        await repo.add(_assignment(order_id, expires_in_hours=-1))
    sweep = SweepExpiredOffersUseCase(repo, events, clock=clock)

    counts = await asyncio.gather(sweep.execute(), sweep.execute())

    assert sum(counts) == 3
    assert all(a.status == AssignmentStatus.TIMEOUT for a in repo.rows.values())
    assert events.names.count(OFFER_TIMED_OUT) == 3


@pytest.mark.asyncio
async def test_sweep_skips_offer_settled_in_between(clock, events):
    """An offer handled after the sweep read it is skipped, not failed."""
    repo = FakeAssignmentRepo()
    a = await repo.add(_assignment(1, expires_in_hours=-1))
    stale_list = await repo.get_expired(NOW)
    await AssignmentLifecycleUseCase(repo, events, clock=clock).mark_timeout(a.id)

    class StaleRepo(FakeAssignmentRepo):
        async def get_expired(self, now, country_code=None):
            return stale_list

    stale = StaleRepo()
    stale.rows = repo.rows
    count = await SweepExpiredOffersUseCase(stale, events, clock=clock).execute()

    assert count == 0
    assert events.names == [OFFER_TIMED_OUT]


@pytest.mark.asyncio
async def test_sweep_leaves_exhausted_negotiation_to_operator(clock, events):
    repo = FakeAssignmentRepo()
    stuck = await repo.add(replace(_assignment(1, expires_in_hours=-1), date_negotiation_round=3))
    stale = await repo.add(_assignment(2, expires_in_hours=-1))

    count = await SweepExpiredOffersUseCase(repo, events, clock=clock).execute()

    assert count == 1
    assert repo.rows[stuck.id].status == AssignmentStatus.PENDING
    assert repo.rows[stale.id].status == AssignmentStatus.TIMEOUT

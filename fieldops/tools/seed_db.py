"""Seed database from CSV files.

Usage:
    python -m fieldops.tools.seed_db
    python -m fieldops.tools.seed_db --data-dir data
    python -m fieldops.tools.seed_db --drop  # drop existing data first
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.adapters.csv_loader.loader import (
    load_providers,
    load_service_orders,
    load_work_teams,
)
from fieldops.adapters.persistence.database import async_session_factory
from fieldops.adapters.persistence.models import (
    AssignmentModel,
    DateNegotiationModel,
    ProviderModel,
    ServiceOrderModel,
    WorkTeamModel,
)
from fieldops.adapters.persistence.repositories import (
    SqlProviderRepository,
    SqlServiceOrderRepository,
)
from fieldops.domain.entities.provider import Provider, WorkTeam
from fieldops.domain.entities.service_order import ServiceOrder
from fieldops.domain.value_objects.enums import RiskStatus

logger = logging.getLogger(__name__)


async def _drop_data(session: AsyncSession) -> None:
    """Delete all data in correct order (respecting FK constraints)."""
    for model in [
        DateNegotiationModel,
        AssignmentModel,
        WorkTeamModel,
        ServiceOrderModel,
        ProviderModel,
    ]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Dropped all existing data")


async def seed(data_dir: Path, drop: bool = False) -> dict[str, int]:
    """Main seed function. Returns counts of seeded records."""
    counts = {"providers": 0, "work_teams": 0, "service_orders": 0}

    provider_csv = _find_csv(data_dir, ["providers", "provider", "companies"])
    team_csv = _find_csv(data_dir, ["work_teams", "teams", "crews"])
    order_csv = _find_csv(data_dir, ["service_orders", "orders", "jobs"])

    if not provider_csv:
        raise FileNotFoundError(
            f"No providers CSV found in {data_dir}. Expected something like providers.csv"
        )

    async with async_session_factory() as session:
        if drop:
            await _drop_data(session)

        providers = SqlProviderRepository(session)
        orders = SqlServiceOrderRepository(session)

        # 1. Providers
        for pd in load_providers(provider_csv):
            if await providers.get_by_name(pd["name"]):
                logger.debug("Provider '%s' already exists, skipping", pd["name"])
                continue
            try:
                risk = RiskStatus(pd["risk_status"])
            except ValueError:
                logger.warning("Provider '%s': unknown risk status %s, using OK", pd["name"], pd["risk_status"])
                risk = RiskStatus.OK
            await providers.save(
                Provider(
                    id=None,
                    name=pd["name"],
                    country_code=pd["country_code"],
                    tier=pd["tier"],
                    risk_status=risk,
                    certifications=pd["certifications"],
                    active=pd["active"],
                    available=pd["available"],
                )
            )
            counts["providers"] += 1
        await session.commit()

        # 2. Work teams (need provider ids)
        if team_csv:
            for td in load_work_teams(team_csv):
                provider = await providers.get_by_name(td["provider_name"])
                if provider is None:
                    logger.warning(
                        "Work team '%s': provider '%s' not found, skipping",
                        td["name"], td["provider_name"],
                    )
                    continue
                existing = await session.execute(
                    select(func.count(WorkTeamModel.id)).where(
                        WorkTeamModel.provider_id == provider.id,
                        WorkTeamModel.name == td["name"],
                    )
                )
                if existing.scalar():
                    logger.debug("Work team '%s' already exists, skipping", td["name"])
                    continue
                await providers.save_work_team(
                    WorkTeam(
                        id=None,
                        provider_id=provider.id,
                        name=td["name"],
                        active=td["active"],
                        certifications=td["certifications"],
                    )
                )
                counts["work_teams"] += 1
            await session.commit()
        else:
            logger.info("No work teams CSV found — skipping work team import")

        # 3. Service orders
        if order_csv:
            for od in load_service_orders(order_csv):
                if await orders.get_by_external_ref(od["external_ref"]):
                    logger.debug("Service order '%s' already exists, skipping", od["external_ref"])
                    continue
                await orders.save(
                    ServiceOrder(
                        id=None,
                        country_code=od["country_code"],
                        service_type=od["service_type"],
                        scheduled_date=od["scheduled_date"],
                        required_certifications=od["required_certifications"],
                        external_ref=od["external_ref"],
                    )
                )
                counts["service_orders"] += 1
            await session.commit()
        else:
            logger.info("No service orders CSV found — skipping order import")

    logger.info(
        "Seed complete: %d providers, %d work teams, %d service orders",
        counts["providers"], counts["work_teams"], counts["service_orders"],
    )
    return counts


def _find_csv(data_dir: Path, name_hints: list[str]) -> Path | None:
    """Find a CSV file matching any of the name hints (first hint wins)."""
    files = sorted(data_dir.glob("*.csv"))
    for hint in name_hints:
        for f in files:
            if hint in f.stem.lower():
                logger.info("Found CSV: %s (matched hint '%s')", f.name, hint)
                return f
    return None


async def _verify_data() -> None:
    """Print sanity checks after seeding."""
    async with async_session_factory() as session:
        providers = (await session.execute(select(ProviderModel))).scalars().all()
        teams = (await session.execute(select(WorkTeamModel))).scalars().all()
        orders = (await session.execute(select(ServiceOrderModel))).scalars().all()

        print(f"\n{'='*50}")
        print("SEED VERIFICATION")
        print(f"{'='*50}")
        print(f"Providers:      {len(providers)}")
        print(f"Work teams:     {len(teams)}")
        print(f"Service orders: {len(orders)}")

        by_country: dict[str, int] = {}
        for p in providers:
            by_country[p.country_code] = by_country.get(p.country_code, 0) + 1
        print(f"Providers by country: {by_country}")

        by_risk: dict[str, int] = {}
        for p in providers:
            by_risk[p.risk_status] = by_risk.get(p.risk_status, 0) + 1
        print(f"Risk distribution: {by_risk}")

        unscheduled = sum(1 for o in orders if o.scheduled_date is None)
        print(f"Orders without scheduled date: {unscheduled}/{len(orders)}")
        print(f"{'='*50}\n")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")

    parser = argparse.ArgumentParser(description="Seed FieldOps database from CSV files")
    parser.add_argument(
        "--data-dir", type=str, default="data",
        help="Directory containing CSV files (default: data)",
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing data before seeding",
    )
    parser.add_argument(
        "--verify-only", action="store_true",
        help="Only run verification, don't seed",
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not args.verify_only and not data_dir.exists():
        logger.error("Data directory not found: %s", data_dir)
        sys.exit(1)

    if args.verify_only:
        asyncio.run(_verify_data())
    else:
        async def run_all():
            await seed(data_dir, drop=args.drop)
            await _verify_data()
        asyncio.run(run_all())


if __name__ == "__main__":
    main()

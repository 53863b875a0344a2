"""Time out expired PENDING offers.

Usage:
    python -m fieldops.tools.sweep_offers
    python -m fieldops.tools.sweep_offers --country ES
    python -m fieldops.tools.sweep_offers --loop --interval 60
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from fieldops.adapters.events.logging_publisher import LoggingEventPublisher
from fieldops.adapters.persistence.database import async_session_factory, engine
from fieldops.adapters.persistence.repositories import SqlAssignmentRepository
from fieldops.application.use_cases.sweep_expired_offers import SweepExpiredOffersUseCase
from fieldops.config import settings

logger = logging.getLogger(__name__)


async def sweep_once(country_code: str | None = None) -> int:
    """One sweep in its own session/transaction."""
    async with async_session_factory() as session:
        uc = SweepExpiredOffersUseCase(
            assignment_repo=SqlAssignmentRepository(session),
            events=LoggingEventPublisher(),
        )
        count = await uc.execute(country_code)
        await session.commit()
    return count


async def sweep_forever(interval_seconds: int, country_code: str | None = None) -> None:
    """Sweep every ``interval_seconds`` until cancelled; a failed sweep is logged and retried next tick."""
    logger.info("Offer sweep loop started (every %ds)", interval_seconds)
    while True:
        try:
            await sweep_once(country_code)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Offer sweep failed")
        await asyncio.sleep(interval_seconds)


def main():
    logging.basicConfig(level=settings.log_level, format="%(levelname)s | %(message)s")

    parser = argparse.ArgumentParser(description="Time out expired assignment offers")
    parser.add_argument("--country", type=str, default=None, help="Only sweep this country code")
    parser.add_argument("--loop", action="store_true", help="Keep sweeping periodically")
    parser.add_argument(
        "--interval", type=int, default=settings.offer_sweep_interval_seconds or 60,
        help="Seconds between sweeps with --loop (default: 60)",
    )
    args = parser.parse_args()
    country = args.country.upper() if args.country else None

    async def run():
        try:
            if args.loop:
                await sweep_forever(args.interval, country)
            else:
                count = await sweep_once(country)
                print(f"Timed out {count} offer(s)")
        finally:
            await engine.dispose()

    asyncio.run(run())


if __name__ == "__main__":
    main()

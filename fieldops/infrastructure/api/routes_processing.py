"""Processing endpoints — ingest CSV, sweep expired offers."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from fieldops.application.use_cases.sweep_expired_offers import SweepExpiredOffersUseCase
from fieldops.config import settings
from fieldops.infrastructure.api.dependencies import get_sweep_uc
from fieldops.tools.seed_db import seed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/process", tags=["processing"])


@router.post("/ingest")
async def ingest_csv(drop: bool = False):
    """Load provider / work team / service order CSVs into the database."""
    data_dir = Path(settings.csv_data_path)
    if not data_dir.exists():
        raise HTTPException(status_code=400, detail=f"Data directory not found: {data_dir}")

    try:
        counts = await seed(data_dir, drop=drop)
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "status": "ok",
        "message": "CSV data ingested successfully",
        "counts": counts,
        "drop": drop,
    }


@router.post("/sweep")
async def sweep_expired_offers(
    country_code: str | None = None,
    uc: SweepExpiredOffersUseCase = Depends(get_sweep_uc),
):
    """Time out every PENDING offer past its expiry."""
    count = await uc.execute(country_code.upper() if country_code else None)
    return {"status": "ok", "timed_out": count}

"""FieldOps — FastAPI application factory."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fieldops.adapters.persistence.database import engine
from fieldops.config import settings
from fieldops.domain.errors import AssignmentError
from fieldops.infrastructure.api.errors import assignment_error_handler
from fieldops.infrastructure.api.routes_analytics import router as analytics_router
from fieldops.infrastructure.api.routes_assignments import router as assignments_router
from fieldops.infrastructure.api.routes_health import router as health_router
from fieldops.infrastructure.api.routes_processing import router as processing_router
from fieldops.tools.sweep_offers import sweep_forever

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)

    sweeper = None
    if settings.offer_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(sweep_forever(settings.offer_sweep_interval_seconds))

    yield

    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await engine.dispose()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )

    app = FastAPI(
        title="FieldOps — Assignment Lifecycle Service",
        description="Offer dispatch, date negotiation and timeouts for field-service assignments",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AssignmentError, assignment_error_handler)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(processing_router, prefix="/api")
    app.include_router(analytics_router, prefix="/api")

    return app


app = create_app()

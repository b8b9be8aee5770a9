"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from clutch import timeline
from clutch.config import get_settings
from clutch.database import close_db, init_db
from clutch.health.router import router as health_router
from clutch.leaderboard.router import router as leaderboard_router
from clutch.lines.router import router as lines_router
from clutch.middleware import setup_middleware
from clutch.predictions.router import router as predictions_router
from clutch.rating.router import router as rating_router
from clutch.redis_client import close_redis, init_redis
from clutch.reputation.router import router as reputation_router
from clutch.resolution.router import router as resolution_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    if settings.storage_backend == "postgres":
        await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("Clutch scoring API started (%s backend)", settings.storage_backend)

    yield

    # Let in-flight timeline publishes finish before Redis goes away.
    await timeline.drain()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Clutch Scoring API",
        description="Prediction grading, reputation, Clutch Rating and leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(predictions_router)
    app.include_router(resolution_router)
    app.include_router(reputation_router)
    app.include_router(rating_router)
    app.include_router(leaderboard_router)
    app.include_router(lines_router)

    return app


app = create_app()

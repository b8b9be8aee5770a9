"""Scoring arq worker: nightly rating recompute and weekly prop line jobs.

Every job opens its own store(s) through the configured store factory and
returns the job summary, so arq keeps it as the job result.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from clutch.config import get_settings
from clutch.database import close_db, init_db
from clutch.dependencies import get_store_factory
from clutch.lines.service import generate_lines, resolve_lines
from clutch.rating.engine import ClutchRatingEngine
from clutch.redis_client import set_redis

logger = logging.getLogger(__name__)


async def scoring_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB (postgres backend only) and the Redis client used for timeline events."""
    settings = get_settings()
    if settings.storage_backend == "postgres":
        await init_db(settings.database_url, pool_size=settings.recompute_concurrency + 2)

    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    set_redis(redis_client)
    ctx["redis_client"] = redis_client
    logger.info("Scoring worker started (%s backend)", settings.storage_backend)


async def scoring_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis_client")
    set_redis(None)
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Scoring worker shut down")


async def recompute_all_ratings(ctx: dict) -> dict[str, Any]:  # type: ignore[type-arg]
    """Nightly: recompute every Clutch Rating on a bounded pool."""
    summary = await ClutchRatingEngine().recompute_all(
        get_store_factory(), concurrency=get_settings().recompute_concurrency
    )
    return asdict(summary)


async def generate_weekly_lines(
    ctx: dict,  # type: ignore[type-arg]
    sport: str | None = None,
    season: int | None = None,
    week: int | None = None,
) -> dict[str, Any]:
    """Generate lines for the given week, or for the next week with a scheduled event."""
    results: dict[str, Any] = {}
    now = datetime.now(timezone.utc)
    for s in [sport] if sport else get_settings().line_generation_sports:
        async with get_store_factory()() as store:
            target = (season, week) if season and week else await store.event_week(s, now, upcoming=True)
            if target is None:
                logger.info("No upcoming %s events; no lines generated", s)
                continue
            summary = await generate_lines(store, s, target[0], target[1], now=now)
        results[s] = {"season": target[0], "week": target[1], **asdict(summary)}
    return results


async def resolve_weekly_lines(
    ctx: dict,  # type: ignore[type-arg]
    sport: str | None = None,
    season: int | None = None,
    week: int | None = None,
) -> dict[str, Any]:
    """Resolve lines for the given week, or for the week of the most recent event."""
    results: dict[str, Any] = {}
    now = datetime.now(timezone.utc)
    for s in [sport] if sport else get_settings().line_generation_sports:
        async with get_store_factory()() as store:
            target = (season, week) if season and week else await store.event_week(s, now, upcoming=False)
            if target is None:
                logger.info("No past %s events; nothing to resolve", s)
                continue
            summary = await resolve_lines(store, s, target[0], target[1], now=now)
        results[s] = {"season": target[0], "week": target[1], **asdict(summary)}
    return results


class WorkerSettings:
    """Scoring jobs for arq.

    Run with ``arq clutch.workers.scoring_worker.WorkerSettings``.
    """

    functions = [recompute_all_ratings, generate_weekly_lines, resolve_weekly_lines]
    cron_jobs = [
        cron(recompute_all_ratings, hour=4, minute=0, run_at_startup=False),  # nightly 04:00 UTC
        cron(generate_weekly_lines, weekday=1, hour=12, minute=0),  # Tuesday, after the slate settles
        cron(resolve_weekly_lines, weekday=1, hour=10, minute=0),  # Tuesday, before generation
    ]
    on_startup = scoring_startup
    on_shutdown = scoring_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
    job_timeout = get_settings().job_timeout_seconds
    allow_abort_jobs = True

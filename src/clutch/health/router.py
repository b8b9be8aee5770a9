"""Health, readiness, and version endpoints."""

from fastapi import APIRouter
from sqlalchemy import text

from clutch.config import get_settings
from clutch.database import get_engine
from clutch.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness() -> dict[str, object]:
    """Readiness probe: storage and Redis connectivity."""
    settings = get_settings()
    checks: dict[str, object] = {}

    if settings.storage_backend == "memory":
        checks["storage"] = "ok"
    else:
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["storage"] = "ok"
        except Exception as exc:
            checks["storage"] = f"error: {exc}"

    # Redis only backs rate limiting and the timeline, so it degrades rather than fails.
    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version, environment and storage backend."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "storage": settings.storage_backend,
    }

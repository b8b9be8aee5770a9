"""Opinion timeline notifications.

Delivery is at-most-once: ``dispatch`` schedules a detached task and
returns immediately. The caller never sees the outcome, nothing is
retried, and a failure is only logged.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from clutch.config import get_settings
from clutch.redis_client import get_redis

logger = logging.getLogger(__name__)

PREDICTION_MADE = "PREDICTION_MADE"
PREDICTION_RESOLVED = "PREDICTION_RESOLVED"

# Strong references so pending tasks are not garbage collected mid-flight.
_pending: set[asyncio.Task[None]] = set()


async def publish_event(
    user_id: str,
    subject_id: str,
    sport: str,
    event_type: str,
    data: dict[str, Any],
    source_id: str | None = None,
) -> None:
    """Publish one timeline event to Redis pub/sub. Never raises."""
    try:
        redis = get_redis()
        await redis.publish(
            get_settings().timeline_channel,
            json.dumps({
                "user_id": user_id,
                "subject_id": subject_id,
                "sport": sport,
                "event_type": event_type,
                "source_type": "prediction",
                "source_id": source_id,
                "data": data,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }),
        )
    except Exception:
        logger.warning("Failed to publish %s timeline event for %s", event_type, subject_id, exc_info=True)


def dispatch(
    user_id: str,
    subject_id: str | None,
    sport: str,
    event_type: str,
    data: dict[str, Any],
    source_id: str | None = None,
) -> None:
    """Schedule a timeline event without waiting for it. No-op without a subject."""
    if not subject_id:
        return
    try:
        task = asyncio.get_running_loop().create_task(
            publish_event(user_id, subject_id, sport, event_type, data, source_id)
        )
    except RuntimeError:
        logger.debug("No running loop; dropping %s timeline event", event_type)
        return
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def drain() -> None:
    """Wait for in-flight timeline tasks. Used on shutdown and in tests."""
    if _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)

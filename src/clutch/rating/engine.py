"""Clutch Rating: a 0-100 composite of accuracy, consistency, volume and breadth.

    rating = accuracy * 0.40 + consistency * 0.25 + volume * 0.20 + breadth * 0.15

Users need 50 graded calls before they get a number; below that the
row is stored with null components and tier "developing".

All component functions take ``now`` explicitly so identical history and
identical ``now`` always produce the identical rating.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from clutch.config import RatingConfig
from clutch.db.models import ClutchManagerRating, Prediction
from clutch.store.base import CORRECT, PredictionStore, StoreFactory
from clutch.weeks import get_week_iso

logger = logging.getLogger(__name__)

DEVELOPING = "developing"


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _graded_at(p: Prediction) -> datetime:
    return p.resolved_at or p.created_at


@dataclass(frozen=True)
class RatingComponents:
    accuracy: int
    consistency: int
    volume: int
    breadth: int
    overall: int
    recent_count: int


@dataclass
class RecomputeSummary:
    computed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def accuracy_component(history: Sequence[Prediction], now: datetime, decay_days: float) -> int:
    """Correct share with each call weighted exp(-age / decay_days)."""
    if not history:
        return 0
    decay_seconds = decay_days * 86400
    weighted_correct = 0.0
    total_weight = 0.0
    for p in history:
        age = max(0.0, (now - _graded_at(p)).total_seconds())
        weight = math.exp(-age / decay_seconds)
        total_weight += weight
        if p.outcome == CORRECT:
            weighted_correct += weight
    if total_weight == 0:
        return 0
    return round_half_up(weighted_correct / total_weight * 100)


def consistency_component(history: Sequence[Prediction], config: RatingConfig) -> int:
    """Inverse of the spread in weekly accuracy: stdDev 0 scores 100, 0.5 scores 0."""
    weeks: dict[str, list[int]] = {}
    for p in history:
        tally = weeks.setdefault(get_week_iso(_graded_at(p)), [0, 0])
        tally[0] += 1
        if p.outcome == CORRECT:
            tally[1] += 1

    rates = [correct / total for total, correct in weeks.values() if total >= config.min_calls_per_week]
    if len(rates) < config.min_qualifying_weeks:
        return config.default_consistency

    mean = sum(rates) / len(rates)
    std_dev = math.sqrt(sum((r - mean) ** 2 for r in rates) / len(rates))
    return max(0, min(100, round_half_up((1 - std_dev / config.max_std_dev) * 100)))


def volume_component(recent_count: int, ceiling: int) -> int:
    """log2-scaled call count: 50 calls ~63, 200 ~85, 500+ = 100."""
    if recent_count <= 0:
        return 0
    return min(100, round_half_up(math.log2(recent_count) / math.log2(ceiling) * 100))


def breadth_component(history: Sequence[Prediction], config: RatingConfig) -> int:
    if not history:
        return 0
    types = {p.prediction_type for p in history}
    sports = {p.sport for p in history}
    type_score = min(len(types), config.max_types) / config.max_types * config.type_share
    sport_score = min(len(sports), config.max_sports) / config.max_sports * config.sport_share
    return min(100, round_half_up(type_score + sport_score))


def rating_tier(rating: int | None, config: RatingConfig) -> str:
    if rating is None:
        return DEVELOPING
    for minimum, tier in config.tier_map:
        if rating >= minimum:
            return tier
    return DEVELOPING


def rating_trend(
    overall: int,
    previous_rating: int | None,
    previous_updated_at: datetime | None,
    now: datetime,
    config: RatingConfig,
) -> str:
    """Compare against the immediately preceding stored value, at most once a day."""
    if previous_rating is None or previous_updated_at is None:
        return "stable"
    if now - previous_updated_at < timedelta(hours=config.trend_min_elapsed_hours):
        return "stable"
    diff = overall - previous_rating
    if diff > config.trend_threshold:
        return "up"
    if diff < -config.trend_threshold:
        return "down"
    return "stable"


class ClutchRatingEngine:
    """Computes and stores Clutch Ratings."""

    def __init__(self, config: RatingConfig | None = None) -> None:
        self.config = config or RatingConfig()

    def compute_components(self, history: Sequence[Prediction], now: datetime) -> RatingComponents:
        cfg = self.config
        cutoff = now - timedelta(days=cfg.recency_window_days)
        recent_count = sum(1 for p in history if _graded_at(p) >= cutoff)

        accuracy = accuracy_component(history, now, cfg.decay_days)
        consistency = consistency_component(history, cfg)
        volume = volume_component(recent_count, cfg.volume_ceiling)
        breadth = breadth_component(history, cfg)
        overall = round_half_up(
            accuracy * cfg.accuracy_weight
            + consistency * cfg.consistency_weight
            + volume * cfg.volume_weight
            + breadth * cfg.breadth_weight
        )
        return RatingComponents(
            accuracy=accuracy,
            consistency=consistency,
            volume=volume,
            breadth=breadth,
            overall=overall,
            recent_count=recent_count,
        )

    async def compute(
        self, store: PredictionStore, user_id: str, now: datetime | None = None
    ) -> ClutchManagerRating:
        """Recompute one user's rating from their full graded history and upsert it."""
        if now is None:
            now = datetime.now(timezone.utc)
        history = await store.graded_history(user_id)
        total = len(history)

        previous = await store.get_rating(user_id)
        previous_rating = previous.overall_rating if previous is not None else None
        previous_updated_at = previous.updated_at if previous is not None else None

        values: dict[str, Any] = {"user_id": user_id, "total_graded_calls": total, "updated_at": now}
        if total < self.config.min_graded_calls:
            values.update(
                overall_rating=None,
                accuracy_component=None,
                consistency_component=None,
                volume_component=None,
                breadth_component=None,
                tier=DEVELOPING,
                trend="stable",
                computation_inputs={
                    "reason": "insufficient_calls",
                    "needed": self.config.min_graded_calls,
                    "total_resolved": total,
                },
            )
            return await store.upsert_rating(values)

        c = self.compute_components(history, now)
        values.update(
            overall_rating=c.overall,
            accuracy_component=c.accuracy,
            consistency_component=c.consistency,
            volume_component=c.volume,
            breadth_component=c.breadth,
            tier=rating_tier(c.overall, self.config),
            trend=rating_trend(c.overall, previous_rating, previous_updated_at, now, self.config),
            computation_inputs={
                "total_resolved": total,
                "recent_count": c.recent_count,
                "unique_types": sorted({p.prediction_type for p in history}),
                "unique_sports": sorted({p.sport for p in history}),
                "computed_at": now.isoformat(),
            },
        )
        return await store.upsert_rating(values)

    async def recompute_all(
        self,
        store_factory: StoreFactory,
        now: datetime | None = None,
        concurrency: int = 8,
    ) -> RecomputeSummary:
        """Recompute every user with a graded prediction on a bounded pool.

        Each user gets their own store (and so their own session); a failure
        is logged and counted, never raised.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        async with store_factory() as store:
            user_ids = await store.users_with_graded_predictions()

        semaphore = asyncio.Semaphore(max(1, concurrency))
        summary = RecomputeSummary()

        async def _one(user_id: str) -> None:
            async with semaphore:
                try:
                    async with store_factory() as user_store:
                        await self.compute(user_store, user_id, now)
                        await user_store.commit()
                except Exception as e:
                    logger.exception("Clutch Rating recompute failed for %s", user_id)
                    summary.failed += 1
                    summary.errors.append(f"{user_id}: {e}")
                else:
                    summary.computed += 1

        await asyncio.gather(*(_one(uid) for uid in user_ids))
        logger.info("Recomputed %d ratings (%d failed)", summary.computed, summary.failed)
        return summary

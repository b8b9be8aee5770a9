"""Reputation aggregation: accuracy, streaks, confidence weighting and tier.

Everything is recomputed from the full graded history on each call. The
streak math depends on resolution order, so it is never updated
incrementally.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from clutch.config import ReputationConfig, TierThreshold
from clutch.db.models import Prediction, UserReputation
from clutch.predictions.claims import claim_confidence
from clutch.reputation.badges import evaluate_badges
from clutch.store.base import CORRECT, PredictionStore

logger = logging.getLogger(__name__)

ALL_SPORTS = "all"


@dataclass(frozen=True)
class ReputationStats:
    total: int
    correct: int
    accuracy: float
    current_streak: int
    best_streak: int
    confidence_score: float
    tier: str
    bold_correct: int


def compute_streaks(outcomes: Sequence[str]) -> tuple[int, int]:
    """(current, best) runs of CORRECT in chronological ``outcomes``."""
    best = run = 0
    for outcome in outcomes:
        if outcome == CORRECT:
            run += 1
            best = max(best, run)
        else:
            run = 0
    current = 0
    for outcome in reversed(outcomes):
        if outcome != CORRECT:
            break
        current += 1
    return current, best


def compute_tier(total: int, accuracy: float, tiers: Sequence[TierThreshold]) -> str:
    """Highest tier whose volume and accuracy floors are both met."""
    tier = tiers[0].name
    for t in tiers:
        if total >= t.min_predictions and accuracy >= t.min_accuracy:
            tier = t.name
    return tier


def confidence_label(prediction: Prediction) -> str:
    """high/medium/low from the claim, falling back to the 1-5 confidence level."""
    label = claim_confidence(prediction.claim)
    if label is not None:
        return label
    level = prediction.confidence_level
    if level is None:
        return "medium"
    if level >= 4:
        return "high"
    if level <= 2:
        return "low"
    return "medium"


class ReputationAggregator:
    """Builds one user_reputation row per (user, sport) from graded history."""

    def __init__(self, config: ReputationConfig | None = None) -> None:
        self.config = config or ReputationConfig()

    def _weight(self, label: str) -> float:
        if label == "high":
            return self.config.high_confidence_weight
        if label == "low":
            return self.config.low_confidence_weight
        return self.config.medium_confidence_weight

    def compute_stats(self, history: Sequence[Prediction]) -> ReputationStats:
        """Stats for graded predictions ordered oldest resolution first."""
        outcomes = [p.outcome for p in history]
        total = len(outcomes)
        correct = outcomes.count(CORRECT)
        accuracy = correct / total if total else 0.0
        current, best = compute_streaks(outcomes)

        weighted_correct = 0.0
        total_weight = 0.0
        for p in history:
            weight = self._weight(confidence_label(p))
            total_weight += weight
            if p.outcome == CORRECT:
                weighted_correct += weight
        confidence_score = weighted_correct / total_weight if total_weight else 0.0

        return ReputationStats(
            total=total,
            correct=correct,
            accuracy=round(accuracy, 4),
            current_streak=current,
            best_streak=best,
            confidence_score=round(confidence_score, 4),
            tier=compute_tier(total, accuracy, self.config.tiers),
            bold_correct=sum(1 for p in history if p.outcome == CORRECT and p.prediction_type == "bold_call"),
        )

    async def recompute(
        self,
        store: PredictionStore,
        user_id: str,
        sport: str = ALL_SPORTS,
        now: datetime | None = None,
    ) -> UserReputation | None:
        """Rebuild and upsert the reputation row. Returns None if nothing is graded yet."""
        if now is None:
            now = datetime.now(timezone.utc)
        scope = None if sport == ALL_SPORTS else sport

        history = await store.graded_history(user_id, scope)
        if not history:
            return None

        stats = self.compute_stats(history)
        previous = await store.get_reputation(user_id, sport)
        badges = await evaluate_badges(
            store,
            user_id,
            scope,
            stats,
            self.config,
            now,
            previous_badges=previous.badges if previous is not None else None,
        )

        values: dict[str, Any] = {
            "user_id": user_id,
            "sport": sport,
            "total_predictions": stats.total,
            "correct_predictions": stats.correct,
            "accuracy_rate": stats.accuracy,
            "streak_current": stats.current_streak,
            "streak_best": stats.best_streak,
            "confidence_score": stats.confidence_score,
            "tier": stats.tier,
            "badges": badges,
            "updated_at": now,
        }
        row = await store.upsert_reputation(values)
        logger.debug("Reputation %s/%s: %d/%d tier=%s", user_id, sport, stats.correct, stats.total, stats.tier)
        return row

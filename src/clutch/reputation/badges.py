"""Badge rules evaluated on every reputation recompute.

Each rule is independent. Rules that need extra queries (upset caller,
iron predictor) run inside a savepoint and are skipped on failure, so a
broken sub-query never blocks the rest of the recompute.

A badge keeps the ``earned_at`` of its first award; only badges that
are new on this pass are stamped with the current time.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from clutch.config import BadgeMilestone, ReputationConfig
from clutch.predictions.claims import claim_side
from clutch.store.base import PredictionStore
from clutch.weeks import longest_consecutive_weeks

if TYPE_CHECKING:
    from clutch.reputation.engine import ReputationStats

logger = logging.getLogger(__name__)


async def has_upset_call(
    store: PredictionStore, user_id: str, sport: str | None, config: ReputationConfig
) -> bool:
    """True if a recent correct public call went against at least 80% of the public."""
    calls = await store.correct_public_calls(user_id, sport, config.upset_lookback)
    for call in calls:
        side = claim_side(call.prediction_type, call.claim)
        if side is None:
            continue
        peers = await store.public_target_predictions(
            call.event_id, call.subject_id, call.prediction_type, graded_only=True
        )
        if len(peers) < config.upset_min_public_calls:
            continue
        agreeing = sum(1 for p in peers if claim_side(p.prediction_type, p.claim) == side)
        if agreeing / len(peers) < config.upset_max_agreement:
            return True
    return False


async def evaluate_badges(
    store: PredictionStore,
    user_id: str,
    sport: str | None,
    stats: ReputationStats,
    config: ReputationConfig,
    now: datetime,
    previous_badges: list[dict[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    """Return the full badge list for the given stats, ordered by rule."""
    first_awarded = {b.get("type"): b.get("earned_at") for b in previous_badges or []}
    badges: list[dict[str, Any]] = []

    def award(badge_type: str, name: str, tier: str) -> None:
        badges.append({
            "type": badge_type,
            "name": name,
            "tier": tier,
            "earned_at": first_awarded.get(badge_type) or now.isoformat(),
        })

    def award_milestones(milestones: tuple[BadgeMilestone, ...], value: int) -> None:
        for m in milestones:
            if value >= m.threshold:
                award(m.badge_type, m.name, m.tier)

    award_milestones(config.streak_badges, stats.best_streak)
    award_milestones(config.volume_badges, stats.total)

    if stats.total >= config.sharpshooter_min_total and stats.accuracy >= config.sharpshooter_min_accuracy:
        award("sharpshooter", "Sharpshooter", "gold")

    try:
        async with store.savepoint():
            upset = await has_upset_call(store, user_id, sport, config)
        if upset:
            award("upset_caller", "Upset Caller", "gold")
    except Exception:
        logger.warning("Upset caller check failed for %s", user_id, exc_info=True)

    award_milestones(config.bold_badges, stats.bold_correct)

    try:
        async with store.savepoint():
            created = await store.creation_times(user_id, sport)
        award_milestones(config.iron_badges, longest_consecutive_weeks(created))
    except Exception:
        logger.warning("Iron predictor check failed for %s", user_id, exc_info=True)

    return badges

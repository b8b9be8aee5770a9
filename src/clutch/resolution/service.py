"""Resolution engine: moves predictions from PENDING to a terminal outcome.

A resolve is two steps. The guarded state transition commits first;
the reputation and rating recompute follows. If the recompute fails the
prediction stays resolved with stale reputation until the next recompute.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from clutch import timeline
from clutch.db.models import Prediction
from clutch.predictions.service import (
    PredictionNotFoundError,
    PredictionStateError,
    PredictionValidationError,
)
from clutch.rating.engine import ClutchRatingEngine
from clutch.reputation.engine import ALL_SPORTS, ReputationAggregator
from clutch.resolution.verdicts import Resolver, performance_resolver
from clutch.store.base import CORRECT, GRADED_OUTCOMES, TERMINAL_OUTCOMES, PredictionStore

logger = logging.getLogger(__name__)


@dataclass
class ResolutionSummary:
    resolved: int = 0
    correct: int = 0
    incorrect: int = 0
    push: int = 0
    voided: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def count(self, outcome: str) -> None:
        self.resolved += 1
        attr = outcome.lower()
        setattr(self, attr, getattr(self, attr) + 1)


def default_accuracy(outcome: str, accuracy_score: float | None) -> float:
    if accuracy_score is not None:
        return accuracy_score
    return 1.0 if outcome == CORRECT else 0.0


async def refresh_user_scores(
    store: PredictionStore,
    user_id: str,
    sports: Iterable[str],
    now: datetime,
    reputation: ReputationAggregator | None = None,
    rating: ClutchRatingEngine | None = None,
) -> None:
    """Recompute the touched sport rows, the all-sports row and the Clutch Rating."""
    reputation = reputation or ReputationAggregator()
    rating = rating or ClutchRatingEngine()
    for sport in sorted(set(sports)):
        await reputation.recompute(store, user_id, sport, now)
    await reputation.recompute(store, user_id, ALL_SPORTS, now)
    await rating.compute(store, user_id, now)


async def refresh_many(
    store: PredictionStore,
    sports_by_user: dict[str, set[str]],
    now: datetime,
    reputation: ReputationAggregator | None = None,
    rating: ClutchRatingEngine | None = None,
) -> list[str]:
    """Refresh each user once, isolating failures. Returns error strings."""
    errors: list[str] = []
    for user_id, sports in sports_by_user.items():
        try:
            await refresh_user_scores(store, user_id, sports, now, reputation, rating)
            await store.commit()
        except Exception as e:
            logger.exception("Score refresh failed for %s", user_id)
            await store.rollback()
            errors.append(f"refresh {user_id}: {e}")
    return errors


def announce_resolution(prediction: Prediction) -> None:
    timeline.dispatch(
        prediction.user_id,
        prediction.subject_id,
        prediction.sport,
        timeline.PREDICTION_RESOLVED,
        {
            "outcome": prediction.outcome,
            "accuracy": prediction.accuracy_score,
            "rationale": prediction.rationale,
        },
        source_id=prediction.id,
    )


async def resolve_prediction(
    store: PredictionStore,
    prediction_id: str,
    outcome: str,
    accuracy_score: float | None = None,
    *,
    now: datetime | None = None,
    reputation: ReputationAggregator | None = None,
    rating: ClutchRatingEngine | None = None,
) -> Prediction:
    """Resolve one prediction. Raises if it does not exist or is already terminal."""
    if now is None:
        now = datetime.now(timezone.utc)
    if outcome not in TERMINAL_OUTCOMES:
        msg = f"Invalid outcome: {outcome}"
        raise PredictionValidationError(msg)

    if await store.get_prediction(prediction_id) is None:
        msg = "Prediction not found"
        raise PredictionNotFoundError(msg)

    resolved = await store.transition_outcome(
        prediction_id, outcome, default_accuracy(outcome, accuracy_score), now
    )
    if resolved is None:
        msg = "Prediction already resolved"
        raise PredictionStateError(msg)
    await store.commit()
    logger.info("Prediction %s resolved %s", prediction_id, outcome)

    if outcome in GRADED_OUTCOMES:
        await refresh_many(store, {resolved.user_id: {resolved.sport}}, now, reputation, rating)

    announce_resolution(resolved)
    return resolved


async def grade_pending(
    store: PredictionStore,
    event_id: str,
    resolver: Resolver,
    now: datetime,
    summary: ResolutionSummary,
    sports_by_user: dict[str, set[str]],
) -> list[Prediction]:
    """Apply ``resolver`` to every pending prediction on ``event_id``.

    Counts go into ``summary`` and graded users into ``sports_by_user``.
    Nothing is committed and no scores are refreshed; returns the
    predictions that changed state.
    """
    resolved_now: list[Prediction] = []
    for prediction in await store.pending_for_event(event_id):
        try:
            verdict = await resolver(prediction)
            if verdict is None:
                summary.skipped += 1
                continue
            if verdict.outcome not in TERMINAL_OUTCOMES:
                msg = f"Invalid outcome: {verdict.outcome}"
                raise PredictionValidationError(msg)
            async with store.savepoint():
                resolved = await store.transition_outcome(
                    prediction.id,
                    verdict.outcome,
                    default_accuracy(verdict.outcome, verdict.accuracy_score),
                    now,
                )
            if resolved is None:
                msg = "already resolved"
                raise PredictionStateError(msg)
        except Exception as e:
            logger.warning("Failed to resolve prediction %s", prediction.id, exc_info=True)
            summary.errors.append(f"{prediction.id}: {e}")
            continue

        summary.count(resolved.outcome)
        resolved_now.append(resolved)
        if resolved.outcome in GRADED_OUTCOMES:
            sports_by_user.setdefault(resolved.user_id, set()).add(resolved.sport)
    return resolved_now


async def resolve_event(
    store: PredictionStore,
    event_id: str,
    resolver: Resolver,
    *,
    now: datetime | None = None,
    reputation: ReputationAggregator | None = None,
    rating: ClutchRatingEngine | None = None,
) -> ResolutionSummary:
    """Resolve every pending prediction on an event with ``resolver``.

    One prediction failing is logged and recorded, never fatal. Scores are
    refreshed once per affected user after the whole batch.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    summary = ResolutionSummary()
    sports_by_user: dict[str, set[str]] = {}

    announced = await grade_pending(store, event_id, resolver, now, summary, sports_by_user)
    await store.commit()
    summary.errors.extend(await refresh_many(store, sports_by_user, now, reputation, rating))

    for prediction in announced:
        announce_resolution(prediction)
    logger.info(
        "Event %s: %d resolved (%d correct, %d incorrect, %d push, %d voided), %d errors",
        event_id,
        summary.resolved,
        summary.correct,
        summary.incorrect,
        summary.push,
        summary.voided,
        len(summary.errors),
    )
    return summary


async def resolve_event_from_performance(
    store: PredictionStore,
    event_id: str,
    *,
    now: datetime | None = None,
    reputation: ReputationAggregator | None = None,
    rating: ClutchRatingEngine | None = None,
) -> ResolutionSummary:
    """Batch-resolve an event using its recorded stat lines and result."""
    event = await store.get_event(event_id)
    if event is None:
        msg = "Event not found"
        raise PredictionNotFoundError(msg)
    if event.status != "completed":
        msg = "Event is not completed yet"
        raise PredictionStateError(msg)
    stats = await store.event_stats(event_id)
    return await resolve_event(
        store, event_id, performance_resolver(event, stats), now=now, reputation=reputation, rating=rating
    )

"""Read-side rankings and community consensus.

Everything here reads the store's read model (``ranked_accuracy``,
``ranked_ratings``, ``public_target_predictions``) plus the cached
reputation and rating rows; nothing is written.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from clutch.config import RatingConfig, get_settings
from clutch.db.models import ClutchManagerRating
from clutch.predictions.claims import claim_side
from clutch.rating.engine import round_half_up
from clutch.reputation.engine import ALL_SPORTS
from clutch.store.base import PredictionStore
from clutch.weeks import season_start

TIMEFRAMES = ("weekly", "season", "all")
UNKNOWN_SIDE = "unknown"


@dataclass
class AccuracyEntry:
    rank: int
    user_id: str
    total: int
    correct: int
    accuracy: float
    display_name: str | None = None
    avatar_url: str | None = None
    tier: str | None = None
    streak_current: int = 0
    streak_best: int = 0


@dataclass
class RatingEntry:
    rank: int
    user_id: str
    overall_rating: int
    tier: str
    trend: str
    total_graded_calls: int
    display_name: str | None = None
    avatar_url: str | None = None


@dataclass
class TopManagerAgreement:
    total: int
    agreeing: int
    side: str
    label: str


@dataclass
class Consensus:
    total: int
    consensus: dict[str, int] = field(default_factory=dict)
    weighted: dict[str, int] = field(default_factory=dict)
    top_managers: TopManagerAgreement | None = None


def timeframe_start(timeframe: str, now: datetime) -> datetime | None:
    if timeframe == "weekly":
        return now - timedelta(days=7)
    if timeframe == "season":
        return season_start(now)
    if timeframe == "all":
        return None
    msg = f"Unknown timeframe: {timeframe}"
    raise ValueError(msg)


async def accuracy_leaderboard(
    store: PredictionStore,
    *,
    sport: str | None = None,
    timeframe: str = "all",
    league_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
    now: datetime | None = None,
) -> list[AccuracyEntry]:
    """Rank users by accuracy, then correct count.

    The minimum resolved-count floor is lower on the weekly board and
    lower still inside a league, where the population is small.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    settings = get_settings()
    if league_id:
        min_resolved = settings.leaderboard_min_resolved_league
    elif timeframe == "weekly":
        min_resolved = settings.leaderboard_min_resolved_weekly
    else:
        min_resolved = settings.leaderboard_min_resolved_global

    rows = await store.ranked_accuracy(
        sport=sport,
        league_id=league_id,
        since=timeframe_start(timeframe, now),
        min_resolved=min_resolved,
        limit=limit,
        offset=offset,
    )
    user_ids = [r.user_id for r in rows]
    reputations = await store.reputations_for(user_ids, sport or ALL_SPORTS)
    profiles = await store.profiles_for(user_ids)

    entries = []
    for i, row in enumerate(rows):
        rep = reputations.get(row.user_id)
        profile = profiles.get(row.user_id)
        entries.append(AccuracyEntry(
            rank=offset + i + 1,
            user_id=row.user_id,
            total=row.total,
            correct=row.correct,
            accuracy=row.accuracy,
            display_name=profile.display_name if profile else None,
            avatar_url=profile.avatar_url if profile else None,
            tier=rep.tier if rep else None,
            streak_current=rep.streak_current if rep else 0,
            streak_best=rep.streak_best if rep else 0,
        ))
    return entries


async def rating_leaderboard(
    store: PredictionStore,
    *,
    min_graded: int = 5,
    limit: int = 50,
    offset: int = 0,
    enrich: bool = True,
) -> list[RatingEntry]:
    """Rank rated users by Clutch Rating, highest first."""
    rows = await store.ranked_ratings(min_graded=min_graded, limit=limit, offset=offset)
    profiles = await store.profiles_for([r.user_id for r in rows]) if enrich else {}

    entries = []
    for i, row in enumerate(rows):
        profile = profiles.get(row.user_id)
        entries.append(RatingEntry(
            rank=offset + i + 1,
            user_id=row.user_id,
            overall_rating=row.overall_rating or 0,
            tier=row.tier,
            trend=row.trend,
            total_graded_calls=row.total_graded_calls,
            display_name=profile.display_name if profile else None,
            avatar_url=profile.avatar_url if profile else None,
        ))
    return entries


def _percentages(tally: dict[str, float]) -> dict[str, int]:
    total = sum(tally.values())
    if total <= 0:
        return {}
    return {side: round_half_up(weight / total * 100) for side, weight in tally.items()}


def vote_weight(rating: ClutchManagerRating | None) -> float:
    """Unrated users count once; a rating of 100 counts ten times."""
    if rating is None or rating.overall_rating is None:
        return 1.0
    return max(1.0, rating.overall_rating / 10)


def _majority(tally: Counter[str]) -> tuple[str, int]:
    # Most votes wins; ties go to the alphabetically first side.
    return min(tally.items(), key=lambda kv: (-kv[1], kv[0]))


async def get_consensus(
    store: PredictionStore,
    event_id: str,
    subject_id: str | None,
    prediction_type: str,
    config: RatingConfig | None = None,
) -> Consensus:
    """Raw, rating-weighted and top-manager consensus over public predictions on one target."""
    config = config or RatingConfig()
    predictions = await store.public_target_predictions(event_id, subject_id, prediction_type)
    if not predictions:
        return Consensus(total=0)

    ratings = await store.ratings_for(sorted({p.user_id for p in predictions}))

    raw: Counter[str] = Counter()
    weighted: dict[str, float] = {}
    top: Counter[str] = Counter()
    for p in predictions:
        side = claim_side(p.prediction_type, p.claim) or UNKNOWN_SIDE
        rating = ratings.get(p.user_id)
        raw[side] += 1
        weighted[side] = weighted.get(side, 0.0) + vote_weight(rating)
        if rating is not None and (rating.overall_rating or 0) >= config.top_manager_min_rating:
            top[side] += 1

    agreement = None
    if top:
        side, agreeing = _majority(top)
        total_top = sum(top.values())
        agreement = TopManagerAgreement(
            total=total_top,
            agreeing=agreeing,
            side=side,
            label=f"{agreeing} of {total_top} top managers say {side}",
        )

    return Consensus(
        total=len(predictions),
        consensus=_percentages(dict(raw)),
        weighted=_percentages(weighted),
        top_managers=agreement,
    )

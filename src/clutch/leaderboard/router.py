"""Leaderboard and consensus endpoints (public)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from clutch.config import get_settings
from clutch.dependencies import get_store
from clutch.leaderboard.schemas import (
    AccuracyEntryResponse,
    AccuracyLeaderboardResponse,
    ConsensusResponse,
    RatingEntryResponse,
    RatingLeaderboardResponse,
)
from clutch.leaderboard.service import accuracy_leaderboard, get_consensus, rating_leaderboard
from clutch.store.base import PredictionStore

router = APIRouter(prefix="/api/v1", tags=["Leaderboards"])


def _clamp_limit(limit: int) -> int:
    return min(limit, get_settings().leaderboard_max_limit)


@router.get("/leaderboards/accuracy", response_model=AccuracyLeaderboardResponse)
async def get_accuracy_leaderboard(
    sport: str | None = Query(None),
    timeframe: str = Query("all", pattern="^(weekly|season|all)$"),
    league_id: str | None = Query(None),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    store: PredictionStore = Depends(get_store),
) -> AccuracyLeaderboardResponse:
    entries = await accuracy_leaderboard(
        store,
        sport=sport,
        timeframe=timeframe,
        league_id=league_id,
        limit=_clamp_limit(limit),
        offset=offset,
    )
    return AccuracyLeaderboardResponse(
        sport=sport,
        timeframe=timeframe,
        league_id=league_id,
        entries=[AccuracyEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/leaderboards/rating", response_model=RatingLeaderboardResponse)
async def get_rating_leaderboard(
    min_graded: int | None = Query(None, ge=0),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    store: PredictionStore = Depends(get_store),
) -> RatingLeaderboardResponse:
    if min_graded is None:
        min_graded = get_settings().rating_leaderboard_min_graded
    entries = await rating_leaderboard(store, min_graded=min_graded, limit=_clamp_limit(limit), offset=offset)
    return RatingLeaderboardResponse(
        min_graded=min_graded,
        entries=[RatingEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/consensus", response_model=ConsensusResponse)
async def get_consensus_endpoint(
    event_id: str = Query(..., min_length=1),
    prediction_type: str = Query(...),
    subject_id: str | None = Query(None),
    store: PredictionStore = Depends(get_store),
) -> ConsensusResponse:
    """How the public is leaning on one target, raw and weighted by rating."""
    consensus = await get_consensus(store, event_id, subject_id, prediction_type)
    return ConsensusResponse.model_validate(consensus)

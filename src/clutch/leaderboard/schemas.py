"""Response models for leaderboard and consensus endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AccuracyEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    user_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    total: int
    correct: int
    accuracy: float
    tier: str | None = None
    streak_current: int = 0
    streak_best: int = 0


class AccuracyLeaderboardResponse(BaseModel):
    sport: str | None = None
    timeframe: str
    league_id: str | None = None
    entries: list[AccuracyEntryResponse]


class RatingEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    user_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    overall_rating: int
    tier: str
    trend: str
    total_graded_calls: int


class RatingLeaderboardResponse(BaseModel):
    min_graded: int
    entries: list[RatingEntryResponse]


class TopManagerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    agreeing: int
    side: str
    label: str


class ConsensusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    consensus: dict[str, int]
    weighted: dict[str, int]
    top_managers: TopManagerResponse | None = None

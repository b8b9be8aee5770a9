"""Response models for reputation endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BadgeResponse(BaseModel):
    type: str
    name: str
    tier: str
    earned_at: datetime


class ReputationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sport: str
    total_predictions: int
    correct_predictions: int
    accuracy_rate: float
    streak_current: int
    streak_best: int
    confidence_score: float
    tier: str
    badges: list[BadgeResponse] = []
    updated_at: datetime | None = None


class UserReputationResponse(BaseModel):
    user_id: str
    overall: ReputationResponse | None = None
    by_sport: dict[str, ReputationResponse] = {}

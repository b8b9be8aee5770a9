"""Response models for Clutch Rating endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ClutchRatingBody(BaseModel):
    overall: int | None = None
    accuracy: int | None = None
    consistency: int | None = None
    volume: int | None = None
    breadth: int | None = None
    tier: str
    trend: str
    total_graded_calls: int
    updated_at: datetime | None = None


class ClutchRatingResponse(BaseModel):
    user_id: str
    clutch_rating: ClutchRatingBody | None = None
    message: str | None = None


class RecomputeResponse(BaseModel):
    computed: int
    failed: int
    errors: list[str]

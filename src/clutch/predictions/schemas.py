"""Pydantic request/response models for prediction endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PredictionCreate(BaseModel):
    sport: str
    prediction_type: str
    category: str = "weekly"
    event_id: str = Field(min_length=1, max_length=64)
    subject_id: str | None = Field(default=None, max_length=64)
    league_id: str | None = Field(default=None, max_length=64)
    claim: dict[str, Any] = {}
    is_public: bool = True
    locks_at: datetime | None = None
    rationale: str | None = Field(default=None, max_length=2000)
    confidence_level: int | None = Field(default=None, ge=1, le=5)
    key_factors: list[str] | None = Field(default=None, max_length=10)


class PredictionUpdate(BaseModel):
    claim: dict[str, Any] | None = None
    is_public: bool | None = None
    rationale: str | None = Field(default=None, max_length=2000)
    confidence_level: int | None = Field(default=None, ge=1, le=5)
    key_factors: list[str] | None = Field(default=None, max_length=10)


class PredictionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    sport: str
    prediction_type: str
    category: str
    event_id: str
    subject_id: str | None = None
    league_id: str | None = None
    claim: dict[str, Any]
    is_public: bool
    locks_at: datetime | None = None
    outcome: str
    accuracy_score: float | None = None
    rationale: str | None = None
    confidence_level: int | None = None
    key_factors: list[str] | None = None
    created_at: datetime
    resolved_at: datetime | None = None


class PredictionListResponse(BaseModel):
    predictions: list[PredictionResponse]
    total: int
    limit: int
    offset: int


class SlateEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sport: str
    prediction_type: str
    event_id: str
    subject_id: str | None = None
    claim: dict[str, Any]
    locks_at: datetime | None = None
    created_at: datetime


class SlateResponse(BaseModel):
    event_id: str
    predictions: list[SlateEntry]

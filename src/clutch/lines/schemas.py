"""Response models for prop line endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class PropLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sport: str
    season: int
    week: int
    subject_id: str
    event_id: str | None = None
    team: str | None = None
    stat_type: str
    line_value: float
    description: str | None = None
    generated_from: dict[str, Any] = {}
    locks_at: datetime | None = None
    is_active: bool = True
    result: str | None = None
    actual_value: float | None = None
    resolved_at: datetime | None = None


class PropLineListResponse(BaseModel):
    sport: str
    season: int
    week: int
    lines: list[PropLineResponse]


class LineGenerationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    created: int
    skipped: int
    errors: list[str]


class LineResolutionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lines_resolved: int
    lines_skipped: int
    predictions_resolved: int
    errors: list[str]

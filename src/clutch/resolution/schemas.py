"""Request/response models for resolution endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ResolveRequest(BaseModel):
    outcome: Literal["CORRECT", "INCORRECT", "PUSH", "VOIDED"]
    accuracy_score: float | None = Field(default=None, ge=0.0, le=1.0)


class ResolutionSummaryResponse(BaseModel):
    event_id: str
    resolved: int
    correct: int
    incorrect: int
    push: int
    voided: int
    skipped: int
    errors: list[str]

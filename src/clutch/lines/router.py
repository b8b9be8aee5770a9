"""Prop line endpoints: public listing plus admin generate/resolve triggers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from clutch.auth.dependencies import CurrentUser, require_admin
from clutch.dependencies import get_store
from clutch.lines.schemas import (
    LineGenerationResponse,
    LineResolutionResponse,
    PropLineListResponse,
    PropLineResponse,
)
from clutch.lines.service import generate_lines, resolve_lines
from clutch.store.base import PredictionStore

router = APIRouter(prefix="/api/v1/lines", tags=["Prop Lines"])


@router.get("/{sport}/{season}/{week}", response_model=PropLineListResponse)
async def list_lines(
    sport: str,
    season: int,
    week: int = Path(..., ge=1, le=25),
    store: PredictionStore = Depends(get_store),
) -> PropLineListResponse:
    lines = await store.list_lines(sport, season, week)
    return PropLineListResponse(
        sport=sport,
        season=season,
        week=week,
        lines=[PropLineResponse.model_validate(line) for line in lines],
    )


@router.post("/{sport}/{season}/{week}/generate", response_model=LineGenerationResponse)
async def generate_week(
    sport: str,
    season: int,
    week: int = Path(..., ge=1, le=25),
    _admin: CurrentUser = Depends(require_admin),
    store: PredictionStore = Depends(get_store),
) -> LineGenerationResponse:
    summary = await generate_lines(store, sport, season, week)
    return LineGenerationResponse.model_validate(summary)


@router.post("/{sport}/{season}/{week}/resolve", response_model=LineResolutionResponse)
async def resolve_week(
    sport: str,
    season: int,
    week: int = Path(..., ge=1, le=25),
    _admin: CurrentUser = Depends(require_admin),
    store: PredictionStore = Depends(get_store),
) -> LineResolutionResponse:
    """Settle the week's lines and grade the picks on them."""
    summary = await resolve_lines(store, sport, season, week)
    return LineResolutionResponse.model_validate(summary)

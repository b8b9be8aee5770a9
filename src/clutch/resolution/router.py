"""Admin resolution endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from clutch.auth.dependencies import CurrentUser, require_admin
from clutch.dependencies import get_store
from clutch.predictions.schemas import PredictionResponse
from clutch.resolution.schemas import ResolutionSummaryResponse, ResolveRequest
from clutch.resolution.service import resolve_event_from_performance, resolve_prediction
from clutch.store.base import PredictionStore

router = APIRouter(prefix="/api/v1", tags=["Resolution"])


@router.post("/predictions/{prediction_id}/resolve", response_model=PredictionResponse)
async def resolve_one(
    prediction_id: str,
    body: ResolveRequest,
    _admin: CurrentUser = Depends(require_admin),
    store: PredictionStore = Depends(get_store),
) -> PredictionResponse:
    """Grade a single prediction by hand."""
    prediction = await resolve_prediction(store, prediction_id, body.outcome, body.accuracy_score)
    return PredictionResponse.model_validate(prediction)


@router.post("/events/{event_id}/resolve", response_model=ResolutionSummaryResponse)
async def resolve_event_endpoint(
    event_id: str,
    _admin: CurrentUser = Depends(require_admin),
    store: PredictionStore = Depends(get_store),
) -> ResolutionSummaryResponse:
    """Grade every pending prediction on a completed event from its stat lines."""
    summary = await resolve_event_from_performance(store, event_id)
    return ResolutionSummaryResponse(event_id=event_id, **asdict(summary))

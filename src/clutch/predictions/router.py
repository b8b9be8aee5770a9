"""Prediction lifecycle endpoints: submit, edit, cancel, list, slate."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from clutch.auth.dependencies import CurrentUser, get_current_user
from clutch.dependencies import get_store
from clutch.predictions.schemas import (
    PredictionCreate,
    PredictionListResponse,
    PredictionResponse,
    PredictionUpdate,
    SlateEntry,
    SlateResponse,
)
from clutch.predictions.service import (
    delete_prediction,
    get_event_slate,
    list_user_predictions,
    submit_prediction,
    update_prediction,
)
from clutch.store.base import PredictionStore

router = APIRouter(prefix="/api/v1/predictions", tags=["Predictions"])


@router.post("", response_model=PredictionResponse, status_code=201)
async def create_prediction(
    body: PredictionCreate,
    user: CurrentUser = Depends(get_current_user),
    store: PredictionStore = Depends(get_store),
) -> PredictionResponse:
    """Submit a new prediction. Rejected once the event has started."""
    prediction = await submit_prediction(store, user.id, body)
    return PredictionResponse.model_validate(prediction)


@router.get("/me", response_model=PredictionListResponse)
async def my_predictions(
    sport: str | None = Query(None),
    prediction_type: str | None = Query(None),
    outcome: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    store: PredictionStore = Depends(get_store),
) -> PredictionListResponse:
    rows, total = await list_user_predictions(
        store,
        user.id,
        sport=sport,
        prediction_type=prediction_type,
        outcome=outcome,
        limit=limit,
        offset=offset,
    )
    return PredictionListResponse(
        predictions=[PredictionResponse.model_validate(p) for p in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/slate/{event_id}", response_model=SlateResponse)
async def event_slate(
    event_id: str,
    sport: str | None = Query(None),
    prediction_type: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    store: PredictionStore = Depends(get_store),
) -> SlateResponse:
    """Still-open predictions for an event, without their authors."""
    rows = await get_event_slate(store, event_id, sport=sport, prediction_type=prediction_type, limit=limit)
    return SlateResponse(event_id=event_id, predictions=[SlateEntry.model_validate(p) for p in rows])


@router.patch("/{prediction_id}", response_model=PredictionResponse)
async def edit_prediction(
    prediction_id: str,
    body: PredictionUpdate,
    user: CurrentUser = Depends(get_current_user),
    store: PredictionStore = Depends(get_store),
) -> PredictionResponse:
    prediction = await update_prediction(store, prediction_id, user.id, body)
    return PredictionResponse.model_validate(prediction)


@router.delete("/{prediction_id}", status_code=204)
async def cancel_prediction(
    prediction_id: str,
    user: CurrentUser = Depends(get_current_user),
    store: PredictionStore = Depends(get_store),
) -> Response:
    await delete_prediction(store, prediction_id, user.id)
    return Response(status_code=204)

"""Reputation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clutch.auth.dependencies import CurrentUser, get_current_user
from clutch.dependencies import get_store
from clutch.reputation.schemas import ReputationResponse, UserReputationResponse
from clutch.reputation.service import get_user_reputation
from clutch.store.base import PredictionStore

router = APIRouter(prefix="/api/v1/users", tags=["Reputation"])


async def _reputation_response(store: PredictionStore, user_id: str) -> UserReputationResponse:
    view = await get_user_reputation(store, user_id)
    return UserReputationResponse(
        user_id=user_id,
        overall=ReputationResponse.model_validate(view.overall) if view.overall is not None else None,
        by_sport={sport: ReputationResponse.model_validate(row) for sport, row in view.by_sport.items()},
    )


@router.get("/me/reputation", response_model=UserReputationResponse)
async def my_reputation(
    user: CurrentUser = Depends(get_current_user),
    store: PredictionStore = Depends(get_store),
) -> UserReputationResponse:
    return await _reputation_response(store, user.id)


@router.get("/{user_id}/reputation", response_model=UserReputationResponse)
async def user_reputation(
    user_id: str,
    store: PredictionStore = Depends(get_store),
) -> UserReputationResponse:
    """Overall and per-sport reputation. Empty until a prediction is graded."""
    return await _reputation_response(store, user_id)

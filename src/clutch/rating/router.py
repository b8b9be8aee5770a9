"""Clutch Rating endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clutch.auth.dependencies import CurrentUser, require_admin
from clutch.config import get_settings
from clutch.dependencies import get_store, get_store_factory
from clutch.rating.engine import ClutchRatingEngine
from clutch.rating.schemas import ClutchRatingBody, ClutchRatingResponse, RecomputeResponse
from clutch.store.base import PredictionStore, StoreFactory

router = APIRouter(prefix="/api/v1", tags=["Clutch Rating"])


@router.get("/users/{user_id}/clutch-rating", response_model=ClutchRatingResponse)
async def get_clutch_rating(
    user_id: str,
    store: PredictionStore = Depends(get_store),
) -> ClutchRatingResponse:
    """Rating with its component breakdown."""
    rating = await store.get_rating(user_id)
    if rating is None:
        return ClutchRatingResponse(user_id=user_id, message="No Clutch Rating computed yet")
    return ClutchRatingResponse(
        user_id=user_id,
        clutch_rating=ClutchRatingBody(
            overall=rating.overall_rating,
            accuracy=rating.accuracy_component,
            consistency=rating.consistency_component,
            volume=rating.volume_component,
            breadth=rating.breadth_component,
            tier=rating.tier,
            trend=rating.trend,
            total_graded_calls=rating.total_graded_calls,
            updated_at=rating.updated_at,
        ),
    )


@router.post("/ratings/recompute", response_model=RecomputeResponse)
async def recompute_ratings(
    _admin: CurrentUser = Depends(require_admin),
    store_factory: StoreFactory = Depends(get_store_factory),
) -> RecomputeResponse:
    """Recompute every user's rating now instead of waiting for the nightly job."""
    summary = await ClutchRatingEngine().recompute_all(
        store_factory, concurrency=get_settings().recompute_concurrency
    )
    return RecomputeResponse(computed=summary.computed, failed=summary.failed, errors=summary.errors)

"""Prediction lifecycle: submit, update, delete, and read-side listings.

Resolution lives in ``clutch.resolution``; this module only handles
predictions while they are still open.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from clutch import timeline
from clutch.db.models import Prediction, PropLine
from clutch.predictions.claims import PREDICTION_TYPES, SPORTS, ClaimError, parse_claim
from clutch.predictions.schemas import PredictionCreate, PredictionUpdate
from clutch.store.base import PENDING, DuplicatePendingError, PredictionStore

logger = logging.getLogger(__name__)

STARTED_EVENT_STATUSES = frozenset({"in_progress", "completed"})


class PredictionValidationError(ValueError):
    pass


class PredictionLockedError(ValueError):
    pass


class DuplicatePredictionError(ValueError):
    pass


class PredictionStateError(ValueError):
    pass


class PredictionNotFoundError(LookupError):
    pass


def _validate_claim(prediction_type: str, raw: dict[str, Any]) -> dict[str, Any]:
    try:
        claim = parse_claim(prediction_type, raw)
    except ClaimError as e:
        raise PredictionValidationError(str(e)) from e
    return claim.model_dump(exclude_none=True)


def _clean_key_factors(factors: list[str] | None) -> list[str] | None:
    cleaned = [f.strip() for f in factors or [] if f and f.strip()]
    return cleaned or None


def _with_line_terms(claim: dict[str, Any], line: PropLine) -> dict[str, Any]:
    """A pick on a line is graded against the line, so its stat and value win."""
    return {**claim, "stat": line.stat_type, "benchmark_value": line.line_value}


async def _resolve_lock(
    store: PredictionStore, data: PredictionCreate, claim: dict[str, Any], now: datetime
) -> tuple[datetime | None, dict[str, Any]]:
    """Work out the lock time for a new prediction, rejecting started events.

    The event id may name a generated prop line; in that case the line's
    lock time applies and a benchmark claim inherits the line's stat and value.
    """
    locks_at = data.locks_at
    event_id = data.event_id

    line = await store.get_line(data.event_id)
    if line is not None:
        if line.resolved_at is not None or not line.is_active:
            msg = "Predictions are locked: this line is closed"
            raise PredictionLockedError(msg)
        if data.prediction_type == "player_benchmark":
            claim = _with_line_terms(claim, line)
        if locks_at is None:
            locks_at = line.locks_at
        event_id = line.event_id or data.event_id

    event = await store.get_event(event_id)
    if event is not None:
        if event.status in STARTED_EVENT_STATUSES:
            msg = "Predictions are locked: this event has already started"
            raise PredictionLockedError(msg)
        if locks_at is None:
            locks_at = event.starts_at

    if locks_at is not None and locks_at <= now:
        msg = "Predictions are locked: this event has already started"
        raise PredictionLockedError(msg)
    return locks_at, claim


async def submit_prediction(
    store: PredictionStore,
    user_id: str,
    data: PredictionCreate,
    now: datetime | None = None,
) -> Prediction:
    """Validate and create a PENDING prediction."""
    if now is None:
        now = datetime.now(timezone.utc)

    if data.sport not in SPORTS:
        msg = f"Invalid sport: {data.sport}"
        raise PredictionValidationError(msg)
    if data.prediction_type not in PREDICTION_TYPES:
        msg = f"Invalid prediction type: {data.prediction_type}"
        raise PredictionValidationError(msg)

    locks_at, raw_claim = await _resolve_lock(store, data, dict(data.claim), now)
    claim = _validate_claim(data.prediction_type, raw_claim)

    existing = await store.find_pending(user_id, data.event_id, data.subject_id, data.prediction_type)
    if existing is not None:
        msg = "You already have a pending prediction for this"
        raise DuplicatePredictionError(msg)

    prediction = Prediction(
        id=str(uuid.uuid4()),
        user_id=user_id,
        sport=data.sport,
        prediction_type=data.prediction_type,
        category=data.category,
        event_id=data.event_id,
        subject_id=data.subject_id,
        league_id=data.league_id,
        claim=claim,
        is_public=data.is_public,
        locks_at=locks_at,
        outcome=PENDING,
        accuracy_score=None,
        rationale=data.rationale or None,
        confidence_level=data.confidence_level,
        key_factors=_clean_key_factors(data.key_factors),
        created_at=now,
        resolved_at=None,
    )
    try:
        await store.add_prediction(prediction)
    except DuplicatePendingError as e:
        msg = "You already have a pending prediction for this"
        raise DuplicatePredictionError(msg) from e
    await store.commit()

    logger.info("Prediction %s submitted by %s for %s", prediction.id, user_id, data.event_id)
    timeline.dispatch(
        user_id,
        prediction.subject_id,
        prediction.sport,
        timeline.PREDICTION_MADE,
        {
            "prediction_type": prediction.prediction_type,
            "rationale": prediction.rationale,
            "confidence": prediction.confidence_level,
        },
        source_id=prediction.id,
    )
    return prediction


async def _get_open_owned(
    store: PredictionStore, prediction_id: str, user_id: str, now: datetime, action: str
) -> Prediction:
    prediction = await store.get_prediction(prediction_id)
    if prediction is None:
        msg = "Prediction not found"
        raise PredictionNotFoundError(msg)
    if prediction.user_id != user_id:
        msg = "Not your prediction"
        raise PermissionError(msg)
    if prediction.outcome != PENDING:
        msg = f"Cannot {action} a resolved prediction"
        raise PredictionStateError(msg)
    if prediction.locks_at is not None and prediction.locks_at <= now:
        msg = "Prediction is locked"
        raise PredictionLockedError(msg)
    return prediction


async def update_prediction(
    store: PredictionStore,
    prediction_id: str,
    user_id: str,
    changes: PredictionUpdate,
    now: datetime | None = None,
) -> Prediction:
    """Edit an open prediction. Only fields present in ``changes`` are touched."""
    if now is None:
        now = datetime.now(timezone.utc)
    prediction = await _get_open_owned(store, prediction_id, user_id, now, "edit")

    fields = changes.model_dump(exclude_unset=True)
    if "claim" in fields and fields["claim"] is not None:
        claim = dict(fields["claim"])
        if prediction.prediction_type == "player_benchmark":
            line = await store.get_line(prediction.event_id)
            if line is not None:
                claim = _with_line_terms(claim, line)
        prediction.claim = _validate_claim(prediction.prediction_type, claim)
    if fields.get("is_public") is not None:
        prediction.is_public = fields["is_public"]
    if "rationale" in fields:
        prediction.rationale = fields["rationale"] or None
    if "confidence_level" in fields:
        prediction.confidence_level = fields["confidence_level"]
    if "key_factors" in fields:
        prediction.key_factors = _clean_key_factors(fields["key_factors"])

    await store.save_prediction(prediction)
    await store.commit()
    return prediction


async def delete_prediction(
    store: PredictionStore,
    prediction_id: str,
    user_id: str,
    now: datetime | None = None,
) -> None:
    """Cancel an open prediction."""
    if now is None:
        now = datetime.now(timezone.utc)
    prediction = await _get_open_owned(store, prediction_id, user_id, now, "delete")
    await store.delete_prediction(prediction)
    await store.commit()
    logger.info("Prediction %s deleted by %s", prediction_id, user_id)


async def list_user_predictions(
    store: PredictionStore,
    user_id: str,
    *,
    sport: str | None = None,
    prediction_type: str | None = None,
    outcome: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Prediction], int]:
    return await store.list_user_predictions(
        user_id, sport=sport, prediction_type=prediction_type, outcome=outcome, limit=limit, offset=offset
    )


async def get_event_slate(
    store: PredictionStore,
    event_id: str,
    *,
    sport: str | None = None,
    prediction_type: str | None = None,
    limit: int = 50,
    now: datetime | None = None,
) -> list[Prediction]:
    """Open (pending, unlocked) predictions for an event."""
    if now is None:
        now = datetime.now(timezone.utc)
    return await store.event_slate(event_id, now, sport=sport, prediction_type=prediction_type, limit=limit)

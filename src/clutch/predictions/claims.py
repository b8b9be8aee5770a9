"""Claim payloads, one schema per prediction type.

A claim is stored as JSONB on the prediction row; these models are the
only way it gets in or out, so resolvers can rely on its shape.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

SPORTS = ("golf", "nfl", "nba", "mlb")
PREDICTION_TYPES = ("performance_call", "player_benchmark", "weekly_winner", "bold_call")

Confidence = Literal["high", "medium", "low"]


class _Claim(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    confidence: Confidence | None = None

    @property
    def side(self) -> str:
        """The direction this claim votes for in consensus tallies."""
        return getattr(self, "direction")


class BenchmarkClaim(_Claim):
    """Stat X will finish over/under (or better/worse than) value V."""

    stat: str = Field(min_length=1, max_length=64)
    direction: Literal["over", "under", "better", "worse"]
    benchmark_value: float


class PerformanceCallClaim(_Claim):
    direction: Literal["start", "sit"]


class WeeklyWinnerClaim(_Claim):
    pick: str = Field(min_length=1, max_length=64)

    @property
    def side(self) -> str:
        return self.pick


class BoldCallClaim(_Claim):
    statement: str = Field(min_length=1, max_length=500)
    direction: str = Field(min_length=1, max_length=32)


Claim = BenchmarkClaim | PerformanceCallClaim | WeeklyWinnerClaim | BoldCallClaim

CLAIM_MODELS: dict[str, type[_Claim]] = {
    "player_benchmark": BenchmarkClaim,
    "performance_call": PerformanceCallClaim,
    "weekly_winner": WeeklyWinnerClaim,
    "bold_call": BoldCallClaim,
}


class ClaimError(ValueError):
    pass


def parse_claim(prediction_type: str, data: dict[str, Any] | None) -> Claim:
    """Validate a raw claim dict against the schema for its prediction type."""
    model = CLAIM_MODELS.get(prediction_type)
    if model is None:
        msg = f"Invalid prediction type: {prediction_type}"
        raise ClaimError(msg)
    try:
        return model.model_validate(data or {})  # type: ignore[return-value]
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first["loc"]) or "claim"
        msg = f"Invalid claim for {prediction_type}: {loc}: {first['msg']}"
        raise ClaimError(msg) from e


def claim_side(prediction_type: str, data: dict[str, Any] | None) -> str | None:
    """Best-effort direction of a stored claim; None if it does not parse."""
    try:
        return parse_claim(prediction_type, data).side
    except ClaimError:
        return None


def claim_confidence(data: dict[str, Any] | None) -> str | None:
    value = (data or {}).get("confidence")
    return value if value in ("high", "medium", "low") else None

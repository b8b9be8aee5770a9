"""Verdict rules: how a claim compares to what actually happened."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from clutch.db.models import PlayerGameStat, Prediction, SportEvent
from clutch.predictions.claims import BenchmarkClaim, ClaimError, parse_claim
from clutch.store.base import CORRECT, INCORRECT, PUSH, VOIDED

# Stats where a smaller number is the better result.
LOWER_IS_BETTER = frozenset({"position", "total_to_par", "score_to_par", "strokes"})

# Player statuses that mean there is nothing to grade against.
UNGRADEABLE_STATUSES = frozenset({"withdrawn", "dnp", "inactive", "cut_before_start"})


@dataclass(frozen=True)
class Verdict:
    outcome: str
    accuracy_score: float | None = None


# Maps a pending prediction to a verdict, or None to leave it pending.
Resolver = Callable[[Prediction], Awaitable[Verdict | None]]


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def effective_direction(stat: str, direction: str) -> str:
    """Turn better/worse into over/under for the given stat."""
    if direction == "better":
        return "under" if stat in LOWER_IS_BETTER else "over"
    if direction == "worse":
        return "over" if stat in LOWER_IS_BETTER else "under"
    return direction


def benchmark_verdict(claim: BenchmarkClaim, actual: Any) -> Verdict:
    """Grade an over/under claim. Equal is a push; a missing value is voided."""
    value = _as_number(actual)
    if value is None:
        return Verdict(VOIDED)
    if value == claim.benchmark_value:
        return Verdict(PUSH)
    direction = effective_direction(claim.stat, claim.direction)
    hit = value > claim.benchmark_value if direction == "over" else value < claim.benchmark_value
    return Verdict(CORRECT, 1.0) if hit else Verdict(INCORRECT, 0.0)


def line_verdict(result: str, direction: str | None) -> Verdict:
    """Grade a pick on a resolved prop line. A pushed line gives half credit."""
    if result == "push":
        return Verdict(PUSH, 0.5)
    if direction == result:
        return Verdict(CORRECT, 1.0)
    return Verdict(INCORRECT, 0.0)


def performance_resolver(event: SportEvent | None, stats: dict[str, PlayerGameStat]) -> Resolver:
    """Default resolver built from an event's final stat lines and result.

    Benchmarks are graded against the subject's stat line, weekly winner
    picks against the recorded winner. Start/sit and bold calls need a
    human and are left pending.
    """
    result = event.result if event is not None else {}

    async def resolve(prediction: Prediction) -> Verdict | None:
        if prediction.prediction_type == "player_benchmark":
            stat_line = stats.get(prediction.subject_id or "")
            if stat_line is None or stat_line.status in UNGRADEABLE_STATUSES:
                return Verdict(VOIDED)
            try:
                claim = parse_claim(prediction.prediction_type, prediction.claim)
            except ClaimError:
                return Verdict(VOIDED)
            return benchmark_verdict(claim, (stat_line.stats or {}).get(claim.stat))  # type: ignore[arg-type, union-attr]

        if prediction.prediction_type == "weekly_winner":
            winner = (result or {}).get("winner")
            if winner is None:
                return Verdict(VOIDED)
            if winner == "tie":
                return Verdict(PUSH)
            claim = parse_claim(prediction.prediction_type, prediction.claim)
            return Verdict(CORRECT, 1.0) if claim.pick == winner else Verdict(INCORRECT, 0.0)  # type: ignore[union-attr]

        return None

    return resolve

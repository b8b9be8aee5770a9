"""Storage interface shared by the Postgres and in-memory backends.

Every scoring component reads and writes through this interface, so the
engines never see SQL. Methods that change data are flushed immediately;
``commit`` ends the unit of work.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from clutch.db.models import (
    ClutchManagerRating,
    PlayerGameStat,
    Prediction,
    PropLine,
    SportEvent,
    User,
    UserReputation,
)

PENDING = "PENDING"
CORRECT = "CORRECT"
INCORRECT = "INCORRECT"
PUSH = "PUSH"
VOIDED = "VOIDED"

GRADED_OUTCOMES = (CORRECT, INCORRECT)
TERMINAL_OUTCOMES = (CORRECT, INCORRECT, PUSH, VOIDED)

# Columns a line upsert may overwrite on an existing (sport, season, week, subject, stat) row.
LINE_UPDATE_FIELDS = ("event_id", "team", "line_value", "description", "generated_from", "locks_at", "is_active")


@dataclass(frozen=True)
class AccuracyRow:
    """One row of the accuracy read model."""

    user_id: str
    total: int
    correct: int
    accuracy: float


class DuplicatePendingError(Exception):
    """Raised by a store when the pending-target unique index is violated."""


class PredictionStore(Protocol):
    # --- predictions ---
    async def get_prediction(self, prediction_id: str) -> Prediction | None: ...

    async def find_pending(
        self, user_id: str, event_id: str, subject_id: str | None, prediction_type: str
    ) -> Prediction | None: ...

    async def add_prediction(self, prediction: Prediction) -> Prediction: ...

    async def save_prediction(self, prediction: Prediction) -> Prediction: ...

    async def delete_prediction(self, prediction: Prediction) -> None: ...

    async def transition_outcome(
        self, prediction_id: str, outcome: str, accuracy_score: float | None, resolved_at: datetime
    ) -> Prediction | None:
        """Move a PENDING prediction to ``outcome``. Returns None if it was not PENDING."""
        ...

    async def list_user_predictions(
        self,
        user_id: str,
        *,
        sport: str | None = None,
        prediction_type: str | None = None,
        outcome: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Prediction], int]: ...

    async def pending_for_event(self, event_id: str) -> list[Prediction]: ...

    async def event_slate(
        self,
        event_id: str,
        now: datetime,
        *,
        sport: str | None = None,
        prediction_type: str | None = None,
        limit: int = 50,
    ) -> list[Prediction]: ...

    async def graded_history(self, user_id: str, sport: str | None = None) -> list[Prediction]:
        """CORRECT/INCORRECT predictions, oldest resolution first."""
        ...

    async def creation_times(self, user_id: str, sport: str | None = None) -> list[datetime]: ...

    async def correct_public_calls(self, user_id: str, sport: str | None, limit: int) -> list[Prediction]:
        """Most recently resolved CORRECT public calls that have a subject."""
        ...

    async def public_target_predictions(
        self, event_id: str, subject_id: str | None, prediction_type: str, *, graded_only: bool = False
    ) -> list[Prediction]: ...

    async def users_with_graded_predictions(self) -> list[str]: ...

    # --- reputation / rating caches ---
    async def list_reputations(self, user_id: str) -> list[UserReputation]: ...

    async def get_reputation(self, user_id: str, sport: str) -> UserReputation | None: ...

    async def reputations_for(self, user_ids: list[str], sport: str) -> dict[str, UserReputation]: ...

    async def upsert_reputation(self, values: dict[str, Any]) -> UserReputation: ...

    async def get_rating(self, user_id: str) -> ClutchManagerRating | None: ...

    async def ratings_for(self, user_ids: list[str]) -> dict[str, ClutchManagerRating]: ...

    async def upsert_rating(self, values: dict[str, Any]) -> ClutchManagerRating: ...

    # --- leaderboard read model ---
    async def ranked_accuracy(
        self,
        *,
        sport: str | None,
        league_id: str | None,
        since: datetime | None,
        min_resolved: int,
        limit: int,
        offset: int,
    ) -> list[AccuracyRow]: ...

    async def ranked_ratings(self, *, min_graded: int, limit: int, offset: int) -> list[ClutchManagerRating]: ...

    async def profiles_for(self, user_ids: list[str]) -> dict[str, User]: ...

    # --- performance data (read-only) ---
    async def get_event(self, event_id: str) -> SportEvent | None: ...

    async def event_stats(self, event_id: str) -> dict[str, PlayerGameStat]: ...

    async def week_events(self, sport: str, season: int, week: int) -> list[SportEvent]: ...

    async def event_week(self, sport: str, now: datetime, *, upcoming: bool) -> tuple[int, int] | None:
        """(season, week) of the next event to start after ``now``, or the last one started."""
        ...

    async def season_stats_before(self, sport: str, season: int, week: int) -> list[PlayerGameStat]:
        """Stat lines from earlier weeks of a season, most recent week first."""
        ...

    async def get_player_stat(self, player_id: str, event_id: str) -> PlayerGameStat | None: ...

    # --- prop lines ---
    async def get_line(self, line_id: str) -> PropLine | None: ...

    async def upsert_line(self, values: dict[str, Any]) -> PropLine: ...

    async def list_lines(
        self, sport: str, season: int, week: int, *, unresolved_only: bool = False
    ) -> list[PropLine]: ...

    async def save_line(self, line: PropLine) -> PropLine: ...

    # --- unit of work ---
    def savepoint(self) -> AbstractAsyncContextManager[Any]:
        """Scope whose failure rolls back only its own statements."""
        ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


StoreFactory = Callable[[], AbstractAsyncContextManager[PredictionStore]]

"""In-memory store with the same semantics as the Postgres store.

Used by the test suite and by local runs with ``CLUTCH_STORAGE_BACKEND=memory``.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from clutch.db.models import (
    ClutchManagerRating,
    PlayerGameStat,
    Prediction,
    PropLine,
    SportEvent,
    User,
    UserReputation,
)
from clutch.store.base import (
    CORRECT,
    GRADED_OUTCOMES,
    LINE_UPDATE_FIELDS,
    PENDING,
    AccuracyRow,
    DuplicatePendingError,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _resolved_key(p: Prediction) -> tuple[datetime, datetime, str]:
    return (p.resolved_at or _EPOCH, p.created_at or _EPOCH, p.id)


def _matches_sport(p: Prediction, sport: str | None) -> bool:
    return sport is None or p.sport == sport


class MemoryPredictionStore:
    """Dictionary-backed store. Safe for concurrent use inside one event loop."""

    def __init__(self) -> None:
        self.predictions: dict[str, Prediction] = {}
        self.reputations: dict[tuple[str, str], UserReputation] = {}
        self.ratings: dict[str, ClutchManagerRating] = {}
        self.lines: dict[str, PropLine] = {}
        self.events: dict[str, SportEvent] = {}
        self.stats: list[PlayerGameStat] = []
        self.users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[MemoryPredictionStore, None]:
        """Store factory compatible with the SQL session factory."""
        yield self

    # --- fixtures ---

    def add_event(self, event: SportEvent) -> SportEvent:
        self.events[event.id] = event
        return event

    def add_stat(self, stat: PlayerGameStat) -> PlayerGameStat:
        self.stats.append(stat)
        return stat

    def add_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    # --- predictions ---

    async def get_prediction(self, prediction_id: str) -> Prediction | None:
        return self.predictions.get(prediction_id)

    async def find_pending(
        self, user_id: str, event_id: str, subject_id: str | None, prediction_type: str
    ) -> Prediction | None:
        for p in self.predictions.values():
            if (
                p.user_id == user_id
                and p.event_id == event_id
                and p.subject_id == subject_id
                and p.prediction_type == prediction_type
                and p.outcome == PENDING
            ):
                return p
        return None

    async def add_prediction(self, prediction: Prediction) -> Prediction:
        async with self._lock:
            if prediction.outcome == PENDING and await self.find_pending(
                prediction.user_id, prediction.event_id, prediction.subject_id, prediction.prediction_type
            ):
                msg = "duplicate key value violates unique constraint uq_predictions_pending_target"
                raise DuplicatePendingError(msg)
            if prediction.id is None:
                prediction.id = str(uuid.uuid4())
            self.predictions[prediction.id] = prediction
        return prediction

    async def save_prediction(self, prediction: Prediction) -> Prediction:
        self.predictions[prediction.id] = prediction
        return prediction

    async def delete_prediction(self, prediction: Prediction) -> None:
        self.predictions.pop(prediction.id, None)

    async def transition_outcome(
        self, prediction_id: str, outcome: str, accuracy_score: float | None, resolved_at: datetime
    ) -> Prediction | None:
        async with self._lock:
            p = self.predictions.get(prediction_id)
            if p is None or p.outcome != PENDING:
                return None
            p.outcome = outcome
            p.accuracy_score = accuracy_score
            p.resolved_at = resolved_at
            return p

    async def list_user_predictions(
        self,
        user_id: str,
        *,
        sport: str | None = None,
        prediction_type: str | None = None,
        outcome: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Prediction], int]:
        rows = [
            p
            for p in self.predictions.values()
            if p.user_id == user_id
            and _matches_sport(p, sport)
            and (prediction_type is None or p.prediction_type == prediction_type)
            and (outcome is None or p.outcome == outcome)
        ]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        return rows[offset : offset + limit], len(rows)

    async def pending_for_event(self, event_id: str) -> list[Prediction]:
        rows = [p for p in self.predictions.values() if p.event_id == event_id and p.outcome == PENDING]
        rows.sort(key=lambda p: p.created_at)
        return rows

    async def event_slate(
        self,
        event_id: str,
        now: datetime,
        *,
        sport: str | None = None,
        prediction_type: str | None = None,
        limit: int = 50,
    ) -> list[Prediction]:
        rows = [
            p
            for p in await self.pending_for_event(event_id)
            if (p.locks_at is None or p.locks_at > now)
            and _matches_sport(p, sport)
            and (prediction_type is None or p.prediction_type == prediction_type)
        ]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        return rows[:limit]

    async def graded_history(self, user_id: str, sport: str | None = None) -> list[Prediction]:
        rows = [
            p
            for p in self.predictions.values()
            if p.user_id == user_id and p.outcome in GRADED_OUTCOMES and _matches_sport(p, sport)
        ]
        rows.sort(key=_resolved_key)
        return rows

    async def creation_times(self, user_id: str, sport: str | None = None) -> list[datetime]:
        return sorted(
            p.created_at for p in self.predictions.values() if p.user_id == user_id and _matches_sport(p, sport)
        )

    async def correct_public_calls(self, user_id: str, sport: str | None, limit: int) -> list[Prediction]:
        rows = [
            p
            for p in self.predictions.values()
            if p.user_id == user_id
            and p.outcome == CORRECT
            and p.is_public
            and p.subject_id is not None
            and _matches_sport(p, sport)
        ]
        rows.sort(key=_resolved_key, reverse=True)
        return rows[:limit]

    async def public_target_predictions(
        self, event_id: str, subject_id: str | None, prediction_type: str, *, graded_only: bool = False
    ) -> list[Prediction]:
        return [
            p
            for p in self.predictions.values()
            if p.event_id == event_id
            and p.subject_id == subject_id
            and p.prediction_type == prediction_type
            and p.is_public
            and (not graded_only or p.outcome in GRADED_OUTCOMES)
        ]

    async def users_with_graded_predictions(self) -> list[str]:
        return sorted({p.user_id for p in self.predictions.values() if p.outcome in GRADED_OUTCOMES})

    # --- reputation / rating caches ---

    async def list_reputations(self, user_id: str) -> list[UserReputation]:
        return sorted((r for (uid, _), r in self.reputations.items() if uid == user_id), key=lambda r: r.sport)

    async def get_reputation(self, user_id: str, sport: str) -> UserReputation | None:
        return self.reputations.get((user_id, sport))

    async def reputations_for(self, user_ids: list[str], sport: str) -> dict[str, UserReputation]:
        return {uid: self.reputations[(uid, sport)] for uid in user_ids if (uid, sport) in self.reputations}

    async def upsert_reputation(self, values: dict[str, Any]) -> UserReputation:
        key = (values["user_id"], values["sport"])
        row = self.reputations.get(key)
        if row is None:
            row = UserReputation(**values)
            self.reputations[key] = row
        else:
            for k, v in values.items():
                setattr(row, k, v)
        return row

    async def get_rating(self, user_id: str) -> ClutchManagerRating | None:
        return self.ratings.get(user_id)

    async def ratings_for(self, user_ids: list[str]) -> dict[str, ClutchManagerRating]:
        return {uid: self.ratings[uid] for uid in user_ids if uid in self.ratings}

    async def upsert_rating(self, values: dict[str, Any]) -> ClutchManagerRating:
        row = self.ratings.get(values["user_id"])
        if row is None:
            row = ClutchManagerRating(**values)
            self.ratings[row.user_id] = row
        else:
            for k, v in values.items():
                setattr(row, k, v)
        return row

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
    ) -> list[AccuracyRow]:
        tallies: dict[str, list[int]] = {}
        for p in self.predictions.values():
            if p.outcome not in GRADED_OUTCOMES or not _matches_sport(p, sport):
                continue
            if league_id and p.league_id != league_id:
                continue
            if since is not None and (p.resolved_at is None or p.resolved_at < since):
                continue
            tally = tallies.setdefault(p.user_id, [0, 0])
            tally[0] += 1
            if p.outcome == CORRECT:
                tally[1] += 1

        rows = [
            AccuracyRow(user_id=uid, total=total, correct=correct, accuracy=round(correct / total, 4))
            for uid, (total, correct) in tallies.items()
            if total >= min_resolved
        ]
        rows.sort(key=lambda r: (-r.accuracy, -r.correct, r.user_id))
        return rows[offset : offset + limit]

    async def ranked_ratings(self, *, min_graded: int, limit: int, offset: int) -> list[ClutchManagerRating]:
        rows = [
            r for r in self.ratings.values() if r.overall_rating is not None and r.total_graded_calls >= min_graded
        ]
        rows.sort(key=lambda r: (-r.overall_rating, -r.total_graded_calls, r.user_id))
        return rows[offset : offset + limit]

    async def profiles_for(self, user_ids: list[str]) -> dict[str, User]:
        return {uid: self.users[uid] for uid in user_ids if uid in self.users}

    # --- performance data ---

    async def get_event(self, event_id: str) -> SportEvent | None:
        return self.events.get(event_id)

    async def event_stats(self, event_id: str) -> dict[str, PlayerGameStat]:
        return {s.player_id: s for s in self.stats if s.event_id == event_id}

    async def week_events(self, sport: str, season: int, week: int) -> list[SportEvent]:
        rows = [e for e in self.events.values() if e.sport == sport and e.season == season and e.week == week]
        rows.sort(key=lambda e: e.starts_at or _EPOCH)
        return rows

    async def event_week(self, sport: str, now: datetime, *, upcoming: bool) -> tuple[int, int] | None:
        dated = [
            e
            for e in self.events.values()
            if e.sport == sport
            and e.season is not None
            and e.week is not None
            and e.starts_at is not None
            and (e.starts_at > now if upcoming else e.starts_at <= now)
        ]
        if not dated:
            return None
        pick = min(dated, key=lambda e: e.starts_at) if upcoming else max(dated, key=lambda e: e.starts_at)
        return pick.season, pick.week

    async def season_stats_before(self, sport: str, season: int, week: int) -> list[PlayerGameStat]:
        rows = [s for s in self.stats if s.sport == sport and s.season == season and s.week < week]
        rows.sort(key=lambda s: (-s.week, s.player_id))
        return rows

    async def get_player_stat(self, player_id: str, event_id: str) -> PlayerGameStat | None:
        for s in self.stats:
            if s.player_id == player_id and s.event_id == event_id:
                return s
        return None

    # --- prop lines ---

    async def get_line(self, line_id: str) -> PropLine | None:
        return self.lines.get(line_id)

    async def upsert_line(self, values: dict[str, Any]) -> PropLine:
        for line in self.lines.values():
            if (line.sport, line.season, line.week, line.subject_id, line.stat_type) == (
                values["sport"],
                values["season"],
                values["week"],
                values["subject_id"],
                values["stat_type"],
            ):
                for k in LINE_UPDATE_FIELDS:
                    if k in values:
                        setattr(line, k, values[k])
                return line
        line = PropLine(**values)
        self.lines[line.id] = line
        return line

    async def list_lines(
        self, sport: str, season: int, week: int, *, unresolved_only: bool = False
    ) -> list[PropLine]:
        rows = [
            line
            for line in self.lines.values()
            if line.sport == sport
            and line.season == season
            and line.week == week
            and (not unresolved_only or (line.is_active and line.resolved_at is None))
        ]
        rows.sort(key=lambda line: (line.stat_type, -line.line_value))
        return rows

    async def save_line(self, line: PropLine) -> PropLine:
        self.lines[line.id] = line
        return line

    # --- unit of work ---

    @asynccontextmanager
    async def savepoint(self) -> AsyncGenerator[None, None]:
        yield

    async def commit(self) -> None:
        return None

    async def rollback(self) -> None:
        return None

"""PostgreSQL store on an async SQLAlchemy session."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any

from sqlalchemy import Numeric, cast, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

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

_REPUTATION_FIELDS = (
    "total_predictions",
    "correct_predictions",
    "accuracy_rate",
    "streak_current",
    "streak_best",
    "confidence_score",
    "tier",
    "badges",
    "updated_at",
)

_RATING_FIELDS = (
    "overall_rating",
    "accuracy_component",
    "consistency_component",
    "volume_component",
    "breadth_component",
    "tier",
    "trend",
    "total_graded_calls",
    "computation_inputs",
    "updated_at",
)


def _sport_filter(sport: str | None) -> list[Any]:
    return [Prediction.sport == sport] if sport else []


class SqlPredictionStore:
    """Store backed by the scoring tables in PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- predictions ---

    async def get_prediction(self, prediction_id: str) -> Prediction | None:
        return await self.session.get(Prediction, prediction_id)

    async def find_pending(
        self, user_id: str, event_id: str, subject_id: str | None, prediction_type: str
    ) -> Prediction | None:
        subject_clause = Prediction.subject_id.is_(None) if subject_id is None else Prediction.subject_id == subject_id
        result = await self.session.execute(
            select(Prediction).where(
                Prediction.user_id == user_id,
                Prediction.event_id == event_id,
                subject_clause,
                Prediction.prediction_type == prediction_type,
                Prediction.outcome == PENDING,
            )
        )
        return result.scalars().first()

    async def add_prediction(self, prediction: Prediction) -> Prediction:
        self.session.add(prediction)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicatePendingError(str(e.orig)) from e
        return prediction

    async def save_prediction(self, prediction: Prediction) -> Prediction:
        await self.session.flush()
        return prediction

    async def delete_prediction(self, prediction: Prediction) -> None:
        await self.session.delete(prediction)
        await self.session.flush()

    async def transition_outcome(
        self, prediction_id: str, outcome: str, accuracy_score: float | None, resolved_at: datetime
    ) -> Prediction | None:
        # Conditional on PENDING so two concurrent resolvers cannot both win.
        stmt = (
            update(Prediction)
            .where(Prediction.id == prediction_id, Prediction.outcome == PENDING)
            .values(outcome=outcome, accuracy_score=accuracy_score, resolved_at=resolved_at)
            .returning(Prediction)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

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
        filters = [Prediction.user_id == user_id, *_sport_filter(sport)]
        if prediction_type:
            filters.append(Prediction.prediction_type == prediction_type)
        if outcome:
            filters.append(Prediction.outcome == outcome)

        total_result = await self.session.execute(select(func.count()).select_from(Prediction).where(*filters))
        total = total_result.scalar_one()

        result = await self.session.execute(
            select(Prediction).where(*filters).order_by(Prediction.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def pending_for_event(self, event_id: str) -> list[Prediction]:
        result = await self.session.execute(
            select(Prediction)
            .where(Prediction.event_id == event_id, Prediction.outcome == PENDING)
            .order_by(Prediction.created_at)
        )
        return list(result.scalars().all())

    async def event_slate(
        self,
        event_id: str,
        now: datetime,
        *,
        sport: str | None = None,
        prediction_type: str | None = None,
        limit: int = 50,
    ) -> list[Prediction]:
        filters = [
            Prediction.event_id == event_id,
            Prediction.outcome == PENDING,
            or_(Prediction.locks_at.is_(None), Prediction.locks_at > now),
            *_sport_filter(sport),
        ]
        if prediction_type:
            filters.append(Prediction.prediction_type == prediction_type)
        result = await self.session.execute(
            select(Prediction).where(*filters).order_by(Prediction.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def graded_history(self, user_id: str, sport: str | None = None) -> list[Prediction]:
        result = await self.session.execute(
            select(Prediction)
            .where(
                Prediction.user_id == user_id,
                Prediction.outcome.in_(GRADED_OUTCOMES),
                *_sport_filter(sport),
            )
            .order_by(Prediction.resolved_at.asc().nulls_first(), Prediction.created_at, Prediction.id)
        )
        return list(result.scalars().all())

    async def creation_times(self, user_id: str, sport: str | None = None) -> list[datetime]:
        result = await self.session.execute(
            select(Prediction.created_at)
            .where(Prediction.user_id == user_id, *_sport_filter(sport))
            .order_by(Prediction.created_at)
        )
        return list(result.scalars().all())

    async def correct_public_calls(self, user_id: str, sport: str | None, limit: int) -> list[Prediction]:
        result = await self.session.execute(
            select(Prediction)
            .where(
                Prediction.user_id == user_id,
                Prediction.outcome == CORRECT,
                Prediction.is_public.is_(True),
                Prediction.subject_id.isnot(None),
                *_sport_filter(sport),
            )
            .order_by(Prediction.resolved_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def public_target_predictions(
        self, event_id: str, subject_id: str | None, prediction_type: str, *, graded_only: bool = False
    ) -> list[Prediction]:
        subject_clause = Prediction.subject_id.is_(None) if subject_id is None else Prediction.subject_id == subject_id
        filters = [
            Prediction.event_id == event_id,
            subject_clause,
            Prediction.prediction_type == prediction_type,
            Prediction.is_public.is_(True),
        ]
        if graded_only:
            filters.append(Prediction.outcome.in_(GRADED_OUTCOMES))
        result = await self.session.execute(select(Prediction).where(*filters))
        return list(result.scalars().all())

    async def users_with_graded_predictions(self) -> list[str]:
        result = await self.session.execute(
            select(Prediction.user_id)
            .where(Prediction.outcome.in_(GRADED_OUTCOMES))
            .distinct()
            .order_by(Prediction.user_id)
        )
        return list(result.scalars().all())

    # --- reputation / rating caches ---

    async def list_reputations(self, user_id: str) -> list[UserReputation]:
        result = await self.session.execute(
            select(UserReputation).where(UserReputation.user_id == user_id).order_by(UserReputation.sport)
        )
        return list(result.scalars().all())

    async def get_reputation(self, user_id: str, sport: str) -> UserReputation | None:
        result = await self.session.execute(
            select(UserReputation).where(UserReputation.user_id == user_id, UserReputation.sport == sport)
        )
        return result.scalar_one_or_none()

    async def reputations_for(self, user_ids: list[str], sport: str) -> dict[str, UserReputation]:
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(UserReputation).where(UserReputation.user_id.in_(user_ids), UserReputation.sport == sport)
        )
        return {r.user_id: r for r in result.scalars()}

    async def upsert_reputation(self, values: dict[str, Any]) -> UserReputation:
        stmt = pg_insert(UserReputation).values(**values)
        stmt = stmt.on_conflict_do_update(
            constraint="user_reputation_user_sport_key",
            set_={k: stmt.excluded[k] for k in _REPUTATION_FIELDS if k in values},
        ).returning(UserReputation)
        result = await self.session.execute(stmt, execution_options={"populate_existing": True})
        return result.scalar_one()

    async def get_rating(self, user_id: str) -> ClutchManagerRating | None:
        return await self.session.get(ClutchManagerRating, user_id, populate_existing=True)

    async def ratings_for(self, user_ids: list[str]) -> dict[str, ClutchManagerRating]:
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(ClutchManagerRating).where(ClutchManagerRating.user_id.in_(user_ids))
        )
        return {r.user_id: r for r in result.scalars()}

    async def upsert_rating(self, values: dict[str, Any]) -> ClutchManagerRating:
        stmt = pg_insert(ClutchManagerRating).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ClutchManagerRating.user_id],
            set_={k: stmt.excluded[k] for k in _RATING_FIELDS if k in values},
        ).returning(ClutchManagerRating)
        result = await self.session.execute(stmt, execution_options={"populate_existing": True})
        return result.scalar_one()

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
        filters = [Prediction.outcome.in_(GRADED_OUTCOMES), *_sport_filter(sport)]
        if league_id:
            filters.append(Prediction.league_id == league_id)
        if since is not None:
            filters.append(Prediction.resolved_at >= since)

        total = func.count()
        correct = func.count().filter(Prediction.outcome == CORRECT)
        accuracy = func.round(cast(correct, Numeric) / cast(total, Numeric), 4).label("accuracy")
        result = await self.session.execute(
            select(
                Prediction.user_id,
                total.label("total"),
                correct.label("correct"),
                accuracy,
            )
            .where(*filters)
            .group_by(Prediction.user_id)
            .having(total >= min_resolved)
            .order_by(accuracy.desc(), correct.desc(), Prediction.user_id)
            .offset(offset)
            .limit(limit)
        )
        return [
            AccuracyRow(user_id=row.user_id, total=int(row.total), correct=int(row.correct), accuracy=float(row.accuracy))
            for row in result.all()
        ]

    async def ranked_ratings(self, *, min_graded: int, limit: int, offset: int) -> list[ClutchManagerRating]:
        result = await self.session.execute(
            select(ClutchManagerRating)
            .where(
                ClutchManagerRating.overall_rating.isnot(None),
                ClutchManagerRating.total_graded_calls >= min_graded,
            )
            .order_by(
                ClutchManagerRating.overall_rating.desc(),
                ClutchManagerRating.total_graded_calls.desc(),
                ClutchManagerRating.user_id,
            )
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def profiles_for(self, user_ids: list[str]) -> dict[str, User]:
        if not user_ids:
            return {}
        result = await self.session.execute(select(User).where(User.id.in_(user_ids)))
        return {u.id: u for u in result.scalars()}

    # --- performance data ---

    async def get_event(self, event_id: str) -> SportEvent | None:
        return await self.session.get(SportEvent, event_id)

    async def event_stats(self, event_id: str) -> dict[str, PlayerGameStat]:
        result = await self.session.execute(select(PlayerGameStat).where(PlayerGameStat.event_id == event_id))
        return {s.player_id: s for s in result.scalars()}

    async def week_events(self, sport: str, season: int, week: int) -> list[SportEvent]:
        result = await self.session.execute(
            select(SportEvent)
            .where(SportEvent.sport == sport, SportEvent.season == season, SportEvent.week == week)
            .order_by(SportEvent.starts_at)
        )
        return list(result.scalars().all())

    async def event_week(self, sport: str, now: datetime, *, upcoming: bool) -> tuple[int, int] | None:
        started = SportEvent.starts_at > now if upcoming else SportEvent.starts_at <= now
        order = SportEvent.starts_at.asc() if upcoming else SportEvent.starts_at.desc()
        result = await self.session.execute(
            select(SportEvent.season, SportEvent.week)
            .where(
                SportEvent.sport == sport,
                SportEvent.season.is_not(None),
                SportEvent.week.is_not(None),
                started,
            )
            .order_by(order)
            .limit(1)
        )
        row = result.first()
        return (row.season, row.week) if row is not None else None

    async def season_stats_before(self, sport: str, season: int, week: int) -> list[PlayerGameStat]:
        result = await self.session.execute(
            select(PlayerGameStat)
            .where(
                PlayerGameStat.sport == sport,
                PlayerGameStat.season == season,
                PlayerGameStat.week < week,
            )
            .order_by(PlayerGameStat.week.desc(), PlayerGameStat.player_id)
        )
        return list(result.scalars().all())

    async def get_player_stat(self, player_id: str, event_id: str) -> PlayerGameStat | None:
        result = await self.session.execute(
            select(PlayerGameStat).where(PlayerGameStat.player_id == player_id, PlayerGameStat.event_id == event_id)
        )
        return result.scalar_one_or_none()

    # --- prop lines ---

    async def get_line(self, line_id: str) -> PropLine | None:
        return await self.session.get(PropLine, line_id)

    async def upsert_line(self, values: dict[str, Any]) -> PropLine:
        stmt = pg_insert(PropLine).values(**values)
        stmt = stmt.on_conflict_do_update(
            constraint="prop_lines_target_key",
            set_={k: stmt.excluded[k] for k in LINE_UPDATE_FIELDS if k in values},
        ).returning(PropLine)
        result = await self.session.execute(stmt, execution_options={"populate_existing": True})
        return result.scalar_one()

    async def list_lines(
        self, sport: str, season: int, week: int, *, unresolved_only: bool = False
    ) -> list[PropLine]:
        filters = [PropLine.sport == sport, PropLine.season == season, PropLine.week == week]
        if unresolved_only:
            filters.extend([PropLine.is_active.is_(True), PropLine.resolved_at.is_(None)])
        result = await self.session.execute(
            select(PropLine).where(*filters).order_by(PropLine.stat_type, PropLine.line_value.desc())
        )
        return list(result.scalars().all())

    async def save_line(self, line: PropLine) -> PropLine:
        await self.session.flush()
        return line

    # --- unit of work ---

    def savepoint(self) -> AbstractAsyncContextManager[Any]:
        return self.session.begin_nested()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

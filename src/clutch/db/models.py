"""ORM models for the prediction scoring schema.

Tables owned by this service: predictions, user_reputation,
clutch_manager_ratings, prop_lines. The remaining tables (users,
sport_events, player_game_stats) are written by other services and
are only read here.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from clutch.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------


class Prediction(Base):
    """Maps to the 'predictions' table."""

    __tablename__ = "predictions"
    __table_args__ = (
        Index("idx_predictions_user_resolved", "user_id", "resolved_at"),
        Index("idx_predictions_target", "event_id", "subject_id", "prediction_type"),
        Index(
            "uq_predictions_pending_target",
            "user_id",
            "event_id",
            text("coalesce(subject_id, '')"),
            "prediction_type",
            unique=True,
            postgresql_where=text("outcome = 'PENDING'"),
        ),
        {"extend_existing": True},
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    sport: Mapped[str] = mapped_column(String(16), nullable=False)
    prediction_type: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, server_default="weekly")
    event_id: Mapped[str] = mapped_column(String(64), nullable=False)
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    league_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    claim: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    locks_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False, server_default="PENDING")
    accuracy_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
    confidence_level: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    key_factors: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Reputation / rating caches
# ---------------------------------------------------------------------------


class UserReputation(Base):
    """Maps to the 'user_reputation' table. sport='all' holds the aggregate."""

    __tablename__ = "user_reputation"
    __table_args__ = (
        UniqueConstraint("user_id", "sport", name="user_reputation_user_sport_key"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sport: Mapped[str] = mapped_column(String(16), nullable=False)
    total_predictions: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    correct_predictions: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    accuracy_rate: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    streak_current: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    streak_best: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    tier: Mapped[str] = mapped_column(String(16), nullable=False, server_default="rookie")
    badges: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, server_default="[]")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ClutchManagerRating(Base):
    """Maps to the 'clutch_manager_ratings' table."""

    __tablename__ = "clutch_manager_ratings"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    overall_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accuracy_component: Mapped[int | None] = mapped_column(Integer, nullable=True)
    consistency_component: Mapped[int | None] = mapped_column(Integer, nullable=True)
    volume_component: Mapped[int | None] = mapped_column(Integer, nullable=True)
    breadth_component: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tier: Mapped[str] = mapped_column(String(16), nullable=False, server_default="developing")
    trend: Mapped[str] = mapped_column(String(8), nullable=False, server_default="stable")
    total_graded_calls: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    computation_inputs: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Prop lines
# ---------------------------------------------------------------------------


class PropLine(Base):
    """Maps to the 'prop_lines' table."""

    __tablename__ = "prop_lines"
    __table_args__ = (
        UniqueConstraint("sport", "season", "week", "subject_id", "stat_type", name="prop_lines_target_key"),
        {"extend_existing": True},
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sport: Mapped[str] = mapped_column(String(16), nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    team: Mapped[str | None] = mapped_column(String(8), nullable=True)
    stat_type: Mapped[str] = mapped_column(String(32), nullable=False)
    line_value: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str | None] = mapped_column(String(128), nullable=True)
    generated_from: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    locks_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    result: Mapped[str | None] = mapped_column(String(8), nullable=True)
    actual_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Read-only projections of other services' data
# ---------------------------------------------------------------------------


class User(Base):
    """Profile projection maintained by the accounts service."""

    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="user")


class SportEvent(Base):
    """A game or tournament, fed by the sports-data service."""

    __tablename__ = "sport_events"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    sport: Mapped[str] = mapped_column(String(16), nullable=False)
    season: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="scheduled")
    home_team: Mapped[str | None] = mapped_column(String(8), nullable=True)
    away_team: Mapped[str | None] = mapped_column(String(8), nullable=True)
    result: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")


class PlayerGameStat(Base):
    """One player's final stat line for one event."""

    __tablename__ = "player_game_stats"
    __table_args__ = (
        UniqueConstraint("player_id", "event_id", name="player_game_stats_player_event_key"),
        Index("idx_player_game_stats_season_week", "sport", "season", "week"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sport: Mapped[str] = mapped_column(String(16), nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    event_id: Mapped[str] = mapped_column(String(64), nullable=False)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[str | None] = mapped_column(String(8), nullable=True)
    team: Mapped[str | None] = mapped_column(String(8), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="active")
    stats: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")

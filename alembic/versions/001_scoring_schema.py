"""Scoring schema.

Creates predictions, user_reputation, clutch_manager_ratings and
prop_lines, plus the read-only projections (users, sport_events,
player_game_stats) when they are not already provided by their owners.

Revision ID: 001_scoring_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_scoring_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- External projections ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(64) PRIMARY KEY,
            display_name VARCHAR(64),
            avatar_url TEXT,
            role VARCHAR(16) NOT NULL DEFAULT 'user'
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS sport_events (
            id VARCHAR(64) PRIMARY KEY,
            sport VARCHAR(16) NOT NULL,
            season INTEGER,
            week INTEGER,
            starts_at TIMESTAMPTZ,
            status VARCHAR(16) NOT NULL DEFAULT 'scheduled',
            home_team VARCHAR(8),
            away_team VARCHAR(8),
            result JSONB NOT NULL DEFAULT '{}'
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS player_game_stats (
            id SERIAL PRIMARY KEY,
            sport VARCHAR(16) NOT NULL,
            season INTEGER NOT NULL,
            week INTEGER NOT NULL,
            event_id VARCHAR(64) NOT NULL,
            player_id VARCHAR(64) NOT NULL,
            position VARCHAR(8),
            team VARCHAR(8),
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            stats JSONB NOT NULL DEFAULT '{}',
            CONSTRAINT player_game_stats_player_event_key UNIQUE (player_id, event_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_player_game_stats_season_week
        ON player_game_stats(sport, season, week)
    """)

    # --- Predictions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS predictions (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            sport VARCHAR(16) NOT NULL,
            prediction_type VARCHAR(32) NOT NULL,
            category VARCHAR(32) NOT NULL DEFAULT 'weekly',
            event_id VARCHAR(64) NOT NULL,
            subject_id VARCHAR(64),
            league_id VARCHAR(64),
            claim JSONB NOT NULL DEFAULT '{}',
            is_public BOOLEAN NOT NULL DEFAULT true,
            locks_at TIMESTAMPTZ,
            outcome VARCHAR(16) NOT NULL DEFAULT 'PENDING',
            accuracy_score DOUBLE PRECISION,
            rationale TEXT,
            confidence_level SMALLINT CHECK (confidence_level BETWEEN 1 AND 5),
            key_factors JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            resolved_at TIMESTAMPTZ,
            CONSTRAINT predictions_outcome_check
                CHECK (outcome IN ('PENDING', 'CORRECT', 'INCORRECT', 'PUSH', 'VOIDED'))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_predictions_user_id
        ON predictions(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_predictions_user_resolved
        ON predictions(user_id, resolved_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_predictions_target
        ON predictions(event_id, subject_id, prediction_type)
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_predictions_pending_target
        ON predictions(user_id, event_id, coalesce(subject_id, ''), prediction_type)
        WHERE outcome = 'PENDING'
    """)

    # --- Reputation ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_reputation (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            sport VARCHAR(16) NOT NULL,
            total_predictions INTEGER NOT NULL DEFAULT 0,
            correct_predictions INTEGER NOT NULL DEFAULT 0,
            accuracy_rate DOUBLE PRECISION NOT NULL DEFAULT 0,
            streak_current INTEGER NOT NULL DEFAULT 0,
            streak_best INTEGER NOT NULL DEFAULT 0,
            confidence_score DOUBLE PRECISION NOT NULL DEFAULT 0,
            tier VARCHAR(16) NOT NULL DEFAULT 'rookie',
            badges JSONB NOT NULL DEFAULT '[]',
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_reputation_user_sport_key UNIQUE (user_id, sport)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_reputation_ranking
        ON user_reputation(sport, accuracy_rate DESC, total_predictions DESC)
    """)

    # --- Clutch Rating ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS clutch_manager_ratings (
            user_id VARCHAR(64) PRIMARY KEY,
            overall_rating INTEGER,
            accuracy_component INTEGER,
            consistency_component INTEGER,
            volume_component INTEGER,
            breadth_component INTEGER,
            tier VARCHAR(16) NOT NULL DEFAULT 'developing',
            trend VARCHAR(8) NOT NULL DEFAULT 'stable',
            total_graded_calls INTEGER NOT NULL DEFAULT 0,
            computation_inputs JSONB NOT NULL DEFAULT '{}',
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_clutch_ratings_overall
        ON clutch_manager_ratings(overall_rating DESC NULLS LAST)
    """)

    # --- Prop lines ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS prop_lines (
            id VARCHAR(36) PRIMARY KEY,
            sport VARCHAR(16) NOT NULL,
            season INTEGER NOT NULL,
            week INTEGER NOT NULL,
            subject_id VARCHAR(64) NOT NULL,
            event_id VARCHAR(64),
            team VARCHAR(8),
            stat_type VARCHAR(32) NOT NULL,
            line_value DOUBLE PRECISION NOT NULL,
            description VARCHAR(128),
            generated_from JSONB NOT NULL DEFAULT '{}',
            locks_at TIMESTAMPTZ,
            is_active BOOLEAN NOT NULL DEFAULT true,
            result VARCHAR(8),
            actual_value DOUBLE PRECISION,
            resolved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT prop_lines_target_key UNIQUE (sport, season, week, subject_id, stat_type)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS prop_lines CASCADE")
    op.execute("DROP TABLE IF EXISTS clutch_manager_ratings CASCADE")
    op.execute("DROP TABLE IF EXISTS user_reputation CASCADE")
    op.execute("DROP TABLE IF EXISTS predictions CASCADE")

"""Weekly prop line generation, picks on lines, and line resolution."""

from __future__ import annotations

import pytest

from clutch.lines.service import generate_lines, line_result, resolve_lines
from clutch.predictions.schemas import PredictionCreate, PredictionUpdate
from clutch.predictions.service import PredictionLockedError, submit_prediction, update_prediction
from clutch.store.base import CORRECT, INCORRECT, PENDING, PUSH
from tests.conftest import NOW, make_event, make_stat


def seed_week(store, rush=(80, 80, 80), player="rb1"):
    store.add_event(make_event("evt-1", week=6))
    for week, value in zip((3, 4, 5), rush):
        store.add_stat(make_stat(player, f"old-{week}", week, {"rush_yds": value}))


async def rushing_line(store, player="rb1"):
    lines = await store.list_lines("nfl", 2026, 6)
    return next(line for line in lines if line.subject_id == player and line.stat_type == "rushing_yards")


async def pick(store, line, user_id, direction):
    return await submit_prediction(
        store,
        user_id,
        PredictionCreate(
            sport="nfl",
            prediction_type="player_benchmark",
            event_id=line.id,
            subject_id=line.subject_id,
            claim={"direction": direction},
        ),
        now=NOW,
    )


def test_line_result():
    assert line_result(81, 80.5) == "over"
    assert line_result(80, 80.5) == "under"
    assert line_result(80.5, 80.5) == "push"


class TestGenerate:
    @pytest.mark.asyncio
    async def test_creates_lines(self, store):
        seed_week(store)
        summary = await generate_lines(store, "nfl", 2026, 6, now=NOW)
        assert summary.created == 1
        assert summary.errors == []
        line = await rushing_line(store)
        assert line.line_value == 80.0
        assert line.event_id == "evt-1"
        assert line.locks_at == make_event().starts_at
        assert line.description == "Rushing Yards O/U 80.0"
        assert line.is_active is True
        assert line.resolved_at is None

    @pytest.mark.asyncio
    async def test_rerun_updates_in_place(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        first = await rushing_line(store)
        store.add_stat(make_stat("rb1", "old-5b", 5, {"rush_yds": 140}))
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        lines = await store.list_lines("nfl", 2026, 6)
        assert len(lines) == 1
        assert lines[0].id == first.id

    @pytest.mark.asyncio
    async def test_no_games(self, store):
        summary = await generate_lines(store, "nfl", 2026, 6, now=NOW)
        assert summary.created == 0
        assert summary.errors == ["No games found for this week"]


class TestPicksOnLines:
    @pytest.mark.asyncio
    async def test_pick_inherits_line(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        line = await rushing_line(store)
        p = await pick(store, line, "user-1", "over")
        assert p.claim["stat"] == "rushing_yards"
        assert p.claim["benchmark_value"] == 80.0
        assert p.locks_at == line.locks_at

    @pytest.mark.asyncio
    async def test_line_terms_override_submitted_ones(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        line = await rushing_line(store)
        p = await submit_prediction(
            store,
            "user-1",
            PredictionCreate(
                sport="nfl",
                prediction_type="player_benchmark",
                event_id=line.id,
                subject_id=line.subject_id,
                claim={"direction": "over", "stat": "pass_yds", "benchmark_value": 5.0},
            ),
            now=NOW,
        )
        assert p.claim == {"direction": "over", "stat": "rushing_yards", "benchmark_value": 80.0}

    @pytest.mark.asyncio
    async def test_direction_can_be_edited(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        line = await rushing_line(store)
        p = await pick(store, line, "user-1", "over")

        updated = await update_prediction(
            store, p.id, "user-1", PredictionUpdate(claim={"direction": "under", "benchmark_value": 1.0}), now=NOW
        )
        assert updated.claim["direction"] == "under"
        assert updated.claim["stat"] == "rushing_yards"
        assert updated.claim["benchmark_value"] == 80.0

    @pytest.mark.asyncio
    async def test_resolved_line_is_closed(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        line = await rushing_line(store)
        line.resolved_at = NOW
        with pytest.raises(PredictionLockedError):
            await pick(store, line, "user-1", "over")


class TestResolveLines:
    @pytest.mark.asyncio
    async def test_grades_picks(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        line = await rushing_line(store)
        over = await pick(store, line, "user-1", "over")
        under = await pick(store, line, "user-2", "under")
        store.add_stat(make_stat("rb1", "evt-1", 6, {"rush_yds": 112}))

        summary = await resolve_lines(store, "nfl", 2026, 6, now=NOW)
        assert summary.lines_resolved == 1
        assert summary.predictions_resolved == 2
        assert line.actual_value == 112.0
        assert line.result == "over"
        assert (await store.get_prediction(over.id)).outcome == CORRECT
        assert (await store.get_prediction(under.id)).outcome == INCORRECT
        assert {r.sport for r in await store.list_reputations("user-1")} == {"all", "nfl"}

    @pytest.mark.asyncio
    async def test_push_gives_half_credit(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        line = await rushing_line(store)
        p = await pick(store, line, "user-1", "under")
        store.add_stat(make_stat("rb1", "evt-1", 6, {"rush_yds": 80}))

        await resolve_lines(store, "nfl", 2026, 6, now=NOW)
        resolved = await store.get_prediction(p.id)
        assert resolved.outcome == PUSH
        assert resolved.accuracy_score == 0.5

    @pytest.mark.asyncio
    async def test_missing_stat_leaves_line_open(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        line = await rushing_line(store)
        p = await pick(store, line, "user-1", "over")

        summary = await resolve_lines(store, "nfl", 2026, 6, now=NOW)
        assert summary.lines_skipped == 1
        assert summary.lines_resolved == 0
        assert line.resolved_at is None
        assert (await store.get_prediction(p.id)).outcome == PENDING

    @pytest.mark.asyncio
    async def test_resolved_lines_not_revisited(self, store):
        seed_week(store)
        await generate_lines(store, "nfl", 2026, 6, now=NOW)
        store.add_stat(make_stat("rb1", "evt-1", 6, {"rush_yds": 90}))
        await resolve_lines(store, "nfl", 2026, 6, now=NOW)
        again = await resolve_lines(store, "nfl", 2026, 6, now=NOW)
        assert again.lines_resolved == 0
        assert again.lines_skipped == 0

"""Clutch Rating components, gate, tiers and trend."""

from __future__ import annotations

from datetime import timedelta

import pytest

from clutch.config import RatingConfig
from clutch.rating.engine import (
    DEVELOPING,
    ClutchRatingEngine,
    accuracy_component,
    breadth_component,
    consistency_component,
    rating_tier,
    rating_trend,
    round_half_up,
    volume_component,
)
from clutch.store.base import CORRECT, INCORRECT
from tests.conftest import NOW, make_prediction, seed_graded

CONFIG = RatingConfig()


def _graded(outcome, days_ago, **overrides):
    return make_prediction(outcome=outcome, resolved_at=NOW - timedelta(days=days_ago), **overrides)


def _weekly(rates_by_week):
    """Four calls per week, ``correct`` of them right, one week apart."""
    history = []
    for week, correct in enumerate(rates_by_week):
        for i in range(4):
            outcome = CORRECT if i < correct else INCORRECT
            history.append(_graded(outcome, days_ago=7 * (len(rates_by_week) - week)))
    return history


class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(62.5) == 63
        assert round_half_up(0.5) == 1
        assert round_half_up(62.49) == 62


class TestAccuracyComponent:
    def test_empty(self):
        assert accuracy_component([], NOW, 90) == 0

    def test_all_correct(self):
        assert accuracy_component([_graded(CORRECT, 1), _graded(CORRECT, 30)], NOW, 90) == 100

    def test_recent_calls_weigh_more(self):
        recent_hit = [_graded(CORRECT, 1), _graded(INCORRECT, 200)]
        old_hit = [_graded(CORRECT, 200), _graded(INCORRECT, 1)]
        assert accuracy_component(recent_hit, NOW, 90) > 50
        assert accuracy_component(old_hit, NOW, 90) < 50
        assert accuracy_component(recent_hit, NOW, 90) != accuracy_component(old_hit, NOW, 90)

    def test_falls_back_to_created_at(self):
        p = make_prediction(outcome=CORRECT, resolved_at=None, created_at=NOW - timedelta(days=3))
        assert accuracy_component([p], NOW, 90) == 100


class TestConsistencyComponent:
    def test_too_few_weeks_defaults(self):
        assert consistency_component(_weekly([4, 2]), CONFIG) == 50

    def test_single_call_weeks_do_not_qualify(self):
        history = [_graded(CORRECT, 7 * w) for w in range(6)]
        assert consistency_component(history, CONFIG) == 50

    def test_identical_weeks_score_100(self):
        assert consistency_component(_weekly([3, 3, 3, 3]), CONFIG) == 100

    def test_alternating_all_or_nothing_scores_0(self):
        assert consistency_component(_weekly([4, 0, 4, 0]), CONFIG) == 0

    def test_moderate_spread(self):
        # rates .75 / .25 alternating: std dev .25 -> 50
        assert consistency_component(_weekly([3, 1, 3, 1]), CONFIG) == 50


class TestVolumeComponent:
    @pytest.mark.parametrize(("count", "score"), [(0, 0), (1, 0), (50, 63), (200, 85), (500, 100), (5000, 100)])
    def test_log_scale(self, count, score):
        assert volume_component(count, 500) == score


class TestBreadthComponent:
    def test_single_type_and_sport(self):
        assert breadth_component([_graded(CORRECT, 1)], CONFIG) == 25

    def test_full_breadth(self):
        history = [
            _graded(CORRECT, 1, prediction_type=t, sport=s)
            for t, s in zip(
                ("player_benchmark", "performance_call", "weekly_winner", "bold_call"),
                ("nfl", "nba", "mlb", "golf"),
            )
        ]
        assert breadth_component(history, CONFIG) == 100

    def test_empty(self):
        assert breadth_component([], CONFIG) == 0


class TestTierAndTrend:
    @pytest.mark.parametrize(
        ("rating", "tier"),
        [(95, "elite"), (90, "elite"), (85, "expert"), (70, "sharp"), (60, "solid"), (50, "average"),
         (49, DEVELOPING), (None, DEVELOPING)],
    )
    def test_tiers(self, rating, tier):
        assert rating_tier(rating, CONFIG) == tier

    def test_no_previous_is_stable(self):
        assert rating_trend(80, None, None, NOW, CONFIG) == "stable"

    def test_within_a_day_is_stable(self):
        assert rating_trend(90, 70, NOW - timedelta(hours=23), NOW, CONFIG) == "stable"

    def test_up_and_down_after_a_day(self):
        yesterday = NOW - timedelta(hours=25)
        assert rating_trend(75, 71, yesterday, NOW, CONFIG) == "up"
        assert rating_trend(67, 71, yesterday, NOW, CONFIG) == "down"
        assert rating_trend(74, 71, yesterday, NOW, CONFIG) == "stable"


class TestCompute:
    @pytest.mark.asyncio
    async def test_gate_at_49(self, store):
        await seed_graded(store, "u", [CORRECT] * 49)
        row = await ClutchRatingEngine().compute(store, "u", NOW)
        assert row.overall_rating is None
        assert row.accuracy_component is None
        assert row.tier == DEVELOPING
        assert row.total_graded_calls == 49
        assert row.computation_inputs["reason"] == "insufficient_calls"

    @pytest.mark.asyncio
    async def test_rated_at_50(self, store):
        await seed_graded(store, "u", [CORRECT] * 50)
        row = await ClutchRatingEngine().compute(store, "u", NOW)
        assert row.overall_rating is not None
        assert 0 <= row.overall_rating <= 100
        assert row.accuracy_component == 100
        assert row.computation_inputs["total_resolved"] == 50
        assert row.computation_inputs["unique_types"] == ["player_benchmark"]

    @pytest.mark.asyncio
    async def test_push_and_void_do_not_count(self, store):
        await seed_graded(store, "u", [CORRECT] * 49 + ["PUSH", "VOIDED"])
        row = await ClutchRatingEngine().compute(store, "u", NOW)
        assert row.total_graded_calls == 49
        assert row.overall_rating is None

    @pytest.mark.asyncio
    async def test_deterministic_and_stable(self, store):
        await seed_graded(store, "u", [CORRECT, INCORRECT, CORRECT] * 20)
        engine = ClutchRatingEngine()
        first = (await engine.compute(store, "u", NOW)).overall_rating
        second = await engine.compute(store, "u", NOW)
        assert second.overall_rating == first
        assert second.trend == "stable"

    @pytest.mark.asyncio
    async def test_trend_after_a_day(self, store):
        await seed_graded(store, "u", [INCORRECT] * 30 + [CORRECT] * 30)
        engine = ClutchRatingEngine()
        before = await engine.compute(store, "u", NOW)
        first_rating = before.overall_rating
        await seed_graded(store, "u", [CORRECT] * 60, start=NOW + timedelta(hours=1), spacing=timedelta(minutes=5))
        after = await engine.compute(store, "u", NOW + timedelta(days=2))
        assert after.overall_rating > first_rating + 3
        assert after.trend == "up"

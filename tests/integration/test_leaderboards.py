"""Accuracy and rating leaderboards, and weighted consensus."""

from __future__ import annotations

from datetime import timedelta

import pytest

from clutch.db.models import User
from clutch.leaderboard.service import (
    accuracy_leaderboard,
    get_consensus,
    rating_leaderboard,
    timeframe_start,
    vote_weight,
)
from clutch.reputation.engine import ReputationAggregator
from clutch.store.base import CORRECT, INCORRECT
from tests.conftest import NOW, make_prediction, seed_graded


async def rate(store, user_id, rating, total=60, tier="elite"):
    return await store.upsert_rating({
        "user_id": user_id,
        "overall_rating": rating,
        "accuracy_component": rating,
        "consistency_component": rating,
        "volume_component": rating,
        "breadth_component": rating,
        "tier": tier,
        "trend": "stable",
        "total_graded_calls": total,
        "computation_inputs": {},
        "updated_at": NOW,
    })


class TestTimeframes:
    def test_windows(self):
        assert timeframe_start("weekly", NOW) == NOW - timedelta(days=7)
        assert timeframe_start("season", NOW).isoformat() == "2026-01-01T00:00:00+00:00"
        assert timeframe_start("all", NOW) is None

    def test_unknown(self):
        with pytest.raises(ValueError):
            timeframe_start("monthly", NOW)


class TestAccuracyLeaderboard:
    @pytest.mark.asyncio
    async def test_ranking_and_floor(self, store):
        await seed_graded(store, "alice", [CORRECT, CORRECT, CORRECT, INCORRECT])
        await seed_graded(store, "bob", [CORRECT, CORRECT, CORRECT, CORRECT, INCORRECT, INCORRECT])
        await seed_graded(store, "carol", [CORRECT, CORRECT])  # below the weekly floor of 3
        await seed_graded(store, "dave", [CORRECT, INCORRECT, CORRECT, INCORRECT])

        entries = await accuracy_leaderboard(store, timeframe="weekly", now=NOW)
        assert [e.user_id for e in entries] == ["alice", "bob", "dave"]
        assert [e.rank for e in entries] == [1, 2, 3]
        assert entries[0].accuracy == 0.75

    @pytest.mark.asyncio
    async def test_all_time_floor_is_higher(self, store):
        await seed_graded(store, "steady", [CORRECT] * 4 + [INCORRECT])
        await seed_graded(store, "newcomer", [CORRECT] * 4)
        weekly = await accuracy_leaderboard(store, timeframe="weekly", now=NOW)
        assert [e.user_id for e in weekly] == ["newcomer", "steady"]
        for timeframe in ("season", "all"):
            entries = await accuracy_leaderboard(store, timeframe=timeframe, now=NOW)
            assert [e.user_id for e in entries] == ["steady"]

    @pytest.mark.asyncio
    async def test_ties_break_on_correct_count(self, store):
        await seed_graded(store, "small", [CORRECT, CORRECT, CORRECT, INCORRECT])
        await seed_graded(store, "big", [CORRECT] * 6 + [INCORRECT] * 2)
        entries = await accuracy_leaderboard(store, timeframe="weekly", now=NOW)
        assert [e.user_id for e in entries] == ["big", "small"]

    @pytest.mark.asyncio
    async def test_weekly_window(self, store):
        await seed_graded(store, "recent", [CORRECT] * 5)
        await seed_graded(store, "old", [CORRECT] * 5, start=NOW - timedelta(days=30))
        weekly = await accuracy_leaderboard(store, timeframe="weekly", now=NOW)
        everything = await accuracy_leaderboard(store, timeframe="all", now=NOW)
        assert [e.user_id for e in weekly] == ["recent"]
        assert {e.user_id for e in everything} == {"recent", "old"}

    @pytest.mark.asyncio
    async def test_league_floor_is_lower(self, store):
        await seed_graded(store, "solo", [CORRECT], league_id="league-9")
        assert await accuracy_leaderboard(store, now=NOW) == []
        entries = await accuracy_leaderboard(store, league_id="league-9", now=NOW)
        assert [e.user_id for e in entries] == ["solo"]

    @pytest.mark.asyncio
    async def test_sport_filter(self, store):
        await seed_graded(store, "hoops", [CORRECT] * 5, sport="nba")
        await seed_graded(store, "gridiron", [CORRECT] * 5)
        entries = await accuracy_leaderboard(store, sport="nba", now=NOW)
        assert [e.user_id for e in entries] == ["hoops"]

    @pytest.mark.asyncio
    async def test_enriched_with_profile_and_reputation(self, store):
        await seed_graded(store, "alice", [CORRECT] * 5)
        store.add_user(User(id="alice", display_name="Alice", avatar_url=None, role="user"))
        await ReputationAggregator().recompute(store, "alice", now=NOW)
        entry = (await accuracy_leaderboard(store, now=NOW))[0]
        assert entry.display_name == "Alice"
        assert entry.tier == "rookie"
        assert entry.streak_best == 5

    @pytest.mark.asyncio
    async def test_offset_ranks(self, store):
        for n in range(4):
            await seed_graded(store, f"user-{n}", [CORRECT] * (5 + n))
        page = await accuracy_leaderboard(store, limit=2, offset=2, now=NOW)
        assert [e.rank for e in page] == [3, 4]


class TestRatingLeaderboard:
    @pytest.mark.asyncio
    async def test_rated_users_only(self, store):
        await rate(store, "top", 88)
        await rate(store, "mid", 64, tier="solid")
        await rate(store, "thin", 90, total=3)
        await store.upsert_rating({
            "user_id": "rookie",
            "overall_rating": None,
            "tier": "developing",
            "trend": "stable",
            "total_graded_calls": 20,
            "updated_at": NOW,
        })
        entries = await rating_leaderboard(store, min_graded=5)
        assert [(e.rank, e.user_id, e.overall_rating) for e in entries] == [(1, "top", 88), (2, "mid", 64)]


class TestConsensus:
    @pytest.mark.asyncio
    async def test_empty(self, store):
        result = await get_consensus(store, "evt-1", "player-1", "player_benchmark")
        assert result.total == 0
        assert result.consensus == {}
        assert result.top_managers is None

    @pytest.mark.asyncio
    async def test_weighted_by_rating(self, store):
        for n in range(6):
            await store.add_prediction(make_prediction(user_id=f"fan-{n}"))
        for n in range(4):
            await store.add_prediction(make_prediction(
                user_id=f"pro-{n}",
                claim={"stat": "rush_yds", "direction": "under", "benchmark_value": 60.5},
            ))
            await rate(store, f"pro-{n}", 100)

        result = await get_consensus(store, "evt-1", "player-1", "player_benchmark")
        assert result.total == 10
        assert result.consensus == {"over": 60, "under": 40}
        assert result.weighted["under"] > 40
        assert result.weighted == {"over": 13, "under": 87}
        assert result.top_managers.label == "4 of 4 top managers say under"

    @pytest.mark.asyncio
    async def test_private_predictions_excluded(self, store):
        await store.add_prediction(make_prediction(user_id="a"))
        await store.add_prediction(make_prediction(user_id="b", is_public=False))
        result = await get_consensus(store, "evt-1", "player-1", "player_benchmark")
        assert result.total == 1

    @pytest.mark.asyncio
    async def test_top_manager_split(self, store):
        await store.add_prediction(make_prediction(user_id="a"))
        await store.add_prediction(make_prediction(user_id="b"))
        await store.add_prediction(make_prediction(
            user_id="c", claim={"stat": "rush_yds", "direction": "under", "benchmark_value": 60.5}
        ))
        await store.add_prediction(make_prediction(user_id="d"))
        await rate(store, "a", 75)
        await rate(store, "b", 71)
        await rate(store, "c", 90)
        await rate(store, "d", 65, tier="solid")
        result = await get_consensus(store, "evt-1", "player-1", "player_benchmark")
        assert result.top_managers.total == 3
        assert result.top_managers.label == "2 of 3 top managers say over"

    def test_vote_weight(self):
        assert vote_weight(None) == 1.0
        assert vote_weight(type("R", (), {"overall_rating": 5})()) == 1.0
        assert vote_weight(type("R", (), {"overall_rating": 73})()) == 7.3

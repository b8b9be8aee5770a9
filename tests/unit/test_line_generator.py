"""Prop line math and candidate selection."""

from __future__ import annotations

import pytest

from clutch.config import LineConfig
from clutch.lines.generator import (
    build_candidates,
    generate_line,
    recent_games,
    round_to_half,
    weighted_average,
)
from tests.conftest import make_event, make_stat


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "line"),
        [(62.2, 62.0), (62.25, 62.5), (62.6, 62.5), (62.75, 63.0), (0.74, 0.5), (0.0, 0.0)],
    )
    def test_round_to_half(self, value, line):
        assert round_to_half(value) == line


class TestWeightedAverage:
    def test_single_game(self):
        assert weighted_average([80.0]) == 80.0

    def test_recent_game_weighs_more(self):
        # 100 now, 50 last week: (100 + 45) / 1.9
        assert weighted_average([100.0, 50.0]) == pytest.approx(145 / 1.9)

    def test_missing_values_keep_their_slot(self):
        # Third game keeps weight 0.81 even though the second is missing.
        assert weighted_average([10.0, None, 20.0]) == pytest.approx((10 + 20 * 0.81) / 1.81)

    def test_nothing_present(self):
        assert weighted_average([None, None]) is None
        assert generate_line([]) is None

    def test_generate_line_rounds(self):
        assert generate_line([60.0, 70.0, 55.0]) == round_to_half(weighted_average([60.0, 70.0, 55.0]))


def _history(player, weeks_values, field="rush_yds", **overrides):
    return [make_stat(player, f"g{week}", week, {field: value}, **overrides) for week, value in weeks_values]


class TestRecentGames:
    def test_most_recent_first_and_capped(self):
        stats = _history("p1", [(w, w * 10) for w in range(1, 13)])
        games = recent_games(stats, 10)["p1"]
        assert [g.week for g in games] == list(range(12, 2, -1))


class TestBuildCandidates:
    events = [make_event("evt-7", week=7, home_team="KC", away_team="BUF")]

    def test_rb_lines(self):
        stats = _history("rb1", [(4, 70), (5, 80), (6, 90)])
        candidates, _ = build_candidates(stats, self.events, LineConfig())
        rushing = [c for c in candidates if c.stat.stat_type == "rushing_yards"]
        assert len(rushing) == 1
        line = rushing[0]
        assert line.subject_id == "rb1"
        assert line.event_id == "evt-7"
        assert line.line_value == round_to_half((90 + 80 * 0.9 + 70 * 0.81) / 2.71)
        assert line.generated_from["method"] == "weighted_average"
        assert line.generated_from["sample_size"] == 3
        assert line.generated_from["season_avg"] == 80.0

    def test_needs_three_games(self):
        stats = _history("rb1", [(5, 80), (6, 90)])
        candidates, _ = build_candidates(stats, self.events, LineConfig())
        assert candidates == []

    def test_team_not_playing(self):
        stats = _history("rb1", [(4, 70), (5, 80), (6, 90)], team="NYJ")
        candidates, _ = build_candidates(stats, self.events, LineConfig())
        assert candidates == []

    def test_below_floor_suppressed(self):
        # RB rushing floor is 30
        stats = _history("rb1", [(4, 20), (5, 25), (6, 22)])
        candidates, suppressed = build_candidates(stats, self.events, LineConfig())
        assert not [c for c in candidates if c.stat.stat_type == "rushing_yards"]
        assert suppressed >= 1

    def test_untracked_position_ignored(self):
        stats = _history("k1", [(4, 70), (5, 80), (6, 90)], position="K")
        assert build_candidates(stats, self.events, LineConfig())[0] == []

    def test_cap_keeps_highest_lines(self):
        stats = []
        for n in range(7):
            stats += _history(f"rb{n}", [(4, 40 + n * 10), (5, 40 + n * 10), (6, 40 + n * 10)])
        config = LineConfig(max_props_per_position=5)
        candidates, suppressed = build_candidates(stats, self.events, config)
        rushing = [c for c in candidates if c.stat.stat_type == "rushing_yards"]
        assert len(rushing) == 5
        assert {c.subject_id for c in rushing} == {"rb2", "rb3", "rb4", "rb5", "rb6"}
        assert suppressed >= 2

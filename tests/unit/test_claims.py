"""Claim payload schemas, one per prediction type."""

import pytest

from clutch.predictions.claims import (
    BenchmarkClaim,
    ClaimError,
    WeeklyWinnerClaim,
    claim_confidence,
    claim_side,
    parse_claim,
)


class TestParseClaim:
    def test_benchmark_claim(self):
        claim = parse_claim("player_benchmark", {"stat": "rush_yds", "direction": "over", "benchmark_value": 60.5})
        assert isinstance(claim, BenchmarkClaim)
        assert claim.benchmark_value == 60.5
        assert claim.side == "over"

    def test_benchmark_value_coerced_from_int(self):
        claim = parse_claim("player_benchmark", {"stat": "position", "direction": "better", "benchmark_value": 10})
        assert claim.benchmark_value == 10.0

    def test_extra_fields_kept(self):
        claim = parse_claim(
            "player_benchmark",
            {"stat": "rush_yds", "direction": "under", "benchmark_value": 60.5, "description": "O/U 60.5"},
        )
        assert claim.model_dump()["description"] == "O/U 60.5"

    def test_missing_benchmark_value_rejected(self):
        with pytest.raises(ClaimError, match="benchmark_value"):
            parse_claim("player_benchmark", {"stat": "rush_yds", "direction": "over"})

    def test_bad_direction_rejected(self):
        with pytest.raises(ClaimError):
            parse_claim("player_benchmark", {"stat": "rush_yds", "direction": "sideways", "benchmark_value": 1})

    def test_performance_call_start_sit(self):
        assert parse_claim("performance_call", {"direction": "start"}).side == "start"
        with pytest.raises(ClaimError):
            parse_claim("performance_call", {"direction": "over"})

    def test_weekly_winner_side_is_pick(self):
        claim = parse_claim("weekly_winner", {"pick": "KC"})
        assert isinstance(claim, WeeklyWinnerClaim)
        assert claim.side == "KC"

    def test_bold_call_requires_statement(self):
        with pytest.raises(ClaimError):
            parse_claim("bold_call", {"direction": "over"})
        assert parse_claim("bold_call", {"statement": "300 yards", "direction": "over"}).side == "over"

    def test_unknown_type_rejected(self):
        with pytest.raises(ClaimError, match="Invalid prediction type"):
            parse_claim("parlay", {})

    def test_none_payload_is_empty(self):
        with pytest.raises(ClaimError):
            parse_claim("weekly_winner", None)

    def test_invalid_confidence_rejected(self):
        with pytest.raises(ClaimError):
            parse_claim("performance_call", {"direction": "sit", "confidence": "extreme"})


class TestHelpers:
    def test_claim_side_tolerates_bad_payload(self):
        assert claim_side("player_benchmark", {"direction": "over"}) is None

    def test_claim_side_for_action(self):
        assert claim_side("performance_call", {"direction": "sit"}) == "sit"

    def test_claim_confidence(self):
        assert claim_confidence({"confidence": "high"}) == "high"
        assert claim_confidence({"confidence": "huge"}) is None
        assert claim_confidence(None) is None

"""Prop line math: recency-weighted averages rounded to clean half-point lines.

Pure functions only; ``clutch.lines.service`` does the loading and storing.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from clutch.config import LineConfig, PropStat
from clutch.db.models import PlayerGameStat, SportEvent


@dataclass(frozen=True)
class LineCandidate:
    subject_id: str
    position: str
    team: str | None
    event_id: str
    locks_at: datetime | None
    stat: PropStat
    line_value: float
    generated_from: dict[str, Any]


def round_to_half(value: float) -> float:
    """Nearest 0.5, halves rounding up (62.25 -> 62.5, 62.75 -> 63.0)."""
    return math.floor(value * 2 + 0.5) / 2


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def weighted_average(values: Sequence[float | None], decay: float = 0.9) -> float | None:
    """Average of ``values`` (most recent first) with weight decay**i.

    A missing value keeps its slot, so the games after it still get the
    weight for their position. None if nothing is present.
    """
    weighted_sum = 0.0
    total_weight = 0.0
    for i, value in enumerate(values):
        if value is None:
            continue
        weight = decay**i
        weighted_sum += value * weight
        total_weight += weight
    if total_weight == 0:
        return None
    return weighted_sum / total_weight


def generate_line(values: Sequence[float | None], decay: float = 0.9) -> float | None:
    avg = weighted_average(values, decay)
    return None if avg is None else round_to_half(avg)


def _mean(values: Sequence[float | None]) -> float:
    # Missing values count as zero, matching how a box score reads.
    return round(sum(v or 0.0 for v in values) / len(values), 2) if values else 0.0


def recent_games(stats: Iterable[PlayerGameStat], max_games: int) -> dict[str, list[PlayerGameStat]]:
    """Group stat lines by player, most recent week first, capped at ``max_games``."""
    by_player: dict[str, list[PlayerGameStat]] = {}
    for s in sorted(stats, key=lambda s: (s.player_id, -s.week)):
        games = by_player.setdefault(s.player_id, [])
        if len(games) < max_games:
            games.append(s)
    return by_player


def build_candidates(
    history: Iterable[PlayerGameStat],
    events: Iterable[SportEvent],
    config: LineConfig,
) -> tuple[list[LineCandidate], int]:
    """Lines for every eligible player this week, plus the count suppressed.

    A player is eligible when their latest team plays this week and they
    have at least ``min_games`` prior games. Lines below the stat's floor
    are suppressed, and each (position, stat) keeps only its
    ``max_props_per_position`` highest lines.
    """
    event_by_team: dict[str, SportEvent] = {}
    for event in events:
        for team in (event.home_team, event.away_team):
            if team:
                event_by_team[team] = event

    grouped: dict[tuple[str, str], list[LineCandidate]] = {}
    suppressed = 0
    for player_id, games in recent_games(history, config.max_games).items():
        latest = games[0]
        position = (latest.position or "").upper()
        stats = config.positions.get(position)
        event = event_by_team.get(latest.team or "")
        if not stats or event is None or len(games) < config.min_games:
            continue

        for stat in stats:
            values = [_number((g.stats or {}).get(stat.stat_field)) for g in games]
            line_value = generate_line(values, config.decay)
            if line_value is None or line_value < stat.min_average:
                suppressed += 1
                continue
            grouped.setdefault((position, stat.stat_type), []).append(LineCandidate(
                subject_id=player_id,
                position=position,
                team=latest.team,
                event_id=event.id,
                locks_at=event.starts_at,
                stat=stat,
                line_value=line_value,
                generated_from={
                    "method": "weighted_average",
                    "sample_size": len(games),
                    "season_avg": _mean(values),
                    "last3_avg": _mean(values[:3]),
                },
            ))

    candidates: list[LineCandidate] = []
    for group in grouped.values():
        group.sort(key=lambda c: (-c.line_value, c.subject_id))
        candidates.extend(group[: config.max_props_per_position])
        suppressed += max(0, len(group) - config.max_props_per_position)
    return candidates, suppressed

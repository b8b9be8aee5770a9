"""Weekly prop line jobs: generate lines before kickoff, resolve them after.

Predictions attach to a line by using the line id as their ``event_id``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from clutch.config import LineConfig
from clutch.db.models import Prediction, PropLine
from clutch.lines.generator import build_candidates
from clutch.predictions.claims import claim_side
from clutch.rating.engine import ClutchRatingEngine
from clutch.reputation.engine import ReputationAggregator
from clutch.resolution.service import ResolutionSummary, announce_resolution, grade_pending, refresh_many
from clutch.resolution.verdicts import Resolver, Verdict, effective_direction, line_verdict
from clutch.store.base import PredictionStore

logger = logging.getLogger(__name__)


@dataclass
class LineGenerationSummary:
    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class LineResolutionSummary:
    lines_resolved: int = 0
    lines_skipped: int = 0
    predictions_resolved: int = 0
    errors: list[str] = field(default_factory=list)


def line_result(actual: float, line_value: float) -> str:
    if actual > line_value:
        return "over"
    if actual < line_value:
        return "under"
    return "push"


def _stat_fields(config: LineConfig) -> dict[str, str]:
    return {s.stat_type: s.stat_field for stats in config.positions.values() for s in stats}


async def generate_lines(
    store: PredictionStore,
    sport: str,
    season: int,
    week: int,
    *,
    config: LineConfig | None = None,
    now: datetime | None = None,
) -> LineGenerationSummary:
    """Create or refresh this week's lines. Re-running updates in place."""
    config = config or LineConfig()
    if now is None:
        now = datetime.now(timezone.utc)
    summary = LineGenerationSummary()

    events = await store.week_events(sport, season, week)
    if not events:
        summary.errors.append("No games found for this week")
        return summary

    history = await store.season_stats_before(sport, season, week)
    candidates, summary.skipped = build_candidates(history, events, config)

    for c in candidates:
        try:
            async with store.savepoint():
                await store.upsert_line({
                    "id": str(uuid.uuid4()),
                    "sport": sport,
                    "season": season,
                    "week": week,
                    "subject_id": c.subject_id,
                    "event_id": c.event_id,
                    "team": c.team,
                    "stat_type": c.stat.stat_type,
                    "line_value": c.line_value,
                    "description": f"{c.stat.label} O/U {c.line_value}",
                    "generated_from": c.generated_from,
                    "locks_at": c.locks_at,
                    "is_active": True,
                    "created_at": now,
                })
        except Exception as e:
            logger.warning("Line upsert failed for %s %s", c.subject_id, c.stat.stat_type, exc_info=True)
            summary.errors.append(f"{c.subject_id} {c.stat.stat_type}: {e}")
            continue
        summary.created += 1

    await store.commit()
    logger.info(
        "%s week %d/%d: %d lines created, %d skipped, %d errors",
        sport,
        season,
        week,
        summary.created,
        summary.skipped,
        len(summary.errors),
    )
    return summary


def _line_resolver(line: PropLine) -> Resolver:
    async def resolve(prediction: Prediction) -> Verdict | None:
        direction = claim_side(prediction.prediction_type, prediction.claim)
        if direction is None:
            return None
        return line_verdict(line.result or "push", effective_direction(line.stat_type, direction))

    return resolve


async def resolve_lines(
    store: PredictionStore,
    sport: str,
    season: int,
    week: int,
    *,
    config: LineConfig | None = None,
    now: datetime | None = None,
    reputation: ReputationAggregator | None = None,
    rating: ClutchRatingEngine | None = None,
) -> LineResolutionSummary:
    """Settle the week's open lines and grade the picks made on them.

    A line without a recorded stat stays open and is counted as skipped.
    Scores are refreshed once per affected user at the end.
    """
    config = config or LineConfig()
    if now is None:
        now = datetime.now(timezone.utc)
    fields = _stat_fields(config)
    summary = LineResolutionSummary()
    grading = ResolutionSummary()
    sports_by_user: dict[str, set[str]] = {}
    announced: list[Prediction] = []

    for line in await store.list_lines(sport, season, week, unresolved_only=True):
        stat_field = fields.get(line.stat_type)
        stat_line = await store.get_player_stat(line.subject_id, line.event_id) if line.event_id else None
        actual = (stat_line.stats or {}).get(stat_field) if stat_line is not None and stat_field else None
        if actual is None or isinstance(actual, bool):
            summary.lines_skipped += 1
            continue

        try:
            actual_value = float(actual)
        except (TypeError, ValueError):
            summary.lines_skipped += 1
            continue
        line.actual_value = actual_value
        line.result = line_result(actual_value, line.line_value)
        line.resolved_at = now
        await store.save_line(line)
        summary.lines_resolved += 1

        announced.extend(await grade_pending(store, line.id, _line_resolver(line), now, grading, sports_by_user))

    await store.commit()
    summary.predictions_resolved = grading.resolved
    summary.errors.extend(grading.errors)
    summary.errors.extend(await refresh_many(store, sports_by_user, now, reputation, rating))

    for prediction in announced:
        announce_resolution(prediction)
    logger.info(
        "%s week %d/%d: %d lines resolved, %d skipped, %d predictions graded",
        sport,
        season,
        week,
        summary.lines_resolved,
        summary.lines_skipped,
        summary.predictions_resolved,
    )
    return summary

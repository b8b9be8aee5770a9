"""ISO week helpers shared by the streak, consistency and leaderboard code."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone


def get_week_iso(dt: datetime) -> str:
    """Get ISO week string e.g. '2026-W09'. Uses %G-W%V (ISO year + ISO week)."""
    return dt.strftime("%G-W%V")


def get_monday(dt: datetime | date) -> date:
    """Get the Monday of the ISO week containing dt."""
    d = dt.date() if isinstance(dt, datetime) else dt
    return d - timedelta(days=d.weekday())


def longest_consecutive_weeks(timestamps: Iterable[datetime]) -> int:
    """Longest run of back-to-back ISO weeks that each contain a timestamp."""
    mondays = sorted({get_monday(ts) for ts in timestamps})
    if not mondays:
        return 0
    best = run = 1
    for prev, cur in zip(mondays, mondays[1:]):
        if cur - prev == timedelta(weeks=1):
            run += 1
            best = max(best, run)
        else:
            run = 1
    return best


def season_start(now: datetime) -> datetime:
    """Jan 1 00:00 UTC of the year containing ``now``."""
    return datetime.combine(date(now.year, 1, 1), time.min, tzinfo=timezone.utc)

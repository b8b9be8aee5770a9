"""Read side of the reputation cache."""

from __future__ import annotations

from dataclasses import dataclass, field

from clutch.db.models import UserReputation
from clutch.reputation.engine import ALL_SPORTS
from clutch.store.base import PredictionStore


@dataclass
class UserReputationView:
    overall: UserReputation | None = None
    by_sport: dict[str, UserReputation] = field(default_factory=dict)


async def get_user_reputation(store: PredictionStore, user_id: str) -> UserReputationView:
    """Split a user's cached rows into the all-sports row and one row per sport."""
    view = UserReputationView()
    for row in await store.list_reputations(user_id):
        if row.sport == ALL_SPORTS:
            view.overall = row
        else:
            view.by_sport[row.sport] = row
    return view

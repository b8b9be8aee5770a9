"""Shared test fixtures.

API tests run against the in-memory store through dependency overrides;
only tests marked with ``requires_postgres`` touch a real database.
"""

from __future__ import annotations

import os
import socket
import tempfile
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.engine import make_url

os.environ.setdefault("CLUTCH_STORAGE_BACKEND", "memory")
os.environ.setdefault("CLUTCH_LOG_FORMAT", "console")

from clutch import timeline  # noqa: E402
from clutch.auth.jwt import create_access_token, reset_keys  # noqa: E402
from clutch.config import get_settings  # noqa: E402
from clutch.db.models import PlayerGameStat, Prediction, SportEvent  # noqa: E402
from clutch.dependencies import get_store, get_store_factory  # noqa: E402
from clutch.main import create_app  # noqa: E402
from clutch.store.base import PENDING  # noqa: E402
from clutch.store.memory import MemoryPredictionStore  # noqa: E402

NOW = datetime(2026, 10, 14, 18, 0, tzinfo=timezone.utc)


def _ensure_test_keys() -> tuple[str, str]:
    """Generate an RSA key pair for signing test tokens if none is configured."""
    get_settings.cache_clear()
    settings = get_settings()
    if os.path.exists(settings.jwt_private_key_path) and os.path.exists(settings.jwt_public_key_path):
        return settings.jwt_private_key_path, settings.jwt_public_key_path

    tmpdir = tempfile.mkdtemp(prefix="clutch_test_keys_")
    private_path = os.path.join(tmpdir, "jwt_private.pem")
    public_path = os.path.join(tmpdir, "jwt_public.pem")

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    with open(private_path, "wb") as f:
        f.write(key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ))
    with open(public_path, "wb") as f:
        f.write(key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ))

    os.environ["CLUTCH_JWT_PRIVATE_KEY_PATH"] = private_path
    os.environ["CLUTCH_JWT_PUBLIC_KEY_PATH"] = public_path
    get_settings.cache_clear()
    reset_keys()
    return private_path, public_path


def postgres_available() -> bool:
    """True if something is listening on the configured database host/port."""
    url = make_url(get_settings().database_url)
    try:
        with socket.create_connection((url.host or "localhost", url.port or 5432), timeout=1):
            return True
    except OSError:
        return False


requires_postgres = pytest.mark.skipif(not postgres_available(), reason="PostgreSQL not reachable")


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_prediction(**overrides: Any) -> Prediction:
    """A PENDING benchmark prediction with every column set explicitly."""
    values: dict[str, Any] = {
        "id": None,
        "user_id": "user-1",
        "sport": "nfl",
        "prediction_type": "player_benchmark",
        "category": "weekly",
        "event_id": "evt-1",
        "subject_id": "player-1",
        "league_id": None,
        "claim": {"stat": "rush_yds", "direction": "over", "benchmark_value": 60.5},
        "is_public": True,
        "locks_at": None,
        "outcome": PENDING,
        "accuracy_score": None,
        "rationale": None,
        "confidence_level": None,
        "key_factors": None,
        "created_at": NOW - timedelta(days=1),
        "resolved_at": None,
    }
    values.update(overrides)
    return Prediction(**values)


def make_event(event_id: str = "evt-1", **overrides: Any) -> SportEvent:
    values: dict[str, Any] = {
        "id": event_id,
        "sport": "nfl",
        "season": 2026,
        "week": 6,
        "starts_at": NOW + timedelta(days=2),
        "status": "scheduled",
        "home_team": "KC",
        "away_team": "BUF",
        "result": {},
    }
    values.update(overrides)
    return SportEvent(**values)


def make_stat(player_id: str, event_id: str, week: int, stats: dict[str, Any], **overrides: Any) -> PlayerGameStat:
    values: dict[str, Any] = {
        "sport": "nfl",
        "season": 2026,
        "week": week,
        "event_id": event_id,
        "player_id": player_id,
        "position": "RB",
        "team": "KC",
        "status": "active",
        "stats": stats,
    }
    values.update(overrides)
    return PlayerGameStat(**values)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[MemoryPredictionStore, None]:
    """A fresh in-memory store. Drains timeline tasks on teardown."""
    yield MemoryPredictionStore()
    await timeline.drain()


@pytest.fixture
def token_for() -> Callable[..., dict[str, str]]:
    """Build an Authorization header for a user id and role."""
    _ensure_test_keys()

    def _headers(user_id: str = "user-1", role: str = "user") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}  # type: ignore[arg-type]

    return _headers


@pytest.fixture
def user_headers(token_for: Callable[..., dict[str, str]]) -> dict[str, str]:
    return token_for("user-1")


@pytest.fixture
def admin_headers(token_for: Callable[..., dict[str, str]]) -> dict[str, str]:
    return token_for("admin-1", "admin")


@pytest_asyncio.fixture
async def client(store: MemoryPredictionStore) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client wired to the in-memory ``store`` fixture."""
    _ensure_test_keys()
    app = create_app()

    async def _store_override() -> AsyncGenerator[MemoryPredictionStore, None]:
        yield store

    app.dependency_overrides[get_store] = _store_override
    app.dependency_overrides[get_store_factory] = lambda: store.session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def seed_graded(
    store: MemoryPredictionStore,
    user_id: str,
    outcomes: list[str],
    *,
    start: datetime | None = None,
    spacing: timedelta = timedelta(hours=12),
    **overrides: Any,
) -> list[Prediction]:
    """Insert already-graded predictions, oldest first, ``spacing`` apart."""
    start = start or NOW - spacing * len(outcomes)
    rows = []
    for i, outcome in enumerate(outcomes):
        at = start + spacing * i
        values: dict[str, Any] = {
            "user_id": user_id,
            "event_id": f"{user_id}-evt-{i}",
            "outcome": outcome,
            "accuracy_score": 1.0 if outcome == "CORRECT" else 0.0,
            "created_at": at - timedelta(hours=1),
            "resolved_at": at,
        }
        values.update(overrides)
        rows.append(await store.add_prediction(make_prediction(**values)))
    return rows

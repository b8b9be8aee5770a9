"""Middleware tests: request ID, rate limiting, CORS, error handling."""

from typing import Any

import pytest
from httpx import AsyncClient

from clutch.middleware import rate_limit
from clutch.middleware.error_handler import status_for
from clutch.predictions.service import (
    DuplicatePredictionError,
    PredictionLockedError,
    PredictionNotFoundError,
    PredictionValidationError,
)


class _CountingPipeline:
    def __init__(self, counts: dict[str, int]) -> None:
        self.counts = counts
        self.key = ""

    def incr(self, key: str) -> None:
        self.key = key

    def expire(self, key: str, seconds: int) -> None:
        pass

    async def execute(self) -> list[Any]:
        self.counts[self.key] = self.counts.get(self.key, 0) + 1
        return [self.counts[self.key], True]


class _CountingRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}

    def pipeline(self) -> _CountingPipeline:
        return _CountingPipeline(self.counts)


@pytest.fixture
def counting_redis(monkeypatch: pytest.MonkeyPatch) -> _CountingRedis:
    fake = _CountingRedis()
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake)
    return fake


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, counting_redis: _CountingRedis) -> None:
    """Rate limit headers are present on non-exempt endpoints."""
    response = await client.get("/version")
    assert response.headers["x-ratelimit-remaining"] == "99"
    assert response.headers["x-ratelimit-limit"] == "100"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient, counting_redis: _CountingRedis) -> None:
    """101st request returns 429 with Retry-After header."""
    for _ in range(100):
        await client.get("/version")
    response = await client.get("/version")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert "detail" in response.json()


@pytest.mark.asyncio
async def test_rate_limit_fails_open_without_redis(client: AsyncClient) -> None:
    """With no Redis the request goes through without limit headers."""
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient, counting_redis: _CountingRedis) -> None:
    """Health endpoint is exempt from rate limiting."""
    for _ in range(150):
        response = await client.get("/health")
        assert response.status_code == 200
    assert counting_redis.counts == {}


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/health",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert "access-control-allow-origin" in response.headers


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    """Unknown paths return 404 with JSON body."""
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.headers["content-type"] == "application/json"
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_validation_error_format(client: AsyncClient) -> None:
    response = await client.get("/api/v1/leaderboards/accuracy", params={"limit": 0})
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Validation error"
    assert data["errors"]


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (PredictionValidationError("bad claim"), 400),
        (PredictionLockedError("locked"), 409),
        (DuplicatePredictionError("dup"), 409),
        (PredictionNotFoundError("missing"), 404),
        (PermissionError("not yours"), 403),
        (ValueError("unknown timeframe"), 400),
        (RuntimeError("boom"), 500),
    ],
)
def test_domain_error_status(exc: Exception, status: int) -> None:
    assert status_for(exc) == status

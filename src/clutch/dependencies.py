"""Shared FastAPI dependencies and store factories."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import lru_cache

from clutch.config import get_settings
from clutch.database import get_session as _get_session
from clutch.database import get_session_factory
from clutch.redis_client import get_redis as _get_redis
from clutch.store.base import PredictionStore, StoreFactory
from clutch.store.memory import MemoryPredictionStore
from clutch.store.sql import SqlPredictionStore

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client as a FastAPI dependency."""
    yield _get_redis()


@lru_cache
def get_memory_store() -> MemoryPredictionStore:
    """Process-wide in-memory store for the ``memory`` backend."""
    return MemoryPredictionStore()


@asynccontextmanager
async def sql_store_session() -> AsyncGenerator[PredictionStore, None]:
    """Open a fresh session-backed store. One per concurrent unit of work."""
    async with get_session_factory()() as session:
        yield SqlPredictionStore(session)


def get_store_factory() -> StoreFactory:
    """Factory used by batch jobs that need one store per worker task."""
    if get_settings().storage_backend == "memory":
        return get_memory_store().session
    return sql_store_session


async def get_store() -> AsyncGenerator[PredictionStore, None]:
    """Yield the configured store (FastAPI dependency)."""
    async with get_store_factory()() as store:
        yield store

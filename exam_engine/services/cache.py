"""Read-through cache for exam statistics.

Statistics are recomputed from every graded submission of an exam, so a
dashboard polling GET /v1/exams/{id}/statistics would rescan the whole
submission set on each refresh.  We cache the rendered result instead.

  read:   cache -> hit  -> return
          cache -> miss -> compute -> store with TTL -> return
  write:  grading or review of a submission deletes the exam's entry

TTL AND EXPLICIT INVALIDATION
-----------------------------
We use both:

  - TTL (STATS_CACHE_TTL, default 300s) bounds how long a stale entry can
    survive if some write path forgets to invalidate.
  - Explicit delete on grade/review makes the common case consistent
    immediately.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from exam_engine.core.metrics import CACHE_OPERATIONS
from exam_engine.db.redis import redis_pool


def stats_key(exam_id: UUID | str) -> str:
    return f"stats:{exam_id}"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class InMemoryCacheService:
    """In-memory cache for dev and tests; no TTL enforcement.

    The autouse fixture in conftest.py clears the store between tests.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        CACHE_OPERATIONS.labels(operation="set").inc()
        self._store[key] = value

    async def delete(self, key: str) -> None:
        CACHE_OPERATIONS.labels(operation="delete").inc()
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache, shared across all API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(f"{self._PREFIX}{key}")
        CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        CACHE_OPERATIONS.labels(operation="set").inc()
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        CACHE_OPERATIONS.labels(operation="delete").inc()
        await self._redis.delete(f"{self._PREFIX}{key}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()

from __future__ import annotations

import asyncio
from uuid import uuid4

from prometheus_client import REGISTRY

from exam_engine.services.cache import (
    InMemoryCacheService,
    RedisCacheService,
    stats_key,
)


def _ops(operation: str) -> float:
    value = REGISTRY.get_sample_value(
        "cache_operations_total", {"operation": operation}
    )
    return value if value is not None else 0.0


def test_stats_key() -> None:
    exam_id = uuid4()
    assert stats_key(exam_id) == f"stats:{exam_id}"


def test_in_memory_cache_round_trip() -> None:
    cache = InMemoryCacheService()

    async def scenario() -> None:
        assert await cache.get("stats:a") is None
        await cache.set("stats:a", "{}", 60)
        assert await cache.get("stats:a") == "{}"
        await cache.delete("stats:a")
        assert await cache.get("stats:a") is None

    misses, hits = _ops("miss"), _ops("hit")
    asyncio.run(scenario())
    assert _ops("miss") - misses == 2
    assert _ops("hit") - hits == 1


class _FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


def test_redis_cache_namespaces_keys_and_sets_ttl() -> None:
    redis = _FakeRedis()
    cache = RedisCacheService(redis)
    key = stats_key("e1")

    async def scenario() -> None:
        await cache.set(key, "{}", 300)
        assert await cache.get(key) == "{}"
        await cache.delete(key)
        assert await cache.get(key) is None

    asyncio.run(scenario())
    assert redis.ttls == {"cache:stats:e1": 300}
    assert redis.data == {}

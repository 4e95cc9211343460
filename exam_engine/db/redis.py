"""Redis connection for the statistics cache.

Same shape as engine.py: REDIS_URL set -> a real connection pool;
unset (local dev, tests) -> redis_pool is None and the cache falls back
to its in-memory implementation.

Statistics are derived data.  Losing them on a Redis restart costs one
recomputation per exam, so Redis needs no persistence here.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from exam_engine.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Ping on startup, close the pool on shutdown.

    A failed ping is logged, not raised, so the API still starts.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, statistics cache is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")

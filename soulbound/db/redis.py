"""Redis connection management.

When REDIS_URL is configured we build one shared connection pool; when
it is not (local dev, tests) ``redis_pool`` is None and every consumer
falls back to its in-memory implementation.

Redis only holds derived, expendable data here: rate-limit buckets and
cached verification results.  The certificate ledger never lives in it,
so losing Redis costs throughput, not correctness.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from soulbound.core.config import SETTINGS

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
    """Ping Redis on startup and close the pool on shutdown.

    A failed ping is logged, not raised: the service still starts and
    runs on the in-memory fallbacks.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured; cache and rate limits are in-memory")
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

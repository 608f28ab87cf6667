"""Read-through cache for certificate verification lookups.

Verification is the public, unauthenticated hot path (employers and
admissions offices checking a token id), so results are cached:

    GET /v1/certificates/{id}/verify
      -> cache hit  -> return
      -> cache miss -> registry.verify_certificate -> populate -> return

Two invalidation mechanisms cover each other:

  1. TTL (VERIFY_CACHE_TTL seconds): the safety net.  A missed
     invalidation can serve a stale "valid" for at most this long.
  2. Explicit delete on revoke: the revoke endpoint drops the entry
     after the registry commits, so the next verify sees the change.
     A verify whose write raced that delete re-reads the registry after
     writing and drops its own entry if the certificate was revoked.

Only found certificates are cached.  A "not found" result is never
stored, otherwise a token id queried just before its mint would keep
reporting "does not exist" until the TTL ran out.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from soulbound.db.redis import redis_pool


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryCacheService:
    """Process-local cache that honours TTLs on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (value, expiry in clock seconds)
        self._store: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        self._store[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache shared by every API instance."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")


def verification_key(token_id: int) -> str:
    return f"verify:{token_id}"


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()

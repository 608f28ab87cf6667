"""Token-bucket rate limiting for registry writes.

Each caller owns a bucket of ``capacity`` tokens refilled at
``refill_rate`` tokens per second; every mutating request spends one.
Bursts up to the capacity go through (an issuer registering a cohort
then minting to it), while the long-run rate is capped by the refill.

Only two numbers are stored per key (tokens left, last refill time),
which keeps the Redis variant a single hash per caller.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Outcome of one bucket check.

    ``retry_after`` is the number of seconds until a token is available;
    it is 0 when the request is allowed.
    """

    allowed: bool
    remaining: int
    limit: int
    retry_after: float


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    capacity: int = 60
    refill_rate: float = 1.0


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


def _refill(tokens: float, elapsed: float, config: RateLimitConfig) -> float:
    return min(config.capacity, tokens + elapsed * config.refill_rate)


class InMemoryRateLimiter:
    """Per-process buckets.

    Behind a load balancer each instance would keep its own bucket for
    the same caller, so production deployments set REDIS_URL.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (tokens remaining, clock time of last refill)
        self._buckets: dict[str, tuple[float, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = self._clock()
        bucket = self._buckets.get(key)
        tokens = (
            float(config.capacity)
            if bucket is None
            else _refill(bucket[0], now - bucket[1], config)
        )

        if tokens >= 1:
            tokens -= 1
            self._buckets[key] = (tokens, now)
            return RateLimitResult(
                allowed=True,
                remaining=int(tokens),
                limit=config.capacity,
                retry_after=0,
            )

        self._buckets[key] = (tokens, now)
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.capacity,
            retry_after=(1 - tokens) / config.refill_rate,
        )

    async def reset(self, key: str) -> None:
        self._buckets.pop(key, None)


class RedisRateLimiter:
    """Buckets shared by every instance through Redis.

    The read-refill-spend-write cycle runs as one Lua script so two
    concurrent requests can never both spend the same token.
    """

    # KEYS[1] bucket key; ARGV capacity, refill_rate, now (seconds)
    # returns {allowed 0|1, remaining, retry_after_ms}
    _LUA_SCRIPT = """
    local key = KEYS[1]
    local capacity = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / refill_rate) + 60

    local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
    local tokens = tonumber(bucket[1])
    local last_refill = tonumber(bucket[2])

    if tokens == nil then
        tokens = capacity
    else
        tokens = math.min(capacity, tokens + (now - last_refill) * refill_rate)
    end

    if tokens >= 1 then
        tokens = tokens - 1
        redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
        redis.call('EXPIRE', key, ttl)
        return {1, math.floor(tokens), 0}
    end

    redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
    redis.call('EXPIRE', key, ttl)
    return {0, 0, math.ceil((1 - tokens) / refill_rate * 1000)}
    """

    _PREFIX = "ratelimit:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = None

    def _get_script(self):
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_SCRIPT)
        return self._script

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        allowed, remaining, retry_after_ms = await self._get_script()(
            keys=[f"{self._PREFIX}{key}"],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=int(remaining),
            limit=config.capacity,
            retry_after=retry_after_ms / 1000,
        )

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

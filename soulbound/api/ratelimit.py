"""Rate-limit dependency for mutating registry routes.

Applied per route rather than as middleware so reads (verify, health,
metrics) are never throttled while writes (register, issue, revoke,
role changes, pinning uploads) are.

Buckets are keyed by the caller address taken from the bearer token's
``sub`` claim, falling back to the client IP.  The claim is read
without verifying the signature; a forged token only earns its own
bucket, and require_caller still rejects it.
"""

from __future__ import annotations

import logging

import jwt as pyjwt
from fastapi import HTTPException, Request, status

from soulbound.core.metrics import RATE_LIMIT_HITS
from soulbound.db.redis import redis_pool
from soulbound.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

if redis_pool is not None:
    _rate_limiter: RateLimiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()

# Issuers mint a cohort at a time: a 30-request burst, then one every 2s.
WRITE_LIMIT = RateLimitConfig(capacity=30, refill_rate=0.5)


def require_rate_limit(config: RateLimitConfig = WRITE_LIMIT):
    """Dependency factory; use as ``dependencies=[Depends(require_rate_limit())]``."""

    async def _check(request: Request) -> None:
        key = _build_key(request)
        result: RateLimitResult = await _rate_limiter.check(key, config)

        if not result.allowed:
            RATE_LIMIT_HITS.labels(
                key_type="caller" if key.startswith("caller:") else "ip"
            ).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _build_key(request: Request) -> str:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = pyjwt.decode(auth_header[7:], options={"verify_signature": False})
        except pyjwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if isinstance(sub, str) and sub:
            return f"caller:{sub.lower()}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"

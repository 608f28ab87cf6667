from __future__ import annotations

import asyncio

from soulbound.services.cache import InMemoryCacheService, verification_key


def test_set_get_delete() -> None:
    cache = InMemoryCacheService()

    async def scenario() -> list[str | None]:
        await cache.set("verify:1", "v", 30)
        hit = await cache.get("verify:1")
        await cache.delete("verify:1")
        return [hit, await cache.get("verify:1")]

    assert asyncio.run(scenario()) == ["v", None]


def test_entries_expire_after_ttl() -> None:
    now = [1000.0]
    cache = InMemoryCacheService(clock=lambda: now[0])

    asyncio.run(cache.set("k", "v", 30))
    now[0] += 29
    assert asyncio.run(cache.get("k")) == "v"
    now[0] += 1
    assert asyncio.run(cache.get("k")) is None


def test_zero_ttl_disables_caching() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("k", "v", 0))
    assert asyncio.run(cache.get("k")) is None


def test_verification_key() -> None:
    assert verification_key(7) == "verify:7"

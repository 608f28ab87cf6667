"""Write endpoints share a per-caller token bucket (30 burst, 0.5/s)."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from soulbound.api import ratelimit
from tests.conftest import ALICE, BOB, DEPLOYER, auth


@pytest.fixture(autouse=True)
def frozen_bucket_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    # No refill between requests.
    if hasattr(ratelimit._rate_limiter, "_clock"):
        monkeypatch.setattr(ratelimit._rate_limiter, "_clock", lambda: 1000.0)


def _register(client: TestClient, caller: str = DEPLOYER):
    return client.post(
        "/v1/participants", json={"address": ALICE, "name": "Alice"}, headers=auth(caller)
    )


def test_burst_then_429(client: TestClient) -> None:
    statuses = [_register(client).status_code for _ in range(31)]

    assert statuses[0] == 201
    assert set(statuses[1:30]) == {409}
    assert statuses[30] == 429


def test_429_includes_retry_after_header(client: TestClient) -> None:
    for _ in range(30):
        _register(client)

    resp = _register(client)
    assert resp.status_code == 429
    assert int(resp.headers["retry-after"]) > 0
    assert resp.headers["x-ratelimit-limit"] == str(ratelimit.WRITE_LIMIT.capacity)


def test_429_is_counted(client: TestClient) -> None:
    def hits() -> float:
        return REGISTRY.get_sample_value("rate_limit_hits_total", {"key_type": "caller"}) or 0.0

    before = hits()
    for _ in range(32):
        _register(client)
    assert hits() - before == 2


def test_callers_have_separate_buckets(client: TestClient) -> None:
    for _ in range(31):
        _register(client)

    resp = client.post(
        "/v1/participants", json={"address": BOB, "name": "Bob"}, headers=auth(ALICE)
    )
    # Refused by role, not by the limiter.
    assert resp.status_code == 403


def test_reads_are_not_limited(client: TestClient) -> None:
    for _ in range(40):
        assert client.get("/v1/certificates/1/verify").status_code == 200

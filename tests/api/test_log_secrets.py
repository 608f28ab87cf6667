"""Bearer tokens and pinning credentials never appear in log output."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from soulbound.services import pinning
from tests.conftest import ALICE, DEPLOYER, STRANGER, mint_token

PINNING_JWT = "pinata-jwt-s3cret-value"


def _all_log_text(caplog: pytest.LogCaptureFixture) -> str:
    return " ".join(r.getMessage() + " " + str(r.__dict__) for r in caplog.records)


def test_successful_write_does_not_log_bearer_token(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    token = mint_token(DEPLOYER)

    with caplog.at_level(logging.DEBUG):
        resp = client.post(
            "/v1/participants",
            json={"address": ALICE, "name": "Alice"},
            headers={"Authorization": f"Bearer {token}"},
        )

    assert resp.status_code == 201
    assert token not in _all_log_text(caplog), "Bearer token found in log output!"


def test_refused_write_does_not_log_bearer_token(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    token = mint_token(STRANGER)

    with caplog.at_level(logging.DEBUG):
        resp = client.post(
            "/v1/participants",
            json={"address": ALICE, "name": "Alice"},
            headers={"Authorization": f"Bearer {token}"},
        )

    assert resp.status_code == 403
    assert token not in _all_log_text(caplog), "Bearer token found in log output!"


def test_session_issue_does_not_log_token(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        resp = client.post("/v1/sessions", json={"address": DEPLOYER})

    token = resp.json()["access_token"]
    assert token not in _all_log_text(caplog), "Session token found in log output!"


def test_pinning_failure_does_not_log_jwt(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "bad credentials"})

    pinner = pinning.PinataPinningClient(
        "https://pinning.test",
        PINNING_JWT,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with caplog.at_level(logging.DEBUG), pytest.raises(pinning.PinningError):
        asyncio.run(pinner.pin_json({"name": "x"}))

    assert PINNING_JWT not in _all_log_text(caplog), "Pinning JWT found in log output!"

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from scripts.registry_cli import main
from tests.conftest import ALICE, DEPLOYER, mint_token


@pytest.fixture(autouse=True)
def _no_env_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REGISTRY_TOKEN", raising=False)


def _run(client: TestClient, *argv: str) -> int:
    return main(["--as", DEPLOYER, *argv], client=client)


def test_register_issue_verify_revoke(client: TestClient, capsys: pytest.CaptureFixture) -> None:
    assert _run(client, "register", ALICE, "Alice") == 0
    assert _run(client, "issue", ALICE, "ipfs://X", "sha256:ab", "2024-Q1") == 0
    out = capsys.readouterr().out
    assert "Participant registered." in out
    assert "Certificate issued. Token ID: 1" in out

    assert _run(client, "verify", "1") == 0
    out = capsys.readouterr().out
    assert "Certificate Details:" in out
    assert "  Valid: True" in out
    assert f"  Recipient: {ALICE}" in out
    assert "  Cohort: 2024-Q1" in out
    assert "  Issued At: 2023-11-14T22:13:20+00:00" in out

    assert _run(client, "certificates", ALICE) == 0
    assert "Found 1 certificate(s): 1" in capsys.readouterr().out

    assert _run(client, "revoke", "1") == 0
    assert _run(client, "verify", "1") == 0
    assert "  Valid: False" in capsys.readouterr().out


def test_add_issuer_and_check(client: TestClient, capsys: pytest.CaptureFixture) -> None:
    assert _run(client, "check-issuer", ALICE) == 0
    assert f"{ALICE} has issuer role: False" in capsys.readouterr().out

    assert _run(client, "add-issuer", ALICE) == 0
    assert "Issuer role granted." in capsys.readouterr().out

    assert _run(client, "add-issuer", ALICE) == 0
    assert "Already an issuer." in capsys.readouterr().out


def test_rejection_prints_reason_and_fails(
    client: TestClient, capsys: pytest.CaptureFixture
) -> None:
    assert _run(client, "issue", ALICE, "ipfs://X", "sha256:ab", "2024-Q1") == 1
    assert "Error: 409: Recipient not registered" in capsys.readouterr().err


def test_write_without_credentials_fails(
    client: TestClient, capsys: pytest.CaptureFixture
) -> None:
    assert main(["register", ALICE, "Alice"], client=client) == 1
    assert "REGISTRY_TOKEN or --as ADDR" in capsys.readouterr().err


def test_registry_token_env_is_used(
    client: TestClient, capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("REGISTRY_TOKEN", mint_token(DEPLOYER))

    assert main(["register", ALICE, "Alice"], client=client) == 0
    assert "Participant registered." in capsys.readouterr().out

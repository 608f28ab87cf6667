from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from soulbound.api import dependencies
from soulbound.api.ratelimit import _rate_limiter
from soulbound.core.config import SETTINGS
from soulbound.main import app
from soulbound.services import pinning, token_service
from soulbound.services.cache import cache_service
from soulbound.services.registry import CertificateRegistry

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# The deployer holds admin and issuer from construction.
DEPLOYER = SETTINGS.deployer_address
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
STRANGER = "0x" + "5e" * 20

START_TIME = 1_700_000_000


class FakeClock:
    """Deterministic block time; advance it explicitly."""

    def __init__(self, start: int = START_TIME) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def registry(clock: FakeClock) -> CertificateRegistry:
    """A fresh deployment per test; the API serves this same instance."""
    return dependencies.reset_registry(clock=clock)


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_pinning() -> None:
    if hasattr(pinning.pinning_client, "_store"):
        pinning.pinning_client._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(address: str = DEPLOYER, chain_id: int | None = None) -> str:
    """Create a valid ES256 caller token for testing."""
    return token_service.create_access_token(
        sub=address,
        chain_id=SETTINGS.chain_id if chain_id is None else chain_id,
    )


def auth(address: str = DEPLOYER, chain_id: int | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(address, chain_id)}"}

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from soulbound.models.address import normalize_address

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

# Hardhat's first dev account; only meaningful for local runs.
_DEV_DEPLOYER = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"


def _getenv(name: str, default: str) -> str:
    # Every variable is read stripped; callers own validation.
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: str) -> int:
    raw = _getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def parse_public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Parse the PEM-encoded P-256 key that verifies caller tokens."""
    try:
        key = serialization.load_pem_public_key(pem.encode())
    except (ValueError, UnsupportedAlgorithm):
        key = None
    if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(
        key.curve, ec.SECP256R1
    ):
        raise ValueError("TOKEN_PUBLIC_KEY must be a PEM-encoded P-256 public key")
    return key


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    redis_url: str | None
    chain_id: int = 420420422
    chain_name: str = "Paseo Asset Hub"
    rpc_url: str = "https://testnet-passet-hub-eth-rpc.polkadot.io"
    explorer_url: str = "https://blockscout-passet-hub.parity-testnet.parity.io"
    native_currency_symbol: str = "PAS"
    deployer_address: str = _DEV_DEPLOYER
    registry_name: str = "Soulbound Certificate"
    registry_symbol: str = "SBC"
    pinning_api_url: str = "https://api.pinata.cloud"
    pinning_jwt: str | None = None
    verify_cache_ttl: int = 30
    token_public_key: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def chain_id_hex(self) -> str:
        return f"0x{self.chain_id:X}"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in ("true", "false", "1", "0"):
        raise ValueError(f"LOG_JSON must be true|false (got {log_json_raw!r})")

    port = _getenv_int("PORT", "8000")
    chain_id = _getenv_int("CHAIN_ID", "420420422")
    if chain_id <= 0:
        raise ValueError(f"CHAIN_ID must be positive (got {chain_id})")

    verify_cache_ttl = _getenv_int("VERIFY_CACHE_TTL", "30")
    if verify_cache_ttl < 0:
        raise ValueError(f"VERIFY_CACHE_TTL must be >= 0 (got {verify_cache_ttl})")

    deployer_raw = _getenv("DEPLOYER_ADDRESS", _DEV_DEPLOYER)
    try:
        deployer_address = normalize_address(deployer_raw)
    except ValueError:
        raise ValueError(
            f"DEPLOYER_ADDRESS must be a 0x-prefixed 20-byte hex address (got {deployer_raw!r})"
        ) from None

    # Single-line env values carry the PEM with literal \n separators.
    token_public_key = _getenv("TOKEN_PUBLIC_KEY", "").replace("\\n", "\n") or None
    if token_public_key is not None:
        parse_public_key(token_public_key)
    elif app_env_raw == "prod":
        raise ValueError("TOKEN_PUBLIC_KEY is required when APP_ENV=prod")

    registry_name = _getenv("REGISTRY_NAME", "Soulbound Certificate")
    registry_symbol = _getenv("REGISTRY_SYMBOL", "SBC")
    if not registry_name or not registry_symbol:
        raise ValueError("REGISTRY_NAME and REGISTRY_SYMBOL must be non-empty")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("true", "1"),
        port=port,
        redis_url=_getenv("REDIS_URL", "") or None,
        chain_id=chain_id,
        chain_name=_getenv("CHAIN_NAME", "Paseo Asset Hub"),
        rpc_url=_getenv("RPC_URL", "https://testnet-passet-hub-eth-rpc.polkadot.io"),
        explorer_url=_getenv(
            "EXPLORER_URL", "https://blockscout-passet-hub.parity-testnet.parity.io"
        ),
        native_currency_symbol=_getenv("NATIVE_CURRENCY_SYMBOL", "PAS"),
        deployer_address=deployer_address,
        registry_name=registry_name,
        registry_symbol=registry_symbol,
        pinning_api_url=_getenv("PINNING_API_URL", "https://api.pinata.cloud").rstrip("/"),
        pinning_jwt=_getenv("PINNING_JWT", "") or None,
        verify_cache_ttl=verify_cache_ttl,
        token_public_key=token_public_key,
    )


# Loaded once at import; tests build their own via load_settings().
SETTINGS = load_settings()

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from soulbound.core.config import AppEnv, Settings, load_settings, parse_public_key


def _public_pem(curve: ec.EllipticCurve | None = None) -> str:
    key = ec.generate_private_key(curve or ec.SECP256R1()).public_key()
    return key.public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode()


# ---- valid values ----


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_ENV", "LOG_LEVEL", "CHAIN_ID", "DEPLOYER_ADDRESS", "PINNING_JWT"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.chain_id == 420420422
    assert settings.chain_id_hex == "0x190F1B46"
    assert settings.pinning_jwt is None


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("TOKEN_PUBLIC_KEY", _public_pem())
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("CHAIN_ID", "1337")
    monkeypatch.setenv("REGISTRY_NAME", "Academy Certificate")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"
    assert settings.chain_id == 1337
    assert settings.registry_name == "Academy Certificate"


def test_load_settings_normalizes_case(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "PROD")
    monkeypatch.setenv("TOKEN_PUBLIC_KEY", _public_pem())
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("DEPLOYER_ADDRESS", "0x" + "AB" * 20)
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "debug"
    assert settings.deployer_address == "0x" + "ab" * 20


def test_load_settings_strips_whitespace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "  test  ")
    monkeypatch.setenv("PINNING_API_URL", " https://pinning.example/ ")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.pinning_api_url == "https://pinning.example"


def test_blank_optional_urls_are_none(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "   ")
    monkeypatch.setenv("PINNING_JWT", "")
    settings = load_settings()
    assert settings.redis_url is None
    assert settings.pinning_jwt is None


# ---- invalid values ----


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("APP_ENV", "", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("LOG_JSON", "yes", "LOG_JSON must be true|false"),
        ("PORT", "http", "PORT must be an integer"),
        ("CHAIN_ID", "0", "CHAIN_ID must be positive"),
        ("CHAIN_ID", "paseo", "CHAIN_ID must be an integer"),
        ("VERIFY_CACHE_TTL", "-1", "VERIFY_CACHE_TTL must be >= 0"),
        ("DEPLOYER_ADDRESS", "0x1234", "DEPLOYER_ADDRESS must be a 0x-prefixed"),
        ("REGISTRY_SYMBOL", " ", "REGISTRY_NAME and REGISTRY_SYMBOL must be non-empty"),
        ("TOKEN_PUBLIC_KEY", "not a pem", "TOKEN_PUBLIC_KEY must be a PEM-encoded P-256"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message.replace("|", r"\|")):
        load_settings()


# ---- token verification key ----


def test_prod_requires_token_public_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("TOKEN_PUBLIC_KEY", raising=False)
    with pytest.raises(ValueError, match="TOKEN_PUBLIC_KEY is required when APP_ENV=prod"):
        load_settings()


def test_prod_settings_carry_token_public_key(monkeypatch: pytest.MonkeyPatch) -> None:
    pem = _public_pem()
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("TOKEN_PUBLIC_KEY", pem)
    settings = load_settings()
    assert settings.token_public_key == pem.strip()
    assert isinstance(parse_public_key(settings.token_public_key), ec.EllipticCurvePublicKey)


def test_token_public_key_accepts_escaped_newlines(monkeypatch: pytest.MonkeyPatch) -> None:
    pem = _public_pem()
    monkeypatch.setenv("TOKEN_PUBLIC_KEY", pem.strip().replace("\n", "\\n"))
    assert load_settings().token_public_key == pem.strip()


def test_token_public_key_must_be_p256(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKEN_PUBLIC_KEY", _public_pem(ec.SECP384R1()))
    with pytest.raises(ValueError, match="PEM-encoded P-256"):
        load_settings()


def test_dev_without_token_public_key_signs_locally(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("TOKEN_PUBLIC_KEY", raising=False)
    assert load_settings().token_public_key is None


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev", chain_id: int = 420420422) -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        redis_url=None,
        chain_id=chain_id,
    )


@pytest.mark.parametrize("app_env", ["dev", "test", "prod"])
def test_settings_environment_flags(app_env: AppEnv) -> None:
    s = _make_settings(app_env)
    assert (s.is_dev, s.is_test, s.is_prod) == (
        app_env == "dev",
        app_env == "test",
        app_env == "prod",
    )


def test_chain_id_hex_is_upper_case_hex() -> None:
    assert _make_settings(chain_id=255).chain_id_hex == "0xFF"


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]

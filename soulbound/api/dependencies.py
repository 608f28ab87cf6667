from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from soulbound.core.config import SETTINGS
from soulbound.core.exceptions import (
    AlreadyRegistered,
    AlreadyRevoked,
    InvalidArgument,
    NonTransferable,
    NotFound,
    NotRegistered,
    RegistryError,
    Unauthorized,
)
from soulbound.db.ledger import Clock
from soulbound.models.address import normalize_address
from soulbound.models.principal import Principal
from soulbound.services import token_service
from soulbound.services.registry import CertificateRegistry, deploy_registry

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/sessions")


# ---------------------------------------------------------------------------
# Registry instance
# ---------------------------------------------------------------------------
# One registry per process, deployed from settings at import.  Endpoints
# take it through get_registry so tests can swap in a fresh deployment.


def _deploy(clock: Clock | None = None) -> CertificateRegistry:
    return deploy_registry(
        SETTINGS.deployer_address,
        name=SETTINGS.registry_name,
        symbol=SETTINGS.registry_symbol,
        clock=clock,
    )


_registry = _deploy()


def get_registry() -> CertificateRegistry:
    return _registry


def reset_registry(clock: Clock | None = None) -> CertificateRegistry:
    """Replace the process registry with a fresh deployment."""
    global _registry
    _registry = _deploy(clock)
    return _registry


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


def network_params() -> dict:
    """The parameters a wallet needs to switch to (or add) the network."""
    return {
        "chain_id": SETTINGS.chain_id,
        "chain_id_hex": SETTINGS.chain_id_hex,
        "chain_name": SETTINGS.chain_name,
        "rpc_url": SETTINGS.rpc_url,
        "explorer_url": SETTINGS.explorer_url,
        "native_currency": {
            "name": SETTINGS.native_currency_symbol,
            "symbol": SETTINGS.native_currency_symbol,
            "decimals": 18,
        },
    }


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


def require_caller(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the calling account.

    A token for another network is refused with 409 and the expected
    network parameters, before any registry operation runs.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    try:
        address = normalize_address(claims["sub"])
        chain_id = int(claims["chain_id"])
    except (ValueError, TypeError, AttributeError):
        logger.warning("Token with malformed subject or chain_id rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(address=address, chain_id=chain_id)
    if not principal.on_network(SETTINGS.chain_id):
        logger.warning(
            "Wrong network: caller=%s chain_id=%d expected=%d",
            address,
            chain_id,
            SETTINGS.chain_id,
            extra={"caller": address},
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "wrong_network",
                "reason": f"Please switch to {SETTINGS.chain_name}",
                "expected": network_params(),
            },
        )

    logger.debug("Token validated for caller=%s", address)
    return principal


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: dict[type[RegistryError], int] = {
    InvalidArgument: status.HTTP_422_UNPROCESSABLE_CONTENT,
    Unauthorized: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    AlreadyRegistered: status.HTTP_409_CONFLICT,
    NotRegistered: status.HTTP_409_CONFLICT,
    AlreadyRevoked: status.HTTP_409_CONFLICT,
    NonTransferable: status.HTTP_409_CONFLICT,
}


def registry_http_error(e: RegistryError) -> HTTPException:
    """Translate a registry rejection into its HTTP response.

    The registry has already logged and counted the rejection.
    """
    return HTTPException(
        status_code=_STATUS_BY_ERROR.get(type(e), status.HTTP_400_BAD_REQUEST),
        detail={"code": e.code, "reason": e.reason},
    )

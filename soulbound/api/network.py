"""Network parameters, registry info and dev sessions.

POST /v1/sessions stands in for a wallet signer in dev and test: it
issues a bearer token for any address on any chain id, which is
exactly what a wallet would let its owner do.  It answers 404 in prod
and whenever TOKEN_PUBLIC_KEY is set: tokens then come from the
wallet-login service that holds the matching private key.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from soulbound.api.dependencies import get_registry, network_params
from soulbound.core.config import SETTINGS
from soulbound.models.address import normalize_address
from soulbound.services import token_service
from soulbound.services.registry import CertificateRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["network"])


class RegistryOut(BaseModel):
    name: str
    symbol: str
    total_issued: int
    chain_id: int


class InterfaceOut(BaseModel):
    interface_id: str
    supported: bool


class SessionIn(BaseModel):
    address: str
    chain_id: int | None = None


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


@router.get("/network")
async def get_network() -> dict:
    return network_params()


@router.get("/registry", response_model=RegistryOut)
def get_registry_info(
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> RegistryOut:
    return RegistryOut(
        name=registry.name,
        symbol=registry.symbol,
        total_issued=registry.total_issued(),
        chain_id=SETTINGS.chain_id,
    )


@router.get("/registry/interfaces/{interface_id}", response_model=InterfaceOut)
def get_interface_support(
    interface_id: str,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> InterfaceOut:
    return InterfaceOut(
        interface_id=interface_id,
        supported=registry.supports_interface(interface_id),
    )


@router.post("/sessions", response_model=SessionOut, include_in_schema=False)
async def create_session(payload: SessionIn) -> SessionOut:
    if SETTINGS.is_prod or not token_service.SIGNS_LOCALLY:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    try:
        address = normalize_address(payload.address)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"code": "invalid_argument", "reason": "address is not a valid address"},
        ) from None

    chain_id = payload.chain_id if payload.chain_id is not None else SETTINGS.chain_id
    logger.info("Dev session issued caller=%s chain_id=%d", address, chain_id)
    return SessionOut(
        access_token=token_service.create_access_token(sub=address, chain_id=chain_id),
        expires_in=token_service.ACCESS_TOKEN_TTL_MIN * 60,
    )

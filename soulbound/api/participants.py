"""Participant registration and lookups.

- POST /v1/participants                         register (issuer only)
- GET  /v1/participants/{address}               record, or the unregistered default
- GET  /v1/participants/{address}/certificates  token ids in issuance order
- GET  /v1/participants/{address}/balance       number of certificates held
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from soulbound.api.dependencies import get_registry, registry_http_error, require_caller
from soulbound.api.ratelimit import require_rate_limit
from soulbound.core.exceptions import RegistryError
from soulbound.models.certificate import Participant
from soulbound.models.principal import Principal
from soulbound.services.registry import CertificateRegistry

router = APIRouter(prefix="/v1/participants", tags=["participants"])


class ParticipantIn(BaseModel):
    address: str
    name: str


class ParticipantOut(BaseModel):
    address: str
    name: str
    registered_at: int
    is_registered: bool

    @classmethod
    def of(cls, p: Participant) -> ParticipantOut:
        return cls(
            address=p.address,
            name=p.name,
            registered_at=p.registered_at,
            is_registered=p.is_registered,
        )


class HoldingsOut(BaseModel):
    address: str
    token_ids: list[int]


class BalanceOut(BaseModel):
    address: str
    balance: int


@router.post(
    "",
    response_model=ParticipantOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
def register_participant(
    payload: ParticipantIn,
    principal: Annotated[Principal, Depends(require_caller)],
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> ParticipantOut:
    try:
        participant = registry.register_participant(
            principal.address, payload.address, payload.name
        )
    except RegistryError as e:
        raise registry_http_error(e) from None
    return ParticipantOut.of(participant)


@router.get("/{address}", response_model=ParticipantOut)
def get_participant(
    address: str,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> ParticipantOut:
    return ParticipantOut.of(registry.participant(address))


@router.get("/{address}/certificates", response_model=HoldingsOut)
def get_participant_certificates(
    address: str,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> HoldingsOut:
    return HoldingsOut(
        address=address.strip().lower(),
        token_ids=registry.get_participant_certificates(address),
    )


@router.get("/{address}/balance", response_model=BalanceOut)
def get_balance(
    address: str,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> BalanceOut:
    try:
        balance = registry.balance_of(address)
    except RegistryError as e:
        raise registry_http_error(e) from None
    return BalanceOut(address=address.strip().lower(), balance=balance)

"""Certificate issuance, lookup, verification and revocation.

- POST /v1/certificates                      issue (issuer only)
- GET  /v1/certificates/{id}                 full record
- GET  /v1/certificates/{id}/verify          public check, read-through cached
- GET  /v1/certificates/{id}/locked          always true for an existing token
- GET  /v1/certificates/{id}/owner           recipient address
- GET  /v1/certificates/{id}/token-uri       metadata URI
- POST /v1/certificates/{id}/revoke          revoke (issuer only), drops the cache entry
- POST /v1/certificates/{id}/transfer        always refused: certificates are soulbound

Verification of a token id that was never issued answers 200 with the
"not found" shape (invalid, zero-address recipient, empty strings,
zero timestamp) rather than 404, so a verifier can tell "revoked"
(real recipient, invalid) from "never existed" (zero recipient).
"""

from __future__ import annotations

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from soulbound.api.dependencies import get_registry, registry_http_error, require_caller
from soulbound.api.ratelimit import require_rate_limit
from soulbound.core.config import SETTINGS
from soulbound.core.exceptions import RegistryError
from soulbound.core.metrics import CACHE_OPERATIONS
from soulbound.models.address import ZERO_ADDRESS
from soulbound.models.certificate import Certificate
from soulbound.models.principal import Principal
from soulbound.services.cache import cache_service, verification_key
from soulbound.services.registry import CertificateRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class IssueIn(BaseModel):
    recipient: str
    token_uri: str
    content_hash: str
    cohort: str = ""


class TransferIn(BaseModel):
    from_address: str
    to_address: str
    safe: bool = False
    data: str = ""  # opaque payload for the safe variant


class CertificateOut(BaseModel):
    token_id: int
    recipient: str
    content_hash: str
    cohort: str
    token_uri: str
    issued_at: int
    is_revoked: bool

    @classmethod
    def of(cls, cert: Certificate) -> CertificateOut:
        return cls(
            token_id=cert.token_id,
            recipient=cert.recipient,
            content_hash=cert.content_hash,
            cohort=cert.cohort,
            token_uri=cert.token_uri,
            issued_at=cert.issued_at,
            is_revoked=cert.is_revoked,
        )


class VerificationOut(BaseModel):
    is_valid: bool
    recipient: str
    content_hash: str
    cohort: str
    issued_at: int


class LockedOut(BaseModel):
    token_id: int
    locked: bool


class OwnerOut(BaseModel):
    token_id: int
    owner: str


class TokenUriOut(BaseModel):
    token_id: int
    token_uri: str


@router.post(
    "",
    response_model=CertificateOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
def issue_certificate(
    payload: IssueIn,
    principal: Annotated[Principal, Depends(require_caller)],
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> CertificateOut:
    try:
        token_id = registry.issue_certificate(
            principal.address,
            payload.recipient,
            payload.token_uri,
            payload.content_hash,
            payload.cohort,
        )
    except RegistryError as e:
        raise registry_http_error(e) from None
    return CertificateOut.of(registry.certificate(token_id))


@router.get("/{token_id}", response_model=CertificateOut)
def get_certificate(
    token_id: int,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> CertificateOut:
    try:
        return CertificateOut.of(registry.certificate(token_id))
    except RegistryError as e:
        raise registry_http_error(e) from None


@router.get("/{token_id}/verify", response_model=VerificationOut)
async def verify_certificate(
    token_id: int,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> VerificationOut:
    key = verification_key(token_id)

    cached = await cache_service.get(key)
    if cached is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return VerificationOut(**json.loads(cached))
    CACHE_OPERATIONS.labels(operation="miss").inc()

    v = registry.verify_certificate(token_id)
    result = VerificationOut(
        is_valid=v.is_valid,
        recipient=v.recipient,
        content_hash=v.content_hash,
        cohort=v.cohort,
        issued_at=v.issued_at,
    )
    if v.recipient == ZERO_ADDRESS:
        return result

    await cache_service.set(key, json.dumps(result.model_dump()), SETTINGS.verify_cache_ttl)

    # A revoke can commit and drop the key while the set is in flight.
    # Revocation is terminal, so re-reading once after the set is enough.
    if result.is_valid and not registry.verify_certificate(token_id).is_valid:
        await cache_service.delete(key)
    return result


@router.get("/{token_id}/locked", response_model=LockedOut)
def get_locked(
    token_id: int,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> LockedOut:
    try:
        return LockedOut(token_id=token_id, locked=registry.locked(token_id))
    except RegistryError as e:
        raise registry_http_error(e) from None


@router.get("/{token_id}/owner", response_model=OwnerOut)
def get_owner(
    token_id: int,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> OwnerOut:
    try:
        return OwnerOut(token_id=token_id, owner=registry.owner_of(token_id))
    except RegistryError as e:
        raise registry_http_error(e) from None


@router.get("/{token_id}/token-uri", response_model=TokenUriOut)
def get_token_uri(
    token_id: int,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> TokenUriOut:
    try:
        return TokenUriOut(token_id=token_id, token_uri=registry.token_uri(token_id))
    except RegistryError as e:
        raise registry_http_error(e) from None


@router.post(
    "/{token_id}/revoke",
    response_model=CertificateOut,
    dependencies=[Depends(require_rate_limit())],
)
async def revoke_certificate(
    token_id: int,
    principal: Annotated[Principal, Depends(require_caller)],
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> CertificateOut:
    try:
        await run_in_threadpool(registry.revoke_certificate, principal.address, token_id)
    except RegistryError as e:
        raise registry_http_error(e) from None

    # Committed: the cached "valid" answer is now wrong.
    await cache_service.delete(verification_key(token_id))
    return CertificateOut.of(registry.certificate(token_id))


@router.post(
    "/{token_id}/transfer",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_rate_limit())],
)
def transfer_certificate(
    token_id: int,
    payload: TransferIn,
    principal: Annotated[Principal, Depends(require_caller)],
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> None:
    try:
        if payload.safe:
            registry.safe_transfer_from(
                principal.address,
                payload.from_address,
                payload.to_address,
                token_id,
                payload.data.encode(),
            )
        else:
            registry.transfer_from(
                principal.address, payload.from_address, payload.to_address, token_id
            )
    except RegistryError as e:
        raise registry_http_error(e) from None

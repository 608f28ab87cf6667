"""Role administration.

- GET  /v1/roles                              members of every role
- GET  /v1/roles/{role}/members/{account}     has_role check
- POST /v1/roles/{role}/grant                 admin only
- POST /v1/roles/{role}/revoke                admin only
- POST /v1/roles/{role}/renounce              caller drops its own role

Granting a held role or revoking an absent one succeeds with
``changed: false`` and emits nothing.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from soulbound.api.dependencies import get_registry, registry_http_error, require_caller
from soulbound.api.ratelimit import require_rate_limit
from soulbound.core.exceptions import RegistryError
from soulbound.models.principal import Principal
from soulbound.services.access_control import ROLES
from soulbound.services.registry import CertificateRegistry

router = APIRouter(prefix="/v1/roles", tags=["roles"])


class AccountIn(BaseModel):
    account: str


class RenounceIn(BaseModel):
    confirmation: str


class RoleChangeOut(BaseModel):
    role: str
    account: str
    changed: bool


class HasRoleOut(BaseModel):
    role: str
    account: str
    has_role: bool


@router.get("")
def list_roles(
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> dict[str, list[str]]:
    return {role: registry.access.role_members(role) for role in ROLES}


@router.get("/{role}/members/{account}", response_model=HasRoleOut)
def has_role(
    role: str,
    account: str,
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> HasRoleOut:
    return HasRoleOut(
        role=role,
        account=account.strip().lower(),
        has_role=registry.has_role(role, account),
    )


@router.post(
    "/{role}/grant",
    response_model=RoleChangeOut,
    dependencies=[Depends(require_rate_limit())],
)
def grant_role(
    role: str,
    payload: AccountIn,
    principal: Annotated[Principal, Depends(require_caller)],
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> RoleChangeOut:
    try:
        changed = registry.grant_role(principal.address, role, payload.account)
    except RegistryError as e:
        raise registry_http_error(e) from None
    return RoleChangeOut(role=role, account=payload.account.strip().lower(), changed=changed)


@router.post(
    "/{role}/revoke",
    response_model=RoleChangeOut,
    dependencies=[Depends(require_rate_limit())],
)
def revoke_role(
    role: str,
    payload: AccountIn,
    principal: Annotated[Principal, Depends(require_caller)],
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> RoleChangeOut:
    try:
        changed = registry.revoke_role(principal.address, role, payload.account)
    except RegistryError as e:
        raise registry_http_error(e) from None
    return RoleChangeOut(role=role, account=payload.account.strip().lower(), changed=changed)


@router.post(
    "/{role}/renounce",
    response_model=RoleChangeOut,
    dependencies=[Depends(require_rate_limit())],
)
def renounce_role(
    role: str,
    payload: RenounceIn,
    principal: Annotated[Principal, Depends(require_caller)],
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
) -> RoleChangeOut:
    try:
        changed = registry.renounce_role(principal.address, role, payload.confirmation)
    except RegistryError as e:
        raise registry_http_error(e) from None
    return RoleChangeOut(role=role, account=principal.address, changed=changed)

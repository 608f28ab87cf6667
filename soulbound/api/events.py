"""Read access to the committed notification log.

GET /v1/events?name=CertificateIssued&recipient=0x...&from_sequence=10

Filters on indexed fields only; asking to filter on a field the named
event does not index is a 422.  Address-valued filters are compared in
lower case, the form the registry stores.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from soulbound.api.dependencies import get_registry
from soulbound.services.registry import CertificateRegistry

router = APIRouter(prefix="/v1/events", tags=["events"])

_ADDRESS_FILTERS = ("address", "recipient", "account", "sender", "from_address", "to_address")


class EventOut(BaseModel):
    sequence: int
    name: str
    args: dict[str, Any]


@router.get("", response_model=list[EventOut])
def list_events(
    registry: Annotated[CertificateRegistry, Depends(get_registry)],
    name: str | None = None,
    from_sequence: Annotated[int, Query(ge=0)] = 0,
    token_id: int | None = None,
    address: str | None = None,
    recipient: str | None = None,
    role: str | None = None,
    account: str | None = None,
    sender: str | None = None,
    from_address: str | None = None,
    to_address: str | None = None,
) -> list[EventOut]:
    filters: dict[str, Any] = {
        "token_id": token_id,
        "address": address,
        "recipient": recipient,
        "role": role,
        "account": account,
        "sender": sender,
        "from_address": from_address,
        "to_address": to_address,
    }
    indexed = {k: v for k, v in filters.items() if v is not None}
    for field in _ADDRESS_FILTERS:
        if field in indexed:
            indexed[field] = indexed[field].strip().lower()

    try:
        records = registry.events.query(name, from_sequence=from_sequence, **indexed)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"code": "invalid_argument", "reason": str(e)},
        ) from None

    return [EventOut(sequence=r.sequence, name=r.name, args=r.args()) for r in records]

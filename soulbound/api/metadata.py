"""Pin certificate documents and metadata to IPFS.

- POST /v1/metadata        JSON metadata blob  -> {uri, hash, cid}
- POST /v1/metadata/files  multipart file      -> {uri, hash, cid}

The typical issuer flow is: upload the document, put its ``ipfs://`` URI
in the metadata ``image``, upload the metadata, then issue with the
metadata URI as ``token_uri`` and its hash as ``content_hash``.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from pydantic import BaseModel

from soulbound.api.dependencies import require_caller
from soulbound.api.ratelimit import require_rate_limit
from soulbound.models.principal import Principal
from soulbound.services import pinning

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/metadata", tags=["metadata"])


class Attribute(BaseModel):
    trait_type: str
    value: str | int | float


class CertificateMetadata(BaseModel):
    name: str | None = None
    description: str | None = None
    image: str | None = None  # ipfs:// reference to the document
    attributes: list[Attribute] = []


class PinnedOut(BaseModel):
    uri: str
    hash: str
    cid: str


def _pinning_failed(e: pinning.PinningError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": "pinning_failed", "reason": str(e)},
    )


@router.post(
    "",
    response_model=PinnedOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
async def pin_metadata(
    payload: CertificateMetadata,
    principal: Annotated[Principal, Depends(require_caller)],
) -> PinnedOut:
    try:
        pinned = await pinning.pinning_client.pin_json(
            payload.model_dump(exclude_none=True)
        )
    except pinning.PinningError as e:
        raise _pinning_failed(e) from None
    logger.info("Metadata pinned cid=%s", pinned.cid, extra={"caller": principal.address})
    return PinnedOut(uri=pinned.uri, hash=pinned.hash, cid=pinned.cid)


@router.post(
    "/files",
    response_model=PinnedOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
async def pin_file(
    file: UploadFile,
    principal: Annotated[Principal, Depends(require_caller)],
) -> PinnedOut:
    data = await file.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail={"code": "invalid_argument", "reason": "File is empty"},
        )
    try:
        pinned = await pinning.pinning_client.pin_file(
            data, file.filename or "certificate", file.content_type
        )
    except pinning.PinningError as e:
        raise _pinning_failed(e) from None
    logger.info(
        "File pinned name=%s cid=%s bytes=%d",
        file.filename,
        pinned.cid,
        len(data),
        extra={"caller": principal.address},
    )
    return PinnedOut(uri=pinned.uri, hash=pinned.hash, cid=pinned.cid)

"""Content-addressed storage for certificate documents and metadata.

Issuers never put documents in the registry itself.  They upload the
document (and a small JSON metadata blob pointing at it) to IPFS via a
pinning service, then issue the certificate with

    token_uri    = "ipfs://<cid of the metadata>"
    content_hash = "sha256:<hex digest of the uploaded bytes>"

The hash is computed locally over exactly the bytes that were sent, so a
verifier can re-download the content and compare without trusting the
pinning service.  For JSON metadata the bytes are the compact
serialisation (no whitespace between separators).

Two implementations:

    PinataPinningClient    the Pinata HTTP API, authenticated with a JWT
    InMemoryPinningClient  dev/test; derives the CID from the digest

The module-level ``pinning_client`` is Pinata when PINNING_JWT is set,
otherwise the in-memory client.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from soulbound.core.config import SETTINGS
from soulbound.core.metrics import PINNING_UPLOADS

logger = logging.getLogger(__name__)


class PinningError(Exception):
    """The pinning service rejected an upload or could not be reached."""


@dataclass(frozen=True, slots=True)
class PinnedContent:
    uri: str
    hash: str
    cid: str


def content_digest(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


def metadata_bytes(metadata: dict[str, Any]) -> bytes:
    return json.dumps(metadata, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _pinned(cid: str, data: bytes) -> PinnedContent:
    return PinnedContent(uri=f"ipfs://{cid}", hash=content_digest(data), cid=cid)


@runtime_checkable
class PinningClient(Protocol):
    async def pin_file(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> PinnedContent: ...

    async def pin_json(self, metadata: dict[str, Any]) -> PinnedContent: ...


class InMemoryPinningClient:
    def __init__(self) -> None:
        self._store: dict[str, bytes] = {}

    def _put(self, data: bytes) -> str:
        cid = "bafk" + hashlib.sha256(data).hexdigest()[:52]
        self._store[cid] = data
        return cid

    async def pin_file(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> PinnedContent:
        PINNING_UPLOADS.labels(kind="file", outcome="ok").inc()
        return _pinned(self._put(data), data)

    async def pin_json(self, metadata: dict[str, Any]) -> PinnedContent:
        data = metadata_bytes(metadata)
        PINNING_UPLOADS.labels(kind="json", outcome="ok").inc()
        return _pinned(self._put(data), data)


class PinataPinningClient:
    """Pinata ``pinFileToIPFS`` / ``pinJSONToIPFS`` over httpx.

    Pass ``client`` to reuse a connection pool (or to inject a
    ``httpx.MockTransport`` in tests); otherwise one client is opened
    per upload.
    """

    def __init__(
        self,
        api_url: str,
        jwt: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._jwt = jwt
        self._client = client
        self._timeout = timeout

    async def pin_file(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> PinnedContent:
        files = {"file": (filename, data, content_type or "application/octet-stream")}
        form = {"pinataMetadata": json.dumps({"name": filename})}
        cid = await self._post("file", "/pinning/pinFileToIPFS", files=files, data=form)
        logger.info("Pinned file name=%s cid=%s bytes=%d", filename, cid, len(data))
        return _pinned(cid, data)

    async def pin_json(self, metadata: dict[str, Any]) -> PinnedContent:
        cid = await self._post(
            "json", "/pinning/pinJSONToIPFS", json={"pinataContent": metadata}
        )
        logger.info("Pinned metadata cid=%s", cid)
        return _pinned(cid, metadata_bytes(metadata))

    async def _post(self, kind: str, path: str, **kwargs: Any) -> str:
        headers = {"Authorization": f"Bearer {self._jwt}"}
        try:
            if self._client is not None:
                response = await self._client.post(
                    f"{self._api_url}{path}", headers=headers, **kwargs
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        f"{self._api_url}{path}", headers=headers, **kwargs
                    )
        except httpx.HTTPError as e:
            PINNING_UPLOADS.labels(kind=kind, outcome="error").inc()
            logger.warning("Pinning request failed kind=%s: %s", kind, type(e).__name__)
            raise PinningError(f"Failed to upload to IPFS: {type(e).__name__}") from e

        if response.is_error:
            PINNING_UPLOADS.labels(kind=kind, outcome="error").inc()
            logger.warning(
                "Pinning service rejected upload kind=%s status=%d",
                kind,
                response.status_code,
            )
            raise PinningError(
                f"Failed to upload to IPFS: {response.status_code} {response.text[:200]}"
            )

        try:
            cid = response.json()["IpfsHash"]
        except (ValueError, KeyError) as e:
            PINNING_UPLOADS.labels(kind=kind, outcome="error").inc()
            raise PinningError("Pinning service returned no IpfsHash") from e

        PINNING_UPLOADS.labels(kind=kind, outcome="ok").inc()
        return cid


if SETTINGS.pinning_jwt:
    pinning_client: PinningClient = PinataPinningClient(
        SETTINGS.pinning_api_url, SETTINGS.pinning_jwt
    )
else:
    pinning_client = InMemoryPinningClient()

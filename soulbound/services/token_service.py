"""Signed caller credentials (ES256 JWTs).

A token binds a wallet address (``sub``) to the network the wallet is
connected to (``chain_id``).  The API trusts the address as the caller
of every registry operation and compares ``chain_id`` with the
configured network before anything is submitted.

Tokens are verified with ``TOKEN_PUBLIC_KEY`` when it is configured
(always in prod): the wallet-login service in front of the registry holds
the matching private key and this process never signs.  Without it,
dev/test processes sign and verify with an ephemeral key generated on
import and hand tokens out through POST /v1/sessions.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from soulbound.core.config import SETTINGS, parse_public_key

_private_key = ec.generate_private_key(ec.SECP256R1())

if SETTINGS.token_public_key is not None:
    _public_key = parse_public_key(SETTINGS.token_public_key)
else:
    _public_key = _private_key.public_key()

# False when an external issuer owns the signing key.
SIGNS_LOCALLY = SETTINGS.token_public_key is None

ALGORITHM = "ES256"
ISSUER = "soulbound-registry"
AUDIENCE = "soulbound-registry"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(*, sub: str, chain_id: int) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub.lower(),
        "chain_id": chain_id,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    The algorithm is pinned to ES256.  Raises jwt.ExpiredSignatureError
    or jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "chain_id", "exp", "iat", "jti"]},
    )

from __future__ import annotations

from dataclasses import dataclass

from soulbound.models.address import ZERO_ADDRESS


@dataclass(frozen=True, slots=True)
class Participant:
    """An address eligible to receive certificates.

    Written once by an issuer and never changed afterwards.  Lookups of
    an unknown address return ``Participant.unregistered(address)``
    rather than None, mirroring a storage getter's zero value.
    """

    address: str
    name: str
    registered_at: int
    is_registered: bool = True

    @staticmethod
    def unregistered(address: str) -> Participant:
        return Participant(address=address, name="", registered_at=0, is_registered=False)


@dataclass(frozen=True, slots=True)
class Certificate:
    """One issued, non-transferable credential."""

    token_id: int
    recipient: str
    content_hash: str
    cohort: str
    token_uri: str
    issued_at: int
    is_revoked: bool = False


@dataclass(frozen=True, slots=True)
class Verification:
    """Result of ``verify_certificate``.

    An unknown token id yields ``Verification.not_found()``: invalid,
    zero-address recipient, empty strings, zero timestamp.  Callers tell
    "revoked" from "never existed" by checking ``recipient`` against the
    zero address.
    """

    is_valid: bool
    recipient: str
    content_hash: str
    cohort: str
    issued_at: int

    @staticmethod
    def not_found() -> Verification:
        return Verification(
            is_valid=False,
            recipient=ZERO_ADDRESS,
            content_hash="",
            cohort="",
            issued_at=0,
        )

    @staticmethod
    def of(cert: Certificate) -> Verification:
        return Verification(
            is_valid=not cert.is_revoked,
            recipient=cert.recipient,
            content_hash=cert.content_hash,
            cohort=cert.cohort,
            issued_at=cert.issued_at,
        )

    def as_tuple(self) -> tuple[bool, str, str, str, int]:
        return (self.is_valid, self.recipient, self.content_hash, self.cohort, self.issued_at)

"""The certificate registry: every business rule of the system.

State (all in the shared ledger):

    participants   address  -> Participant
    certificates   token_id -> Certificate
    owners         token_id -> address        (written exactly once, at mint)
    holdings       address  -> [token_id]     (reverse index, append-only)
    counters       "token_id" -> last allocated id

Every mutating operation is one ledger transaction: preconditions are
checked inside it (never trusted from a caller's earlier read), writes
are journaled, and notifications are published only on commit.  A
rejected operation therefore leaves no state change, allocates no token
id and emits nothing.

Non-transferability is enforced in one place, ``_update``.  Every path
that assigns an owner goes through it, and it accepts only a mint,
recognised by the explicit "previous owner is none" sentinel.  A new
transfer-style entry point that calls ``_update`` inherits the rule.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from soulbound.core.exceptions import (
    AlreadyRegistered,
    AlreadyRevoked,
    InvalidArgument,
    NonTransferable,
    NotFound,
    NotRegistered,
)
from soulbound.core.metrics import CERTIFICATES_ISSUED, CERTIFICATES_REVOKED
from soulbound.db.ledger import Clock, Ledger, Transaction
from soulbound.models.address import ZERO_ADDRESS
from soulbound.models.certificate import Certificate, Participant, Verification
from soulbound.models.events import (
    CertificateIssued,
    CertificateRevoked,
    Locked,
    ParticipantRegistered,
    Transfer,
)
from soulbound.services.access_control import ISSUER_ROLE, AccessControl
from soulbound.services.event_log import EventLog
from soulbound.services.operations import checked_address, observe

logger = logging.getLogger(__name__)

# ERC-165 identifiers of the interfaces this registry answers to.
SUPPORTED_INTERFACES = frozenset(
    {
        "0x01ffc9a7",  # ERC-165
        "0x80ac58cd",  # ERC-721
        "0x5b5e139f",  # ERC-721 metadata
        "0x7965db0b",  # access control
        "0xb45a3c0e",  # soulbound lock (ERC-5192)
    }
)

_TOKEN_MISSING = "Token does not exist"


def _non_empty(value: str, reason: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(reason)
    return value


class CertificateRegistry:
    def __init__(self, access: AccessControl, *, name: str, symbol: str) -> None:
        self._access = access
        self._ledger = access.ledger
        self.name = name
        self.symbol = symbol

        self._participants: dict[str, Participant] = {}
        self._certificates: dict[int, Certificate] = {}
        self._owners: dict[int, str] = {}
        self._holdings: dict[str, list[int]] = {}
        self._counters: dict[str, int] = {"token_id": 0}

    @property
    def access(self) -> AccessControl:
        return self._access

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def events(self) -> EventLog:
        return self._ledger.events

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def register_participant(self, caller: str, address: str, name: str) -> Participant:
        with observe("register_participant", caller):
            with self._ledger.transaction() as tx:
                self._access.check_role(ISSUER_ROLE, caller)
                _non_empty(name, "Name cannot be empty")
                address = checked_address(address)
                if address == ZERO_ADDRESS:
                    raise InvalidArgument("Cannot register the zero address")
                if address in self._participants:
                    raise AlreadyRegistered(address)

                participant = Participant(
                    address=address, name=name, registered_at=tx.timestamp
                )
                tx.put(self._participants, address, participant)
                tx.emit(
                    ParticipantRegistered(
                        address=address, name=name, timestamp=tx.timestamp
                    )
                )

        logger.info(
            "Registered participant address=%s name=%r",
            address,
            name,
            extra={"caller": caller, "operation": "register_participant"},
        )
        return participant

    def participant(self, address: str) -> Participant:
        """Return the participant record; unknown addresses get the zero record."""
        key = address.strip().lower()
        return self._participants.get(key) or Participant.unregistered(key)

    def is_registered(self, address: str) -> bool:
        return self.participant(address).is_registered

    # ------------------------------------------------------------------
    # Certificates
    # ------------------------------------------------------------------

    def issue_certificate(
        self,
        caller: str,
        recipient: str,
        token_uri: str,
        content_hash: str,
        cohort: str = "",
    ) -> int:
        """Mint a certificate to a registered participant; returns its token id."""
        with observe("issue_certificate", caller):
            with self._ledger.transaction() as tx:
                self._access.check_role(ISSUER_ROLE, caller)
                recipient = checked_address(recipient, "recipient")
                if recipient not in self._participants:
                    raise NotRegistered(recipient)
                _non_empty(token_uri, "Token URI cannot be empty")
                _non_empty(content_hash, "Content hash cannot be empty")
                cohort = cohort or ""

                token_id = self._counters["token_id"] + 1
                tx.put(self._counters, "token_id", token_id)
                self._update(tx, recipient, token_id)

                tx.put(
                    self._certificates,
                    token_id,
                    Certificate(
                        token_id=token_id,
                        recipient=recipient,
                        content_hash=content_hash,
                        cohort=cohort,
                        token_uri=token_uri,
                        issued_at=tx.timestamp,
                    ),
                )
                if recipient not in self._holdings:
                    tx.put(self._holdings, recipient, [])
                tx.append(self._holdings[recipient], token_id)

                tx.emit(
                    CertificateIssued(
                        token_id=token_id,
                        recipient=recipient,
                        cohort=cohort,
                        content_hash=content_hash,
                        timestamp=tx.timestamp,
                    )
                )
                tx.emit(Locked(token_id=token_id))

        CERTIFICATES_ISSUED.inc()
        logger.info(
            "Issued certificate token_id=%d to recipient=%s cohort=%r",
            token_id,
            recipient,
            cohort,
            extra={
                "caller": caller,
                "operation": "issue_certificate",
                "token_id": token_id,
            },
        )
        return token_id

    def revoke_certificate(self, caller: str, token_id: int) -> None:
        with observe("revoke_certificate", caller):
            with self._ledger.transaction() as tx:
                self._access.check_role(ISSUER_ROLE, caller)
                cert = self._certificates.get(token_id)
                if cert is None:
                    raise NotFound(token_id)
                if cert.is_revoked:
                    raise AlreadyRevoked(token_id)

                tx.put(self._certificates, token_id, replace(cert, is_revoked=True))
                tx.emit(CertificateRevoked(token_id=token_id, timestamp=tx.timestamp))

        CERTIFICATES_REVOKED.inc()
        logger.info(
            "Revoked certificate token_id=%d",
            token_id,
            extra={
                "caller": caller,
                "operation": "revoke_certificate",
                "token_id": token_id,
            },
        )

    def verify_certificate(self, token_id: int) -> Verification:
        cert = self._certificates.get(token_id)
        if cert is None:
            return Verification.not_found()
        return Verification.of(cert)

    def certificate(self, token_id: int) -> Certificate:
        cert = self._certificates.get(token_id)
        if cert is None:
            raise NotFound(token_id)
        return cert

    def get_participant_certificates(self, address: str) -> list[int]:
        return list(self._holdings.get(address.strip().lower(), ()))

    def total_issued(self) -> int:
        return self._counters["token_id"]

    # ------------------------------------------------------------------
    # Token surface
    # ------------------------------------------------------------------

    def owner_of(self, token_id: int) -> str:
        owner = self._owners.get(token_id)
        if owner is None:
            raise NotFound(token_id, _TOKEN_MISSING)
        return owner

    def balance_of(self, address: str) -> int:
        address = checked_address(address)
        if address == ZERO_ADDRESS:
            raise InvalidArgument("The zero address holds no certificates")
        return len(self._holdings.get(address, ()))

    def token_uri(self, token_id: int) -> str:
        return self.certificate(token_id).token_uri

    def locked(self, token_id: int) -> bool:
        if token_id not in self._owners:
            raise NotFound(token_id, _TOKEN_MISSING)
        return True

    def supports_interface(self, interface_id: str) -> bool:
        return interface_id.strip().lower() in SUPPORTED_INTERFACES

    def transfer_from(
        self, caller: str, from_address: str, to_address: str, token_id: int
    ) -> None:
        with observe("transfer_from", caller):
            with self._ledger.transaction() as tx:
                self.owner_of(token_id)
                self._update(tx, to_address, token_id)

    def safe_transfer_from(
        self,
        caller: str,
        from_address: str,
        to_address: str,
        token_id: int,
        data: bytes = b"",
    ) -> None:
        with observe("safe_transfer_from", caller):
            with self._ledger.transaction() as tx:
                self.owner_of(token_id)
                self._update(tx, to_address, token_id)

    def _update(self, tx: Transaction, to: str, token_id: int) -> str | None:
        """Assign ``token_id`` to ``to``; the single ownership choke point.

        Returns the previous owner, which is always None: only a mint
        (no previous owner) is allowed through.
        """
        previous = self._owners.get(token_id)
        if previous is not None:
            raise NonTransferable(token_id)

        tx.put(self._owners, token_id, to)
        tx.emit(Transfer(from_address=ZERO_ADDRESS, to_address=to, token_id=token_id))
        return previous

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def has_role(self, role: str, account: str) -> bool:
        return self._access.has_role(role, account)

    def grant_role(self, caller: str, role: str, account: str) -> bool:
        return self._access.grant_role(caller, role, account)

    def revoke_role(self, caller: str, role: str, account: str) -> bool:
        return self._access.revoke_role(caller, role, account)

    def renounce_role(self, caller: str, role: str, confirmation: str) -> bool:
        return self._access.renounce_role(caller, role, confirmation)


def deploy_registry(
    deployer: str,
    *,
    name: str,
    symbol: str,
    clock: Clock | None = None,
) -> CertificateRegistry:
    """Create a fresh ledger and registry with ``deployer`` as admin and issuer."""
    ledger = Ledger(clock=clock)
    access = AccessControl(ledger, deployer=deployer)
    return CertificateRegistry(access, name=name, symbol=symbol)

"""Registry notifications.

Each notification is a frozen dataclass.  ``INDEXED`` names the fields an
observer can filter on cheaply (the event log keeps a per-field index for
them); every other field is payload only.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar


@dataclass(frozen=True, slots=True)
class ParticipantRegistered:
    INDEXED: ClassVar[tuple[str, ...]] = ("address",)

    address: str
    name: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class CertificateIssued:
    INDEXED: ClassVar[tuple[str, ...]] = ("token_id", "recipient")

    token_id: int
    recipient: str
    cohort: str
    content_hash: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class CertificateRevoked:
    INDEXED: ClassVar[tuple[str, ...]] = ("token_id",)

    token_id: int
    timestamp: int


@dataclass(frozen=True, slots=True)
class Locked:
    """Emitted once per token at mint: the token can never move."""

    INDEXED: ClassVar[tuple[str, ...]] = ()

    token_id: int


@dataclass(frozen=True, slots=True)
class Transfer:
    """Ownership change.  Only ever emitted for mints (from the zero address)."""

    INDEXED: ClassVar[tuple[str, ...]] = ("from_address", "to_address", "token_id")

    from_address: str
    to_address: str
    token_id: int


@dataclass(frozen=True, slots=True)
class RoleGranted:
    INDEXED: ClassVar[tuple[str, ...]] = ("role", "account", "sender")

    role: str
    account: str
    sender: str


@dataclass(frozen=True, slots=True)
class RoleRevoked:
    INDEXED: ClassVar[tuple[str, ...]] = ("role", "account", "sender")

    role: str
    account: str
    sender: str


Event = (
    ParticipantRegistered
    | CertificateIssued
    | CertificateRevoked
    | Locked
    | Transfer
    | RoleGranted
    | RoleRevoked
)

EVENT_TYPES: dict[str, type] = {
    cls.__name__: cls
    for cls in (
        ParticipantRegistered,
        CertificateIssued,
        CertificateRevoked,
        Locked,
        Transfer,
        RoleGranted,
        RoleRevoked,
    )
}


def event_name(event: Event) -> str:
    return type(event).__name__


@dataclass(frozen=True, slots=True)
class EventRecord:
    """A committed notification and its position in the log (0-based)."""

    sequence: int
    event: Event

    @property
    def name(self) -> str:
        return event_name(self.event)

    def args(self) -> dict[str, Any]:
        return asdict(self.event)

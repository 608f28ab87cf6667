"""Registry error taxonomy.

Every rejected registry operation raises one of these.  They are
synchronous and local: a rejected operation leaves no trace in state or
in the event log, so callers may simply retry from scratch.

``code`` is stable and machine-readable; ``reason`` is the
human-readable text surfaced verbatim to end users.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for every registry rejection."""

    code = "registry_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidArgument(RegistryError):
    """A required argument is empty or malformed."""

    code = "invalid_argument"


class AlreadyRegistered(RegistryError):
    code = "already_registered"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__("Participant already registered")


class NotRegistered(RegistryError):
    code = "not_registered"

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__("Recipient not registered")


class NotFound(RegistryError):
    code = "not_found"

    def __init__(self, token_id: int, reason: str = "Certificate does not exist") -> None:
        self.token_id = token_id
        super().__init__(reason)


class AlreadyRevoked(RegistryError):
    code = "already_revoked"

    def __init__(self, token_id: int) -> None:
        self.token_id = token_id
        super().__init__("Certificate already revoked")


class NonTransferable(RegistryError):
    code = "non_transferable"

    def __init__(self, token_id: int) -> None:
        self.token_id = token_id
        super().__init__("Certificates are non-transferable")


class Unauthorized(RegistryError):
    """The caller lacks the role an operation requires."""

    code = "unauthorized"

    def __init__(self, account: str, role: str, reason: str | None = None) -> None:
        self.account = account
        self.role = role
        super().__init__(reason or f"Account {account} is missing role {role}")

"""Role-based access control for the registry.

THE ROLES
---------
    admin   may grant and revoke either role (it administers itself
            and the issuer role)
    issuer  may register participants and issue or revoke certificates

The deployer holds both roles from construction.

WHY THE ROLES LIVE IN THE LEDGER
--------------------------------
Roles are read from the same ledger as the registry state, and role
changes go through the same transactions.  An issuer whose role is
revoked is therefore refused by the very next operation: there is no
token claim or cached permission that could still say "issuer".  This
is also why a caller's Principal carries only an address.

ORDER OF CHECKS
---------------
Gated operations call ``check_role`` first, before looking at any of
their own arguments.  A caller without the role learns nothing about
whether a participant exists or a certificate was already revoked.

Granting a role that is already held, or revoking one that is not, is
a silent no-op: nothing is written and no event is emitted, and the
call returns False so the API can say so.
"""

from __future__ import annotations

import logging

from soulbound.core.exceptions import InvalidArgument, Unauthorized
from soulbound.db.ledger import Ledger, Transaction
from soulbound.models.events import RoleGranted, RoleRevoked
from soulbound.services.operations import checked_address, observe

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
ISSUER_ROLE = "issuer"
ROLES = (ADMIN_ROLE, ISSUER_ROLE)

_ROLE_ADMIN = {ADMIN_ROLE: ADMIN_ROLE, ISSUER_ROLE: ADMIN_ROLE}


def _known_role(role: str) -> str:
    if role not in ROLES:
        raise InvalidArgument(f"unknown role: {role!r}")
    return role


class AccessControl:
    def __init__(self, ledger: Ledger, *, deployer: str) -> None:
        self._ledger = ledger
        # role -> insertion-ordered set of accounts
        self._members: dict[str, dict[str, None]] = {role: {} for role in ROLES}

        deployer = checked_address(deployer, "deployer")
        with ledger.transaction() as tx:
            self._grant(tx, ADMIN_ROLE, deployer, sender=deployer)
            self._grant(tx, ISSUER_ROLE, deployer, sender=deployer)

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # -- queries ----------------------------------------------------------

    def has_role(self, role: str, account: str) -> bool:
        members = self._members.get(role)
        if members is None:
            return False
        return account.strip().lower() in members

    def role_members(self, role: str) -> list[str]:
        return list(self._members[_known_role(role)])

    def get_role_admin(self, role: str) -> str:
        return _ROLE_ADMIN[_known_role(role)]

    def check_role(self, role: str, account: str) -> None:
        if not self.has_role(role, account):
            raise Unauthorized(account, role)

    # -- mutations --------------------------------------------------------

    def grant_role(self, caller: str, role: str, account: str) -> bool:
        """Grant ``role`` to ``account``.  Returns False if already held."""
        with observe("grant_role", caller), self._ledger.transaction() as tx:
            self.check_role(self.get_role_admin(role), caller)
            account = checked_address(account, "account")
            return self._grant(tx, role, account, sender=caller.lower())

    def revoke_role(self, caller: str, role: str, account: str) -> bool:
        """Revoke ``role`` from ``account``.  Returns False if not held."""
        with observe("revoke_role", caller), self._ledger.transaction() as tx:
            self.check_role(self.get_role_admin(role), caller)
            account = checked_address(account, "account")
            return self._revoke(tx, role, account, sender=caller.lower())

    def renounce_role(self, caller: str, role: str, confirmation: str) -> bool:
        """Drop one of the caller's own roles.

        ``confirmation`` must repeat the caller's address; it guards
        against a client renouncing on behalf of the wrong account.
        """
        with observe("renounce_role", caller), self._ledger.transaction() as tx:
            _known_role(role)
            if confirmation.strip().lower() != caller.strip().lower():
                raise Unauthorized(
                    caller, role, reason="Accounts can only renounce roles for themselves"
                )
            return self._revoke(tx, role, caller.strip().lower(), sender=caller.lower())

    def _grant(self, tx: Transaction, role: str, account: str, *, sender: str) -> bool:
        members = self._members[_known_role(role)]
        if account in members:
            return False
        tx.put(members, account, None)
        tx.emit(RoleGranted(role=role, account=account, sender=sender))
        logger.info(
            "Granted role=%s to account=%s by sender=%s",
            role,
            account,
            sender,
            extra={"caller": sender, "operation": "grant_role"},
        )
        return True

    def _revoke(self, tx: Transaction, role: str, account: str, *, sender: str) -> bool:
        members = self._members[role]
        if account not in members:
            return False
        tx.delete(members, account)
        tx.emit(RoleRevoked(role=role, account=account, sender=sender))
        logger.info(
            "Revoked role=%s from account=%s by sender=%s",
            role,
            account,
            sender,
            extra={"caller": sender, "operation": "revoke_role"},
        )
        return True

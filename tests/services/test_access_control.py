from __future__ import annotations

import pytest

from soulbound.core.exceptions import InvalidArgument, Unauthorized
from soulbound.db.ledger import Ledger
from soulbound.models.events import RoleGranted, RoleRevoked
from soulbound.services.access_control import ADMIN_ROLE, ISSUER_ROLE, AccessControl
from tests.conftest import ALICE, BOB, DEPLOYER


@pytest.fixture
def access() -> AccessControl:
    return AccessControl(Ledger(clock=lambda: 1), deployer=DEPLOYER)


def test_deployer_holds_both_roles(access: AccessControl) -> None:
    assert access.has_role(ADMIN_ROLE, DEPLOYER)
    assert access.has_role(ISSUER_ROLE, DEPLOYER)
    assert access.role_members(ADMIN_ROLE) == [DEPLOYER]


def test_deployment_emits_role_grants(access: AccessControl) -> None:
    assert [r.event for r in access.ledger.events.records()] == [
        RoleGranted(role=ADMIN_ROLE, account=DEPLOYER, sender=DEPLOYER),
        RoleGranted(role=ISSUER_ROLE, account=DEPLOYER, sender=DEPLOYER),
    ]


def test_admin_administers_both_roles(access: AccessControl) -> None:
    assert access.get_role_admin(ISSUER_ROLE) == ADMIN_ROLE
    assert access.get_role_admin(ADMIN_ROLE) == ADMIN_ROLE


def test_grant_and_revoke(access: AccessControl) -> None:
    assert access.grant_role(DEPLOYER, ISSUER_ROLE, ALICE) is True
    assert access.has_role(ISSUER_ROLE, ALICE)

    assert access.revoke_role(DEPLOYER, ISSUER_ROLE, ALICE) is True
    assert not access.has_role(ISSUER_ROLE, ALICE)

    names = [r.name for r in access.ledger.events.records(2)]
    assert names == ["RoleGranted", "RoleRevoked"]


def test_grant_held_role_is_a_silent_no_op(access: AccessControl) -> None:
    access.grant_role(DEPLOYER, ISSUER_ROLE, ALICE)
    before = len(access.ledger.events)

    assert access.grant_role(DEPLOYER, ISSUER_ROLE, ALICE) is False
    assert len(access.ledger.events) == before


def test_revoke_absent_role_is_a_silent_no_op(access: AccessControl) -> None:
    before = len(access.ledger.events)
    assert access.revoke_role(DEPLOYER, ISSUER_ROLE, BOB) is False
    assert len(access.ledger.events) == before


def test_issuer_cannot_grant(access: AccessControl) -> None:
    access.grant_role(DEPLOYER, ISSUER_ROLE, ALICE)

    with pytest.raises(Unauthorized) as exc:
        access.grant_role(ALICE, ISSUER_ROLE, BOB)

    assert exc.value.role == ADMIN_ROLE
    assert not access.has_role(ISSUER_ROLE, BOB)


def test_grant_to_malformed_account_is_invalid(access: AccessControl) -> None:
    with pytest.raises(InvalidArgument):
        access.grant_role(DEPLOYER, ISSUER_ROLE, "alice")


def test_unknown_role_is_invalid(access: AccessControl) -> None:
    with pytest.raises(InvalidArgument):
        access.grant_role(DEPLOYER, "minter", ALICE)
    assert access.has_role("minter", ALICE) is False


def test_renounce_requires_own_address(access: AccessControl) -> None:
    access.grant_role(DEPLOYER, ISSUER_ROLE, ALICE)

    with pytest.raises(Unauthorized):
        access.renounce_role(ALICE, ISSUER_ROLE, BOB)
    assert access.has_role(ISSUER_ROLE, ALICE)

    assert access.renounce_role(ALICE, ISSUER_ROLE, ALICE) is True
    assert not access.has_role(ISSUER_ROLE, ALICE)

    last = access.ledger.events.records()[-1].event
    assert last == RoleRevoked(role=ISSUER_ROLE, account=ALICE, sender=ALICE)


def test_role_members_in_grant_order(access: AccessControl) -> None:
    access.grant_role(DEPLOYER, ISSUER_ROLE, BOB)
    access.grant_role(DEPLOYER, ISSUER_ROLE, ALICE)
    assert access.role_members(ISSUER_ROLE) == [DEPLOYER, BOB, ALICE]


def test_has_role_ignores_address_case(access: AccessControl) -> None:
    assert access.has_role(ADMIN_ROLE, DEPLOYER.upper().replace("0X", "0x"))

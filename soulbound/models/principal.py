from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity extracted from a validated bearer token.

    Carried through the request via FastAPI's dependency system and
    handed to the registry as the operation's caller.

        address:  the signer's account address (lower case)
        chain_id: the network the signer's wallet is connected to

    Roles are deliberately absent: the registry's access-control
    context is the only source of truth for who may issue, so a role
    revoked a second ago is already in effect for the next call.
    """

    address: str
    chain_id: int

    def on_network(self, chain_id: int) -> bool:
        return self.chain_id == chain_id

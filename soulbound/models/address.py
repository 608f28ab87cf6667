"""Account addresses.

Addresses are 20-byte account identifiers written as ``0x`` followed by
40 hex digits.  We store and compare them in lower case so that a
checksummed address from a wallet and a lower-case address from a CLI
refer to the same participant.
"""

from __future__ import annotations

import re

ZERO_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(value: str) -> str:
    """Return the canonical (lower-case, stripped) form of an address.

    Raises ValueError when the value is not a well-formed address.
    """
    candidate = value.strip()
    if not _ADDRESS_RE.match(candidate):
        raise ValueError(f"not a valid address: {value!r}")
    return candidate.lower()

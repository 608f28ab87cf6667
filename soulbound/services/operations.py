"""Outcome bookkeeping shared by every state-mutating registry operation."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from soulbound.core.exceptions import InvalidArgument, RegistryError
from soulbound.core.metrics import REGISTRY_OPERATIONS
from soulbound.models.address import normalize_address

logger = logging.getLogger("soulbound.registry")


@contextmanager
def observe(operation: str, caller: str) -> Iterator[None]:
    """Count the operation by outcome and log rejections.

    Rejections are expected traffic (a second revoke, an unregistered
    recipient) so they log at WARNING without a stack trace.
    """
    try:
        yield
    except RegistryError as e:
        REGISTRY_OPERATIONS.labels(operation=operation, outcome=e.code).inc()
        logger.warning(
            "Rejected %s by caller=%s: %s (%s)",
            operation,
            caller,
            e.reason,
            e.code,
            extra={"caller": caller, "operation": operation, "error_code": e.code},
        )
        raise
    REGISTRY_OPERATIONS.labels(operation=operation, outcome="ok").inc()


def checked_address(value: str, what: str = "address") -> str:
    """Normalise an address argument or raise InvalidArgument."""
    try:
        return normalize_address(value)
    except (ValueError, AttributeError):
        raise InvalidArgument(f"{what} is not a valid address: {value!r}") from None

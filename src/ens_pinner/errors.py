"""Exceptions raised by ens_pinner components.

Adapter errors never leave an adapter's public methods: adapters catch them
and return a failure sentinel instead. Registry errors (InvalidOperation,
NotFound) propagate to the administrative caller.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Why a node operation did not succeed. Used for diagnostics only."""

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class PinnerError(RuntimeError):
    """Base class for all ens_pinner errors."""
    pass


# Adapter errors
class AdapterError(PinnerError):
    """A node operation failed."""

    kind = FailureKind.UNKNOWN

    def __init__(self, endpoint: str, operation: str, detail: str = ""):
        self.endpoint = endpoint
        self.operation = operation
        self.detail = detail
        msg = f"{operation} on {endpoint} failed ({self.kind.value})"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class AdapterTimeout(AdapterError):
    """The operation exceeded its timeout."""

    kind = FailureKind.TIMEOUT


class AdapterUnreachable(AdapterError):
    """Connection refused, DNS failure, or similar."""

    kind = FailureKind.UNREACHABLE


class AdapterContentUnavailable(AdapterError):
    """The content is absent and could not be fetched."""

    kind = FailureKind.NOT_FOUND


# Registry errors
class InvalidOperation(PinnerError):
    """The operation is not allowed, e.g. removing the local node."""
    pass


class NotFound(PinnerError):
    """Unknown node or key."""
    pass

"""NodeAdapter protocol - pin operations against a single IPFS backend."""

from __future__ import annotations

from typing import Protocol

from ens_pinner.errors import AdapterError


class NodeAdapter(Protocol):
    """Capability set every backend adapter provides.

    Each call is bounded by its own timeout and is never retried. Failures
    are returned as sentinels, never raised.
    """

    last_error: AdapterError | None

    async def pin_file(self, address: str) -> int | None:
        """Fetch and pin a CID. Returns its size, or None on failure."""
        ...

    async def unpin_file(self, address: str) -> bool:
        """Remove the pin and trigger garbage collection. False on failure."""
        ...

    async def get_file_size(self, address: str) -> int | None:
        """Stat a CID. Returns its size, or None on failure."""
        ...

    async def get_quota_range(self) -> tuple[int, int]:
        """(used, max) repo storage in bytes. (0, 0) on failure."""
        ...

    async def is_online(self) -> bool:
        """Quick version check against the backend."""
        ...

    def is_over_quota(self) -> bool:
        ...

    def adjust_quota(self, new_max: int) -> None:
        ...

"""ChangeSource protocol - delivers decoded content-hash changes in order."""

from __future__ import annotations

from typing import Protocol

from ens_pinner.models.events import ContentChange


class ChangeSource(Protocol):
    """Yields content changes one at a time, in event order."""

    async def next_change(self) -> ContentChange | None:
        """Wait for the next change. None means the stream has ended."""
        ...

"""Change events delivered by an event source."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ContentChange:
    """An ENS node's content hash changed.

    ``content_address`` is the decoded CID, or an empty string when the
    content hash could not be decoded (the binding is then cleared).
    """

    key: str  # ENS node hash (bytes32 hex)
    content_address: str
    label: str = ""  # ENS name, when the source knows it
    block_number: int | None = None
    tx_hash: str | None = None

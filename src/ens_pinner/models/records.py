"""Record types for pool state and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Binding:
    """The CID an ENS node currently resolves to."""

    key: str
    content_address: str
    label: str = ""
    size_bytes: int = 0  # provisional 0 until a pin reports a size


@dataclass
class PinReference:
    """A CID retained somewhere in the pool, with the number of keys bound to it."""

    content_address: str
    count: int = 1


@dataclass
class Placement:
    """Outcome of placing a CID on one node."""

    node_id: str
    size_bytes: int | None = None  # None when the node did not succeed
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.size_bytes is not None


@dataclass
class ApplyReport:
    """What a single apply() call did to the pool."""

    key: str
    content_address: str
    released: str | None = None  # CID whose last reference was dropped
    unpinned: dict[str, bool] = field(default_factory=dict)  # node id -> ok
    reused: bool = False  # CID was already referenced, nothing dispatched
    placements: list[Placement] = field(default_factory=list)
    size_bytes: int = 0


@dataclass
class ChangeRecord:
    """A content change as kept in the history store."""

    id: int
    key: str
    label: str
    content_address: str
    block_number: int | None
    tx_hash: str | None
    recorded_at: str


@dataclass
class PinStatusRecord:
    """Last known placement status of a CID on one node."""

    content_address: str
    node_id: str
    status: str  # "pinned", "failed", "unpinned"
    size_bytes: int | None = None
    error: str | None = None
    updated_at: str = ""


@dataclass
class ActivityRecord:
    """A single activity log entry."""

    id: int
    event_type: str
    key: str | None
    content_address: str | None
    message: str
    created_at: str

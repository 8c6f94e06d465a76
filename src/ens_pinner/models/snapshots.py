"""JSON-serializable snapshots for the admin API and CLI."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class NodeSnapshot:
    id: str
    name: str
    kind: str
    url: str
    online: bool | None = None  # None when not checked
    repo_size: int = 0
    storage_max: int = 0


@dataclass
class BindingSnapshot:
    key: str
    label: str
    content_address: str
    size_bytes: int


@dataclass
class PoolSnapshot:
    """Top-level pool overview."""

    strategy: str | None
    cursor: int
    node_count: int
    reference_count: int
    binding_count: int
    total_size_bytes: int

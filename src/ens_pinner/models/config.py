"""Configuration models for the pinner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Strategy(str, Enum):
    """How a newly referenced CID is placed across the node pool."""

    SEQUENTIAL = "sequential"  # Finish one node, spill to the next on failure
    PARALLEL = "parallel"  # Pin on every node at once
    DISTRIBUTED = "distributed"  # Round-robin, one node per CID


class BackendKind(str, Enum):
    """Kind of IPFS backend a node talks to."""

    LOCAL = "local"  # Kubo on loopback / docker host
    REMOTE_CLOUD = "remote-cloud"  # Self-hosted Kubo VM reachable by URL
    PINNING_SERVICE = "pinning-service"  # Hosted pinning service


@dataclass
class AdapterTimeouts:
    """Per-operation timeouts for node adapters, in seconds."""

    connect: float = 5
    pin: float = 120
    stat: float = 30
    unpin: float = 30
    gc: float = 60


@dataclass
class NodeSpec:
    """A node to register at startup, as declared in the config file."""

    name: str
    kind: BackendKind
    url: str


@dataclass
class PinnerConfig:
    """Complete pinner configuration."""

    # Daemon
    strategy: Strategy | None = Strategy.PARALLEL  # None = unset, nothing is placed
    log_level: str = "info"
    error_backoff: int = 5  # seconds

    # IPFS
    local_rpc_url: str = "http://127.0.0.1:5001"
    timeouts: AdapterTimeouts = field(default_factory=AdapterTimeouts)
    nodes: list[NodeSpec] = field(default_factory=list)

    # Admin API
    admin_enabled: bool = True
    admin_host: str = "127.0.0.1"
    admin_port: int = 8420

    # Storage
    db_path: str = "~/.ens_pinner/history.db"  # empty disables history

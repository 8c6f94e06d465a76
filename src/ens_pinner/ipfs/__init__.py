"""IPFS backend adapters."""

from ens_pinner.ipfs.adapter import (
    KuboNodeAdapter,
    LocalKuboAdapter,
    PinningServiceAdapter,
    RemoteKuboAdapter,
    create_adapter,
)

__all__ = [
    "KuboNodeAdapter", "LocalKuboAdapter", "PinningServiceAdapter",
    "RemoteKuboAdapter", "create_adapter",
]

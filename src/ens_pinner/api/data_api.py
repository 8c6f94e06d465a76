"""Data API - builds snapshots of the node pool for the admin API and CLI."""

from __future__ import annotations

import asyncio
import logging

from ens_pinner.models.snapshots import BindingSnapshot, NodeSnapshot, PoolSnapshot
from ens_pinner.pool.orchestrator import PinOrchestrator
from ens_pinner.pool.registry import Node

log = logging.getLogger(__name__)


def node_to_snapshot(node: Node) -> NodeSnapshot:
    return NodeSnapshot(id=node.id, name=node.name, kind=node.kind.value, url=node.url)


class PoolDataAPI:
    """Read-only views over the orchestrator's state.

    Node details can include live quota and reachability, which costs one
    round trip per node; everything else is served from memory.
    """

    def __init__(self, orchestrator: PinOrchestrator) -> None:
        self._orch = orchestrator

    async def get_node(self, node_id: str) -> NodeSnapshot:
        """Node with live quota and reachability. Raises NotFound."""
        node = self._orch.registry.get(node_id)
        return await self._probe(node)

    async def get_nodes(self, probe: bool = False) -> list[NodeSnapshot]:
        nodes = self._orch.registry.list()
        if not probe:
            return [node_to_snapshot(n) for n in nodes]
        return list(await asyncio.gather(*(self._probe(n) for n in nodes)))

    async def _probe(self, node: Node) -> NodeSnapshot:
        snap = node_to_snapshot(node)
        snap.online = await node.adapter.is_online()
        if snap.online:
            snap.repo_size, snap.storage_max = await node.adapter.get_quota_range()
        return snap

    def get_bindings(self) -> list[BindingSnapshot]:
        return [
            BindingSnapshot(
                key=b.key,
                label=b.label,
                content_address=b.content_address,
                size_bytes=b.size_bytes,
            )
            for b in self._orch.list_bindings()
        ]

    def get_pool(self) -> PoolSnapshot:
        bindings = self._orch.list_bindings()
        strategy = self._orch.strategy
        return PoolSnapshot(
            strategy=strategy.value if strategy else None,
            cursor=self._orch.cursor,
            node_count=self._orch.registry.count(),
            reference_count=len(self._orch.references),
            binding_count=len(bindings),
            total_size_bytes=sum(b.size_bytes for b in bindings),
        )

"""Pin orchestrator - turns content-hash changes into pin/unpin calls."""

from __future__ import annotations

import asyncio
import logging

from ens_pinner.models.config import BackendKind, Strategy
from ens_pinner.models.records import ApplyReport, Binding, Placement
from ens_pinner.pool.registry import Node, NodeRegistry
from ens_pinner.pool.tables import BindingTable, PinReferenceTable

log = logging.getLogger(__name__)


class PinOrchestrator:
    """Owns the binding and reference tables and drives the node adapters.

    apply() and the node add/remove operations share one lock, so all
    table and registry mutation happens one call at a time, in call order.
    Adapter failures never raise out of apply(); tables are updated even
    when placement partly or wholly failed.

    Flow for each change:
    1. Drop the key's reference to its previous CID
    2. When that was the last reference, unpin it from every node
    3. Bind the key to the new CID (or clear it when the CID is empty)
    4. Place the CID per the strategy, unless it is already referenced
    """

    def __init__(
        self,
        registry: NodeRegistry,
        strategy: Strategy | None = Strategy.PARALLEL,
        bindings: BindingTable | None = None,
        references: PinReferenceTable | None = None,
    ) -> None:
        self._registry = registry
        self._strategy = strategy
        self._bindings = bindings if bindings is not None else BindingTable()
        self._references = references if references is not None else PinReferenceTable()
        self._cursor = 0
        self._lock = asyncio.Lock()

    # ── State ──────────────────────────────────────────────

    @property
    def registry(self) -> NodeRegistry:
        return self._registry

    @property
    def bindings(self) -> BindingTable:
        return self._bindings

    @property
    def references(self) -> PinReferenceTable:
        return self._references

    @property
    def strategy(self) -> Strategy | None:
        return self._strategy

    @property
    def cursor(self) -> int:
        """Index of the node the next distributed placement goes to."""
        return self._cursor

    def set_strategy(self, strategy: Strategy | None) -> None:
        old = self._strategy
        self._strategy = strategy
        if old != strategy:
            log.info(
                "Strategy changed: %s -> %s",
                old.value if old else None, strategy.value if strategy else None,
            )

    def list_bindings(self) -> list[Binding]:
        return self._bindings.items()

    # ── Node administration ────────────────────────────────

    async def add_node(self, name: str, kind: BackendKind | str, url: str) -> Node:
        async with self._lock:
            return self._registry.add(name, kind, url)

    async def remove_node(self, node_id: str) -> Node:
        async with self._lock:
            return self._registry.remove(node_id)

    # ── Changes ────────────────────────────────────────────

    async def apply(self, key: str, address: str, label: str = "") -> ApplyReport:
        """Bind key to address. An empty address clears the binding."""
        async with self._lock:
            return await self._apply(key, address, label)

    async def _apply(self, key: str, address: str, label: str) -> ApplyReport:
        report = ApplyReport(key=key, content_address=address)
        previous = self._bindings.get(key)

        if previous is not None and address and previous.content_address == address:
            # Same CID again: counts are unchanged
            if label:
                previous.label = label
            report.reused = True
            report.size_bytes = previous.size_bytes
            log.debug("%s already bound to %s", key, address)
            return report

        if previous is not None and self._references.release(previous.content_address):
            report.released = previous.content_address
            report.unpinned = await self._unpin_everywhere(previous.content_address)

        if not address:
            self._bindings.remove(key)
            log.info("Cleared binding for %s", key)
            return report

        binding = self._bindings.upsert(key, address, label)
        if not self._references.acquire(address):
            report.reused = True
            log.info(
                "%s bound to %s (already referenced, %d refs)",
                key, address, self._references.count(address),
            )
            return report

        report.placements, size = await self._place(address)
        if size is not None:
            binding.size_bytes = size
            report.size_bytes = size
        log.info(
            "%s bound to %s (%d/%d placements succeeded)",
            key, address, sum(p.success for p in report.placements), len(report.placements),
        )
        return report

    async def _unpin_everywhere(self, address: str) -> dict[str, bool]:
        """Unpin from every node. Placement is not tracked per node."""
        nodes = self._registry.list()
        log.info("Releasing %s from %d nodes", address, len(nodes))
        results = await asyncio.gather(*(node.adapter.unpin_file(address) for node in nodes))
        return {node.id: ok for node, ok in zip(nodes, results)}

    # ── Placement ──────────────────────────────────────────

    async def _place(self, address: str) -> tuple[list[Placement], int | None]:
        if self._strategy == Strategy.SEQUENTIAL:
            return await self._place_sequential(address)
        if self._strategy == Strategy.PARALLEL:
            return await self._place_parallel(address)
        if self._strategy == Strategy.DISTRIBUTED:
            return await self._place_distributed(address)
        log.warning("No distribution strategy set; %s is referenced but not placed", address)
        return [], None

    async def _pin_on(self, node: Node, address: str) -> Placement:
        """Pin, then confirm with get_file_size, which decides success.

        pin_file reports its own observed size; the separate stat is what
        the placement records.
        """
        await node.adapter.pin_file(address)
        size = await node.adapter.get_file_size(address)
        if size is not None:
            return Placement(node_id=node.id, size_bytes=size)
        err = node.adapter.last_error
        return Placement(node_id=node.id, error=str(err) if err else "size unavailable")

    async def _place_sequential(self, address: str) -> tuple[list[Placement], int | None]:
        """Try nodes in order and stop at the first that holds the CID."""
        placements: list[Placement] = []
        for node in self._registry.list():
            placement = await self._pin_on(node, address)
            placements.append(placement)
            if placement.success:
                return placements, placement.size_bytes
            log.warning("Node %s could not hold %s, trying next", node.id, address)
        log.error("Could not place %s on any of %d nodes", address, len(placements))
        return placements, None

    async def _place_parallel(self, address: str) -> tuple[list[Placement], int | None]:
        """Pin on every node at once. The first successful result sets the size."""
        tasks = [
            asyncio.create_task(self._pin_on(node, address))
            for node in self._registry.list()
        ]
        placements: list[Placement] = []
        size: int | None = None
        try:
            for next_done in asyncio.as_completed(tasks):
                placement = await next_done
                placements.append(placement)
                if size is None and placement.success:
                    size = placement.size_bytes
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        if size is None:
            log.error("Could not place %s on any of %d nodes", address, len(tasks))
        return placements, size

    async def _place_distributed(self, address: str) -> tuple[list[Placement], int | None]:
        """Pin on the node under the cursor, then move the cursor along."""
        nodes = self._registry.list()
        index = self._cursor % len(nodes)
        self._cursor = (index + 1) % len(nodes)
        placement = await self._pin_on(nodes[index], address)
        if not placement.success:
            log.error("Node %s could not hold %s", placement.node_id, address)
        return [placement], placement.size_bytes

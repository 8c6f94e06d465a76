"""Node registry - the ordered pool of IPFS backends."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from ens_pinner.errors import InvalidOperation, NotFound
from ens_pinner.interfaces.adapter import NodeAdapter
from ens_pinner.ipfs.adapter import DEFAULT_LOCAL_RPC_URL, create_adapter
from ens_pinner.models.config import AdapterTimeouts, BackendKind

log = logging.getLogger(__name__)

LOCAL_NODE_ID = "0"

AdapterFactory = Callable[[BackendKind, str, Optional[AdapterTimeouts]], NodeAdapter]


@dataclass
class Node:
    """One backend in the pool. Owns its adapter exclusively."""

    id: str
    name: str
    kind: BackendKind
    url: str
    adapter: NodeAdapter = field(repr=False, compare=False)


class NodeRegistry:
    """Ordered collection of nodes.

    The local node is created with id "0" and can never be removed, so the
    registry is never empty. Ids are assigned sequentially and never reused.
    Order matters: sequential and distributed placement walk it front to back.
    """

    def __init__(
        self,
        local_rpc_url: str = DEFAULT_LOCAL_RPC_URL,
        timeouts: AdapterTimeouts | None = None,
        adapter_factory: AdapterFactory = create_adapter,
    ) -> None:
        self._nodes: list[Node] = []
        self._next_id = 0
        self._timeouts = timeouts
        self._adapter_factory = adapter_factory
        self.add("localhost", BackendKind.LOCAL, local_rpc_url)

    def add(self, name: str, kind: BackendKind | str, endpoint: str) -> Node:
        """Create a node and its adapter, and append it to the pool."""
        if not name:
            raise InvalidOperation("node name is required")
        try:
            kind = BackendKind(kind)
        except ValueError:
            raise InvalidOperation(f"unknown backend kind: {kind!r}") from None

        adapter = self._adapter_factory(kind, endpoint, self._timeouts)
        node = Node(
            id=str(self._next_id),
            name=name,
            kind=kind,
            url=endpoint,
            adapter=adapter,
        )
        self._next_id += 1
        self._nodes.append(node)
        log.info("Added node %s (%s, %s) at %s", node.id, name, kind.value, endpoint)
        return node

    def remove(self, node_id: str) -> Node:
        """Remove a node. Content already placed on it is left as is."""
        if node_id == LOCAL_NODE_ID:
            raise InvalidOperation("the local node cannot be removed")
        node = self.get(node_id)
        self._nodes.remove(node)
        log.info("Removed node %s (%s)", node.id, node.name)
        return node

    def get(self, node_id: str) -> Node:
        for node in self._nodes:
            if node.id == node_id:
                return node
        raise NotFound(f"no node with id {node_id!r}")

    def list(self) -> list[Node]:
        return list(self._nodes)

    def count(self) -> int:
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes))

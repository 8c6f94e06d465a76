"""Node pool: registry, pin tables, and the orchestrator that drives them."""

from ens_pinner.pool.orchestrator import PinOrchestrator
from ens_pinner.pool.registry import LOCAL_NODE_ID, Node, NodeRegistry
from ens_pinner.pool.tables import BindingTable, PinReferenceTable

__all__ = [
    "PinOrchestrator",
    "LOCAL_NODE_ID", "Node", "NodeRegistry",
    "BindingTable", "PinReferenceTable",
]

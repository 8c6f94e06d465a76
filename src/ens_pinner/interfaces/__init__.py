"""Protocol interfaces for ens_pinner components."""

from ens_pinner.interfaces.adapter import NodeAdapter
from ens_pinner.interfaces.source import ChangeSource
from ens_pinner.interfaces.store import StateStore

__all__ = ["NodeAdapter", "ChangeSource", "StateStore"]

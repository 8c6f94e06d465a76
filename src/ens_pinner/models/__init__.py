"""Data models for the ens_pinner daemon."""

from ens_pinner.models.config import (
    AdapterTimeouts,
    BackendKind,
    NodeSpec,
    PinnerConfig,
    Strategy,
)
from ens_pinner.models.events import ContentChange
from ens_pinner.models.records import (
    ActivityRecord,
    ApplyReport,
    Binding,
    ChangeRecord,
    PinReference,
    PinStatusRecord,
    Placement,
)
from ens_pinner.models.snapshots import BindingSnapshot, NodeSnapshot, PoolSnapshot

__all__ = [
    "AdapterTimeouts", "BackendKind", "NodeSpec", "PinnerConfig", "Strategy",
    "ContentChange",
    "ActivityRecord", "ApplyReport", "Binding", "ChangeRecord", "PinReference",
    "PinStatusRecord", "Placement",
    "BindingSnapshot", "NodeSnapshot", "PoolSnapshot",
]

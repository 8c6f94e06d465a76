"""StateStore protocol - audit history of changes and placements."""

from __future__ import annotations

from typing import Protocol

from ens_pinner.models.events import ContentChange
from ens_pinner.models.records import (
    ActivityRecord,
    ApplyReport,
    ChangeRecord,
    PinStatusRecord,
)


class StateStore(Protocol):
    """Records what the daemon did. Never read back to rebuild pool state."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Content changes ────────────────────────────────────

    async def record_change(self, change: ContentChange) -> int:
        ...

    async def get_recent_changes(self, limit: int = 50) -> list[ChangeRecord]:
        ...

    # ── Pin status ─────────────────────────────────────────

    async def record_report(self, report: ApplyReport) -> None:
        """Persist placement and unpin outcomes from one apply()."""
        ...

    async def get_pin_statuses(
        self, content_address: str | None = None
    ) -> list[PinStatusRecord]:
        ...

    # ── Activity ───────────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        key: str | None = None,
        content_address: str | None = None,
    ) -> None:
        ...

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        ...

"""SQLite implementation of the StateStore protocol (audit history only)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ens_pinner.models.events import ContentChange
from ens_pinner.models.records import (
    ActivityRecord,
    ApplyReport,
    ChangeRecord,
    PinStatusRecord,
)

SCHEMA = """
-- Content-hash changes, in the order they were applied
CREATE TABLE IF NOT EXISTS content_changes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    label TEXT NOT NULL DEFAULT '',
    content_address TEXT NOT NULL,
    block_number INTEGER,
    tx_hash TEXT,
    recorded_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_changes_key ON content_changes(key);

-- Last known placement status per (CID, node)
CREATE TABLE IF NOT EXISTS pinning_status (
    content_address TEXT NOT NULL,
    node_id TEXT NOT NULL,
    status TEXT NOT NULL,
    size_bytes INTEGER,
    error TEXT,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (content_address, node_id)
);

-- Activity log
CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    key TEXT,
    content_address TEXT,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_activity_created ON activity_log(created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStateStore:
    """SQLite-backed implementation of the StateStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db is not None:
            return
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Content changes ────────────────────────────────────

    async def record_change(self, change: ContentChange) -> int:
        cur = await self.db.execute(
            "INSERT INTO content_changes"
            " (key, label, content_address, block_number, tx_hash, recorded_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (
                change.key, change.label, change.content_address,
                change.block_number, change.tx_hash, _now(),
            ),
        )
        await self.db.commit()
        return cur.lastrowid

    async def get_recent_changes(self, limit: int = 50) -> list[ChangeRecord]:
        async with self.db.execute(
            "SELECT * FROM content_changes ORDER BY id DESC LIMIT ?", (limit,)
        ) as cur:
            return [
                ChangeRecord(
                    id=row["id"],
                    key=row["key"],
                    label=row["label"],
                    content_address=row["content_address"],
                    block_number=row["block_number"],
                    tx_hash=row["tx_hash"],
                    recorded_at=row["recorded_at"],
                )
                async for row in cur
            ]

    # ── Pin status ─────────────────────────────────────────

    async def record_report(self, report: ApplyReport) -> None:
        now = _now()
        rows: list[tuple] = []
        if report.released:
            for node_id, ok in report.unpinned.items():
                status = "unpinned" if ok else "unpin_failed"
                rows.append((report.released, node_id, status, None, None, now))
        for p in report.placements:
            status = "pinned" if p.success else "failed"
            rows.append((report.content_address, p.node_id, status, p.size_bytes, p.error, now))
        if not rows:
            return

        await self.db.executemany(
            "INSERT INTO pinning_status"
            " (content_address, node_id, status, size_bytes, error, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?)"
            " ON CONFLICT(content_address, node_id) DO UPDATE SET"
            " status=excluded.status, size_bytes=excluded.size_bytes,"
            " error=excluded.error, updated_at=excluded.updated_at",
            rows,
        )
        await self.db.commit()

    async def get_pin_statuses(
        self, content_address: str | None = None
    ) -> list[PinStatusRecord]:
        if content_address:
            sql = "SELECT * FROM pinning_status WHERE content_address=? ORDER BY node_id"
            params: tuple = (content_address,)
        else:
            sql = "SELECT * FROM pinning_status ORDER BY updated_at DESC"
            params = ()
        async with self.db.execute(sql, params) as cur:
            return [
                PinStatusRecord(
                    content_address=row["content_address"],
                    node_id=row["node_id"],
                    status=row["status"],
                    size_bytes=row["size_bytes"],
                    error=row["error"],
                    updated_at=row["updated_at"],
                )
                async for row in cur
            ]

    # ── Activity ───────────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        key: str | None = None,
        content_address: str | None = None,
    ) -> None:
        await self.db.execute(
            "INSERT INTO activity_log (event_type, key, content_address, message, created_at)"
            " VALUES (?, ?, ?, ?, ?)",
            (event_type, key, content_address, message, _now()),
        )
        await self.db.commit()

    async def get_recent_activity(self, limit: int = 50) -> list[ActivityRecord]:
        async with self.db.execute(
            "SELECT * FROM activity_log ORDER BY id DESC LIMIT ?", (limit,)
        ) as cur:
            return [
                ActivityRecord(
                    id=row["id"],
                    event_type=row["event_type"],
                    key=row["key"],
                    content_address=row["content_address"],
                    message=row["message"],
                    created_at=row["created_at"],
                )
                async for row in cur
            ]

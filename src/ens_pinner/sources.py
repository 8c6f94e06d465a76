"""Change sources - feed decoded content-hash changes to the daemon."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TextIO

from ens_pinner.models.events import ContentChange

log = logging.getLogger(__name__)


class QueueChangeSource:
    """In-process source backed by an asyncio.Queue.

    Whatever decodes chain events pushes changes with put(); close() ends
    the stream once everything queued before it has been consumed.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[ContentChange | None] = asyncio.Queue(maxsize)

    async def put(self, change: ContentChange) -> None:
        await self._queue.put(change)

    def put_nowait(self, change: ContentChange) -> None:
        self._queue.put_nowait(change)

    def close(self) -> None:
        self._queue.put_nowait(None)

    async def next_change(self) -> ContentChange | None:
        return await self._queue.get()


class JsonLinesChangeSource:
    """Reads one JSON object per line, e.g. piped from an indexer.

    Expected fields: ``key`` (required), ``hash`` (CID, empty when it could
    not be decoded), and optionally ``label``, ``block_number``, ``tx_hash``.
    Malformed lines are logged and skipped.
    """

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    async def next_change(self) -> ContentChange | None:
        while True:
            line = await asyncio.to_thread(self._stream.readline)
            if not line:
                return None
            line = line.strip()
            if not line:
                continue
            change = _parse_line(line)
            if change is not None:
                return change


def _parse_line(line: str) -> ContentChange | None:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        log.warning("Skipping malformed change line: %s", exc)
        return None
    if not isinstance(data, dict) or not data.get("key"):
        log.warning("Skipping change without a key: %s", line[:120])
        return None

    block = data.get("block_number")
    try:
        block_number = int(block) if block is not None else None
    except (TypeError, ValueError):
        log.warning("Skipping change with bad block_number %r: %s", block, line[:120])
        return None
    tx_hash = data.get("tx_hash")
    return ContentChange(
        key=str(data["key"]),
        content_address=str(data.get("hash") or ""),
        label=str(data.get("label") or ""),
        block_number=block_number,
        tx_hash=str(tx_hash) if tx_hash is not None else None,
    )

"""Main daemon loop - feeds content changes to the orchestrator one at a time."""

from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import web

from ens_pinner.api.admin import start_admin_server
from ens_pinner.interfaces.source import ChangeSource
from ens_pinner.interfaces.store import StateStore
from ens_pinner.models.config import PinnerConfig
from ens_pinner.models.events import ContentChange
from ens_pinner.models.records import ApplyReport
from ens_pinner.pool.orchestrator import PinOrchestrator
from ens_pinner.pool.registry import NodeRegistry
from ens_pinner.storage.sqlite import SQLiteStateStore

log = logging.getLogger(__name__)


class PinnerDaemon:
    """Keeps ENS content-hash targets pinned across the node pool.

    Changes are applied strictly in arrival order; each apply() finishes,
    network calls included, before the next change is read.
    """

    def __init__(
        self,
        cfg: PinnerConfig,
        source: ChangeSource,
        store: StateStore | None = None,
        registry: NodeRegistry | None = None,
    ) -> None:
        self._cfg = cfg
        self._running = False
        self._pending: asyncio.Future | None = None
        self._admin_runner: web.AppRunner | None = None

        self.source = source
        self.registry = registry or NodeRegistry(cfg.local_rpc_url, cfg.timeouts)
        for spec in cfg.nodes:
            self.registry.add(spec.name, spec.kind, spec.url)
        self.orchestrator = PinOrchestrator(self.registry, cfg.strategy)

        if store is None and cfg.db_path:
            store = SQLiteStateStore(cfg.db_path)
        self.store = store

    async def start(self) -> None:
        """Initialize components and run the main loop."""
        strategy = self._cfg.strategy
        log.info("Starting ens_pinner daemon")
        log.info("  Strategy: %s", strategy.value if strategy else "(unset)")
        for node in self.registry.list():
            log.info("  Node %s: %s (%s) %s", node.id, node.name, node.kind.value, node.url)

        if self.store:
            await self.store.initialize()
            await self.store.log_activity("daemon_started", "Daemon started")
        if self._cfg.admin_enabled:
            self._admin_runner = await start_admin_server(
                self.orchestrator, self._cfg.admin_host, self._cfg.admin_port,
            )

        self._running = True
        try:
            await self._main_loop()
        finally:
            if self._admin_runner:
                await self._admin_runner.cleanup()
                self._admin_runner = None
            if self.store:
                await self.store.log_activity("daemon_stopped", "Daemon stopped")
                await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop after the change in progress."""
        log.info("Stop requested")
        self._running = False
        if self._pending is not None:
            self._pending.cancel()

    async def _main_loop(self) -> None:
        while self._running:
            self._pending = asyncio.ensure_future(self.source.next_change())
            try:
                change = await self._pending
            except asyncio.CancelledError:
                log.info("Main loop cancelled")
                break
            finally:
                self._pending = None

            if change is None:
                log.info("Change stream ended")
                break
            await self.process(change)

    async def process(self, change: ContentChange) -> ApplyReport | None:
        """Apply one change and record what happened. Errors never stop the stream."""
        try:
            report = await self.orchestrator.apply(
                change.key, change.content_address, change.label,
            )
            if self.store:
                await self._record(change, report)
            return report
        except Exception as exc:
            log.error("Failed to process change for %s: %s", change.key, exc, exc_info=True)
            if self.store:
                try:
                    await self.store.log_activity("error", str(exc), key=change.key)
                except Exception as store_exc:
                    log.error("Could not log activity: %s", store_exc)
            await asyncio.sleep(self._cfg.error_backoff)
            return None

    async def _record(self, change: ContentChange, report: ApplyReport) -> None:
        assert self.store is not None
        await self.store.record_change(change)
        await self.store.record_report(report)

        if report.released:
            failed = [n for n, ok in report.unpinned.items() if not ok]
            msg = f"Released {report.released} from {len(report.unpinned)} nodes"
            if failed:
                msg += f" ({len(failed)} failed: {', '.join(failed)})"
            await self.store.log_activity(
                "content_released", msg, key=change.key, content_address=report.released,
            )

        if not change.content_address:
            await self.store.log_activity(
                "binding_cleared", f"Cleared binding for {change.label or change.key}",
                key=change.key,
            )
        elif report.reused:
            await self.store.log_activity(
                "content_reused", f"{report.content_address} already retained",
                key=change.key, content_address=report.content_address,
            )
        elif any(p.success for p in report.placements):
            placed = [p.node_id for p in report.placements if p.success]
            await self.store.log_activity(
                "content_placed",
                f"Placed {report.content_address} on node(s) {', '.join(placed)}"
                f" ({report.size_bytes} bytes)",
                key=change.key, content_address=report.content_address,
            )
        else:
            await self.store.log_activity(
                "placement_failed",
                f"No node could hold {report.content_address}",
                key=change.key, content_address=report.content_address,
            )


async def run_daemon(cfg: PinnerConfig, source: ChangeSource) -> None:
    """Entry point for running the daemon."""
    daemon = PinnerDaemon(cfg, source)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()

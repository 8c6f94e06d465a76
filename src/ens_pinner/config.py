"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from ens_pinner.models.config import (
    AdapterTimeouts,
    BackendKind,
    NodeSpec,
    PinnerConfig,
    Strategy,
)

log = logging.getLogger(__name__)


def parse_strategy(value: str | None) -> Strategy | None:
    """Strategy by name; unknown names mean "unset" rather than an error."""
    if not value:
        return None
    try:
        return Strategy(str(value).lower())
    except ValueError:
        log.warning("Unknown distribution strategy %r, nothing will be placed", value)
        return None


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "ENS_PINNER_",
) -> PinnerConfig:
    """Load pinner configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (ENS_PINNER_STRATEGY, etc.)
        2. TOML config file
        3. Defaults from PinnerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = PinnerConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if "strategy" in daemon:
        cfg.strategy = parse_strategy(daemon["strategy"])
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)
    if "error_backoff" in daemon:
        cfg.error_backoff = int(daemon["error_backoff"])

    # ── IPFS section ───────────────────────────────────────
    ipfs = raw.get("ipfs", {})
    if v := ipfs.get("local_rpc_url"):
        cfg.local_rpc_url = str(v)
    defaults = AdapterTimeouts()
    cfg.timeouts = AdapterTimeouts(
        connect=float(ipfs.get("connect_timeout", defaults.connect)),
        pin=float(ipfs.get("pin_timeout", defaults.pin)),
        stat=float(ipfs.get("stat_timeout", defaults.stat)),
        unpin=float(ipfs.get("unpin_timeout", defaults.unpin)),
        gc=float(ipfs.get("gc_timeout", defaults.gc)),
    )

    # ── Nodes ──────────────────────────────────────────────
    for entry in raw.get("nodes", []):
        cfg.nodes.append(
            NodeSpec(
                name=str(entry["name"]),
                kind=BackendKind(entry.get("kind", BackendKind.REMOTE_CLOUD.value)),
                url=str(entry["url"]),
            )
        )

    # ── Admin section ──────────────────────────────────────
    admin = raw.get("admin", {})
    if "enabled" in admin:
        cfg.admin_enabled = bool(admin["enabled"])
    if v := admin.get("host"):
        cfg.admin_host = str(v)
    if v := admin.get("port"):
        cfg.admin_port = int(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if "db_path" in storage:
        cfg.db_path = str(storage["db_path"])

    # ── Environment variable overrides (highest priority) ──
    if (strategy := os.environ.get(f"{env_prefix}STRATEGY")) is not None:
        cfg.strategy = parse_strategy(strategy)
    if url := os.environ.get(f"{env_prefix}LOCAL_RPC_URL"):
        cfg.local_rpc_url = url
    if port := os.environ.get(f"{env_prefix}ADMIN_PORT"):
        cfg.admin_port = int(port)
    if (db_path := os.environ.get(f"{env_prefix}DB_PATH")) is not None:
        cfg.db_path = db_path

    # Expand ~ in paths
    if cfg.db_path and cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg

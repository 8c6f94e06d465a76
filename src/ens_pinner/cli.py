"""CLI entry point for the ens_pinner daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
import httpx

from ens_pinner.config import load_config
from ens_pinner.daemon import run_daemon
from ens_pinner.models.config import BackendKind, PinnerConfig
from ens_pinner.sources import JsonLinesChangeSource
from ens_pinner.storage.sqlite import SQLiteStateStore


def _admin_url(cfg: PinnerConfig) -> str:
    return f"http://{cfg.admin_host}:{cfg.admin_port}"


def _admin_request(cfg: PinnerConfig, method: str, path: str, **kwargs) -> dict:
    """Call the running daemon's admin API, exiting with a message on failure."""
    try:
        resp = httpx.request(method, f"{_admin_url(cfg)}{path}", timeout=30, **kwargs)
    except httpx.TransportError as exc:
        click.echo(f"Error: admin API unreachable at {_admin_url(cfg)}: {exc}", err=True)
        click.echo("Is the daemon running? Start it with 'ens-pinner run'.", err=True)
        sys.exit(1)
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("error", resp.text)
        except ValueError:
            detail = resp.text
        click.echo(f"Error: {detail}", err=True)
        sys.exit(1)
    return resp.json()


def _size(n: float) -> str:
    for unit in ("B", "KiB", "MiB"):
        if n < 1024:
            return f"{n:.0f} {unit}"
        n /= 1024
    return f"{n:.1f} GiB"


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """ens_pinner - keep ENS content-hash targets pinned across IPFS nodes."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.option(
    "--events", "events_file", type=click.File("r"), default="-",
    help="JSON-lines file of content changes ('-' for stdin)",
)
@click.pass_context
def run(ctx: click.Context, events_file) -> None:
    """Start the pinning daemon."""
    cfg = load_config(ctx.obj["config_path"])
    strategy = cfg.strategy.value if cfg.strategy else "unset"
    click.echo(f"Starting ens_pinner daemon (strategy: {strategy})")
    asyncio.run(run_daemon(cfg, JsonLinesChangeSource(events_file)))


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration."""
    cfg = load_config(ctx.obj["config_path"])
    t = cfg.timeouts
    click.echo(f"Strategy:   {cfg.strategy.value if cfg.strategy else '(unset)'}")
    click.echo(f"Local Kubo: {cfg.local_rpc_url}")
    click.echo(f"Timeouts:   connect={t.connect}s pin={t.pin}s stat={t.stat}s "
               f"unpin={t.unpin}s gc={t.gc}s")
    click.echo(f"Admin API:  {_admin_url(cfg) if cfg.admin_enabled else '(disabled)'}")
    click.echo(f"DB path:    {cfg.db_path or '(disabled)'}")
    for spec in cfg.nodes:
        click.echo(f"Node:       {spec.name} ({spec.kind.value}) {spec.url}")


# ── Nodes ──────────────────────────────────────────────


@cli.group()
def nodes() -> None:
    """Manage the node pool of a running daemon."""


@nodes.command("list")
@click.option("--probe", is_flag=True, help="Query each node for reachability and repo usage")
@click.pass_context
def nodes_list(ctx: click.Context, probe: bool) -> None:
    """List registered nodes."""
    cfg = load_config(ctx.obj["config_path"])
    data = _admin_request(cfg, "GET", "/nodes", params={"probe": "1" if probe else "0"})
    for n in data["nodes"]:
        line = f"  [{n['id']:>3}] {n['name']:20s} {n['kind']:16s} {n['url']}"
        if n.get("online") is not None:
            state = "online" if n["online"] else "OFFLINE"
            line += f"  {state} {_size(n['repo_size'])}/{_size(n['storage_max'])}"
        click.echo(line)


@nodes.command("add")
@click.argument("name")
@click.argument("url")
@click.option(
    "--kind", type=click.Choice([k.value for k in BackendKind]),
    default=BackendKind.REMOTE_CLOUD.value, help="Backend kind",
)
@click.pass_context
def nodes_add(ctx: click.Context, name: str, url: str, kind: str) -> None:
    """Register a node by NAME and Kubo RPC URL."""
    cfg = load_config(ctx.obj["config_path"])
    node = _admin_request(cfg, "POST", "/nodes", json={"name": name, "kind": kind, "url": url})
    click.echo(f"Added node {node['id']}: {node['name']} ({node['kind']}) {node['url']}")


@nodes.command("remove")
@click.argument("node_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def nodes_remove(ctx: click.Context, node_id: str, yes: bool) -> None:
    """Remove a node. Content already on it stays pinned there."""
    cfg = load_config(ctx.obj["config_path"])
    if not yes:
        click.confirm(f"Remove node {node_id}?", abort=True)
    _admin_request(cfg, "DELETE", f"/nodes/{node_id}")
    click.echo(f"Removed node {node_id}")


# ── Pool ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def bindings(ctx: click.Context) -> None:
    """List current ENS key -> CID bindings."""
    cfg = load_config(ctx.obj["config_path"])
    data = _admin_request(cfg, "GET", "/bindings")
    if not data["bindings"]:
        click.echo("No bindings.")
        return
    for b in data["bindings"]:
        click.echo(f"  {b['label'] or b['key'][:18]:30s} {b['content_address']} "
                   f"{_size(b['size_bytes'])}")


@cli.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of recent changes to show")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """Show recently applied content changes from the history store."""
    cfg = load_config(ctx.obj["config_path"])
    if not cfg.db_path:
        click.echo("History store is disabled (storage.db_path is empty).", err=True)
        sys.exit(1)

    async def _history():
        store = SQLiteStateStore(cfg.db_path)
        await store.initialize()
        try:
            changes = await store.get_recent_changes(limit)
            if not changes:
                click.echo("No changes recorded.")
                return
            for c in changes:
                target = c.content_address or "(cleared)"
                click.echo(f"  #{c.id} at={c.recorded_at} key={c.key[:18]} "
                           f"{c.label or '-'} -> {target}")
        finally:
            await store.close()

    asyncio.run(_history())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

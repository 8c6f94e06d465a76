"""Admin HTTP API - node registration and pool inspection (aiohttp)."""

from __future__ import annotations

import logging
from dataclasses import asdict

from aiohttp import web

from ens_pinner.api.data_api import PoolDataAPI, node_to_snapshot
from ens_pinner.errors import InvalidOperation, NotFound
from ens_pinner.models.config import Strategy
from ens_pinner.pool.orchestrator import PinOrchestrator

log = logging.getLogger(__name__)

ORCHESTRATOR_KEY = web.AppKey("orchestrator", PinOrchestrator)
DATA_API_KEY = web.AppKey("data_api", PoolDataAPI)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except NotFound as exc:
        return web.json_response({"error": str(exc)}, status=404)
    except InvalidOperation as exc:
        return web.json_response({"error": str(exc)}, status=400)


async def _json_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidOperation("request body must be JSON") from None
    if not isinstance(body, dict):
        raise InvalidOperation("request body must be a JSON object")
    return body


# ── Nodes ──────────────────────────────────────────────────


async def create_node(request: web.Request) -> web.Response:
    body = await _json_body(request)
    name, kind, url = body.get("name"), body.get("kind", "remote-cloud"), body.get("url")
    if not name or not url:
        raise InvalidOperation("name and url are required")
    node = await request.app[ORCHESTRATOR_KEY].add_node(str(name), str(kind), str(url))
    return web.json_response(asdict(node_to_snapshot(node)), status=201)


async def list_nodes(request: web.Request) -> web.Response:
    probe = request.query.get("probe", "").lower() in ("1", "true", "yes")
    nodes = await request.app[DATA_API_KEY].get_nodes(probe=probe)
    return web.json_response({"nodes": [asdict(n) for n in nodes]})


async def count_nodes(request: web.Request) -> web.Response:
    return web.json_response({"count": request.app[ORCHESTRATOR_KEY].registry.count()})


async def get_node(request: web.Request) -> web.Response:
    snap = await request.app[DATA_API_KEY].get_node(request.match_info["id"])
    return web.json_response(asdict(snap))


async def delete_node(request: web.Request) -> web.Response:
    node = await request.app[ORCHESTRATOR_KEY].remove_node(request.match_info["id"])
    return web.json_response({"deleted": node.id})


# ── Pool ───────────────────────────────────────────────────


async def list_bindings(request: web.Request) -> web.Response:
    bindings = request.app[DATA_API_KEY].get_bindings()
    return web.json_response({"bindings": [asdict(b) for b in bindings]})


async def get_pool(request: web.Request) -> web.Response:
    return web.json_response(asdict(request.app[DATA_API_KEY].get_pool()))


async def get_strategy(request: web.Request) -> web.Response:
    strategy = request.app[ORCHESTRATOR_KEY].strategy
    return web.json_response({"strategy": strategy.value if strategy else None})


async def put_strategy(request: web.Request) -> web.Response:
    body = await _json_body(request)
    try:
        strategy = Strategy(body.get("strategy"))
    except ValueError:
        raise InvalidOperation(f"unknown strategy: {body.get('strategy')!r}") from None
    request.app[ORCHESTRATOR_KEY].set_strategy(strategy)
    return web.json_response({"strategy": strategy.value})


def create_app(orchestrator: PinOrchestrator) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[ORCHESTRATOR_KEY] = orchestrator
    app[DATA_API_KEY] = PoolDataAPI(orchestrator)
    app.router.add_post("/nodes", create_node)
    app.router.add_get("/nodes", list_nodes)
    app.router.add_get("/nodes/count", count_nodes)
    app.router.add_get("/nodes/{id}", get_node)
    app.router.add_delete("/nodes/{id}", delete_node)
    app.router.add_get("/bindings", list_bindings)
    app.router.add_get("/pool", get_pool)
    app.router.add_get("/strategy", get_strategy)
    app.router.add_put("/strategy", put_strategy)
    return app


async def start_admin_server(
    orchestrator: PinOrchestrator, host: str, port: int
) -> web.AppRunner:
    """Start the admin API in the running loop. Caller owns runner.cleanup()."""
    runner = web.AppRunner(create_app(orchestrator))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("Admin API listening on http://%s:%d", host, port)
    return runner

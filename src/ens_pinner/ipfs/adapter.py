"""Kubo node adapters - pin/unpin/stat content via the Kubo HTTP RPC."""

from __future__ import annotations

import logging
import os
from urllib.parse import urlparse

import httpx

from ens_pinner.errors import (
    AdapterContentUnavailable,
    AdapterError,
    AdapterTimeout,
    AdapterUnreachable,
    FailureKind,
    InvalidOperation,
)
from ens_pinner.models.config import AdapterTimeouts, BackendKind

log = logging.getLogger(__name__)

DEFAULT_LOCAL_RPC_URL = "http://127.0.0.1:5001"
DOCKER_HOST_RPC_URL = "http://host.docker.internal:5001"

# Kubo error messages meaning the content cannot be found or fetched
_NOT_FOUND_MARKERS = (
    "not found",
    "no link named",
    "could not resolve",
    "invalid path",
)


def resolve_local_url(configured: str = DEFAULT_LOCAL_RPC_URL) -> str:
    """Loopback Kubo URL, or the docker host when running inside a container."""
    if configured == DEFAULT_LOCAL_RPC_URL and "docker" in os.environ.get("HOSTNAME", ""):
        return DOCKER_HOST_RPC_URL
    return configured


class KuboNodeAdapter:
    """Pin operations against one Kubo node.

    Uses the Kubo HTTP RPC API at /api/v0/ for:
    - pin/add: Pin a CID (fetches content from the network)
    - pin/rm + repo/gc: Release a CID and reclaim space
    - files/stat: Size of a CID
    - repo/stat: Repo usage and StorageMax
    - version: Reachability check

    Every call has its own timeout and is attempted once. Errors are
    classified into AdapterError subclasses, logged, and turned into
    sentinel return values; the most recent one is kept in ``last_error``.
    """

    kind: BackendKind

    def __init__(
        self,
        rpc_url: str,
        timeouts: AdapterTimeouts | None = None,
        quota: int = -1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = rpc_url.rstrip("/")
        self._timeouts = timeouts or AdapterTimeouts()
        self._transport = transport
        self._quota = quota  # -1 = unlimited
        self._quota_used = 0
        self.last_error: AdapterError | None = None

    @property
    def endpoint(self) -> str:
        return self._base_url

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/api/v0/{endpoint}"

    async def _rpc(
        self, operation: str, endpoint: str, timeout: float, **params: str
    ) -> httpx.Response:
        """POST one RPC call. Raises a classified AdapterError on any failure."""
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout, connect=self._timeouts.connect),
                transport=self._transport,
            ) as client:
                resp = await client.post(self._url(endpoint), params=params)
                resp.raise_for_status()
                return resp
        except httpx.TimeoutException as exc:
            raise AdapterTimeout(self._base_url, operation, f"after {timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            detail = _error_message(exc.response)
            lowered = detail.lower()
            if exc.response.status_code == 404 or any(m in lowered for m in _NOT_FOUND_MARKERS):
                raise AdapterContentUnavailable(self._base_url, operation, detail) from exc
            raise AdapterError(
                self._base_url, operation, f"HTTP {exc.response.status_code}: {detail}",
            ) from exc
        except httpx.TransportError as exc:
            raise AdapterUnreachable(self._base_url, operation, str(exc)) from exc

    def _json(self, resp: httpx.Response, operation: str) -> dict:
        try:
            data = resp.json()
        except ValueError as exc:
            raise AdapterError(self._base_url, operation, "response is not JSON") from exc
        if not isinstance(data, dict):
            raise AdapterError(self._base_url, operation, "unexpected response shape")
        return data

    def _int_field(self, data: dict, field: str, operation: str) -> int:
        try:
            return int(data.get(field, 0))
        except (TypeError, ValueError) as exc:
            raise AdapterError(
                self._base_url, operation, f"unexpected {field} value: {data.get(field)!r}",
            ) from exc

    def _fail(self, exc: AdapterError) -> None:
        self.last_error = exc
        if exc.kind == FailureKind.TIMEOUT:
            log.error(
                "%s (consider raising the %s timeout if this happens often)",
                exc, exc.operation,
            )
        elif exc.kind == FailureKind.NOT_FOUND:
            log.warning("%s", exc)
        else:
            log.error("%s", exc)

    # ── Pinning ────────────────────────────────────────────

    async def pin_file(self, address: str) -> int | None:
        """Pin a CID; Kubo fetches the content if it isn't held locally."""
        log.info("Pinning %s on %s", address, self._base_url)
        try:
            await self._rpc("pin", "pin/add", self._timeouts.pin, arg=address)
            await self._after_pin(address)
            size = await self._stat(address)
        except AdapterError as exc:
            self._fail(exc)
            return None
        self._quota_used += size
        log.info("Pinned %s on %s (%d bytes)", address, self._base_url, size)
        return size

    async def _after_pin(self, address: str) -> None:
        """Hook run between pin/add and the size stat."""

    async def unpin_file(self, address: str) -> bool:
        """Remove the pin, then garbage-collect the repo."""
        try:
            await self._rpc("unpin", "pin/rm", self._timeouts.unpin, arg=address)
        except AdapterError as exc:
            if "not pinned" in exc.detail.lower():
                log.debug("CID %s was not pinned on %s", address, self._base_url)
                return True
            self._fail(exc)
            return False

        try:
            await self._rpc("gc", "repo/gc", self._timeouts.gc)
        except AdapterError as exc:
            # The pin is gone; reclamation will happen on the node's own GC
            self._fail(exc)
        log.info("Unpinned %s from %s", address, self._base_url)
        return True

    # ── Stats ──────────────────────────────────────────────

    async def _stat(self, address: str) -> int:
        resp = await self._rpc("stat", "files/stat", self._timeouts.stat, arg=f"/ipfs/{address}")
        data = self._json(resp, "stat")
        field = "CumulativeSize" if data.get("Type") == "directory" else "Size"
        return self._int_field(data, field, "stat")

    async def get_file_size(self, address: str) -> int | None:
        try:
            return await self._stat(address)
        except AdapterError as exc:
            self._fail(exc)
            return None

    async def get_quota_range(self) -> tuple[int, int]:
        """Current repo size and StorageMax, in bytes."""
        try:
            resp = await self._rpc("repo_stat", "repo/stat", self._timeouts.stat)
            data = self._json(resp, "repo_stat")
            return (
                self._int_field(data, "RepoSize", "repo_stat"),
                self._int_field(data, "StorageMax", "repo_stat"),
            )
        except AdapterError as exc:
            self._fail(exc)
            return 0, 0

    async def is_online(self) -> bool:
        try:
            await self._rpc("version", "version", self._timeouts.connect)
            return True
        except AdapterError as exc:
            self._fail(exc)
            return False

    # ── Quota (carried, not enforced) ──────────────────────

    def is_over_quota(self) -> bool:
        return 0 <= self._quota < self._quota_used

    def adjust_quota(self, new_max: int) -> None:
        log.info("Quota for %s set to %d bytes (not enforced)", self._base_url, new_max)
        self._quota = new_max


class LocalKuboAdapter(KuboNodeAdapter):
    """Kubo on this machine, or on the docker host when containerized.

    Pinned content is also announced to the routing system so other peers
    can find it.
    """

    kind = BackendKind.LOCAL

    def __init__(
        self,
        rpc_url: str = DEFAULT_LOCAL_RPC_URL,
        timeouts: AdapterTimeouts | None = None,
        quota: int = -1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(resolve_local_url(rpc_url), timeouts, quota, transport)

    async def _after_pin(self, address: str) -> None:
        try:
            await self._rpc("provide", "routing/provide", self._timeouts.stat, arg=address)
        except AdapterError as exc:
            # Announcing is best effort, the pin itself succeeded
            log.warning("Could not announce %s: %s", address, exc)


class RemoteKuboAdapter(KuboNodeAdapter):
    """Self-hosted Kubo node reachable over an operator-supplied URL."""

    kind = BackendKind.REMOTE_CLOUD


class PinningServiceAdapter(RemoteKuboAdapter):
    """Hosted pinning service exposing a Kubo-compatible RPC endpoint."""

    kind = BackendKind.PINNING_SERVICE


def create_adapter(
    kind: BackendKind,
    endpoint: str,
    timeouts: AdapterTimeouts | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> KuboNodeAdapter:
    """Build the adapter for a backend kind. Called once per node."""
    if kind == BackendKind.LOCAL:
        return LocalKuboAdapter(endpoint or DEFAULT_LOCAL_RPC_URL, timeouts, transport=transport)

    parsed = urlparse(endpoint or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidOperation(f"invalid node URL: {endpoint!r}")
    if kind == BackendKind.PINNING_SERVICE:
        return PinningServiceAdapter(endpoint, timeouts, transport=transport)
    return RemoteKuboAdapter(endpoint, timeouts, transport=transport)


def _error_message(resp: httpx.Response) -> str:
    """Kubo returns errors as {"Message": ..., "Code": ..., "Type": "error"}."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(data, dict) and "Message" in data:
        return str(data["Message"])
    return resp.text[:200]

"""Tier 2 fixtures: a real Kubo daemon on localhost."""

from __future__ import annotations

import httpx
import pytest

from ens_pinner.ipfs.adapter import LocalKuboAdapter
from ens_pinner.models.config import AdapterTimeouts

KUBO_URL = "http://127.0.0.1:5001"


@pytest.fixture(scope="session")
def kubo_available():
    """Check if local Kubo daemon is running. Skip tier2 tests if not."""
    try:
        r = httpx.post(f"{KUBO_URL}/api/v0/id", timeout=3)
        if r.status_code == 200:
            return True
        pytest.skip(f"Kubo daemon not available at {KUBO_URL}")
    except (httpx.ConnectError, httpx.TimeoutException):
        pytest.skip(f"Kubo daemon not available at {KUBO_URL}")


@pytest.fixture
async def local_content(kubo_available):
    """Add content to Kubo without pinning it. Returns (cid, content)."""
    content = b"ens-pinner-tier2-content"
    async with httpx.AsyncClient() as client:
        resp = await client.post(
            f"{KUBO_URL}/api/v0/add",
            params={"pin": "false"},
            files={"file": ("test.txt", content)},
        )
        cid = resp.json()["Hash"]
        yield cid, content
        await client.post(f"{KUBO_URL}/api/v0/pin/rm", params={"arg": cid})


@pytest.fixture
def real_adapter(kubo_available):
    return LocalKuboAdapter(KUBO_URL, AdapterTimeouts(pin=30, gc=30))

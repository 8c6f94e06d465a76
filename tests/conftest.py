"""Shared fixtures for ens_pinner tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from ens_pinner.ipfs.adapter import DEFAULT_LOCAL_RPC_URL
from ens_pinner.models.config import PinnerConfig, Strategy
from ens_pinner.pool.orchestrator import PinOrchestrator
from ens_pinner.pool.registry import NodeRegistry
from ens_pinner.storage.sqlite import SQLiteStateStore

from tests.mocks import MockAdapterFactory


def pytest_configure(config):
    """Add pool info to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Local Kubo"] = DEFAULT_LOCAL_RPC_URL
    meta["Default strategy"] = PinnerConfig().strategy.value


def make_test_config(**overrides) -> PinnerConfig:
    """Build a PinnerConfig suitable for testing."""
    defaults = dict(
        strategy=Strategy.PARALLEL,
        error_backoff=0,
        admin_enabled=False,
        db_path=":memory:",
    )
    defaults.update(overrides)
    return PinnerConfig(**defaults)


def add_remote_nodes(registry: NodeRegistry, count: int) -> None:
    """Append `count` remote nodes after the local one."""
    for i in range(1, count + 1):
        registry.add(f"vm{i}", "remote-cloud", f"http://10.0.0.{i}:5001")


@pytest.fixture
def test_config():
    return make_test_config()


@pytest.fixture
def adapters():
    return MockAdapterFactory()


@pytest.fixture
def registry(adapters):
    """Registry holding only the built-in local node, backed by mocks."""
    return NodeRegistry(adapter_factory=adapters)


@pytest.fixture
def orchestrator(registry):
    return PinOrchestrator(registry, Strategy.PARALLEL)


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteStateStore."""
    s = SQLiteStateStore(":memory:")
    await s.initialize()
    yield s
    await s.close()

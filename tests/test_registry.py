"""Node registry: ids, ordering, and the undeletable local node."""

from __future__ import annotations

import pytest

from ens_pinner.errors import InvalidOperation, NotFound
from ens_pinner.ipfs.adapter import LocalKuboAdapter, PinningServiceAdapter, RemoteKuboAdapter
from ens_pinner.models.config import BackendKind
from ens_pinner.pool.registry import LOCAL_NODE_ID, NodeRegistry

from tests.conftest import add_remote_nodes


def test_local_node_always_first(registry):
    nodes = registry.list()
    assert len(nodes) == 1
    assert nodes[0].id == LOCAL_NODE_ID == "0"
    assert nodes[0].kind == BackendKind.LOCAL


def test_add_assigns_sequential_ids(registry, adapters):
    a = registry.add("vm1", "remote-cloud", "http://10.0.0.1:5001")
    b = registry.add("vm2", BackendKind.REMOTE_CLOUD, "http://10.0.0.2:5001")

    assert (a.id, b.id) == ("1", "2")
    assert [n.id for n in registry.list()] == ["0", "1", "2"]
    assert registry.count() == 3
    # One adapter per node, owned by that node
    assert [n.adapter for n in registry] == adapters.adapters


def test_ids_are_not_reused(registry):
    add_remote_nodes(registry, 2)
    registry.remove("2")
    node = registry.add("vm3", "remote-cloud", "http://10.0.0.3:5001")
    assert node.id == "3"


def test_remove_local_node_fails_and_leaves_registry_unchanged(registry):
    add_remote_nodes(registry, 1)
    before = registry.list()

    with pytest.raises(InvalidOperation):
        registry.remove("0")

    assert registry.list() == before


def test_remove_unknown_node(registry):
    with pytest.raises(NotFound):
        registry.remove("42")
    with pytest.raises(NotFound):
        registry.get("42")


def test_remove_keeps_order(registry):
    add_remote_nodes(registry, 3)
    removed = registry.remove("2")
    assert removed.name == "vm2"
    assert [n.id for n in registry.list()] == ["0", "1", "3"]


def test_rejects_unknown_kind_and_missing_name(registry):
    with pytest.raises(InvalidOperation):
        registry.add("x", "ftp", "http://10.0.0.1:5001")
    with pytest.raises(InvalidOperation):
        registry.add("", "remote-cloud", "http://10.0.0.1:5001")
    assert registry.count() == 1


def test_default_factory_picks_adapter_by_kind():
    registry = NodeRegistry()
    remote = registry.add("vm", "remote-cloud", "http://10.0.0.1:5001")
    hosted = registry.add("hosted", "pinning-service", "https://pins.example.com")

    assert isinstance(registry.get("0").adapter, LocalKuboAdapter)
    assert type(remote.adapter) is RemoteKuboAdapter
    assert isinstance(hosted.adapter, PinningServiceAdapter)


def test_default_factory_rejects_bad_url():
    registry = NodeRegistry()
    with pytest.raises(InvalidOperation):
        registry.add("vm", "remote-cloud", "not a url")
    assert registry.count() == 1

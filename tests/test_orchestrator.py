"""apply(): reference counting, release sweeps, and binding updates."""

from __future__ import annotations

import asyncio
import random

from ens_pinner.models.config import Strategy
from ens_pinner.pool.orchestrator import PinOrchestrator

from tests.conftest import add_remote_nodes
from tests.factories import CID_A, CID_B, CID_C, ens_key


def assert_counts_match_bindings(orch: PinOrchestrator) -> None:
    """Every referenced CID is counted once per key bound to it, and nothing else."""
    bound: dict[str, int] = {}
    for b in orch.list_bindings():
        bound[b.content_address] = bound.get(b.content_address, 0) + 1
    assert {r.content_address: r.count for r in orch.references.items()} == bound


async def test_first_binding_places_and_records_size(orchestrator, adapters):
    report = await orchestrator.apply("k1", CID_A, "site.eth")

    binding = orchestrator.bindings.get("k1")
    assert binding.content_address == CID_A
    assert binding.label == "site.eth"
    assert binding.size_bytes == 1024
    assert orchestrator.references.count(CID_A) == 1
    assert adapters[0].pin_calls == [CID_A]
    assert report.size_bytes == 1024
    assert [p.node_id for p in report.placements] == ["0"]


async def test_shared_address_dispatches_once(orchestrator, registry, adapters):
    add_remote_nodes(registry, 2)

    await orchestrator.apply("k1", CID_A)
    calls_after_first = adapters.total_calls()
    report = await orchestrator.apply("k2", CID_A)

    assert adapters.total_calls() == calls_after_first
    assert report.reused
    assert report.placements == []
    assert orchestrator.references.count(CID_A) == 2
    assert_counts_match_bindings(orchestrator)


async def test_last_reference_unpins_from_every_node_once(orchestrator, registry, adapters):
    add_remote_nodes(registry, 2)
    await orchestrator.apply("k1", CID_A)

    report = await orchestrator.apply("k1", CID_B)

    assert CID_A not in orchestrator.references
    assert report.released == CID_A
    assert report.unpinned == {"0": True, "1": True, "2": True}
    for adapter in adapters.adapters:
        assert adapter.unpin_calls == [CID_A]
    assert orchestrator.bindings.get("k1").content_address == CID_B


async def test_release_waits_for_other_keys(orchestrator, adapters):
    await orchestrator.apply("k1", CID_A)
    await orchestrator.apply("k2", CID_A)

    report = await orchestrator.apply("k1", CID_B)
    assert report.released is None
    assert adapters[0].unpin_calls == []
    assert orchestrator.references.count(CID_A) == 1

    report = await orchestrator.apply("k2", CID_C)
    assert report.released == CID_A
    assert adapters[0].unpin_calls == [CID_A]
    assert_counts_match_bindings(orchestrator)


async def test_empty_address_clears_binding_without_placement(orchestrator, registry, adapters):
    add_remote_nodes(registry, 1)
    await orchestrator.apply("k1", CID_A)
    pins_before = [len(a.pin_calls) for a in adapters.adapters]

    report = await orchestrator.apply("k1", "")

    assert orchestrator.bindings.get("k1") is None
    assert CID_A not in orchestrator.references
    assert report.released == CID_A
    assert report.placements == []
    assert [len(a.pin_calls) for a in adapters.adapters] == pins_before
    assert [a.unpin_calls for a in adapters.adapters] == [[CID_A], [CID_A]]


async def test_empty_address_for_unbound_key_does_nothing(orchestrator, adapters):
    report = await orchestrator.apply("k1", "")

    assert orchestrator.bindings.get("k1") is None
    assert len(orchestrator.references) == 0
    assert report.released is None
    assert adapters.total_calls() == 0


async def test_same_address_again_is_a_noop(orchestrator, adapters):
    await orchestrator.apply("k1", CID_A, "old.eth")
    calls = adapters.total_calls()

    report = await orchestrator.apply("k1", CID_A, "new.eth")

    assert report.reused
    assert report.size_bytes == 1024
    assert adapters.total_calls() == calls
    assert orchestrator.references.count(CID_A) == 1
    binding = orchestrator.bindings.get("k1")
    assert binding.label == "new.eth"
    assert binding.size_bytes == 1024


async def test_failed_placement_still_binds(orchestrator, adapters):
    adapters[0].size = None

    report = await orchestrator.apply("k1", CID_A)

    assert orchestrator.bindings.get("k1").size_bytes == 0
    assert orchestrator.references.count(CID_A) == 1
    assert report.placements[0].error is not None
    assert not report.placements[0].success


async def test_unset_strategy_references_without_placing(registry, adapters):
    orch = PinOrchestrator(registry, strategy=None)

    report = await orch.apply("k1", CID_A)

    assert orch.references.count(CID_A) == 1
    assert report.placements == []
    assert adapters.total_calls() == 0


async def test_release_sweep_skips_removed_nodes(orchestrator, registry, adapters):
    add_remote_nodes(registry, 2)
    await orchestrator.apply("k1", CID_A)
    await orchestrator.remove_node("1")

    report = await orchestrator.apply("k1", "")

    assert set(report.unpinned) == {"0", "2"}
    assert adapters[1].unpin_calls == []


async def test_counts_track_bindings_over_random_sequences(registry):
    add_remote_nodes(registry, 2)
    rng = random.Random(1234)
    keys = [ens_key(f"name{i}.eth") for i in range(6)]
    cids = [CID_A, CID_B, CID_C, ""]

    for strategy in Strategy:
        orch = PinOrchestrator(registry, strategy)
        for _ in range(150):
            await orch.apply(rng.choice(keys), rng.choice(cids))
            assert_counts_match_bindings(orch)
            assert all(b.content_address for b in orch.list_bindings())


async def test_admin_mutation_waits_for_apply(orchestrator, registry, adapters):
    add_remote_nodes(registry, 1)
    for adapter in adapters.adapters:
        adapter.delay = 0.05

    apply_task = asyncio.create_task(orchestrator.apply("k1", CID_A))
    await asyncio.sleep(0.01)  # apply is now waiting on the adapters
    await orchestrator.remove_node("1")

    assert apply_task.done()
    report = apply_task.result()
    assert {p.node_id for p in report.placements} == {"0", "1"}
    assert registry.count() == 1

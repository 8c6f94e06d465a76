"""Reference table and binding table bookkeeping."""

from __future__ import annotations

from ens_pinner.pool.tables import BindingTable, PinReferenceTable

from tests.factories import CID_A, CID_B


def test_first_acquire_creates_reference():
    refs = PinReferenceTable()
    assert refs.acquire(CID_A) is True
    assert CID_A in refs
    assert refs.count(CID_A) == 1


def test_second_acquire_increments():
    refs = PinReferenceTable()
    refs.acquire(CID_A)
    assert refs.acquire(CID_A) is False
    assert refs.count(CID_A) == 2
    assert len(refs) == 1


def test_release_removes_entry_only_at_zero():
    refs = PinReferenceTable()
    refs.acquire(CID_A)
    refs.acquire(CID_A)

    assert refs.release(CID_A) is False
    assert refs.count(CID_A) == 1

    assert refs.release(CID_A) is True
    assert CID_A not in refs
    assert refs.count(CID_A) == 0


def test_release_unknown_is_ignored():
    refs = PinReferenceTable()
    assert refs.release(CID_B) is False
    assert len(refs) == 0


def test_items_are_copies():
    refs = PinReferenceTable()
    refs.acquire(CID_A)
    refs.items()[0].count = 99
    assert refs.count(CID_A) == 1


def test_binding_upsert_replaces():
    table = BindingTable()
    first = table.upsert("k", CID_A, "a.eth")
    first.size_bytes = 500

    second = table.upsert("k", CID_B, "a.eth")
    assert len(table) == 1
    assert table.get("k") is second
    assert second.content_address == CID_B
    assert second.size_bytes == 0


def test_binding_remove_and_lookup():
    table = BindingTable()
    table.upsert("k1", CID_A)
    table.upsert("k2", CID_A)
    table.upsert("k3", CID_B)

    assert table.remove("k1").content_address == CID_A
    assert table.remove("k1") is None
    assert "k1" not in table
    assert "k2" in table
    assert table.get("k3").content_address == CID_B

"""Reference-counted pin table and key -> CID binding table."""

from __future__ import annotations

import logging
from dataclasses import replace

from ens_pinner.models.records import Binding, PinReference

log = logging.getLogger(__name__)


class PinReferenceTable:
    """CIDs retained somewhere in the pool, with how many keys point at each.

    An entry exists only while its count is positive.
    """

    def __init__(self) -> None:
        self._refs: dict[str, PinReference] = {}

    def acquire(self, address: str) -> bool:
        """Add a reference. True if the CID was not referenced before."""
        ref = self._refs.get(address)
        if ref is not None:
            ref.count += 1
            return False
        self._refs[address] = PinReference(address, 1)
        return True

    def release(self, address: str) -> bool:
        """Drop a reference. True if that was the last one and the entry is gone."""
        ref = self._refs.get(address)
        if ref is None:
            log.warning("Release of unreferenced CID %s ignored", address)
            return False
        ref.count -= 1
        if ref.count > 0:
            return False
        del self._refs[address]
        return True

    def count(self, address: str) -> int:
        ref = self._refs.get(address)
        return ref.count if ref else 0

    def items(self) -> list[PinReference]:
        return [replace(ref) for ref in self._refs.values()]

    def __contains__(self, address: object) -> bool:
        return address in self._refs

    def __len__(self) -> int:
        return len(self._refs)


class BindingTable:
    """At most one binding per key, upserted on every change."""

    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}

    def get(self, key: str) -> Binding | None:
        return self._bindings.get(key)

    def upsert(self, key: str, address: str, label: str = "") -> Binding:
        """Bind key to address with a provisional size of 0."""
        binding = Binding(key=key, content_address=address, label=label, size_bytes=0)
        self._bindings[key] = binding
        return binding

    def remove(self, key: str) -> Binding | None:
        return self._bindings.pop(key, None)

    def items(self) -> list[Binding]:
        return [replace(b) for b in self._bindings.values()]

    def __contains__(self, key: object) -> bool:
        return key in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

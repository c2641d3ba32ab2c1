# geoindex/reader.py
from __future__ import annotations

from typing import Iterator

from geoindex.codec import Leaf, decode_object
from geoindex.models import Entry
from geoindex.store.base import BlockStore


def iter_entries(store: BlockStore, address: str) -> Iterator[Entry]:
    """
    Yield every entry under ``address`` in ascending ``range_start`` order.

    Walks the tree depth-first with an explicit stack, children pushed in
    reverse so the leftmost is visited first.
    """
    stack = [address]
    while stack:
        obj = decode_object(store.get(stack.pop()))
        if isinstance(obj, Leaf):
            yield from obj.entries
        else:
            stack.extend(child.address for child in reversed(obj.children))


def iter_objects(store: BlockStore, address: str) -> Iterator[tuple[str, int]]:
    """Yield ``(address, stored size)`` for each distinct object reachable from ``address``."""
    seen = set()
    stack = [address]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        yield current, store.stat(current).size
        obj = decode_object(store.get(current))
        if not isinstance(obj, Leaf):
            stack.extend(child.address for child in reversed(obj.children))


def count_objects(store: BlockStore, address: str) -> int:
    return sum(1 for _ in iter_objects(store, address))

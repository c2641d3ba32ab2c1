# geoindex/materializer.py
from __future__ import annotations

from typing import Optional, Sequence

from geoindex.cache import SubtreeCache
from geoindex.codec import encode_items
from geoindex.models import Item, StoredNode
from geoindex.store.base import BlockStore
from geoindex.utils.logging import get_logger

log = get_logger(__name__)


def put_object(
        store: BlockStore,
        items: Sequence[Item],
        range_start: int,
        cache: Optional[SubtreeCache] = None,
) -> StoredNode:
    """
    Commit one run of entries (or child references) as a single object.

    The returned size is whatever the store reports for the new address,
    never the local payload length, since stores may add framing.

    Store errors (StoreUnavailable, EncodingRejected, NotFound) propagate
    unchanged; retrying is the caller's decision.
    """
    payload = encode_items(items)

    if cache is not None:
        cached = cache.get(payload)
        if cached is not None:
            return cached

    address = store.put(payload)
    stat = store.stat(address)
    node = StoredNode(range_start=range_start, size=int(stat.size), address=str(address))
    log.debug("Put %d items from %d as %s (%d bytes)", len(items), range_start, node.address, node.size)

    if cache is not None:
        cache.add(payload, node)
    return node

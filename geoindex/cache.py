# geoindex/cache.py
from __future__ import annotations

import hashlib
import threading
from typing import Optional

from geoindex.models import StoredNode


class SubtreeCache:
    """
    Remembers which encoded runs were already committed, and where.

    Keys are SHA-256 digests of the encoded run, so two runs with the same
    items share an entry. A cache belongs to whoever creates it and is
    passed to the folder explicitly; sharing one between stores is a
    caller error, since addresses from one store mean nothing to another.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, StoredNode] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(payload: bytes) -> str:
        return hashlib.sha256(payload).hexdigest()

    def get(self, payload: bytes) -> Optional[StoredNode]:
        with self._lock:
            node = self._nodes.get(self.key(payload))
            if node is None:
                self.misses += 1
                return None
            self.hits += 1
            return node

    def add(self, payload: bytes, node: StoredNode) -> None:
        with self._lock:
            self._nodes[self.key(payload)] = node

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

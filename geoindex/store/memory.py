# geoindex/store/memory.py
from __future__ import annotations

import threading
from typing import Optional

from geoindex.errors import NotFound
from geoindex.store.base import ObjectStat, check_payload, content_address


class MemoryBlockStore:
    """Thread-safe, in-process content-addressed store."""

    def __init__(self, max_object_size: Optional[int] = None) -> None:
        self.max_object_size = max_object_size
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()
        self.put_count = 0

    def put(self, payload: bytes) -> str:
        check_payload(payload, self.max_object_size)
        payload = bytes(payload)
        address = content_address(payload)
        with self._lock:
            self.put_count += 1
            self._objects.setdefault(address, payload)
        return address

    def stat(self, address: str) -> ObjectStat:
        return ObjectStat(size=len(self.get(address)))

    def get(self, address: str) -> bytes:
        with self._lock:
            try:
                return self._objects[address]
            except KeyError:
                raise NotFound(address) from None

    def __contains__(self, address: str) -> bool:
        with self._lock:
            return address in self._objects

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

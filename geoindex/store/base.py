# geoindex/store/base.py
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from geoindex.errors import EncodingRejected

ADDRESS_PREFIX = "sha256-"


@dataclass(frozen=True)
class ObjectStat:
    size: int   # bytes the store accounts for this object


@runtime_checkable
class BlockStore(Protocol):
    """
    The narrow interface the assembler needs from a block store.

    Implementations must be safe to call from several threads at once.
    """

    def put(self, payload: bytes) -> str:
        ...

    def stat(self, address: str) -> ObjectStat:
        ...

    def get(self, address: str) -> bytes:
        ...


def content_address(payload: bytes) -> str:
    """Deterministic address for ``payload``: its SHA-256 digest, tagged."""
    return ADDRESS_PREFIX + hashlib.sha256(payload).hexdigest()


def check_payload(payload: bytes, max_object_size: Optional[int]) -> None:
    """Reject payloads a store cannot accept."""
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise EncodingRejected(f"payload must be bytes, got {type(payload).__name__}")
    if max_object_size is not None and len(payload) > max_object_size:
        raise EncodingRejected(
            f"payload of {len(payload)} bytes exceeds store limit of {max_object_size}"
        )

# geoindex/store/__init__.py
from geoindex.store.base import BlockStore, ObjectStat, content_address
from geoindex.store.directory import DirectoryBlockStore
from geoindex.store.memory import MemoryBlockStore

__all__ = [
    "BlockStore",
    "DirectoryBlockStore",
    "MemoryBlockStore",
    "ObjectStat",
    "content_address",
]

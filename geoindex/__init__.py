# geoindex/__init__.py
"""Content-addressed, range-queryable IP geolocation index."""

from geoindex.config import FolderConfig
from geoindex.errors import (
    BudgetTooSmall,
    EncodingRejected,
    FoldError,
    GeoIndexError,
    NotFound,
    StoreError,
    StoreUnavailable,
)
from geoindex.folder import TreeFolder, fold_entries
from geoindex.materializer import put_object
from geoindex.models import NO_DATA, Entry, NoData, Record, StoredNode

__version__ = "0.1.0"

__all__ = [
    "BudgetTooSmall",
    "EncodingRejected",
    "Entry",
    "FoldError",
    "FolderConfig",
    "GeoIndexError",
    "NO_DATA",
    "NoData",
    "NotFound",
    "Record",
    "StoreError",
    "StoreUnavailable",
    "StoredNode",
    "TreeFolder",
    "fold_entries",
    "put_object",
]

# geoindex/models.py
from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import Sequence, Union


class NoData:
    """Sentinel for a range that no record covers."""

    _instance: "NoData | None" = None

    def __new__(cls) -> "NoData":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_DATA"

    def __reduce__(self):
        return (NoData, ())


NO_DATA = NoData()


@dataclass(frozen=True)
class Record:
    country_name: str       # resolved name, e.g. "Andorra"
    country_code: str       # ISO alpha-2, e.g. "AD"
    region: str
    city: str
    postal_code: str
    latitude: float
    longitude: float
    metro_code: str
    area_code: str

    FIELD_COUNT = 9

    def as_list(self) -> list:
        return list(astuple(self))

    @classmethod
    def from_sequence(cls, values: Sequence) -> "Record":
        if len(values) != cls.FIELD_COUNT:
            raise ValueError(
                f"Record needs {cls.FIELD_COUNT} fields, got {len(values)}"
            )
        return cls(*values)


RecordOrNoData = Union[Record, NoData]


@dataclass(frozen=True)
class Entry:
    range_start: int        # inclusive lower bound; upper bound is the next entry's start - 1
    data: RecordOrNoData

    @property
    def has_data(self) -> bool:
        return isinstance(self.data, Record)


@dataclass(frozen=True)
class StoredNode:
    range_start: int        # first key covered by this object
    size: int               # store-reported size of this object
    address: str            # content address assigned by the store

    def to_dict(self) -> dict:
        return {"range_start": self.range_start, "size": self.size, "address": self.address}


# Items a single stored object may hold: raw entries (leaf) or child references (node).
Item = Union[Entry, StoredNode]

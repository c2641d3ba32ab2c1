# geoindex/codec.py
"""
Object encoding shared by the materializer and the reader.

Objects are compact JSON documents of two kinds:

    {"data":[[start,record_or_0],...],"type":"Leaf"}
    {"links":[{"address":...,"size":...},...],"mins":[...],"type":"Node"}

A record is a 9-element array; ``0`` marks a range with no data. Keys are
sorted and whitespace is stripped so identical items always encode to
identical bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Sequence, Union

from geoindex.errors import EncodingRejected
from geoindex.models import NO_DATA, Entry, Item, NoData, Record, StoredNode

LEAF = "Leaf"
NODE = "Node"

_NO_DATA_WIRE = 0


@dataclass(frozen=True)
class Leaf:
    entries: list[Entry]


@dataclass(frozen=True)
class Node:
    children: list[StoredNode]


DecodedObject = Union[Leaf, Node]


def _dumps(obj) -> bytes:
    try:
        return json.dumps(
            obj, separators=(",", ":"), sort_keys=True, allow_nan=False
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingRejected(f"cannot serialize object: {exc}") from exc


def _wire_data(data) -> object:
    if isinstance(data, NoData):
        return _NO_DATA_WIRE
    if isinstance(data, Record):
        return data.as_list()
    raise EncodingRejected(f"unsupported entry data: {data!r}")


def _wire_entry(entry: Entry) -> list:
    return [entry.range_start, _wire_data(entry.data)]


def _wire_link(node: StoredNode) -> dict:
    return {"address": node.address, "size": node.size}


def is_reference_level(items: Sequence[Item]) -> bool:
    """True when ``items`` are child references rather than raw entries."""
    return bool(items) and isinstance(items[0], StoredNode)


def encode_leaf(entries: Sequence[Entry]) -> bytes:
    return _dumps({"type": LEAF, "data": [_wire_entry(e) for e in entries]})


def encode_node(children: Sequence[StoredNode]) -> bytes:
    return _dumps({
        "type": NODE,
        "mins": [c.range_start for c in children],
        "links": [_wire_link(c) for c in children],
    })


def encode_items(items: Sequence[Item]) -> bytes:
    """Encode a homogeneous run of entries or references."""
    if not items:
        raise EncodingRejected("cannot store an empty object")
    if is_reference_level(items):
        if not all(isinstance(i, StoredNode) for i in items):
            raise EncodingRejected("node objects hold references only")
        return encode_node(items)  # type: ignore[arg-type]
    if not all(isinstance(i, Entry) for i in items):
        raise EncodingRejected("leaf objects hold entries only")
    return encode_leaf(items)  # type: ignore[arg-type]


# Bytes an empty object of each kind occupies before any item is added.
_EMPTY_SIZE = {
    LEAF: len(_dumps({"type": LEAF, "data": []})),
    NODE: len(_dumps({"type": NODE, "mins": [], "links": []})),
}


def empty_size(references: bool) -> int:
    return _EMPTY_SIZE[NODE if references else LEAF]


def estimate_item_size(item: Item) -> int:
    """
    Encoded bytes one item adds to an object, separators included.

    This is only an estimate of the stored size: stores may add their
    own framing on top of the payload.
    """
    if isinstance(item, StoredNode):
        # a min plus a link, each followed by a comma
        return len(str(item.range_start)) + len(_dumps(_wire_link(item))) + 2
    return len(_dumps(_wire_entry(item))) + 1


def _decode_record(raw) -> Union[Record, NoData]:
    if raw == _NO_DATA_WIRE and not isinstance(raw, bool):
        return NO_DATA
    if isinstance(raw, list):
        return Record.from_sequence(raw)
    raise ValueError(f"bad record value {raw!r}")


def decode_object(payload: bytes) -> DecodedObject:
    try:
        obj = json.loads(payload.decode("utf-8"))
        kind = obj["type"]
        if kind == LEAF:
            return Leaf([Entry(int(start), _decode_record(raw)) for start, raw in obj["data"]])
        if kind == NODE:
            mins, links = obj["mins"], obj["links"]
            if len(mins) != len(links):
                raise ValueError("mins and links differ in length")
            return Node([
                StoredNode(int(m), int(link["size"]), str(link["address"]))
                for m, link in zip(mins, links)
            ])
        raise ValueError(f"unknown object type {kind!r}")
    except (UnicodeDecodeError, KeyError, TypeError, ValueError) as exc:
        raise EncodingRejected(f"malformed object: {exc}") from exc

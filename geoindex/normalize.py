# geoindex/normalize.py
"""
Turn MaxMind-style CSV tables into the sorted entry sequence the folder
consumes.

Three tables are involved:

- countries: ``name,alpha2,...`` (one row per ISO country)
- locations: ``locId,country,region,city,postalCode,latitude,longitude,metroCode,areaCode``
- blocks:    ``startIpNum,endIpNum,locId``

Lines starting with ``#`` (copyright banners) and blank lines are ignored.
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import IO, Optional, Union

import pandas as pd

from geoindex.errors import NormalizeError
from geoindex.models import NO_DATA, Entry, Record
from geoindex.utils.logging import get_logger

log = get_logger(__name__)

CsvSource = Union[str, Path, bytes, IO]

COUNTRY_COLUMNS = ["name", "alpha2"]
LOCATION_COLUMNS = [
    "locId", "country", "region", "city", "postalCode",
    "latitude", "longitude", "metroCode", "areaCode",
]
BLOCK_COLUMNS = ["startIpNum", "endIpNum", "locId"]

_INNER_AND = re.compile(r"(?<=\s)And(?=\s)")


def _read_text(source: CsvSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).decode("utf-8-sig")
    if isinstance(source, (str, Path)):
        return Path(source).expanduser().read_text(encoding="utf-8-sig")
    text = source.read()
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    return text


def read_table(source: CsvSource, required: list[str], label: str) -> pd.DataFrame:
    """
    Load one CSV table as strings, dropping banner and blank lines.

    Raises:
        NormalizeError: if the text is not well-formed CSV or the table
            lacks any of ``required`` columns.
    """
    lines = [
        line for line in _read_text(source).splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]
    if not lines:
        raise NormalizeError(f"{label} table is empty")

    try:
        df = pd.read_csv(
            io.StringIO("\n".join(lines)),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise NormalizeError(f"{label} table is not valid CSV: {exc}") from exc
    df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise NormalizeError(f"{label} table is missing columns: {', '.join(missing)}")
    log.debug("Read %d %s rows", len(df), label)
    return df


def _to_numbers(df: pd.DataFrame, column: str, label: str, kind: str) -> pd.Series:
    try:
        values = pd.to_numeric(df[column].str.strip(), errors="raise")
    except (ValueError, TypeError) as exc:
        raise NormalizeError(f"{label} column {column!r} is not numeric: {exc}") from exc
    if kind == "int":
        if not (values == values.round()).all():
            raise NormalizeError(f"{label} column {column!r} has non-integer values")
        return values.astype("int64")
    return values.astype("float64")


def normalize_country_name(name: str) -> str:
    """``Antigua And Barbuda`` -> ``Antigua and Barbuda``."""
    return _INNER_AND.sub("and", name.strip())


def parse_countries(source: CsvSource) -> dict[str, str]:
    """Map ISO alpha-2 codes to display names."""
    df = read_table(source, COUNTRY_COLUMNS, "countries")
    countries = {
        code.strip(): normalize_country_name(name)
        for code, name in zip(df["alpha2"], df["name"])
        if code.strip()
    }
    log.info("Parsed %d countries", len(countries))
    return countries


def parse_locations(source: CsvSource, countries: dict[str, str]) -> dict[int, Record]:
    """
    Map location IDs to records.

    Country names come from ``countries``; an unknown code yields an empty
    name rather than an error.
    """
    df = read_table(source, LOCATION_COLUMNS, "locations")
    ids = _to_numbers(df, "locId", "locations", "int")
    latitudes = _to_numbers(df, "latitude", "locations", "float")
    longitudes = _to_numbers(df, "longitude", "locations", "float")

    locations: dict[int, Record] = {}
    unknown = set()
    for i, row in enumerate(df.itertuples(index=False)):
        code = row.country.strip()
        if code not in countries:
            unknown.add(code)
        locations[int(ids.iloc[i])] = Record(
            country_name=countries.get(code, ""),
            country_code=code,
            region=row.region,
            city=row.city,
            postal_code=row.postalCode,
            latitude=float(latitudes.iloc[i]),
            longitude=float(longitudes.iloc[i]),
            metro_code=row.metroCode,
            area_code=row.areaCode,
        )

    if unknown:
        log.warning("Locations reference unknown country codes: %s", ", ".join(sorted(unknown)))
    log.info("Parsed %d locations", len(locations))
    return locations


def parse_blocks(source: CsvSource, locations: dict[int, Record]) -> list[Entry]:
    """
    Build the entry sequence from IP blocks.

    Blocks are sorted by start. A gap before a block is covered by a
    NO_DATA entry starting right after the previous block (or at 1 before
    the first one). Nothing is added after the last block.

    Raises:
        NormalizeError: on overlapping blocks or a block ending before it starts.
    """
    df = read_table(source, BLOCK_COLUMNS, "blocks")
    blocks = pd.DataFrame({
        "start": _to_numbers(df, "startIpNum", "blocks", "int"),
        "end": _to_numbers(df, "endIpNum", "blocks", "int"),
        "loc": _to_numbers(df, "locId", "blocks", "int"),
    }).sort_values("start", kind="stable")

    entries: list[Entry] = []
    previous_end: Optional[int] = None
    missing = 0
    for start, end, loc in blocks.itertuples(index=False):
        start, end, loc = int(start), int(end), int(loc)
        if end < start:
            raise NormalizeError(f"block {start}-{end} ends before it starts")
        if previous_end is not None and start <= previous_end:
            raise NormalizeError(f"block starting at {start} overlaps the block ending at {previous_end}")

        gap_start = 1 if previous_end is None else previous_end + 1
        if start > gap_start:
            entries.append(Entry(gap_start, NO_DATA))

        record = locations.get(loc)
        if record is None:
            missing += 1
            entries.append(Entry(start, NO_DATA))
        else:
            entries.append(Entry(start, record))
        previous_end = end

    if missing:
        log.warning("%d blocks reference unknown locations; stored without data", missing)
    log.info("Parsed %d blocks into %d entries", len(blocks), len(entries))
    return entries


def load_entries(
        countries: CsvSource,
        locations: CsvSource,
        blocks: CsvSource,
) -> list[Entry]:
    """Parse all three tables and return the sorted entry sequence."""
    country_names = parse_countries(countries)
    location_records = parse_locations(locations, country_names)
    return parse_blocks(blocks, location_records)

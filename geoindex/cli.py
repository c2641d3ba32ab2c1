from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from geoindex.config import (
    ENV_MAX_FANOUT,
    ENV_MAX_OBJECT_SIZE,
    ENV_MAX_WORKERS,
    FolderConfig,
)
from geoindex.errors import GeoIndexError
from geoindex.folder import TreeFolder
from geoindex.normalize import load_entries
from geoindex.reader import iter_entries, iter_objects
from geoindex.store import DirectoryBlockStore
from geoindex.utils.logging import get_logger, set_level

app = typer.Typer(help="Build content-addressed IP geolocation indexes from MaxMind-style CSV tables.")

log = get_logger(__name__)


def _open_store(store_dir: Path) -> DirectoryBlockStore:
    store_dir = store_dir.expanduser().resolve()
    log.info("Store: %s", store_dir)
    return DirectoryBlockStore(store_dir)


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def _root(
        log_level: Optional[str] = typer.Option(
            None,
            "--log-level",
            envvar="GEOINDEX_LOG_LEVEL",
            help="Logging level: DEBUG | INFO | WARNING | ERROR",
        ),
):
    if log_level:
        set_level(log_level)


@app.command()
def build(
        countries: Path = typer.Argument(
            ...,
            exists=True,
            dir_okay=False,
            help="Country table CSV (name, alpha2, ...).",
        ),
        locations: Path = typer.Argument(
            ...,
            exists=True,
            dir_okay=False,
            help="Location table CSV (locId, country, region, city, ...).",
        ),
        blocks: Path = typer.Argument(
            ...,
            exists=True,
            dir_okay=False,
            help="IP block table CSV (startIpNum, endIpNum, locId).",
        ),
        store_dir: Path = typer.Option(
            ...,
            "--store",
            "-s",
            help="Directory holding the content-addressed object store.",
        ),
        max_object_size: Optional[int] = typer.Option(
            None,
            "--max-object-size",
            "-b",
            envvar=ENV_MAX_OBJECT_SIZE,
            help="Largest object, in bytes, any stored node may occupy (default 262144).",
        ),
        max_fanout: Optional[int] = typer.Option(
            None,
            "--max-fanout",
            envvar=ENV_MAX_FANOUT,
            help="Cap on items per object; unbounded by default.",
        ),
        workers: Optional[int] = typer.Option(
            None,
            "--workers",
            "-w",
            envvar=ENV_MAX_WORKERS,
            help="Concurrent object writes per tree level (default 8).",
        ),
        output: Optional[Path] = typer.Option(
            None,
            "--output",
            "-o",
            help="Also write the root descriptor as JSON to this file.",
        ),
):
    """
    Normalize the three tables and fold them into a tree of stored objects.

    Prints the root descriptor (range_start, size, address) as JSON.

    Example:

        geoindex build countries.csv GeoLiteCity-Location.csv GeoLiteCity-Blocks.csv -s ./objects
    """
    try:
        config = FolderConfig().with_overrides(
            max_object_size=max_object_size,
            max_fanout=max_fanout,
            max_workers=workers,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    try:
        entries = load_entries(countries, locations, blocks)
        if not entries:
            _fail("no IP blocks loaded; nothing to index.")
        root = TreeFolder(_open_store(store_dir), config=config).fold(entries)
    except GeoIndexError as exc:
        _fail(str(exc))
        return

    document = json.dumps(root.to_dict(), indent=2)
    if output is not None:
        output = output.expanduser().resolve()
        output.write_text(document + "\n", encoding="utf-8")
        log.info("Wrote root descriptor to %s", output)
    typer.echo(document)


@app.command()
def verify(
        address: str = typer.Argument(..., help="Root address printed by `build`."),
        store_dir: Path = typer.Option(
            ...,
            "--store",
            "-s",
            exists=True,
            file_okay=False,
            help="Directory holding the content-addressed object store.",
        ),
):
    """
    Walk a stored tree and check its entries are in ascending key order.
    """
    store = _open_store(store_dir)
    try:
        objects = 0
        total_size = 0
        for _, size in iter_objects(store, address):
            objects += 1
            total_size += size

        count = 0
        previous = None
        for entry in iter_entries(store, address):
            if previous is not None and entry.range_start <= previous:
                _fail(f"order violation: {entry.range_start} follows {previous}")
            previous = entry.range_start
            count += 1
    except GeoIndexError as exc:
        _fail(str(exc))
        return

    typer.echo(f"{count} entries in {objects} objects ({total_size} bytes)")


def main() -> None:
    """Entry point for console_scripts."""
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Interrupted by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()

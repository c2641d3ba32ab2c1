# geoindex/store/directory.py
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from geoindex.errors import NotFound, StoreUnavailable
from geoindex.store.base import ADDRESS_PREFIX, ObjectStat, check_payload, content_address
from geoindex.utils.logging import get_logger

log = get_logger(__name__)

PathLike = Union[str, Path]


class DirectoryBlockStore:
    """
    Content-addressed store backed by a local directory.

    Objects live at ``<root>/<first two hex chars>/<address>``. Writes go to
    a temporary file that is renamed into place, so a reader never sees a
    half-written object and concurrent puts of the same payload are safe.
    """

    def __init__(self, root: PathLike, max_object_size: Optional[int] = None) -> None:
        self.root = Path(root).expanduser().resolve()
        self.max_object_size = max_object_size
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailable(f"cannot create store at {self.root}: {exc}") from exc

    def _path(self, address: str) -> Path:
        if not address.startswith(ADDRESS_PREFIX) or "/" in address or os.sep in address:
            raise NotFound(address)
        digest = address[len(ADDRESS_PREFIX):]
        return self.root / digest[:2] / address

    def put(self, payload: bytes) -> str:
        check_payload(payload, self.max_object_size)
        payload = bytes(payload)
        address = content_address(payload)
        path = self._path(address)
        if path.exists():
            return address
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(payload)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreUnavailable(f"cannot write {address}: {exc}") from exc
        log.debug("Stored %s (%d bytes)", address, len(payload))
        return address

    def stat(self, address: str) -> ObjectStat:
        path = self._path(address)
        try:
            return ObjectStat(size=path.stat().st_size)
        except FileNotFoundError:
            raise NotFound(address) from None
        except OSError as exc:
            raise StoreUnavailable(f"cannot stat {address}: {exc}") from exc

    def get(self, address: str) -> bytes:
        path = self._path(address)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFound(address) from None
        except OSError as exc:
            raise StoreUnavailable(f"cannot read {address}: {exc}") from exc

    def __contains__(self, address: str) -> bool:
        try:
            return self._path(address).exists()
        except NotFound:
            return False

    def __len__(self) -> int:
        return sum(1 for p in self.root.glob("*/" + ADDRESS_PREFIX + "*") if p.is_file())

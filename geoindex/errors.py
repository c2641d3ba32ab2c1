# geoindex/errors.py
from __future__ import annotations

from typing import Optional


class GeoIndexError(Exception):
    """Base class for every error raised by geoindex."""

    retryable = False


class StoreError(GeoIndexError):
    """A block-store operation failed."""


class StoreUnavailable(StoreError):
    """Transport or capacity failure; the same request may succeed later."""

    retryable = True


class EncodingRejected(StoreError):
    """The payload could not be serialized, decoded, or accepted by the store."""


class NotFound(StoreError):
    def __init__(self, address: str) -> None:
        super().__init__(f"no object stored under {address}")
        self.address = address


class BudgetTooSmall(GeoIndexError):
    """The object size budget cannot hold even two child references."""


class NormalizeError(GeoIndexError):
    """Source tables are malformed or inconsistent."""


class FoldError(GeoIndexError):
    """
    Folding aborted because one object could not be materialized.

    Carries the sub-range that failed so a caller can resume from there.
    ``range_end`` is None when the failing run extends to the end of the
    address space.
    """

    def __init__(
            self,
            range_start: int,
            range_end: Optional[int],
            level: int,
            cause: StoreError,
    ) -> None:
        end = "end" if range_end is None else str(range_end)
        super().__init__(
            f"failed to store range [{range_start}, {end}] at level {level}: {cause}"
        )
        self.range_start = range_start
        self.range_end = range_end
        self.level = level
        self.cause = cause

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.cause.retryable

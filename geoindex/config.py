# geoindex/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

# Default budget for one stored object, in bytes.
DEFAULT_MAX_OBJECT_SIZE = 256 * 1024
DEFAULT_MAX_WORKERS = 8

ENV_MAX_OBJECT_SIZE = "GEOINDEX_MAX_OBJECT_SIZE"
ENV_MAX_FANOUT = "GEOINDEX_MAX_FANOUT"
ENV_MAX_WORKERS = "GEOINDEX_MAX_WORKERS"


@dataclass(frozen=True)
class FolderConfig:
    max_object_size: int = DEFAULT_MAX_OBJECT_SIZE   # budget B, in store-reported bytes
    max_fanout: Optional[int] = None                 # max items per object, None = size only
    max_workers: int = DEFAULT_MAX_WORKERS           # concurrent store writes per level

    def validate(self) -> "FolderConfig":
        if self.max_object_size <= 0:
            raise ValueError("max_object_size must be positive")
        if self.max_fanout is not None and self.max_fanout < 2:
            raise ValueError("max_fanout must be at least 2")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        return self

    def with_overrides(self, **changes) -> "FolderConfig":
        """Return a copy with every non-None keyword applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes).validate()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FolderConfig":
        """
        Build a config from GEOINDEX_* environment variables.

        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ

        def _int(key: str) -> Optional[int]:
            raw = env.get(key, "").strip()
            if not raw:
                return None
            try:
                return int(raw)
            except ValueError:
                raise ValueError(f"{key} must be an integer, got {raw!r}") from None

        return cls().with_overrides(
            max_object_size=_int(ENV_MAX_OBJECT_SIZE),
            max_fanout=_int(ENV_MAX_FANOUT),
            max_workers=_int(ENV_MAX_WORKERS),
        )

# geoindex/utils/logging.py

from __future__ import annotations
import logging
import os
import sys

_ROOT = "geoindex"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        root.setLevel(os.environ.get("GEOINDEX_LOG_LEVEL", "INFO").upper())
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger under the package namespace.

    The stderr handler is attached once, on the package root logger, so
    every module logger shares it.
    """
    _configure_root()
    if name != _ROOT and not name.startswith(_ROOT + "."):
        name = f"{_ROOT}.{name}"
    return logging.getLogger(name)


def set_level(level: str | int) -> None:
    """Change the level of every geoindex logger at once."""
    if isinstance(level, str):
        level = level.upper()
    _configure_root().setLevel(level)

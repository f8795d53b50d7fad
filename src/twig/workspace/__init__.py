"""Explorer tree state: the open root folder, expansion and row projection."""

from importlib import import_module
from typing import Any

from . import entries

__all__ = ["entries", "rows", "tree"]


def __getattr__(name: str) -> Any:
    if name in {"rows", "tree"}:
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Value types describing explorer entries and rendered tree rows."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

__all__ = ["ExplorerEntry", "TreeRow"]


@dataclass(frozen=True, slots=True)
class ExplorerEntry:
    """One child of a directory as reported by the filesystem provider."""

    path: Path
    is_directory: bool

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)


@dataclass(frozen=True, slots=True)
class TreeRow:
    """One visible row of the flattened explorer tree."""

    path: Path
    is_directory: bool
    depth: int

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)

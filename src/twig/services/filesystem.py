"""Filesystem provider contract and the local-disk implementation."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from ..utils import file_io
from ..workspace.entries import ExplorerEntry

__all__ = ["FileSystemProvider", "LocalFileSystem", "is_hidden_name"]

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class FileSystemProvider(Protocol):
    """Blocking filesystem operations consumed by the workspace and document stores.

    Every method signals failure by raising ``OSError`` (``read_text`` may also
    raise ``UnicodeDecodeError``). Callers decide how to degrade.
    """

    def list_directory(self, path: Path, *, include_hidden: bool = False) -> Sequence[ExplorerEntry]:
        """Return the entries of ``path`` in provider order."""
        ...

    def read_text(self, path: Path) -> str:
        """Return the contents of ``path`` decoded as UTF-8."""
        ...

    def write_text(self, path: Path, content: str) -> None:
        """Replace the contents of ``path`` atomically."""
        ...

    def is_directory(self, path: Path) -> bool:
        """Return whether ``path`` currently names a directory."""
        ...


def is_hidden_name(name: str) -> bool:
    return name.startswith(".")


class LocalFileSystem:
    """:class:`FileSystemProvider` backed by the local disk."""

    def __init__(self, *, encoding: str = file_io.TEXT_ENCODING) -> None:
        self._encoding = encoding

    @property
    def encoding(self) -> str:
        return self._encoding

    def list_directory(self, path: Path, *, include_hidden: bool = False) -> Sequence[ExplorerEntry]:
        entries: list[ExplorerEntry] = []
        with os.scandir(path) as iterator:
            for child in iterator:
                if not include_hidden and is_hidden_name(child.name):
                    continue
                try:
                    is_dir = child.is_dir()
                except OSError:
                    is_dir = False
                entries.append(ExplorerEntry(path=Path(path) / child.name, is_directory=is_dir))
        LOGGER.debug("Listed %d entries under %s", len(entries), path)
        return entries

    def read_text(self, path: Path) -> str:
        return file_io.read_text(path, encoding=self._encoding)

    def write_text(self, path: Path, content: str) -> None:
        file_io.write_text(path, content, encoding=self._encoding, atomic=True)

    def is_directory(self, path: Path) -> bool:
        return stat.S_ISDIR(os.stat(path).st_mode)

"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import errno
import os
from pathlib import Path
from typing import Sequence

from twig.editor.document_model import Document
from twig.workspace.entries import ExplorerEntry


def _key(path: Path | str) -> Path:
    return Path(os.path.abspath(path))


class FakeFileSystem:
    """In-memory :class:`FileSystemProvider` with switchable failures.

    Entries are listed in insertion order so tests can check that callers sort.

    Example:
        fs = FakeFileSystem()
        fs.add_file("/proj/a.txt", "x")
        fs.add_directory("/proj/sub")
    """

    def __init__(self) -> None:
        self.files: dict[Path, str] = {}
        self.directories: list[Path] = []
        self.list_calls: list[Path] = []
        self.writes: list[tuple[Path, str]] = []
        self.fail_list: set[Path] = set()
        self.fail_read: set[Path] = set()
        self.fail_write: set[Path] = set()

    def add_directory(self, path: Path | str) -> Path:
        key = _key(path)
        for parent in reversed(key.parents):
            if parent not in self.directories and parent != Path(parent.anchor):
                self.directories.append(parent)
        if key not in self.directories:
            self.directories.append(key)
        return key

    def add_file(self, path: Path | str, text: str = "") -> Path:
        key = _key(path)
        self.add_directory(key.parent)
        self.files[key] = text
        return key

    def remove_directory(self, path: Path | str) -> None:
        key = _key(path)
        self.directories = [item for item in self.directories if item != key and key not in item.parents]
        self.files = {item: text for item, text in self.files.items() if key not in item.parents}

    # ------------------------------------------------------------------
    # FileSystemProvider
    # ------------------------------------------------------------------
    def list_directory(self, path: Path, *, include_hidden: bool = False) -> Sequence[ExplorerEntry]:
        key = _key(path)
        self.list_calls.append(key)
        if key in self.fail_list:
            raise PermissionError(errno.EACCES, "Permission denied", str(key))
        if key not in self.directories:
            raise FileNotFoundError(errno.ENOENT, "No such directory", str(key))
        entries: list[ExplorerEntry] = []
        for directory in self.directories:
            if directory.parent == key and directory != key:
                entries.append(ExplorerEntry(path=directory, is_directory=True))
        for file_path in self.files:
            if file_path.parent == key:
                entries.append(ExplorerEntry(path=file_path, is_directory=False))
        if not include_hidden:
            entries = [entry for entry in entries if not entry.name.startswith(".")]
        return entries

    def read_text(self, path: Path) -> str:
        key = _key(path)
        if key in self.fail_read:
            raise PermissionError(errno.EACCES, "Permission denied", str(key))
        try:
            return self.files[key]
        except KeyError:
            raise FileNotFoundError(errno.ENOENT, "No such file", str(key)) from None

    def write_text(self, path: Path, content: str) -> None:
        key = _key(path)
        if key in self.fail_write:
            raise PermissionError(errno.EACCES, "Permission denied", str(key))
        if key.parent not in self.directories:
            raise FileNotFoundError(errno.ENOENT, "No such directory", str(key.parent))
        self.files[key] = content
        self.writes.append((key, content))

    def is_directory(self, path: Path) -> bool:
        key = _key(path)
        if key in self.directories:
            return True
        if key in self.files:
            return False
        raise FileNotFoundError(errno.ENOENT, "No such file", str(key))


class RecordingScopeGuard:
    """Scope guard that records every call in ``events``."""

    def __init__(self, *, grant: bool = True, error: Exception | None = None) -> None:
        self.grant = grant
        self.error = error
        self.events: list[tuple[str, Path]] = []

    def acquire(self, path: Path) -> bool:
        self.events.append(("acquire", path))
        if self.error is not None:
            raise self.error
        return self.grant

    def release(self, path: Path) -> None:
        self.events.append(("release", path))


class StubDialogs:
    """Scripted dialog answers for controller and window tests."""

    def __init__(
        self,
        *,
        folder: Path | None = None,
        save_path: Path | None = None,
        discard: bool = True,
    ) -> None:
        self.folder = folder
        self.save_path = save_path
        self.discard = discard
        self.confirm_calls: list[tuple[str, ...]] = []
        self.errors: list[tuple[str, str]] = []

    def prompt_folder(self, start_dir: Path | None = None) -> Path | None:
        return self.folder

    def prompt_save_path(self, start_dir: Path | None = None) -> Path | None:
        return self.save_path

    def confirm_discard(self, documents: Sequence[Document]) -> bool:
        self.confirm_calls.append(tuple(document.name for document in documents))
        return self.discard

    def show_error(self, title: str, message: str) -> None:
        self.errors.append((title, message))

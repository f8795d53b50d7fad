"""Workspace tree state: root folder, expansion, selection and listing cache."""

from __future__ import annotations

import locale
import logging
import re
import threading
from pathlib import Path
from types import MappingProxyType, TracebackType
from typing import Callable, Mapping, Protocol

from ..services.filesystem import FileSystemProvider, LocalFileSystem
from ..services.scope import ScopedAccess, ScopeGuard
from ..utils.file_io import normalize_path
from .entries import ExplorerEntry, TreeRow
from .rows import project_rows

__all__ = ["WorkspaceTree", "TreeChangeListener", "entry_sort_key"]

LOGGER = logging.getLogger(__name__)
_DIGITS = re.compile(r"(\d+)")


class TreeChangeListener(Protocol):
    """Callback fired after any mutation of the tree state."""

    def __call__(self, tree: "WorkspaceTree") -> None:  # pragma: no cover - protocol
        ...


def _natural_key(name: str) -> tuple[object, ...]:
    # re.split with a capture group alternates text and digit runs, starting
    # with text, so positions always compare like with like.
    parts = _DIGITS.split(name.casefold())
    return tuple(
        int(part) if index % 2 else locale.strxfrm(part)
        for index, part in enumerate(parts)
    )


def entry_sort_key(entry: ExplorerEntry) -> tuple[object, ...]:
    """Directories first, then case-insensitive natural name order."""

    return (not entry.is_directory, _natural_key(entry.name), entry.name)


class WorkspaceTree:
    """Tracks the open workspace folder and the explorer's view of it.

    ``expanded`` and the children cache are keyed by normalized absolute path
    and are always cleared together whenever the root folder changes.
    """

    def __init__(
        self,
        filesystem: FileSystemProvider | None = None,
        *,
        scope_guard: ScopeGuard | None = None,
        show_hidden: bool = False,
    ) -> None:
        self._fs: FileSystemProvider = filesystem or LocalFileSystem()
        self._scope = ScopedAccess(scope_guard)
        self._show_hidden = show_hidden
        self._lock = threading.RLock()
        self._root_folder: Path | None = None
        self._selection: Path | None = None
        self._expanded: set[Path] = set()
        self._children_cache: dict[Path, tuple[ExplorerEntry, ...]] = {}
        self._listeners: list[TreeChangeListener] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def root_folder(self) -> Path | None:
        return self._root_folder

    @property
    def selection(self) -> Path | None:
        return self._selection

    @property
    def expanded(self) -> frozenset[Path]:
        return frozenset(self._expanded)

    @property
    def children_cache(self) -> Mapping[Path, tuple[ExplorerEntry, ...]]:
        return MappingProxyType(self._children_cache)

    @property
    def scope_active(self) -> bool:
        return self._scope.active

    @property
    def show_hidden(self) -> bool:
        return self._show_hidden

    # ------------------------------------------------------------------
    # Workspace lifecycle
    # ------------------------------------------------------------------
    def open_workspace(self, folder: Path | str) -> Path:
        """Make ``folder`` the workspace root, discarding all per-root state."""

        root = normalize_path(folder)
        with self._lock:
            self._scope.acquire(root)
            self._root_folder = root
            self._reset_view_state()
        LOGGER.info("Opened workspace %s (scope_active=%s)", root, self._scope.active)
        self._notify()
        return root

    def close_workspace(self) -> None:
        """Release the access scope and return to the empty state. Idempotent."""

        with self._lock:
            was_open = self._root_folder is not None
            self._scope.release()
            self._root_folder = None
            self._reset_view_state()
        if was_open:
            LOGGER.info("Closed workspace")
            self._notify()

    def _reset_view_state(self) -> None:
        self._selection = None
        self._expanded.clear()
        self._children_cache.clear()

    def __enter__(self) -> "WorkspaceTree":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close_workspace()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------
    def children(self, directory: Path | str) -> tuple[ExplorerEntry, ...]:
        """Return the sorted, visible children of ``directory``.

        Listings are cached per directory. A failed listing yields ``()`` and is
        not cached, so the next request asks the provider again.
        """

        key = normalize_path(directory)
        with self._lock:
            cached = self._children_cache.get(key)
            if cached is not None:
                return cached
            try:
                listed = self._fs.list_directory(key, include_hidden=self._show_hidden)
            except OSError as exc:
                LOGGER.debug("Listing %s failed: %s", key, exc)
                return ()
            entries = tuple(
                sorted(
                    (ExplorerEntry(path=normalize_path(item.path), is_directory=item.is_directory) for item in listed),
                    key=entry_sort_key,
                )
            )
            self._children_cache[key] = entries
            return entries

    def is_directory(self, path: Path | str) -> bool:
        """Ask the provider whether ``path`` is a directory; failures count as ``False``."""

        try:
            return bool(self._fs.is_directory(normalize_path(path)))
        except OSError as exc:
            LOGGER.debug("Directory check for %s failed: %s", path, exc)
            return False

    def rows(self) -> tuple[TreeRow, ...]:
        """Project the currently visible rows from this tree's own state."""

        with self._lock:
            return project_rows(self._root_folder, self._expanded, self.children)

    # ------------------------------------------------------------------
    # Selection & expansion
    # ------------------------------------------------------------------
    def select(self, path: Path | str | None) -> Path | None:
        with self._lock:
            self._selection = normalize_path(path) if path is not None else None
            selection = self._selection
        self._notify()
        return selection

    def is_expanded(self, path: Path | str) -> bool:
        key = normalize_path(path)
        with self._lock:
            return key in self._expanded

    def toggle_expanded(self, path: Path | str) -> bool:
        """Flip the expansion of a directory and return whether it is now expanded."""

        key = normalize_path(path)
        if not self.is_directory(key):
            return False
        with self._lock:
            if key in self._expanded:
                self._expanded.discard(key)
                expanded = False
            else:
                self._expanded.add(key)
                expanded = True
        self._notify()
        return expanded

    def expand_if_directory(self, path: Path | str) -> bool:
        key = normalize_path(path)
        if not self.is_directory(key):
            return False
        with self._lock:
            changed = key not in self._expanded
            self._expanded.add(key)
        if changed:
            self._notify()
        return True

    def collapse_if_expanded(self, path: Path | str) -> bool:
        """Collapse ``path`` and return whether it was expanded."""

        key = normalize_path(path)
        with self._lock:
            changed = key in self._expanded
            self._expanded.discard(key)
        if changed:
            self._notify()
        return changed

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_listener(self, listener: TreeChangeListener | Callable[["WorkspaceTree"], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TreeChangeListener | Callable[["WorkspaceTree"], None]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

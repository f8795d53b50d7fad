"""Flatten the explorer tree into the rows a tree pane renders."""

from __future__ import annotations

from collections.abc import Callable, Collection, Sequence
from pathlib import Path

from .entries import ExplorerEntry, TreeRow

__all__ = ["ChildrenLookup", "project_rows"]

ChildrenLookup = Callable[[Path], Sequence[ExplorerEntry]]


def project_rows(
    root_folder: Path | None,
    expanded: Collection[Path],
    children_of: ChildrenLookup,
) -> tuple[TreeRow, ...]:
    """Return visible rows below ``root_folder`` in depth-first pre-order.

    Immediate children of the root sit at depth 0. A directory's children
    follow it only when the directory is in ``expanded``; collapsed subtrees
    are never listed.
    """
    if root_folder is None:
        return ()
    rows: list[TreeRow] = []

    def walk(directory: Path, depth: int) -> None:
        for entry in children_of(directory):
            rows.append(TreeRow(path=entry.path, is_directory=entry.is_directory, depth=depth))
            if entry.is_directory and entry.path in expanded:
                walk(entry.path, depth + 1)

    walk(root_folder, 0)
    return tuple(rows)

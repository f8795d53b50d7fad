"""Tests for the WorkspaceTree store."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from tests.helpers import FakeFileSystem, RecordingScopeGuard
from twig.workspace.entries import ExplorerEntry
from twig.workspace.tree import WorkspaceTree, entry_sort_key


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def proj_fs(fake_fs: FakeFileSystem) -> FakeFileSystem:
    fake_fs.add_file("/proj/a.txt", "x")
    fake_fs.add_directory("/proj/sub")
    return fake_fs


@pytest.fixture
def tree(proj_fs: FakeFileSystem, scope_guard: RecordingScopeGuard) -> WorkspaceTree:
    return WorkspaceTree(proj_fs, scope_guard=scope_guard)


def _names(entries) -> list[str]:
    return [entry.name for entry in entries]


# =============================================================================
# Listing & sorting
# =============================================================================


def test_children_lists_directories_before_files(tree: WorkspaceTree) -> None:
    tree.open_workspace("/proj")

    children = tree.children("/proj")

    assert children == (
        ExplorerEntry(path=Path("/proj/sub"), is_directory=True),
        ExplorerEntry(path=Path("/proj/a.txt"), is_directory=False),
    )


def test_children_sort_is_case_insensitive_and_natural(fake_fs: FakeFileSystem) -> None:
    for name in ("file10.txt", "B.txt", "file2.txt", "a.txt"):
        fake_fs.add_file(f"/work/{name}")
    fake_fs.add_directory("/work/zeta")
    fake_fs.add_directory("/work/Alpha")
    tree = WorkspaceTree(fake_fs)
    tree.open_workspace("/work")

    assert _names(tree.children("/work")) == ["Alpha", "zeta", "a.txt", "B.txt", "file2.txt", "file10.txt"]


def test_entry_sort_key_orders_directories_first() -> None:
    entries = [
        ExplorerEntry(path=Path("/w/b"), is_directory=False),
        ExplorerEntry(path=Path("/w/c"), is_directory=True),
        ExplorerEntry(path=Path("/w/a"), is_directory=False),
    ]

    assert _names(sorted(entries, key=entry_sort_key)) == ["c", "a", "b"]


def test_children_hides_dot_entries_unless_enabled(fake_fs: FakeFileSystem) -> None:
    fake_fs.add_file("/proj/.env", "SECRET=1")
    fake_fs.add_file("/proj/main.py")

    hidden = WorkspaceTree(fake_fs)
    hidden.open_workspace("/proj")
    shown = WorkspaceTree(fake_fs, show_hidden=True)
    shown.open_workspace("/proj")

    assert _names(hidden.children("/proj")) == ["main.py"]
    assert _names(shown.children("/proj")) == [".env", "main.py"]


def test_children_are_cached_per_directory(tree: WorkspaceTree, proj_fs: FakeFileSystem) -> None:
    tree.open_workspace("/proj")

    first = tree.children("/proj")
    second = tree.children(Path("/proj/sub/.."))

    assert first is second
    assert proj_fs.list_calls == [Path("/proj")]
    assert Path("/proj") in tree.children_cache


def test_failed_listing_is_empty_and_not_cached(tree: WorkspaceTree, proj_fs: FakeFileSystem) -> None:
    tree.open_workspace("/proj")
    proj_fs.fail_list.add(Path("/proj"))

    assert tree.children("/proj") == ()
    assert Path("/proj") not in tree.children_cache

    proj_fs.fail_list.clear()
    assert _names(tree.children("/proj")) == ["sub", "a.txt"]
    assert proj_fs.list_calls == [Path("/proj"), Path("/proj")]


def test_children_of_missing_directory_is_empty(tree: WorkspaceTree) -> None:
    tree.open_workspace("/proj")

    assert tree.children("/proj/gone") == ()


def test_is_directory_fails_closed(tree: WorkspaceTree) -> None:
    assert tree.is_directory("/proj/sub") is True
    assert tree.is_directory("/proj/a.txt") is False
    assert tree.is_directory("/proj/missing") is False


# =============================================================================
# Workspace lifecycle
# =============================================================================


def test_open_workspace_normalizes_root(tree: WorkspaceTree) -> None:
    root = tree.open_workspace("/proj/sub/..")

    assert root == Path("/proj")
    assert tree.root_folder == Path("/proj")


def test_open_workspace_resets_view_state(tree: WorkspaceTree, proj_fs: FakeFileSystem) -> None:
    proj_fs.add_directory("/other")
    tree.open_workspace("/proj")
    tree.select("/proj/a.txt")
    tree.toggle_expanded("/proj/sub")
    tree.children("/proj")

    tree.open_workspace("/other")

    assert tree.selection is None
    assert tree.expanded == frozenset()
    assert dict(tree.children_cache) == {}


def test_reopening_releases_previous_scope_first(
    tree: WorkspaceTree, proj_fs: FakeFileSystem, scope_guard: RecordingScopeGuard
) -> None:
    proj_fs.add_directory("/other")

    tree.open_workspace("/proj")
    tree.open_workspace("/other")

    assert scope_guard.events == [
        ("acquire", Path("/proj")),
        ("release", Path("/proj")),
        ("acquire", Path("/other")),
    ]
    assert tree.scope_active is True


def test_refused_scope_still_opens_workspace(proj_fs: FakeFileSystem) -> None:
    guard = RecordingScopeGuard(grant=False)
    tree = WorkspaceTree(proj_fs, scope_guard=guard)

    tree.open_workspace("/proj")
    tree.close_workspace()

    assert guard.events == [("acquire", Path("/proj"))]
    assert tree.root_folder is None


def test_raising_scope_guard_counts_as_refusal(proj_fs: FakeFileSystem) -> None:
    guard = RecordingScopeGuard(error=RuntimeError("sandbox unavailable"))
    tree = WorkspaceTree(proj_fs, scope_guard=guard)

    tree.open_workspace("/proj")

    assert tree.root_folder == Path("/proj")
    assert tree.scope_active is False


def test_close_workspace_is_idempotent(tree: WorkspaceTree, scope_guard: RecordingScopeGuard) -> None:
    tree.open_workspace("/proj")
    tree.select("/proj/a.txt")

    tree.close_workspace()
    tree.close_workspace()

    assert scope_guard.events.count(("release", Path("/proj"))) == 1
    assert tree.root_folder is None
    assert tree.selection is None
    assert tree.rows() == ()


def test_context_manager_releases_scope_on_error(
    proj_fs: FakeFileSystem, scope_guard: RecordingScopeGuard
) -> None:
    with pytest.raises(RuntimeError):
        with WorkspaceTree(proj_fs, scope_guard=scope_guard) as tree:
            tree.open_workspace("/proj")
            raise RuntimeError("boom")

    assert scope_guard.events[-1] == ("release", Path("/proj"))
    assert tree.scope_active is False


# =============================================================================
# Selection & expansion
# =============================================================================


def test_toggle_expanded_flips_directories_only(tree: WorkspaceTree) -> None:
    tree.open_workspace("/proj")

    assert tree.toggle_expanded("/proj/sub") is True
    assert tree.is_expanded("/proj/sub")
    assert tree.toggle_expanded("/proj/sub") is False
    assert not tree.is_expanded("/proj/sub")
    assert tree.toggle_expanded("/proj/a.txt") is False
    assert tree.expanded == frozenset()


def test_expand_if_directory_and_collapse(tree: WorkspaceTree) -> None:
    tree.open_workspace("/proj")

    assert tree.expand_if_directory("/proj/a.txt") is False
    assert tree.expand_if_directory("/proj/sub") is True
    assert tree.expand_if_directory("/proj/sub") is True
    assert tree.expanded == frozenset({Path("/proj/sub")})

    assert tree.collapse_if_expanded("/proj/sub") is True
    assert tree.collapse_if_expanded("/proj/sub") is False
    assert tree.expanded == frozenset()


def test_is_expanded_waits_for_the_tree_lock(tree: WorkspaceTree) -> None:
    tree.open_workspace("/proj")
    seen: list[bool] = []
    worker = threading.Thread(target=lambda: seen.append(tree.is_expanded("/proj/sub")))

    with tree._lock:
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        tree._expanded.add(Path("/proj/sub"))
    worker.join(timeout=5)

    assert seen == [True]


def test_select_accepts_none(tree: WorkspaceTree) -> None:
    tree.open_workspace("/proj")

    assert tree.select("/proj/a.txt") == Path("/proj/a.txt")
    assert tree.select(None) is None
    assert tree.selection is None


def test_listeners_fire_on_mutations(tree: WorkspaceTree) -> None:
    calls: list[Path | None] = []

    def listener(changed: WorkspaceTree) -> None:
        calls.append(changed.root_folder)

    tree.add_listener(listener)
    tree.open_workspace("/proj")
    tree.expand_if_directory("/proj/sub")
    tree.expand_if_directory("/proj/sub")
    tree.close_workspace()
    tree.remove_listener(listener)
    tree.open_workspace("/proj")

    assert calls == [Path("/proj"), Path("/proj"), None]


# =============================================================================
# Row projection through the store
# =============================================================================


def test_expanded_empty_directory_adds_no_rows(tree: WorkspaceTree) -> None:
    tree.open_workspace("/proj")
    assert _names(tree.children("/proj")) == ["sub", "a.txt"]

    tree.expand_if_directory("/proj/sub")

    assert [(row.name, row.depth) for row in tree.rows()] == [("sub", 0), ("a.txt", 0)]


def test_rows_include_expanded_descendants(tree: WorkspaceTree, proj_fs: FakeFileSystem) -> None:
    proj_fs.add_file("/proj/sub/inner.py", "pass\n")
    proj_fs.add_directory("/proj/sub/deep")
    tree.open_workspace("/proj")

    tree.toggle_expanded("/proj/sub")

    assert [(row.name, row.is_directory, row.depth) for row in tree.rows()] == [
        ("sub", True, 0),
        ("deep", True, 1),
        ("inner.py", False, 1),
        ("a.txt", False, 0),
    ]

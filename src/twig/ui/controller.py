"""Shell controller routing explorer and command input to the two stores.

The workspace tree and the document set never reference each other; this
controller is the only place that reads one to drive the other, and the only
place that publishes events for the presentation layer.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Protocol, Sequence

from ..editor.document_model import Document
from ..editor.document_set import DocumentSet
from ..editor.errors import DocumentSaveError
from ..services.settings import Settings, SettingsStore, remember_workspace
from ..workspace.entries import TreeRow
from ..workspace.tree import WorkspaceTree
from .events import (
    ActiveDocumentChanged,
    DocumentModified,
    DocumentOpened,
    DocumentSaved,
    DocumentSaveFailed,
    DocumentsCleared,
    EventBus,
    FocusToggled,
    SelectionChanged,
    TreeChanged,
    WorkspaceClosed,
    WorkspaceOpened,
)

__all__ = [
    "Command",
    "DialogProvider",
    "FocusTarget",
    "MoveDirection",
    "ShellController",
]

LOGGER = logging.getLogger(__name__)


class FocusTarget(Enum):
    TREE = "tree"
    EDITOR = "editor"


class MoveDirection(Enum):
    LEFT = "left"
    RIGHT = "right"


class Command(Enum):
    """Host-level commands delivered by menus and keyboard shortcuts."""

    OPEN_FOLDER = "open_folder"
    CLOSE_FOLDER = "close_folder"
    SAVE = "save"
    SAVE_AS = "save_as"
    TOGGLE_FOCUS = "toggle_focus"
    EXPAND_SELECTION = "expand_selection"
    COLLAPSE_SELECTION = "collapse_selection"


class DialogProvider(Protocol):
    """User prompts the controller needs for interactive commands."""

    def prompt_folder(self, start_dir: Path | None = None) -> Path | None:
        ...

    def prompt_save_path(self, start_dir: Path | None = None) -> Path | None:
        ...

    def confirm_discard(self, documents: Sequence[Document]) -> bool:
        ...


class ShellController:
    """Coordinates :class:`WorkspaceTree`, :class:`DocumentSet` and settings.

    Events Emitted:
        - WorkspaceOpened / WorkspaceClosed
        - TreeChanged: expansion changed and rows must be re-projected
        - SelectionChanged
        - DocumentOpened, ActiveDocumentChanged, DocumentModified
        - DocumentSaved / DocumentSaveFailed
        - DocumentsCleared
        - FocusToggled
    """

    def __init__(
        self,
        tree: WorkspaceTree,
        documents: DocumentSet,
        *,
        event_bus: EventBus | None = None,
        settings: Settings | None = None,
        settings_store: SettingsStore | None = None,
        dialogs: DialogProvider | None = None,
    ) -> None:
        self._tree = tree
        self._documents = documents
        self._bus = event_bus or EventBus()
        self._settings = settings or Settings()
        self._settings_store = settings_store
        self._dialogs = dialogs
        self._focus = FocusTarget.TREE
        self._changed_settings: set[str] = set()
        self._documents.add_active_listener(self._on_active_document_changed)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def tree(self) -> WorkspaceTree:
        return self._tree

    @property
    def documents(self) -> DocumentSet:
        return self._documents

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def focus(self) -> FocusTarget:
        return self._focus

    def set_dialog_provider(self, dialogs: DialogProvider | None) -> None:
        self._dialogs = dialogs

    def update_settings(self, **changes: object) -> Settings:
        """Apply ``changes`` to the in-memory settings; persisted on shutdown."""

        self._settings = replace(self._settings, **changes)
        self._changed_settings.update(changes)
        return self._settings

    def rows(self) -> tuple[TreeRow, ...]:
        return self._tree.rows()

    # ------------------------------------------------------------------
    # Workspace
    # ------------------------------------------------------------------
    def open_folder(self, folder: Path | str, *, clear_documents: bool | None = None) -> Path | None:
        """Open ``folder`` as the workspace root.

        Open documents are kept unless ``clear_documents`` (or, when it is
        ``None``, the ``clear_documents_on_workspace_change`` setting) asks for
        them to be discarded. Returns ``None`` when the user declined to
        discard unsaved changes.
        """

        if self._should_clear(clear_documents) and not self._discard_documents():
            return None
        root = self._tree.open_workspace(folder)
        self._settings = remember_workspace(self._settings, root)
        self._changed_settings.update(("last_workspace", "recent_workspaces"))
        self._persist_settings()
        self._bus.publish(WorkspaceOpened(root=str(root), scope_active=self._tree.scope_active))
        return root

    def close_folder(self, *, clear_documents: bool | None = None) -> bool:
        """Close the workspace; returns ``False`` when the user cancelled."""

        if self._should_clear(clear_documents) and not self._discard_documents():
            return False
        root = self._tree.root_folder
        self._tree.close_workspace()
        self._bus.publish(WorkspaceClosed(root=str(root) if root is not None else None))
        return True

    def _should_clear(self, clear_documents: bool | None) -> bool:
        if clear_documents is None:
            return self._settings.clear_documents_on_workspace_change
        return clear_documents

    def _discard_documents(self) -> bool:
        dirty = self._documents.dirty_documents()
        if dirty and self._dialogs is not None and not self._dialogs.confirm_discard(dirty):
            LOGGER.info("Discard of %d unsaved document(s) declined", len(dirty))
            return False
        discarded = self._documents.clear()
        self._bus.publish(DocumentsCleared(count=len(discarded), discarded_dirty=len(dirty)))
        return True

    # ------------------------------------------------------------------
    # Explorer input
    # ------------------------------------------------------------------
    def select_entry(self, path: Path | str | None) -> Document | None:
        """Route an explorer selection: update the tree, open files as documents."""

        selection = self._tree.select(path)
        if selection is None:
            self._bus.publish(SelectionChanged(path=None))
            return None
        is_dir = self._tree.is_directory(selection)
        self._bus.publish(SelectionChanged(path=str(selection), is_directory=is_dir))
        if is_dir:
            return None
        return self.open_document(selection)

    def open_document(self, path: Path | str) -> Document:
        known = self._documents.find_by_path(path) is not None
        document = self._documents.open_file(path)
        if not known:
            self._bus.publish(DocumentOpened(document_id=document.id, path=str(document.path)))
        return document

    def toggle_expanded(self, path: Path | str) -> bool:
        expanded = self._tree.toggle_expanded(path)
        self._publish_tree_changed()
        return expanded

    def move(self, direction: MoveDirection) -> None:
        """Arrow-key handling in the explorer: right expands, left collapses."""

        selection = self._tree.selection
        if selection is None:
            return
        if direction is MoveDirection.RIGHT:
            if self._tree.expand_if_directory(selection):
                self._publish_tree_changed()
        elif direction is MoveDirection.LEFT:
            if self._tree.collapse_if_expanded(selection):
                self._publish_tree_changed()

    def _publish_tree_changed(self) -> None:
        root = self._tree.root_folder
        self._bus.publish(TreeChanged(root=str(root) if root is not None else None))

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def edit_active_text(self, text: str) -> Document | None:
        document = self._documents.update_active_text(text)
        if document is not None:
            self._bus.publish(
                DocumentModified(
                    document_id=document.id,
                    version_id=document.version_id,
                    dirty=document.is_dirty,
                )
            )
        return document

    def save_active(self) -> bool:
        """Save the active document; ``False`` when nothing was saved.

        A failed write is published as :class:`DocumentSaveFailed` so the
        window can alert the user.
        """

        try:
            document = self._documents.save_active_file()
        except DocumentSaveError as exc:
            self._report_save_failure(exc)
            return False
        if document is None:
            return False
        self._bus.publish(DocumentSaved(document_id=document.id, path=str(document.path)))
        return True

    def save_active_as(self, path: Path | str | None = None) -> bool:
        document = self._documents.active_document
        if document is None:
            return False
        target = Path(path) if path is not None else None
        if target is None:
            if self._dialogs is None:
                LOGGER.debug("Save As requested without a dialog provider")
                return False
            target = self._dialogs.prompt_save_path(document.path.parent)
            if target is None:
                return False
        try:
            saved = self._documents.save_active_file_as(target)
        except DocumentSaveError as exc:
            self._report_save_failure(exc)
            return False
        if saved is None:
            return False
        self._bus.publish(DocumentSaved(document_id=saved.id, path=str(saved.path)))
        return True

    def _report_save_failure(self, exc: DocumentSaveError) -> None:
        LOGGER.warning("%s", exc)
        self._bus.publish(
            DocumentSaveFailed(document_id=exc.document_id, path=str(exc.path), message=str(exc))
        )

    # ------------------------------------------------------------------
    # Focus & commands
    # ------------------------------------------------------------------
    def toggle_focus(self) -> FocusTarget:
        self._focus = FocusTarget.EDITOR if self._focus is FocusTarget.TREE else FocusTarget.TREE
        self._bus.publish(FocusToggled(target=self._focus.value))
        return self._focus

    def set_focus(self, target: FocusTarget) -> None:
        self._focus = target

    def execute(self, command: Command) -> bool:
        """Run a host command; the return value reports whether it took effect."""

        LOGGER.debug("Executing command %s", command.value)
        if command is Command.SAVE:
            return self.save_active()
        if command is Command.SAVE_AS:
            return self.save_active_as()
        if command is Command.TOGGLE_FOCUS:
            self.toggle_focus()
            return True
        if command is Command.CLOSE_FOLDER:
            return self.close_folder()
        if command is Command.OPEN_FOLDER:
            if self._dialogs is None:
                return False
            folder = self._dialogs.prompt_folder(self._tree.root_folder)
            return folder is not None and self.open_folder(folder) is not None
        if command is Command.EXPAND_SELECTION:
            self.move(MoveDirection.RIGHT)
            return True
        if command is Command.COLLAPSE_SELECTION:
            self.move(MoveDirection.LEFT)
            return True
        raise ValueError(f"Unsupported command: {command!r}")

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        """Release the workspace scope and persist settings. Safe to call twice."""

        self._tree.close_workspace()
        self._persist_settings()

    def _persist_settings(self) -> None:
        if self._settings_store is None:
            return
        try:
            self._settings_store.save_changes(self._settings, self._changed_settings)
        except OSError as exc:
            LOGGER.warning("Failed to persist settings to %s: %s", self._settings_store.path, exc)

    def _on_active_document_changed(self, document: Document | None) -> None:
        self._bus.publish(
            ActiveDocumentChanged(
                document_id=document.id if document is not None else None,
                path=str(document.path) if document is not None else None,
            )
        )

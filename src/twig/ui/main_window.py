"""Main window: explorer list on the left, plain-text editor on the right.

The window holds no workspace or document state of its own. It forwards user
input to :class:`ShellController` and re-renders from the stores whenever the
controller publishes an event.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

from PySide6.QtCore import QByteArray, Qt, Signal
from PySide6.QtGui import QAction, QCloseEvent, QFont, QKeyEvent, QKeySequence
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPlainTextEdit,
    QSplitter,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from ..editor.document_model import Document
from .dialogs import FileDialogProvider
from .controller import Command, FocusTarget, MoveDirection, ShellController
from .events import (
    ActiveDocumentChanged,
    DocumentModified,
    DocumentSaved,
    DocumentSaveFailed,
    DocumentsCleared,
    FocusToggled,
    SelectionChanged,
    TreeChanged,
    WorkspaceClosed,
    WorkspaceOpened,
)

__all__ = ["MainWindow", "ExplorerList"]

LOGGER = logging.getLogger(__name__)

PATH_ROLE = Qt.ItemDataRole.UserRole
IS_DIR_ROLE = Qt.ItemDataRole.UserRole + 1
_INDENT = "    "


class WindowDialogs(Protocol):
    def prompt_folder(self, start_dir: Path | None = None) -> Path | None:
        ...

    def prompt_save_path(self, start_dir: Path | None = None) -> Path | None:
        ...

    def confirm_discard(self, documents: Sequence[Document]) -> bool:
        ...

    def show_error(self, title: str, message: str) -> None:
        ...


class ExplorerList(QListWidget):
    """List widget that reports left/right arrow presses as expand/collapse."""

    moveRequested = Signal(str)

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802 - Qt override
        if event.key() == Qt.Key.Key_Right:
            self.moveRequested.emit(MoveDirection.RIGHT.value)
            return
        if event.key() == Qt.Key.Key_Left:
            self.moveRequested.emit(MoveDirection.LEFT.value)
            return
        super().keyPressEvent(event)


class MainWindow(QMainWindow):
    """Top-level Twig window."""

    def __init__(
        self,
        controller: ShellController,
        *,
        dialogs: WindowDialogs | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._controller = controller
        if dialogs is None:
            dialogs = FileDialogProvider(parent_provider=lambda: self)
        self._dialogs = dialogs
        controller.set_dialog_provider(dialogs)
        self._refreshing_tree = False
        self._loading_document = False
        self._newline = "\n"
        self._actions: dict[Command, QAction] = {}

        self.setWindowTitle("Twig")
        self._build_ui()
        self._build_actions()
        self._subscribe()
        self._restore_geometry()

        self.refresh_tree()
        self._show_document(controller.documents.active_document)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        settings = self._controller.settings

        self._root_label = QLabel("Open a folder to start")
        self._tree_view = ExplorerList()
        self._tree_view.currentItemChanged.connect(self._on_tree_current_changed)
        self._tree_view.itemDoubleClicked.connect(self._on_tree_item_activated)
        self._tree_view.moveRequested.connect(self._on_tree_move)

        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.setContentsMargins(0, 0, 0, 0)
        sidebar_layout.addWidget(self._root_label)
        sidebar_layout.addWidget(self._tree_view)

        self._title_label = QLabel()
        self._dirty_label = QLabel()
        self._size_label = QLabel()
        header = QWidget()
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(12, 8, 12, 8)
        header_layout.addWidget(self._title_label)
        header_layout.addWidget(self._dirty_label)
        header_layout.addStretch(1)
        header_layout.addWidget(self._size_label)

        self._editor = QPlainTextEdit()
        font = QFont(settings.font_family, settings.font_size)
        font.setStyleHint(QFont.StyleHint.Monospace)
        self._editor.setFont(font)
        self._editor.textChanged.connect(self._on_editor_text_changed)

        editor_page = QWidget()
        editor_layout = QVBoxLayout(editor_page)
        editor_layout.setContentsMargins(0, 0, 0, 0)
        editor_layout.addWidget(header)
        editor_layout.addWidget(self._editor)

        self._placeholder = QLabel("Select a file")
        self._placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._detail = QStackedWidget()
        self._detail.addWidget(self._placeholder)
        self._detail.addWidget(editor_page)

        splitter = QSplitter()
        splitter.addWidget(sidebar)
        splitter.addWidget(self._detail)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)

    def _build_actions(self) -> None:
        specs: tuple[tuple[Command, str, Any], ...] = (
            (Command.OPEN_FOLDER, "Open Folder…", QKeySequence(QKeySequence.StandardKey.Open)),
            (Command.CLOSE_FOLDER, "Close Folder", None),
            (Command.SAVE, "Save", QKeySequence(QKeySequence.StandardKey.Save)),
            (Command.SAVE_AS, "Save As…", QKeySequence(QKeySequence.StandardKey.SaveAs)),
            (Command.TOGGLE_FOCUS, "Toggle Sidebar/Editor Focus", QKeySequence("Ctrl+Shift+\\")),
        )
        for command, label, shortcut in specs:
            action = QAction(label, self)
            if shortcut is not None:
                action.setShortcut(shortcut)
            action.triggered.connect(lambda _checked=False, cmd=command: self.run_command(cmd))
            self._actions[command] = action

        file_menu = self.menuBar().addMenu("&File")
        for command in (Command.OPEN_FOLDER, Command.CLOSE_FOLDER, Command.SAVE, Command.SAVE_AS):
            file_menu.addAction(self._actions[command])
        view_menu = self.menuBar().addMenu("&View")
        view_menu.addAction(self._actions[Command.TOGGLE_FOCUS])

        toolbar = self.addToolBar("Explorer")
        toolbar.addAction(self._actions[Command.OPEN_FOLDER])

    def _subscribe(self) -> None:
        bus = self._controller.event_bus
        bus.subscribe(WorkspaceOpened, self._on_tree_event)
        bus.subscribe(WorkspaceClosed, self._on_tree_event)
        bus.subscribe(TreeChanged, self._on_tree_event)
        bus.subscribe(SelectionChanged, self._on_selection_changed)
        bus.subscribe(ActiveDocumentChanged, self._on_active_document_changed)
        bus.subscribe(DocumentsCleared, self._on_active_document_changed)
        bus.subscribe(DocumentModified, self._on_document_state_changed)
        bus.subscribe(DocumentSaved, self._on_document_state_changed)
        bus.subscribe(DocumentSaveFailed, self._on_save_failed)
        bus.subscribe(FocusToggled, self._on_focus_toggled)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    @property
    def tree_view(self) -> ExplorerList:
        return self._tree_view

    @property
    def editor(self) -> QPlainTextEdit:
        return self._editor

    def action(self, command: Command) -> QAction:
        return self._actions[command]

    def run_command(self, command: Command) -> bool:
        if command is Command.TOGGLE_FOCUS:
            current = FocusTarget.EDITOR if self._editor.hasFocus() else FocusTarget.TREE
            self._controller.set_focus(current)
        return self._controller.execute(command)

    def refresh_tree(self) -> None:
        """Rebuild the explorer list from the current row projection."""

        tree = self._controller.tree
        root = tree.root_folder
        if root is None:
            self._root_label.setText("Open a folder to start")
        else:
            self._root_label.setText(root.name or str(root))
        self._refreshing_tree = True
        try:
            self._tree_view.clear()
            current_item: QListWidgetItem | None = None
            for row in self._controller.rows():
                if row.is_directory:
                    marker = "▾" if tree.is_expanded(row.path) else "▸"
                else:
                    marker = " "
                item = QListWidgetItem(f"{_INDENT * row.depth}{marker} {row.name}")
                item.setData(PATH_ROLE, str(row.path))
                item.setData(IS_DIR_ROLE, row.is_directory)
                self._tree_view.addItem(item)
                if tree.selection is not None and row.path == tree.selection:
                    current_item = item
            if current_item is not None:
                self._tree_view.setCurrentItem(current_item)
        finally:
            self._refreshing_tree = False

    # ------------------------------------------------------------------
    # Explorer slots
    # ------------------------------------------------------------------
    def _on_tree_current_changed(self, current: QListWidgetItem | None, _previous: QListWidgetItem | None) -> None:
        if self._refreshing_tree:
            return
        path = current.data(PATH_ROLE) if current is not None else None
        self._controller.select_entry(path)

    def _on_tree_item_activated(self, item: QListWidgetItem) -> None:
        if item.data(IS_DIR_ROLE):
            self._controller.toggle_expanded(item.data(PATH_ROLE))

    def _on_tree_move(self, direction: str) -> None:
        self._controller.move(MoveDirection(direction))

    def _on_tree_event(self, _event: object) -> None:
        self.refresh_tree()

    def _on_selection_changed(self, event: SelectionChanged) -> None:
        if event.is_directory:
            self._detail.setCurrentIndex(0)
        elif event.path is not None and self._controller.documents.active_document is not None:
            self._detail.setCurrentIndex(1)

    # ------------------------------------------------------------------
    # Editor slots
    # ------------------------------------------------------------------
    def _on_editor_text_changed(self) -> None:
        if self._loading_document:
            return
        text = self._editor.toPlainText()
        if self._newline != "\n":
            text = text.replace("\n", self._newline)
        self._controller.edit_active_text(text)

    def _on_active_document_changed(self, _event: object) -> None:
        self._show_document(self._controller.documents.active_document)

    def _on_document_state_changed(self, _event: object) -> None:
        self._update_header(self._controller.documents.active_document)

    def _on_save_failed(self, event: DocumentSaveFailed) -> None:
        self._update_header(self._controller.documents.active_document)
        self._dialogs.show_error("Save failed", event.message)

    def _on_focus_toggled(self, event: FocusToggled) -> None:
        if event.target == FocusTarget.EDITOR.value:
            self._editor.setFocus()
        else:
            self._tree_view.setFocus()

    def _show_document(self, document: Document | None) -> None:
        self._loading_document = True
        try:
            if document is None:
                self._editor.setPlainText("")
                self._detail.setCurrentIndex(0)
            else:
                self._newline = _detect_newline(document.current_text)
                self._editor.setPlainText(document.current_text)
                self._detail.setCurrentIndex(1)
        finally:
            self._loading_document = False
        self._update_header(document)

    def _update_header(self, document: Document | None) -> None:
        if document is None:
            self._title_label.setText("")
            self._dirty_label.setText("")
            self._size_label.setText("")
            self.setWindowTitle("Twig")
            return
        self._title_label.setText(document.name)
        self._dirty_label.setText("●" if document.is_dirty else "")
        self._size_label.setText(f"{len(document.current_text.encode('utf-8'))} bytes")
        prefix = "*" if document.is_dirty else ""
        self.setWindowTitle(f"{prefix}{document.name} - Twig")

    # ------------------------------------------------------------------
    # Geometry & shutdown
    # ------------------------------------------------------------------
    def _restore_geometry(self) -> None:
        encoded = self._controller.settings.window_geometry
        if not encoded:
            self.resize(1100, 720)
            return
        if not self.restoreGeometry(QByteArray.fromBase64(encoded.encode("ascii"))):
            LOGGER.debug("Stored window geometry could not be restored")
            self.resize(1100, 720)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        dirty = self._controller.documents.dirty_documents()
        if dirty and not self._dialogs.confirm_discard(dirty):
            event.ignore()
            return
        geometry = bytes(self.saveGeometry().toBase64().data()).decode("ascii")
        self._controller.update_settings(window_geometry=geometry)
        self._controller.shutdown()
        super().closeEvent(event)


def _detect_newline(text: str) -> str:
    """Return the line separator ``text`` uses; the editor widget only keeps ``\\n``."""

    if "\r\n" in text:
        return "\r\n"
    if "\r" in text:
        return "\r"
    return "\n"

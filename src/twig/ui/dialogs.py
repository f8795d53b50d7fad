"""Qt dialogs backing the controller's interactive commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Sequence

from PySide6.QtWidgets import QFileDialog, QMessageBox, QWidget

from ..editor.document_model import Document

__all__ = ["FileDialogProvider"]

LOGGER = logging.getLogger(__name__)


class FileDialogProvider:
    """Folder/save pickers and confirmation boxes parented to the main window.

    Example:
        provider = FileDialogProvider(parent_provider=lambda: window)
        folder = provider.prompt_folder(Path.home())
    """

    __slots__ = ("_parent_provider",)

    def __init__(self, *, parent_provider: Callable[[], QWidget | None] | None = None) -> None:
        self._parent_provider = parent_provider

    def _parent(self) -> QWidget | None:
        return self._parent_provider() if self._parent_provider is not None else None

    def prompt_folder(self, start_dir: Path | None = None) -> Path | None:
        selected = QFileDialog.getExistingDirectory(
            self._parent(),
            "Open Folder",
            str(start_dir or Path.home()),
        )
        if not selected:
            LOGGER.debug("Folder selection cancelled")
            return None
        return Path(selected)

    def prompt_save_path(self, start_dir: Path | None = None) -> Path | None:
        selected, _filter = QFileDialog.getSaveFileName(
            self._parent(),
            "Save As",
            str(start_dir or Path.home()),
        )
        if not selected:
            return None
        return Path(selected)

    def confirm_discard(self, documents: Sequence[Document]) -> bool:
        names = "\n".join(f"  {document.name}" for document in documents)
        answer = QMessageBox.question(
            self._parent(),
            "Discard unsaved changes?",
            f"These documents have unsaved changes:\n{names}\n\nDiscard them?",
            QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
            QMessageBox.StandardButton.Cancel,
        )
        return answer == QMessageBox.StandardButton.Discard

    def show_error(self, title: str, message: str) -> None:
        QMessageBox.warning(self._parent(), title, message)

"""The set of open documents and which one the editor is showing."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol

from ..services.filesystem import FileSystemProvider, LocalFileSystem
from ..utils.file_io import normalize_path
from .document_model import Document
from .errors import DocumentSaveError

__all__ = ["DocumentSet", "ActiveDocumentListener"]

LOGGER = logging.getLogger(__name__)


class ActiveDocumentListener(Protocol):
    """Callback signature fired whenever the active document changes."""

    def __call__(self, document: Optional[Document]) -> None:  # pragma: no cover - protocol
        ...


class DocumentSet:
    """Ordered open documents, at most one per path, with one optionally active.

    Opening never fails: unreadable files open as empty buffers. Saving
    reports failure by raising :class:`DocumentSaveError` and leaves the
    document dirty.
    """

    def __init__(self, filesystem: FileSystemProvider | None = None) -> None:
        self._fs: FileSystemProvider = filesystem or LocalFileSystem()
        self._lock = threading.RLock()
        self._docs: Dict[str, Document] = {}
        self._order: List[str] = []
        self._active_doc_id: str | None = None
        self._listeners: List[ActiveDocumentListener] = []

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def open_docs(self) -> tuple[Document, ...]:
        return tuple(self._docs[doc_id] for doc_id in self._order)

    @property
    def active_doc_id(self) -> str | None:
        return self._active_doc_id

    @property
    def active_document(self) -> Document | None:
        if self._active_doc_id is None:
            return None
        return self._docs.get(self._active_doc_id)

    def iter_documents(self) -> Iterator[Document]:
        for doc_id in self._order:
            yield self._docs[doc_id]

    def document_count(self) -> int:
        return len(self._order)

    def get(self, doc_id: str) -> Document:
        document = self._docs.get(doc_id)
        if document is None:
            raise KeyError(f"Unknown document id: {doc_id}")
        return document

    def find_by_path(self, path: Path | str) -> Document | None:
        normalized = normalize_path(path)
        for document in self.iter_documents():
            if document.path == normalized:
                return document
        return None

    def dirty_documents(self) -> tuple[Document, ...]:
        return tuple(document for document in self.iter_documents() if document.is_dirty)

    def has_unsaved_changes(self) -> bool:
        return any(document.is_dirty for document in self.iter_documents())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open_file(self, path: Path | str) -> Document:
        """Activate the document for ``path``, loading it on first open.

        An already-open path is never re-read, so unsaved edits survive.
        """

        normalized = normalize_path(path)
        with self._lock:
            existing = self.find_by_path(normalized)
            if existing is not None:
                LOGGER.debug("open_file: reusing document %s for %s", existing.id, normalized)
                self._activate(existing.id)
                return existing

            try:
                text = self._fs.read_text(normalized)
            except (OSError, UnicodeDecodeError) as exc:
                LOGGER.warning("Could not read %s, opening empty buffer: %s", normalized, exc)
                text = ""
            document = Document.loaded(normalized, text)
            self._docs[document.id] = document
            self._order.append(document.id)
            LOGGER.debug("open_file: created document %s for %s", document.id, normalized)
            self._activate(document.id)
            return document

    def set_active(self, doc_id: str) -> Document:
        with self._lock:
            document = self.get(doc_id)
            self._activate(doc_id)
            return document

    def clear(self) -> tuple[Document, ...]:
        """Discard every open document, including unsaved edits.

        Callers are expected to confirm with the user before calling this when
        :meth:`has_unsaved_changes` is true.
        """

        with self._lock:
            discarded = self.open_docs
            lost = [document.path for document in discarded if document.is_dirty]
            self._docs.clear()
            self._order.clear()
            if lost:
                LOGGER.warning("Discarding unsaved changes in %d document(s): %s", len(lost), lost)
            self._activate(None)
            return discarded

    # ------------------------------------------------------------------
    # Editing & persistence
    # ------------------------------------------------------------------
    def update_active_text(self, new_text: str) -> Document | None:
        with self._lock:
            document = self.active_document
            if document is None:
                return None
            if document.current_text != new_text:
                document.update_text(new_text)
            return document

    def save_active_file(self) -> Document | None:
        """Write the active document to its path.

        Returns the saved document, or ``None`` when nothing is active.

        Raises:
            DocumentSaveError: The write failed; the document stays dirty.
        """

        with self._lock:
            document = self.active_document
            if document is None:
                return None
            self._write(document, document.path)
            return document

    def save_active_file_as(self, path: Path | str) -> Document | None:
        """Write the active document to ``path`` and rebind it there.

        Raises:
            DocumentSaveError: The write failed, or another open document
                already owns ``path``.
        """

        target = normalize_path(path)
        with self._lock:
            document = self.active_document
            if document is None:
                return None
            owner = self.find_by_path(target)
            if owner is not None and owner.id != document.id:
                raise DocumentSaveError(
                    document.id,
                    target,
                    message=f"already open as document {owner.id}",
                )
            self._write(document, target)
            if document.path != target:
                LOGGER.info("Rebound document %s from %s to %s", document.id, document.path, target)
                document.path = target
            return document

    def _write(self, document: Document, target: Path) -> None:
        text = document.current_text
        try:
            self._fs.write_text(target, text)
        except OSError as exc:
            LOGGER.error("Saving document %s to %s failed: %s", document.id, target, exc)
            raise DocumentSaveError(document.id, target, exc) from exc
        document.mark_saved(text)
        LOGGER.debug("Saved document %s to %s", document.id, target)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_active_listener(self, listener: ActiveDocumentListener) -> None:
        self._listeners.append(listener)

    def remove_active_listener(self, listener: ActiveDocumentListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _activate(self, doc_id: str | None) -> None:
        if self._active_doc_id == doc_id:
            return
        self._active_doc_id = doc_id
        document = self.active_document
        for listener in list(self._listeners):
            listener(document)

"""Exceptions raised by the document layer."""

from __future__ import annotations

from pathlib import Path

__all__ = ["DocumentSaveError"]


class DocumentSaveError(RuntimeError):
    """A document could not be written; its in-memory state is unchanged."""

    def __init__(
        self,
        document_id: str,
        path: Path,
        cause: BaseException | None = None,
        *,
        message: str | None = None,
    ) -> None:
        detail = message or (str(cause) if cause is not None else "write failed")
        super().__init__(f"Failed to save {path}: {detail}")
        self.document_id = document_id
        self.path = path
        self.cause = cause

"""Dataclass representing one open text document."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path


def _generate_document_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Document:
    """A file loaded into the editor.

    Dirty state is derived by comparing ``current_text`` with
    ``last_saved_text``; it is never stored.
    """

    path: Path
    current_text: str = ""
    last_saved_text: str = ""
    id: str = field(default_factory=_generate_document_id)
    version_id: int = 1

    @classmethod
    def loaded(cls, path: Path, text: str) -> "Document":
        """Create a clean document whose buffer matches what was read from disk."""

        return cls(path=path, current_text=text, last_saved_text=text)

    @property
    def is_dirty(self) -> bool:
        return self.current_text != self.last_saved_text

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)

    def update_text(self, new_text: str) -> None:
        """Replace the buffer contents and bump the version counter."""

        self.current_text = new_text
        self.version_id += 1

    def mark_saved(self, text: str) -> None:
        self.last_saved_text = text

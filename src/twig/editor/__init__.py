"""Editor package containing the document model and the open-document set."""

from .document_model import Document
from .document_set import DocumentSet
from .errors import DocumentSaveError

__all__ = ["Document", "DocumentSet", "DocumentSaveError"]

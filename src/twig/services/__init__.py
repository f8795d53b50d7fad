"""Service layer: filesystem access, sandbox scopes and settings."""

from .filesystem import FileSystemProvider, LocalFileSystem
from .scope import NullScopeGuard, ScopedAccess, ScopeGuard

__all__ = [
    "FileSystemProvider",
    "LocalFileSystem",
    "NullScopeGuard",
    "ScopedAccess",
    "ScopeGuard",
]

"""Scoped access to sandboxed directory trees.

Sandboxed platforms only grant access to a user-picked folder while a scope on
it is held. Elsewhere :class:`NullScopeGuard` stands in and every acquisition
trivially succeeds.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType
from typing import Protocol, runtime_checkable

__all__ = ["ScopeGuard", "NullScopeGuard", "ScopedAccess"]

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class ScopeGuard(Protocol):
    """Platform hook that starts and stops access to a directory tree."""

    def acquire(self, path: Path) -> bool:
        """Start accessing ``path``; return ``False`` when access was refused."""
        ...

    def release(self, path: Path) -> None:
        """Stop accessing ``path``."""
        ...


class NullScopeGuard:
    """Guard for platforms without sandboxed file access."""

    def acquire(self, path: Path) -> bool:
        return True

    def release(self, path: Path) -> None:
        return None


class ScopedAccess:
    """Holds at most one scope at a time and releases it exactly once.

    Acquiring a new scope releases the previous one first. A failed
    acquisition is logged and remembered as "no scope held", so nothing is
    released for it later.
    """

    def __init__(self, guard: ScopeGuard | None = None) -> None:
        self._guard: ScopeGuard = guard or NullScopeGuard()
        self._path: Path | None = None
        self._active = False

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def active(self) -> bool:
        return self._active

    def acquire(self, path: Path) -> bool:
        self.release()
        self._path = path
        try:
            self._active = bool(self._guard.acquire(path))
        except Exception:
            LOGGER.exception("Scope guard raised while acquiring %s", path)
            self._active = False
        if not self._active:
            LOGGER.warning("Could not acquire access scope for %s; continuing without it", path)
        return self._active

    def release(self) -> None:
        path, active = self._path, self._active
        self._path = None
        self._active = False
        if not active or path is None:
            return
        try:
            self._guard.release(path)
        except Exception:
            LOGGER.exception("Scope guard raised while releasing %s", path)
        else:
            LOGGER.debug("Released access scope for %s", path)

    def __enter__(self) -> "ScopedAccess":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

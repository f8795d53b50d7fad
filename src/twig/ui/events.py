"""Typed publish/subscribe bus connecting the shell controller to the window.

The workspace and document stores stay free of any bus; the shell controller
publishes these events after it drives the stores, and presentation code
subscribes to re-render.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, TypeVar
from weakref import WeakMethod

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")
Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all shell events."""


# ----------------------------------------------------------------------
# Workspace events
# ----------------------------------------------------------------------


@dataclass(slots=True)
class WorkspaceOpened(Event):
    """A folder became the workspace root."""

    root: str
    scope_active: bool = True


@dataclass(slots=True)
class WorkspaceClosed(Event):
    """The workspace root was closed."""

    root: str | None = None


@dataclass(slots=True)
class TreeChanged(Event):
    """Expansion or listing state changed; visible rows must be re-projected."""

    root: str | None = None


@dataclass(slots=True)
class SelectionChanged(Event):
    """The explorer selection moved."""

    path: str | None
    is_directory: bool = False


# ----------------------------------------------------------------------
# Document events
# ----------------------------------------------------------------------


@dataclass(slots=True)
class DocumentOpened(Event):
    """A path was opened as a new document."""

    document_id: str
    path: str


@dataclass(slots=True)
class ActiveDocumentChanged(Event):
    """The editor now shows another document, or none."""

    document_id: str | None
    path: str | None = None


@dataclass(slots=True)
class DocumentModified(Event):
    """The active document's buffer changed."""

    document_id: str
    version_id: int
    dirty: bool


@dataclass(slots=True)
class DocumentSaved(Event):
    """A document was written to disk."""

    document_id: str
    path: str


@dataclass(slots=True)
class DocumentSaveFailed(Event):
    """Writing a document failed; it remains dirty."""

    document_id: str
    path: str
    message: str


@dataclass(slots=True)
class DocumentsCleared(Event):
    """All open documents were discarded."""

    count: int
    discarded_dirty: int = 0


# ----------------------------------------------------------------------
# Focus events
# ----------------------------------------------------------------------


@dataclass(slots=True)
class FocusToggled(Event):
    """Keyboard focus moved between the explorer and the editor."""

    target: str


_QUIET_EVENT_TYPES: set[type] = {DocumentModified}


class EventBus:
    """Synchronous, typed publish/subscribe bus.

    Bound methods are held weakly so a discarded widget does not keep
    receiving events; plain functions are held strongly. A handler that raises
    is logged and the remaining handlers still run.

    Not thread-safe: publish and subscribe from the UI thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        LOGGER.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: Event) -> None:
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        if event_type not in _QUIET_EVENT_TYPES:
            LOGGER.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                LOGGER.exception(
                    "Handler %s raised while handling %s", _handler_name(handler), event_type.__name__
                )
        for handler_ref in dead:
            handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[Event] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: Any, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Callable[..., None]) -> "_HandlerRef":
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)  # type: ignore[arg-type]
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Callable[..., None] | None:
        if not self._is_weak:
            return self._ref
        return self._ref()

    def matches(self, handler: Callable[..., None]) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Callable[..., None]) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "WorkspaceOpened",
    "WorkspaceClosed",
    "TreeChanged",
    "SelectionChanged",
    "DocumentOpened",
    "ActiveDocumentChanged",
    "DocumentModified",
    "DocumentSaved",
    "DocumentSaveFailed",
    "DocumentsCleared",
    "FocusToggled",
]

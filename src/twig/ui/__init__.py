"""UI package: event bus, shell controller and the Qt main window."""

from importlib import import_module
from typing import Any

from .controller import Command, FocusTarget, MoveDirection, ShellController
from .events import EventBus

__all__ = [
    "Command",
    "EventBus",
    "FocusTarget",
    "MainWindow",
    "MoveDirection",
    "ShellController",
]


def __getattr__(name: str) -> Any:
    # The Qt window is loaded on first use so the controller stays importable
    # without initialising PySide6.
    if name == "MainWindow":
        module = import_module(f"{__name__}.main_window")
        globals()[name] = module.MainWindow
        return module.MainWindow
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

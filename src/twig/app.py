"""Application bootstrap helpers for the Twig desktop shell."""

from __future__ import annotations

import argparse
import json
import locale
import logging
import os
import sys
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TextIO, get_args, get_origin, get_type_hints

from .editor.document_set import DocumentSet
from .services.filesystem import FileSystemProvider, LocalFileSystem
from .services.scope import ScopeGuard
from .services.settings import Settings, SettingsStore
from .ui.controller import ShellController
from .ui.events import EventBus
from .utils import logging as logging_utils
from .workspace.tree import WorkspaceTree

LOGGER = logging.getLogger(__name__)

_ENV_PREFIX = "TWIG_"
_BOOL_WORDS = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}
_NULL_WORDS = {"none", "null"}


# ----------------------------------------------------------------------
# Bootstrap building blocks
# ----------------------------------------------------------------------


def configure_logging(debug: bool = False, *, force: bool = False) -> Path:
    """Install file and console logging, then route Qt's own messages into it."""

    log_path = logging_utils.setup_logging(logging.DEBUG if debug else logging.INFO, force=force)
    _route_qt_messages()
    LOGGER.debug("Logging to %s (debug=%s)", log_path, debug)
    return log_path


def load_settings(
    path: Path | None = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Return the persisted settings, or defaults when they cannot be loaded."""

    active = store if store is not None else SettingsStore(path)
    try:
        return active.load(overrides=overrides)
    except (OSError, TypeError, ValueError) as exc:
        LOGGER.warning("Using default settings; %s could not be loaded: %s", active.path, exc)
        return Settings()


def build_controller(
    settings: Settings,
    *,
    settings_store: SettingsStore | None = None,
    filesystem: FileSystemProvider | None = None,
    scope_guard: ScopeGuard | None = None,
    event_bus: EventBus | None = None,
) -> ShellController:
    """Wire the workspace tree and document set around one filesystem provider."""

    provider = filesystem or LocalFileSystem()
    tree = WorkspaceTree(provider, scope_guard=scope_guard, show_hidden=settings.show_hidden_files)
    return ShellController(
        tree,
        DocumentSet(provider),
        event_bus=event_bus,
        settings=settings,
        settings_store=settings_store,
    )


def resolve_initial_folder(folder: str | None, settings: Settings, *, restore: bool = True) -> Path | None:
    """Pick the folder to open at launch: the CLI argument, else the last workspace."""

    if folder:
        return Path(folder).expanduser()
    if not restore or not settings.last_workspace:
        return None
    previous = Path(settings.last_workspace).expanduser()
    if previous.is_dir():
        return previous
    LOGGER.info("Last workspace %s no longer exists; starting empty", previous)
    return None


def create_qapp() -> Any:
    """Return the running QApplication, creating it on first use."""

    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName("Twig")
    app.setApplicationDisplayName("Twig")
    return app


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `twig` console script."""

    parser = build_parser()
    args, qt_args = parser.parse_known_args(argv)
    # Unrecognised options (-style, -platform, ...) belong to Qt.
    sys.argv = [sys.argv[0] if sys.argv else "twig", *qt_args]

    debug = _env_enabled("TWIG_DEBUG")
    configure_logging(debug)
    _configure_collation()

    try:
        overrides = parse_overrides(args.overrides)
    except ValueError as exc:
        parser.exit(2, f"twig: invalid --set override: {exc}\n")

    settings_path = args.settings_path or os.environ.get("TWIG_SETTINGS_PATH")
    store = SettingsStore(Path(settings_path).expanduser() if settings_path else None)
    settings = load_settings(store=store, overrides=overrides or None)

    if args.dump_settings:
        dump_settings(settings, store, overrides=overrides)
        return 0
    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    controller = build_controller(settings, settings_store=store)
    try:
        app = create_qapp()
        from .ui.main_window import MainWindow

        window = MainWindow(controller)
        initial = resolve_initial_folder(args.folder, settings, restore=not args.no_restore)
        if initial is not None:
            controller.open_folder(initial)
        window.show()
        return int(app.exec())
    except KeyboardInterrupt:  # pragma: no cover - interactive interrupt
        LOGGER.info("Interrupted; shutting down")
        return 130
    finally:
        controller.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twig",
        description="Open a folder in the Twig editor, or inspect the effective configuration.",
    )
    parser.add_argument("folder", nargs="?", help="folder to open as the workspace")
    parser.add_argument(
        "--no-restore",
        action="store_true",
        help="start empty instead of reopening the last workspace",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="read and write settings here instead of ~/.twig/settings.json",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="override one setting for this run; may be repeated",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="print the effective settings as JSON and exit",
    )
    return parser


# ----------------------------------------------------------------------
# --set KEY=VALUE handling
# ----------------------------------------------------------------------


def parse_overrides(items: Sequence[str]) -> dict[str, Any]:
    """Turn ``KEY=VALUE`` strings into typed :class:`Settings` overrides.

    Values are converted according to the field's annotation. ``none`` or
    ``null`` clears an optional field, and list fields take a JSON array.

    Raises:
        ValueError: malformed entry, unknown field, or unconvertible value.
    """

    hints = get_type_hints(Settings)
    known = {item.name for item in fields(Settings)}
    parsed: dict[str, Any] = {}
    for item in items:
        name, sep, raw = item.partition("=")
        name = name.strip()
        if not sep:
            raise ValueError(f"expected KEY=VALUE, got {item!r}")
        if not name:
            raise ValueError(f"missing setting name in {item!r}")
        if name not in known:
            raise ValueError(f"unknown setting {name!r}")
        parsed[name] = _convert(hints[name], raw.strip())
    return parsed


def _convert(annotation: Any, raw: str) -> Any:
    members = get_args(annotation)
    if type(None) in members:
        if raw.lower() in _NULL_WORDS:
            return None
        annotation = next(member for member in members if member is not type(None))
    converter = _CONVERTERS.get(get_origin(annotation) or annotation)
    return converter(raw) if converter is not None else raw


def _to_bool(raw: str) -> bool:
    try:
        return _BOOL_WORDS[raw.lower()]
    except KeyError:
        raise ValueError(f"{raw!r} is not a boolean") from None


def _to_list(raw: str) -> list[Any]:
    try:
        value = json.loads(raw or "[]")
    except json.JSONDecodeError as exc:
        raise ValueError(f"{raw!r} is not a JSON array") from exc
    if not isinstance(value, list):
        raise ValueError(f"{raw!r} is not a JSON array")
    return value


_CONVERTERS: dict[Any, Callable[[str], Any]] = {
    bool: _to_bool,
    int: lambda raw: int(raw, 10),
    float: float,
    list: _to_list,
    str: str,
}


# ----------------------------------------------------------------------
# Diagnostics
# ----------------------------------------------------------------------


def dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    """Write the effective settings and where they came from as JSON."""

    out = stream if stream is not None else sys.stdout
    report = {
        "settings": asdict(settings),
        "meta": {
            "path": str(store.path),
            "cli_overrides": sorted(overrides),
            "environment_variables": sorted(name for name in os.environ if name.startswith(_ENV_PREFIX)),
        },
    }
    out.write(json.dumps(report, indent=2) + "\n")


def _env_enabled(name: str) -> bool:
    return _BOOL_WORDS.get(os.environ.get(name, "").strip().lower(), False)


def _configure_collation() -> None:
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        LOGGER.debug("Keeping the C collation order: %s", exc)


def _route_qt_messages() -> None:
    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }
    qt_logger = logging.getLogger("PySide6")

    def forward(kind, context, message):  # type: ignore[no-untyped-def]
        if context is not None and context.file:
            qt_logger.log(levels.get(kind, logging.INFO), "%s (%s:%s)", message, context.file, context.line)
        else:
            qt_logger.log(levels.get(kind, logging.INFO), "%s", message)

    qInstallMessageHandler(forward)

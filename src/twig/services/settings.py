"""Settings dataclass and JSON persistence."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from ..utils import file_io

__all__ = ["Settings", "SettingsStore", "remember_workspace"]

LOGGER = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".twig" / "settings.json"
SETTINGS_VERSION = 1


@dataclass(slots=True)
class Settings:
    """Preferences and session state that survive restarts."""

    show_hidden_files: bool = False
    clear_documents_on_workspace_change: bool = False
    last_workspace: str | None = None
    recent_workspaces: list[str] = field(default_factory=list)
    max_recent_workspaces: int = 10
    font_family: str = "JetBrains Mono"
    font_size: int = 13
    window_geometry: str | None = None
    debug_logging: bool = False


def remember_workspace(settings: Settings, folder: Path | str) -> Settings:
    """Return ``settings`` with ``folder`` as the most recent workspace."""

    entry = str(folder)
    recent = [entry, *(item for item in settings.recent_workspaces if item != entry)]
    limit = max(1, settings.max_recent_workspaces)
    return replace(settings, last_workspace=entry, recent_workspaces=recent[:limit])


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(raw: str) -> int:
    return int(raw.strip(), 10)


# environment variable -> (settings field, converter)
_ENV_FIELDS: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    "TWIG_SHOW_HIDDEN": ("show_hidden_files", _env_bool),
    "TWIG_CLEAR_DOCUMENTS_ON_WORKSPACE_CHANGE": ("clear_documents_on_workspace_change", _env_bool),
    "TWIG_DEBUG_LOGGING": ("debug_logging", _env_bool),
    "TWIG_LAST_WORKSPACE": ("last_workspace", str),
    "TWIG_FONT_FAMILY": ("font_family", str),
    "TWIG_FONT_SIZE": ("font_size", _env_int),
}


class SettingsStore:
    """Reads and writes :class:`Settings` as a JSON document.

    Precedence, lowest first: dataclass defaults, the file, overrides passed
    to :meth:`load` (the ``--set`` CLI flags), then ``TWIG_*`` environment
    variables. A missing or unreadable file is treated as empty.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        settings = self._from_payload(self._read_payload())
        if overrides:
            settings = _merge(settings, overrides, source="CLI")
        env_values = _environment_values()
        if env_values:
            settings = _merge(settings, env_values, source="environment")
        return settings

    def save(self, settings: Settings) -> Path:
        """Write ``settings`` atomically, creating the settings directory if needed."""

        document = {**asdict(settings), "version": SETTINGS_VERSION}
        file_io.write_text(self._path, json.dumps(document, indent=2, sort_keys=True), create_parents=True)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def save_changes(self, settings: Settings, names: Iterable[str]) -> Path:
        """Persist only the ``names`` fields of ``settings`` onto the file's contents.

        CLI and environment overrides in ``settings`` that were not changed
        during the session stay out of the file.
        """

        baseline = self._from_payload(self._read_payload())
        changes = {name: getattr(settings, name) for name in names}
        return self.save(replace(baseline, **changes))

    def _read_payload(self) -> dict[str, Any]:
        try:
            raw = file_io.read_text(self._path)
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Settings file %s could not be read: %s", self._path, exc)
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s could not be read: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Settings file %s does not hold a JSON object; ignoring it", self._path)
            return {}
        return data

    def _from_payload(self, payload: Mapping[str, Any]) -> Settings:
        if not payload:
            return Settings()
        version = payload.get("version")
        if version != SETTINGS_VERSION:
            LOGGER.debug("Settings file %s has version %r", self._path, version)
        try:
            return Settings(**_known_fields(payload))
        except TypeError as exc:
            LOGGER.warning("Ignoring malformed settings in %s: %s", self._path, exc)
            return Settings()


def _known_fields(values: Mapping[str, Any]) -> dict[str, Any]:
    names = {item.name for item in fields(Settings)}
    return {key: value for key, value in values.items() if key in names}


def _merge(settings: Settings, values: Mapping[str, Any], *, source: str) -> Settings:
    changes = {key: value for key, value in _known_fields(values).items() if value is not None}
    if not changes:
        return settings
    LOGGER.debug("Applying %s settings overrides: %s", source, sorted(changes))
    return replace(settings, **changes)


def _environment_values() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for env_name, (field_name, convert) in _ENV_FIELDS.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            values[field_name] = convert(raw)
        except ValueError:
            LOGGER.warning("Ignoring %s=%r: not a valid value for %s", env_name, raw, field_name)
    return values

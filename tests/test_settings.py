"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from twig.services.settings import Settings, SettingsStore, remember_workspace


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")

    assert store.load() == Settings()


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    store = SettingsStore(path)
    original = Settings(
        show_hidden_files=True,
        clear_documents_on_workspace_change=True,
        last_workspace="/proj",
        recent_workspaces=["/proj", "/other"],
        font_family="Fira Code",
        font_size=15,
        window_geometry="AdnQywAD",
    )

    store.save(original)
    reloaded = SettingsStore(path).load()

    assert reloaded == original
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1


def test_load_ignores_unknown_fields(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"font_size": 18, "api_key": "stale"}), encoding="utf-8")

    loaded = SettingsStore(path).load()

    assert loaded.font_size == 18


def test_load_corrupt_file_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()
    assert "could not be read" in caplog.text


def test_load_non_object_payload_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_cli_overrides_apply_before_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TWIG_FONT_SIZE", "20")
    store = SettingsStore(tmp_path / "settings.json")

    loaded = store.load(overrides={"font_size": 11, "show_hidden_files": True, "unknown": 1})

    assert loaded.font_size == 20
    assert loaded.show_hidden_files is True


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TWIG_SHOW_HIDDEN", "yes")
    monkeypatch.setenv("TWIG_CLEAR_DOCUMENTS_ON_WORKSPACE_CHANGE", "off")
    monkeypatch.setenv("TWIG_FONT_FAMILY", "Iosevka")
    monkeypatch.setenv("TWIG_LAST_WORKSPACE", "/env/proj")

    loaded = SettingsStore(tmp_path / "settings.json").load()

    assert loaded.show_hidden_files is True
    assert loaded.clear_documents_on_workspace_change is False
    assert loaded.font_family == "Iosevka"
    assert loaded.last_workspace == "/env/proj"


def test_invalid_integer_environment_override_is_ignored(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("TWIG_FONT_SIZE", "huge")

    loaded = SettingsStore(tmp_path / "settings.json").load()

    assert loaded.font_size == Settings().font_size
    assert "not a valid value for font_size" in caplog.text


def test_save_changes_writes_only_named_fields(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "settings.json"
    store = SettingsStore(path)
    store.save(Settings(font_size=15))
    monkeypatch.setenv("TWIG_SHOW_HIDDEN", "1")
    session = store.load(overrides={"font_size": 30})

    store.save_changes(remember_workspace(session, "/proj"), ["last_workspace", "recent_workspaces"])

    persisted = json.loads(path.read_text(encoding="utf-8"))
    assert persisted["font_size"] == 15
    assert persisted["show_hidden_files"] is False
    assert persisted["recent_workspaces"] == ["/proj"]


def test_remember_workspace_moves_entry_to_front() -> None:
    settings = Settings(recent_workspaces=["/a", "/b", "/c"], max_recent_workspaces=3)

    updated = remember_workspace(settings, Path("/c"))

    assert updated.last_workspace == "/c"
    assert updated.recent_workspaces == ["/c", "/a", "/b"]
    assert settings.recent_workspaces == ["/a", "/b", "/c"]


def test_remember_workspace_truncates_history() -> None:
    settings = Settings(recent_workspaces=["/a", "/b"], max_recent_workspaces=2)

    updated = remember_workspace(settings, "/new")

    assert updated.recent_workspaces == ["/new", "/a"]

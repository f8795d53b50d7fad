"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from tests.helpers import FakeFileSystem, RecordingScopeGuard

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("TWIG_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TWIG_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def fake_fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def scope_guard() -> RecordingScopeGuard:
    return RecordingScopeGuard()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A real folder holding ``a.txt`` (content ``"x"``) and an empty ``sub/``."""

    root = tmp_path / "proj"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("x", encoding="utf-8")
    return root

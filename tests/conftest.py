"""Shared test fixtures for filekeep."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import pytest

from filekeep.config import Settings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    """Keep FILEKEEP_* variables and any .env file of the developer out of tests."""
    for key in list(os.environ):
        if key.startswith("FILEKEEP_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo the root handler and warnings capture installed by CLI entry points."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(False)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def make_tree() -> Callable[[Path, dict[str, str]], Path]:
    """Create files below a root from a ``{relative_path: content}`` mapping."""

    def _make(root: Path, files: dict[str, str]) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _make

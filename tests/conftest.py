"""Shared pytest fixtures for the modwire test suite."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from modwire.config import Settings, override_settings
from modwire.logging import configure_logging
from modwire.modules import ModuleRegistry, override_registry, register_builtin_modules


# ---------------------------------------------------------------------------
# Settings / registry isolation
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def _stderr_logging() -> None:
    # Without this structlog falls back to printing on stdout.
    configure_logging(level="debug")


@pytest.fixture(autouse=True)
def test_settings() -> Generator[Settings, None, None]:
    settings = Settings()
    override_settings(settings)
    yield settings
    override_settings(None)
    override_registry(None)


@pytest.fixture
def module_registry() -> ModuleRegistry:
    registry = ModuleRegistry()
    register_builtin_modules(registry)
    return registry


# ---------------------------------------------------------------------------
# Temp filesystem
# ---------------------------------------------------------------------------


@pytest.fixture
def search_tree(tmp_path: Path) -> Path:
    """A small directory tree for filesearch tests.

    root/
      app.log          "started\\nERROR disk full\\n"
      notes.txt        "nothing here\\n"
      sub/
        worker.log     "ok\\n"
        deeper/
          old.log      "ERROR timeout\\n"
    """
    (tmp_path / "app.log").write_text("started\nERROR disk full\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("nothing here\n", encoding="utf-8")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "worker.log").write_text("ok\n", encoding="utf-8")
    deeper = sub / "deeper"
    deeper.mkdir()
    (deeper / "old.log").write_text("ERROR timeout\n", encoding="utf-8")
    return tmp_path

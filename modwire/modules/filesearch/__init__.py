"""FileSearch module — find files by name and content."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modwire.modules.filesearch.module import FileSearchModule

if TYPE_CHECKING:
    from modwire.modules.registry import ModuleRegistry


def register(registry: "ModuleRegistry") -> None:
    registry.register(FileSearchModule.NAME, FileSearchModule)


__all__ = ["FileSearchModule", "register"]

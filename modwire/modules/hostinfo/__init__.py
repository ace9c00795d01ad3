"""HostInfo module — describe the machine the worker runs on."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modwire.modules.hostinfo.module import HostInfoModule

if TYPE_CHECKING:
    from modwire.modules.registry import ModuleRegistry


def register(registry: "ModuleRegistry") -> None:
    registry.register(HostInfoModule.NAME, HostInfoModule)


__all__ = ["HostInfoModule", "register"]

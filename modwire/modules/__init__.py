"""Module layer — capability interfaces, registry, and built-in modules."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from modwire.logging import get_logger
from modwire.modules.base import (
    BaseModule,
    Capability,
    Moduler,
    ParamsCreator,
    ParamsParser,
    ResultsPrinter,
    has_capability,
    is_module,
    detect_capabilities,
    require_capability,
)
from modwire.modules.registry import ModuleRegistry, get_registry, override_registry
from modwire.modules import filesearch, hostinfo

log = get_logger(__name__)

# name → registration hook of each built-in module
BUILTIN_MODULES: dict[str, Callable[[ModuleRegistry], None]] = {
    "filesearch": filesearch.register,
    "hostinfo": hostinfo.register,
}


def register_builtin_modules(
    registry: ModuleRegistry, enabled: Iterable[str] | None = None
) -> list[str]:
    """Run the registration hook of each enabled built-in module.

    Args:
        registry: Registry to populate.
        enabled:  Names to register.  ``None`` registers every built-in.
                  Unknown names are logged and ignored.

    Returns:
        The names registered.
    """
    names = list(BUILTIN_MODULES) if enabled is None else list(enabled)
    registered: list[str] = []
    for name in names:
        hook = BUILTIN_MODULES.get(name)
        if hook is None:
            log.warning("unknown_builtin_module", module_name=name)
            continue
        hook(registry)
        registered.append(name)
    return registered


__all__ = [
    "BaseModule",
    "Capability",
    "Moduler",
    "ResultsPrinter",
    "ParamsCreator",
    "ParamsParser",
    "has_capability",
    "is_module",
    "detect_capabilities",
    "require_capability",
    "ModuleRegistry",
    "get_registry",
    "override_registry",
    "BUILTIN_MODULES",
    "register_builtin_modules",
]

"""Module layer — Module registry.

The registry maps a module name to a zero-argument constructor returning a
fresh module instance.  It is populated once, explicitly, at process start:
each module package exposes a ``register(registry)`` hook and the host calls
:func:`modwire.modules.register_builtin_modules` (and optionally
:meth:`ModuleRegistry.load_entrypoints`).  Nothing registers itself as an
import side effect.

Names are unique for the lifetime of the process.  A second registration
under an existing name is a packaging defect: it raises
:class:`RegistrationConflictError`, a ``SystemExit`` subclass, so the
process terminates instead of silently keeping one of the two modules.
Off the main thread, where ``SystemExit`` would only end that thread, the
registry calls :func:`os.abort` instead.
"""

from __future__ import annotations

import importlib.metadata
import os
import threading
from collections.abc import Callable
from typing import Any

from modwire.exceptions import ModuleNotFoundError, RegistrationConflictError
from modwire.logging import get_logger
from modwire.modules.base import detect_capabilities
from modwire.protocol.constants import ENTRYPOINT_GROUP

log = get_logger(__name__)

ModuleConstructor = Callable[[], Any]


class ModuleRegistry:
    """Runtime registry for modwire modules.

    Usage::

        registry = ModuleRegistry()
        registry.register("filesearch", FileSearchModule)

        constructor = registry.lookup("filesearch")
        if constructor is not None:
            module = constructor()
    """

    def __init__(self) -> None:
        self._constructors: dict[str, ModuleConstructor] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str, constructor: ModuleConstructor) -> None:
        """Register *constructor* under *name*.

        Raises:
            ValueError: *name* is empty or *constructor* is not callable.
            RegistrationConflictError: *name* is already registered.  Fatal.
        """
        if not name:
            raise ValueError("Module name must be a non-empty string.")
        if not callable(constructor):
            raise ValueError(f"Constructor for module '{name}' is not callable.")

        if name in self._constructors:
            log.critical(
                "module_registration_conflict",
                module_name=name,
                existing=_qualname(self._constructors[name]),
                duplicate=_qualname(constructor),
            )
            if threading.current_thread() is not threading.main_thread():
                # SystemExit only ends a worker thread; take the process down.
                os.abort()
            raise RegistrationConflictError(name)

        self._constructors[name] = constructor
        log.debug("module_registered", module_name=name, constructor=_qualname(constructor))

    def load_entrypoints(self, group: str = ENTRYPOINT_GROUP) -> list[str]:
        """Register third-party modules declared as package entry points.

        In a downstream package's ``pyproject.toml``::

            [project.entry-points."modwire.modules"]
            mymodule = "my_package.module:MyModule"

        Entry points that fail to import are logged and skipped.  A name that
        collides with an existing registration is a conflict like any other.

        Returns:
            The names registered by this call.
        """
        registered: list[str] = []
        for ep in importlib.metadata.entry_points(group=group):
            try:
                constructor = ep.load()
            except Exception:
                log.exception("module_entrypoint_load_failed", module_name=ep.name, group=group)
                continue
            self.register(ep.name, constructor)
            registered.append(ep.name)
        return registered

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> ModuleConstructor | None:
        """Return the constructor registered under *name*, or None."""
        return self._constructors.get(name)

    def get(self, name: str) -> ModuleConstructor:
        """Like :meth:`lookup` but raises ``ModuleNotFoundError`` when absent."""
        constructor = self._constructors.get(name)
        if constructor is None:
            raise ModuleNotFoundError(name)
        return constructor

    def create(self, name: str) -> Any:
        """Return a fresh instance of the module registered under *name*."""
        module = self.get(name)()
        log.debug("module_instantiated", module_name=name)
        return module

    def list_modules(self) -> list[str]:
        """Return all registered names in alphabetical order."""
        return sorted(self._constructors)

    def status_report(self) -> dict[str, list[str]]:
        """Return name → sorted optional capabilities for every module.

        Each module is instantiated once to inspect it.
        """
        return {
            name: sorted(cap.value for cap in detect_capabilities(self.create(name)))
            for name in self.list_modules()
        }

    def __contains__(self, name: object) -> bool:
        return name in self._constructors

    def __len__(self) -> int:
        return len(self._constructors)

    def __repr__(self) -> str:
        return f"ModuleRegistry(modules={self.list_modules()})"


def _qualname(obj: object) -> str:
    return getattr(obj, "__qualname__", repr(obj))


# Process-wide registry: created lazily, replaced in tests.
_registry: ModuleRegistry | None = None


def get_registry() -> ModuleRegistry:
    """Return the process-wide registry.

    The first call creates an empty registry; the host is responsible for
    populating it (see :func:`modwire.modules.register_builtin_modules`).
    """
    global _registry
    if _registry is None:
        _registry = ModuleRegistry()
    return _registry


def override_registry(registry: ModuleRegistry | None) -> None:
    """Replace the process-wide registry. Used in tests."""
    global _registry
    _registry = registry

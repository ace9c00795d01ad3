"""Module layer — capability interfaces and BaseModule.

A module is anything that implements the mandatory :class:`Moduler`
protocol (``run`` + ``validate_parameters``).  On top of that a module may
implement any subset of the optional capabilities:

  - :class:`ResultsPrinter`  — format a Result for human display
  - :class:`ParamsCreator`   — build parameters interactively
  - :class:`ParamsParser`    — build parameters from command-line tokens

Hosts never rely on a class hierarchy: they inspect a module instance with
:func:`detect_capabilities` / :func:`has_capability` and only call what is
there.  A missing optional capability is a normal variant, not an error.

:class:`BaseModule` is a convenience base class carrying the common
plumbing (parameter loading, stop watching, output encoding).  Subclassing
it is optional.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import IO, Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel

from modwire.config import get_settings
from modwire.exceptions import CapabilityNotSupportedError
from modwire.logging import get_logger
from modwire.protocol.models import Result
from modwire.protocol.reader import StopWatcher, read_parameters

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Capability protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Moduler(Protocol):
    """Mandatory interface of every module."""

    def run(self, stream: IO[Any]) -> str:
        """Read parameters from *stream*, do the work, return the result line."""
        ...

    def validate_parameters(self) -> None:
        """Raise ``InvalidParametersError`` if the loaded parameters are unusable."""
        ...


@runtime_checkable
class ResultsPrinter(Protocol):
    def print_results(self, result: Result, verbose: bool) -> list[str]: ...


@runtime_checkable
class ParamsCreator(Protocol):
    def create_parameters(self) -> Any: ...


@runtime_checkable
class ParamsParser(Protocol):
    def parse_parameters(self, args: list[str]) -> Any: ...


class Capability(str, Enum):
    RESULTS_PRINTER = "results_printer"
    PARAMS_CREATOR = "params_creator"
    PARAMS_PARSER = "params_parser"


_CAPABILITY_PROTOCOLS: dict[Capability, type] = {
    Capability.RESULTS_PRINTER: ResultsPrinter,
    Capability.PARAMS_CREATOR: ParamsCreator,
    Capability.PARAMS_PARSER: ParamsParser,
}


def is_module(obj: object) -> bool:
    return isinstance(obj, Moduler)


def has_capability(module: object, capability: Capability) -> bool:
    return isinstance(module, _CAPABILITY_PROTOCOLS[capability])


def detect_capabilities(module: object) -> frozenset[Capability]:
    """Return the optional capabilities *module* implements."""
    return frozenset(cap for cap in Capability if has_capability(module, cap))


def require_capability(module: object, capability: Capability, module_name: str) -> None:
    """Raise ``CapabilityNotSupportedError`` unless *module* has *capability*."""
    if not has_capability(module, capability):
        raise CapabilityNotSupportedError(module=module_name, capability=capability.value)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


class BaseModule(ABC):
    """Optional base class for modules.

    Subclasses must:
      1. Set ``NAME`` (the registry key, e.g. ``"filesearch"``)
      2. Set ``PARAMS_MODEL`` to the pydantic model of their parameters
      3. Implement :meth:`run` and :meth:`validate_parameters`

    A typical ``run``::

        def run(self, stream):
            self.load_parameters(stream)
            watcher = self.watch_for_stop(stream)
            result = Result()
            ...
            return self.build_output(result)
    """

    NAME: ClassVar[str] = ""
    VERSION: ClassVar[str] = "0.0.0"
    PARAMS_MODEL: ClassVar[type[BaseModel]]

    def __init__(self) -> None:
        self.parameters: BaseModel | None = None
        self.max_line_bytes = get_settings().protocol.max_line_bytes

    @abstractmethod
    def run(self, stream: IO[Any]) -> str: ...

    @abstractmethod
    def validate_parameters(self) -> None: ...

    def load_parameters(self, stream: IO[Any]) -> BaseModel:
        """Read the parameters message from *stream* and validate it."""
        self.parameters = read_parameters(stream, self.PARAMS_MODEL, self.max_line_bytes)
        self.validate_parameters()
        log.debug("parameters_loaded", module_name=self.NAME)
        return self.parameters

    def watch_for_stop(self, stream: IO[Any]) -> StopWatcher:
        """Start watching *stream* for a stop request on a background thread."""
        return StopWatcher(stream, max_bytes=self.max_line_bytes).start()

    @staticmethod
    def build_output(result: Result) -> str:
        return result.to_json().decode("utf-8")

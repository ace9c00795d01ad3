"""Host runner — drive modules over the control protocol.

Two ways to run a module:

  - :func:`serve` is the worker side: the current process *is* the module,
    reading control messages from ``stdin`` and writing its result line to
    ``stdout``.  ``modwire run <name>`` uses it.
  - :class:`ModuleSession` is an in-process host: it feeds a module through
    an OS pipe exactly as a parent process would feed a child's stdin, runs
    it on a worker thread, and parses the result.  :func:`run_module` wraps
    the common start → close → wait sequence.
"""

from __future__ import annotations

import os
import threading
import uuid
from typing import IO, Any

from modwire.exceptions import ResultParseError, StreamIOError
from modwire.logging import (
    bind_run_context,
    clear_run_context,
    ensure_logging_configured,
    get_logger,
)
from modwire.modules.registry import ModuleRegistry, get_registry
from modwire.protocol.constants import LINE_TERMINATOR
from modwire.protocol.models import Result
from modwire.protocol.writer import write_line, write_parameters, write_stop

log = get_logger(__name__)


def _result_line(name: str, output: Any) -> str:
    if not isinstance(output, str):
        raise ResultParseError(
            f"Module '{name}' returned {type(output).__name__} instead of a result line"
        )
    return output


def serve(
    name: str,
    stdin: IO[Any],
    stdout: IO[Any],
    registry: ModuleRegistry | None = None,
) -> str:
    """Instantiate module *name*, run it on *stdin*, write its output to *stdout*.

    Logging is switched to the stderr defaults if nobody configured it, so
    log output never mixes with the result line.

    Returns:
        The output line the module produced (without terminator).

    Raises:
        ModuleNotFoundError: *name* is not registered.
        ResultParseError:    The module returned something other than a line.
        ModwireError:        The module could not produce a result.
    """
    ensure_logging_configured()
    registry = registry if registry is not None else get_registry()
    module = registry.create(name)
    bind_run_context(module_name=name, run_id=uuid.uuid4().hex[:12])
    try:
        log.info("module_started")
        output = _result_line(name, module.run(stdin))
        write_line(stdout, output.encode("utf-8"))
        log.info("module_finished")
        return output
    finally:
        clear_run_context()


class ModuleSession:
    """Runs one module instance in-process, fed through an OS pipe.

    Usage::

        session = ModuleSession(registry.create("filesearch"))
        session.start({"paths": ["/tmp"], "names": [r"\\.log$"]})
        ...
        session.stop()             # optional: request an early stop
        result = session.wait(timeout=30)
    """

    def __init__(self, module: Any, name: str | None = None) -> None:
        self.module = module
        self.name = name or getattr(module, "NAME", type(module).__name__)
        read_fd, write_fd = os.pipe()
        self._reader = os.fdopen(read_fd, "rb")
        self._writer: IO[bytes] | None = os.fdopen(write_fd, "wb")
        self._lock = threading.Lock()
        self._output: Any = None
        self._error: BaseException | None = None
        self._thread = threading.Thread(
            target=self._run, name=f"modwire-module-{self.name}", daemon=True
        )

    def start(self, parameters: Any) -> "ModuleSession":
        """Start the module and send it the parameters message."""
        with self._lock:
            if self._writer is None:
                raise StreamIOError("Module input is already closed")
            self._thread.start()
            try:
                write_parameters(self._writer, parameters)
            except BaseException:
                self._writer.close()
                self._writer = None
                raise
        return self

    def stop(self) -> None:
        """Ask the module to stop.  No-op once the input is closed."""
        with self._lock:
            if self._writer is None:
                return
            write_stop(self._writer)
        log.debug("stop_sent", module_name=self.name)

    def close_input(self) -> None:
        """Close the module's input.  Its stop watcher sees end of stream."""
        with self._lock:
            if self._writer is not None:
                self._writer.close()
                self._writer = None

    def _run(self) -> None:
        bind_run_context(module_name=self.name, run_id=uuid.uuid4().hex[:12])
        try:
            self._output = self.module.run(self._reader)
        except BaseException as exc:  # re-raised on the caller's thread by wait()
            self._error = exc
        finally:
            clear_run_context()

    def wait(self, timeout: float | None = None) -> Result:
        """Wait for the module to finish and return its parsed Result.

        Raises:
            TimeoutError: The module is still running after *timeout* seconds.
            ResultParseError: The module produced an invalid result line.
            Any exception the module's ``run`` raised.
        """
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError(f"Module '{self.name}' did not finish within {timeout}s")
        self.close_input()
        self._reader.close()
        if self._error is not None:
            raise self._error
        output = _result_line(self.name, self._output)
        return Result.from_json(output.rstrip(LINE_TERMINATOR.decode()))

    @property
    def running(self) -> bool:
        return self._thread.is_alive()


def run_module(
    name: str,
    parameters: Any,
    registry: ModuleRegistry | None = None,
    timeout: float | None = None,
) -> Result:
    """Run module *name* to completion in-process and return its Result."""
    registry = registry if registry is not None else get_registry()
    session = ModuleSession(registry.create(name), name=name)
    session.start(parameters)
    session.close_input()
    return session.wait(timeout)

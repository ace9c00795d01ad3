"""modwire — Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names.
All log entries include:
    - timestamp (ISO-8601)
    - level
    - logger (Python logger name)
    - module_name / run_id (bound via context variables when available)

Logs are always written to stderr: a module worker's stdout carries the
protocol and must never receive anything but result lines.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variables, automatically injected into log records when set.
_ctx_module_name: ContextVar[str | None] = ContextVar("module_name", default=None)
_ctx_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)


def bind_run_context(module_name: str | None = None, run_id: str | None = None) -> None:
    """Bind module run context to the current thread / task."""
    if module_name is not None:
        _ctx_module_name.set(module_name)
    if run_id is not None:
        _ctx_run_id.set(run_id)


def clear_run_context() -> None:
    _ctx_module_name.set(None)
    _ctx_run_id.set(None)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _inject_context_vars(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Add ContextVar values to every log record."""
    if (module_name := _ctx_module_name.get()) is not None:
        event_dict["module_name"] = module_name
    if (run_id := _ctx_run_id.get()) is not None:
        event_dict["run_id"] = run_id
    return event_dict


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def configure_logging(
    level: str = "warning",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Call once at process startup, before any log statements.

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` for human-readable output, ``"json"`` for
                  machine-readable structured logs.
        log_file: Optional path to write logs to in addition to stderr.
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level.upper())


def ensure_logging_configured() -> None:
    """Apply the default configuration unless logging was already configured.

    structlog's unconfigured default prints to stdout, which a worker
    reserves for result lines.
    """
    if not structlog.is_configured():
        configure_logging()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("module_started", module_name="filesearch")
    """
    return structlog.get_logger(name)

"""modwire — Exception hierarchy.

All recoverable exceptions raised by modwire inherit from ModwireError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    ModwireError
    ├── StreamIOError
    │   └── EndOfStreamError
    ├── ProtocolError
    │   ├── MessageParseError
    │   ├── MessageValidationError
    │   ├── MessageTooLargeError
    │   ├── UnexpectedMessageError
    │   └── ResultParseError
    ├── DecodeError
    └── ModuleError
        ├── ModuleNotFoundError
        ├── InvalidParametersError
        └── CapabilityNotSupportedError

    RegistrationConflictError (SystemExit — fatal, never caught by
    ``except Exception``)
"""

from __future__ import annotations

from typing import Any


class ModwireError(Exception):
    """Base exception for all recoverable modwire errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Stream layer
# ---------------------------------------------------------------------------


class StreamIOError(ModwireError):
    """Reading from the underlying byte stream failed.

    Usually means the peer went away.  Watchers treat this as a normal
    termination signal rather than a fault.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, context={"cause": str(cause) if cause else None})
        self.cause = cause


class EndOfStreamError(StreamIOError):
    """The stream ended cleanly before a complete line was read."""

    def __init__(self) -> None:
        super().__init__("End of stream reached before a message was read")


# ---------------------------------------------------------------------------
# Protocol layer
# ---------------------------------------------------------------------------


class ProtocolError(ModwireError):
    """Base for all wire protocol violations.  Indicates a misbehaving peer."""


class MessageParseError(ProtocolError):
    """A line could not be parsed as UTF-8 JSON."""

    def __init__(self, message: str, raw_line: bytes | None = None) -> None:
        preview = raw_line[:200].decode("utf-8", errors="replace") if raw_line else None
        super().__init__(message, context={"raw_line": preview})
        self.raw_line = raw_line


class MessageValidationError(ProtocolError):
    """A JSON value was parsed but is not a valid Message."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, context={"validation_errors": errors or []})
        self.errors = errors or []


class MessageTooLargeError(ProtocolError):
    """A line exceeded the configured maximum size."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Message line exceeds the maximum of {limit} bytes",
            context={"limit": limit},
        )
        self.limit = limit


class UnexpectedMessageError(ProtocolError):
    """A message of the wrong class arrived for the current protocol state."""

    def __init__(self, expected: str, received: str) -> None:
        super().__init__(
            f"Expected a '{expected}' message, received '{received}'",
            context={"expected": expected, "received": received},
        )
        self.expected = expected
        self.received = received


class ResultParseError(ProtocolError):
    """A result line is not a valid Result envelope."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, context={"validation_errors": errors or []})
        self.errors = errors or []


# ---------------------------------------------------------------------------
# Payload decoding
# ---------------------------------------------------------------------------


class DecodeError(ModwireError):
    """An opaque payload does not match the shape the caller asked for."""

    def __init__(
        self,
        field: str,
        target: str,
        reason: str,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            f"Cannot decode {field} into {target}: {reason}",
            context={"field": field, "target": target, "validation_errors": errors or []},
        )
        self.field = field
        self.target = target
        self.errors = errors or []


# ---------------------------------------------------------------------------
# Module layer
# ---------------------------------------------------------------------------


class ModuleError(ModwireError):
    """Base for all module errors."""


class ModuleNotFoundError(ModuleError):
    """No module with the given name is registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Module '{name}' is not registered",
            context={"module": name},
        )
        self.name = name


class InvalidParametersError(ModuleError):
    """A module rejected its parameters."""

    def __init__(self, module: str, reason: str) -> None:
        super().__init__(
            f"Invalid parameters for module '{module}': {reason}",
            context={"module": module, "reason": reason},
        )
        self.module = module
        self.reason = reason


class CapabilityNotSupportedError(ModuleError):
    """The host asked a module for an optional capability it does not have."""

    def __init__(self, module: str, capability: str) -> None:
        super().__init__(
            f"Module '{module}' does not support '{capability}'",
            context={"module": module, "capability": capability},
        )
        self.module = module
        self.capability = capability


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class RegistrationConflictError(SystemExit):
    """Two modules claim the same name.

    This is a packaging defect with no runtime recovery.  Deriving from
    ``SystemExit`` means an uncaught conflict terminates the interpreter with
    a non-zero status and ``except Exception`` blocks cannot hide it.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.message = (
            f"A module named '{name}' has already been registered. "
            "Are two packages providing the same module?"
        )
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

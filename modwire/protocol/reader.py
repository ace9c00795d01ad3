"""Reading side of the control protocol.

Responsibilities:
  1. Accumulate stream fragments into one complete line
  2. Deserialise the line into a :class:`Message`
  3. Extract typed module parameters from the first message
  4. Watch the rest of the stream for a ``stop`` request

Every read blocks until a full line is available or the stream ends.  There
is no timeout variant; a caller needing one must race the read on another
thread.

Error contract:
  - ``StreamIOError`` (including ``EndOfStreamError``): the stream failed or
    the peer closed it.  A normal termination signal for watchers.
  - ``ProtocolError``: the peer sent something invalid.  Surface it loudly.
  - ``DecodeError``: the parameters do not match the expected shape.
"""

from __future__ import annotations

import json
import threading
from typing import IO, Any, TypeVar

from pydantic import ValidationError

from modwire.exceptions import (
    EndOfStreamError,
    MessageParseError,
    MessageTooLargeError,
    MessageValidationError,
    ModwireError,
    ProtocolError,
    StreamIOError,
    UnexpectedMessageError,
)
from modwire.logging import get_logger
from modwire.protocol.codec import decode_payload
from modwire.protocol.constants import (
    DEFAULT_ENCODING,
    DEFAULT_MAX_LINE_BYTES,
    LINE_TERMINATOR,
    READ_CHUNK_BYTES,
)
from modwire.protocol.models import Message, MessageClass, Result

log = get_logger(__name__)

T = TypeVar("T")


def read_line(stream: IO[Any], max_bytes: int = DEFAULT_MAX_LINE_BYTES) -> bytes:
    """Read one line from *stream*, without its terminator.

    Fragments are accumulated until a ``\\n`` arrives or the stream ends.  A
    trailing line without terminator is returned as-is when the stream ends
    after it.  Text streams are accepted and re-encoded as UTF-8.

    Raises:
        EndOfStreamError:     The stream ended before any byte was read.
        StreamIOError:        The underlying stream raised.
        MessageTooLargeError: The line is longer than *max_bytes*.
    """
    buffer = bytearray()
    while True:
        try:
            fragment = stream.readline(READ_CHUNK_BYTES)
        except (OSError, ValueError) as exc:
            raise StreamIOError(f"Failed to read from stream: {exc}", cause=exc) from exc

        if not fragment:
            if not buffer:
                raise EndOfStreamError()
            break

        if isinstance(fragment, str):
            fragment = fragment.encode(DEFAULT_ENCODING)
        buffer += fragment

        if buffer.endswith(LINE_TERMINATOR):
            del buffer[-len(LINE_TERMINATOR):]
            if buffer.endswith(b"\r"):
                del buffer[-1:]
            break
        if len(buffer) > max_bytes:
            raise MessageTooLargeError(max_bytes)

    if len(buffer) > max_bytes:
        raise MessageTooLargeError(max_bytes)
    return bytes(buffer)


def parse_message(line: str | bytes) -> Message:
    """Deserialise one line into a :class:`Message`.

    Raises:
        MessageParseError:      *line* is not UTF-8 JSON.
        MessageValidationError: *line* is JSON but not a valid Message.
    """
    raw = line.encode(DEFAULT_ENCODING) if isinstance(line, str) else line
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MessageParseError(f"Invalid message JSON: {exc}", raw_line=raw) from exc

    if not isinstance(data, dict):
        raise MessageValidationError(
            f"Expected a JSON object for a message, got {type(data).__name__}."
        )

    try:
        return Message.model_validate(data)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        messages = "; ".join(e.get("msg", "") for e in errors)
        raise MessageValidationError(
            f"Message validation failed: {messages}", errors=errors
        ) from exc


def read_message(stream: IO[Any], max_bytes: int = DEFAULT_MAX_LINE_BYTES) -> Message:
    """Read and deserialise the next message on *stream*."""
    return parse_message(read_line(stream, max_bytes))


def read_parameters(
    stream: IO[Any],
    target: type[T],
    max_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> T:
    """Read the next message and decode its parameters into *target*.

    The message must be of class ``parameters``.  A module expecting its
    parameters treats anything else, including an early ``stop``, as a
    protocol violation.

    Raises:
        UnexpectedMessageError: The message is not a ``parameters`` message.
        DecodeError:            The payload does not fit *target*.
        StreamIOError / ProtocolError: see :func:`read_message`.
    """
    msg = read_message(stream, max_bytes)
    if msg.message_class is not MessageClass.PARAMETERS:
        raise UnexpectedMessageError(
            expected=MessageClass.PARAMETERS.value,
            received=msg.message_class.value,
        )
    return decode_payload(msg.parameters, target, field="parameters")


def read_result(stream: IO[Any], max_bytes: int = DEFAULT_MAX_LINE_BYTES) -> Result:
    """Read one result line emitted by a module (host side)."""
    return Result.from_json(read_line(stream, max_bytes))


# ---------------------------------------------------------------------------
# Stop watching
# ---------------------------------------------------------------------------


class StopSignal:
    """One-shot stop notification shared between a watcher and a work loop.

    Only the first :meth:`fire` has an effect.  The work loop polls
    :meth:`is_set` or blocks in :meth:`wait`.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._fired = False

    def fire(self) -> bool:
        """Deliver the notification.  Returns False if it was already delivered."""
        with self._lock:
            if self._fired:
                return False
            self._fired = True
        self._event.set()
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


def watch_for_stop(
    stream: IO[Any],
    signal: StopSignal,
    max_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> int:
    """Consume messages until a ``stop`` arrives, then fire *signal*.

    Non-stop messages are ignored.  Any read failure before the stop is
    raised and *signal* is left untouched.

    Returns:
        The number of messages consumed, the stop message included.
    """
    consumed = 0
    while True:
        msg = read_message(stream, max_bytes)
        consumed += 1
        if msg.message_class is MessageClass.STOP:
            signal.fire()
            log.info("stop_received", messages_consumed=consumed)
            return consumed
        log.debug("message_ignored_while_running", message_class=msg.message_class.value)


class StopWatcher:
    """Runs :func:`watch_for_stop` on a background daemon thread.

    Start it only after the parameters message has been consumed, so the two
    readers never touch the stream at the same time.

    Usage::

        params = read_parameters(stdin, MyParams)
        watcher = StopWatcher(stdin).start()
        for item in work:
            if watcher.stopped:
                break
            ...
    """

    def __init__(
        self,
        stream: IO[Any],
        signal: StopSignal | None = None,
        max_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ) -> None:
        self._stream = stream
        self._max_bytes = max_bytes
        self.signal = signal if signal is not None else StopSignal()
        self.error: ModwireError | None = None
        self._thread = threading.Thread(
            target=self._watch, name="modwire-stop-watcher", daemon=True
        )

    def start(self) -> "StopWatcher":
        self._thread.start()
        return self

    def _watch(self) -> None:
        try:
            watch_for_stop(self._stream, self.signal, self._max_bytes)
        except StreamIOError as exc:
            # Peer closed the input: no stop will ever come.
            self.error = exc
            log.debug("stop_watch_ended", reason=exc.message)
        except ProtocolError as exc:
            self.error = exc
            log.error("stop_watch_protocol_error", error=exc.message)

    @property
    def stopped(self) -> bool:
        return self.signal.is_set()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until a stop is received.  Returns False on timeout."""
        return self.signal.wait(timeout)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

"""Writing side of the control protocol."""

from __future__ import annotations

import io
from typing import IO, Any

from modwire.exceptions import StreamIOError
from modwire.protocol.constants import DEFAULT_ENCODING, LINE_TERMINATOR
from modwire.protocol.models import Message, MessageClass, Result


def make_message(message_class: MessageClass | str, parameters: Any = None) -> bytes:
    """Build the JSON body of a message (no line terminator).

    Raises:
        ValueError: *message_class* is unknown, or a payload was given for a
                    class that does not carry one.
    """
    msg = Message(message_class=MessageClass(message_class), parameters=parameters)
    return msg.to_json()


def write_line(stream: IO[Any], body: bytes) -> None:
    """Write *body* plus the terminator to *stream* and flush it."""
    line = body + LINE_TERMINATOR
    try:
        if isinstance(stream, io.TextIOBase):
            stream.write(line.decode(DEFAULT_ENCODING))
        else:
            stream.write(line)
        stream.flush()
    except (OSError, ValueError) as exc:
        raise StreamIOError(f"Failed to write to stream: {exc}", cause=exc) from exc


def write_message(
    stream: IO[Any], message_class: MessageClass | str, parameters: Any = None
) -> None:
    write_line(stream, make_message(message_class, parameters))


def write_parameters(stream: IO[Any], parameters: Any) -> None:
    write_message(stream, MessageClass.PARAMETERS, parameters)


def write_stop(stream: IO[Any]) -> None:
    write_message(stream, MessageClass.STOP)


def write_result(stream: IO[Any], result: Result) -> None:
    write_line(stream, result.to_json())

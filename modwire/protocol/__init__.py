"""Protocol layer — message/result envelopes, line reader, stop watcher."""

from modwire.protocol.codec import decode_payload, encode_payload
from modwire.protocol.models import (
    Message,
    MessageClass,
    Result,
    decode_elements,
    decode_statistics,
)
from modwire.protocol.reader import (
    StopSignal,
    StopWatcher,
    parse_message,
    read_line,
    read_message,
    read_parameters,
    read_result,
    watch_for_stop,
)
from modwire.protocol.writer import (
    make_message,
    write_line,
    write_message,
    write_parameters,
    write_result,
    write_stop,
)

__all__ = [
    # Envelopes
    "Message",
    "MessageClass",
    "Result",
    "decode_elements",
    "decode_statistics",
    "decode_payload",
    "encode_payload",
    # Reading
    "read_line",
    "parse_message",
    "read_message",
    "read_parameters",
    "read_result",
    "watch_for_stop",
    "StopSignal",
    "StopWatcher",
    # Writing
    "make_message",
    "write_line",
    "write_message",
    "write_parameters",
    "write_stop",
    "write_result",
]

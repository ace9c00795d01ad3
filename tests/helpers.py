"""Stream helpers shared by the test suite."""

from __future__ import annotations

import io
import json
from typing import Any


def json_lines(*objects: Any) -> bytes:
    """Encode each object as one JSON line."""
    return b"".join(json.dumps(obj).encode("utf-8") + b"\n" for obj in objects)


def stream_of(*objects: Any) -> io.BytesIO:
    return io.BytesIO(json_lines(*objects))


class FragmentedStream:
    """Binary stream that hands out at most ``fragment`` bytes per read.

    Mimics a transport delivering one logical line in several pieces.
    """

    def __init__(self, data: bytes, fragment: int = 3) -> None:
        self._data = data
        self._pos = 0
        self._fragment = fragment
        self.reads = 0

    def readline(self, size: int = -1) -> bytes:
        self.reads += 1
        end = min(self._pos + self._fragment, len(self._data))
        newline = self._data.find(b"\n", self._pos, end)
        if newline != -1:
            end = newline + 1
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk


class CountingStream(io.BytesIO):
    """BytesIO that counts complete lines handed out."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.lines_read = 0

    def readline(self, size: int | None = -1) -> bytes:
        chunk = super().readline(size)
        if chunk.endswith(b"\n"):
            self.lines_read += 1
        return chunk


class BrokenStream:
    """Stream whose reads and writes always fail."""

    def readline(self, size: int = -1) -> bytes:
        raise OSError(5, "Input/output error")

    def write(self, data: bytes) -> int:
        raise OSError(32, "Broken pipe")

    def flush(self) -> None:
        pass

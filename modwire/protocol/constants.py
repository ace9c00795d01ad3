"""Wire protocol constants."""

from __future__ import annotations

DEFAULT_ENCODING = "utf-8"

# Line terminator for messages and results.
LINE_TERMINATOR = b"\n"

# 16 MiB.  Large enough for any realistic result line.
DEFAULT_MAX_LINE_BYTES = 16 * 1024 * 1024

# Size of each fragment requested from the underlying stream.
READ_CHUNK_BYTES = 64 * 1024

# Entry-point group scanned for third-party modules.
ENTRYPOINT_GROUP = "modwire.modules"

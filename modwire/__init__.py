"""modwire — Control protocol and plugin registry for module workers.

A host process drives interchangeable "module" workers over a single byte
stream (usually the worker's stdin/stdout).  The host sends line-delimited
JSON control messages; the module reports back a single Result envelope.

Layers (bottom to top):
    1. Protocol — Message/Result envelopes, line reader, stop watcher
    2. Modules  — capability interfaces, registry, built-in modules
    3. Runner   — worker mode and in-process host sessions
    4. CLI      — typer application (``modwire``)
"""

__version__ = "0.1.0"
__author__ = "modwire contributors"
__license__ = "MPL-2.0"

from modwire.protocol.models import Message, MessageClass, Result

__all__ = [
    "__version__",
    "Message",
    "MessageClass",
    "Result",
]

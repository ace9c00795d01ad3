"""Decode-on-demand for opaque payloads.

Message parameters and Result elements/statistics travel as arbitrary JSON.
Only the consumer knows their real shape, so decoding is a JSON round trip:
the payload is re-encoded and validated against the caller's target type.
"""

from __future__ import annotations

from typing import Any, TypeVar, get_origin

import pydantic_core
from pydantic import TypeAdapter, ValidationError

from modwire.exceptions import DecodeError

T = TypeVar("T")


def type_name(target: Any) -> str:
    """Human-readable name of a decode target, for error messages."""
    if get_origin(target) is not None:
        return repr(target)
    return getattr(target, "__name__", repr(target))


def encode_payload(payload: Any) -> bytes:
    """Serialise *payload* to compact JSON bytes.

    Pydantic models, dataclasses, enums and the usual JSON types are
    supported.
    """
    return pydantic_core.to_json(payload)


def decode_payload(payload: Any, target: type[T], field: str) -> T:
    """Re-encode *payload* and validate it as an instance of *target*.

    Args:
        payload: The opaque value as carried by the envelope.
        target:  Any type pydantic can validate (BaseModel subclass,
                 dataclass, TypedDict, ``list[int]``...).
        field:   Envelope field name, used in error messages.

    Returns:
        A new value; *payload* itself is never modified.

    Raises:
        DecodeError: *payload* cannot be serialised or does not fit *target*.
    """
    name = type_name(target)
    try:
        raw = encode_payload(payload)
    except pydantic_core.PydanticSerializationError as exc:
        raise DecodeError(field, name, f"payload is not serialisable: {exc}") from exc

    # Strict: "5" is not an int and "yes" is not a bool.
    try:
        return TypeAdapter(target).validate_json(raw, strict=True)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        messages = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ())) or '<root>'}: {e.get('msg', '')}"
            for e in errors
        )
        raise DecodeError(field, name, messages, errors=errors) from exc

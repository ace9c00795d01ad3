"""Wire envelopes — Message and Result.

Both envelopes are payload-agnostic: ``Message.parameters`` and
``Result.elements`` / ``Result.statistics`` hold whatever JSON the producer
sent.  Typed access goes through :func:`decode_payload`.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from modwire.exceptions import ResultParseError
from modwire.protocol.codec import decode_payload, encode_payload

T = TypeVar("T")


class MessageClass(str, Enum):
    """Kinds of control message a host sends to a module."""

    PARAMETERS = "parameters"
    STOP = "stop"


class Message(BaseModel):
    """A single control message.  One message occupies exactly one line."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_class: MessageClass = Field(alias="class")
    parameters: Any = None

    @model_validator(mode="after")
    def _payload_only_on_parameters(self) -> "Message":
        if self.message_class is not MessageClass.PARAMETERS and self.parameters is not None:
            raise ValueError(
                f"'{self.message_class.value}' messages do not carry parameters"
            )
        return self

    def to_json(self) -> bytes:
        """Compact JSON body, without the line terminator."""
        data: dict[str, Any] = {"class": self.message_class.value}
        if self.parameters is not None:
            data["parameters"] = self.parameters
        return encode_payload(data)


class Result(BaseModel):
    """Envelope for everything a module reports back to its host.

    ``found_anything`` is true iff the module's search produced at least one
    positive match.  ``success`` is true iff the module ran without a fatal
    error; non-fatal problems are appended to ``errors`` in the order they
    occur.
    """

    model_config = ConfigDict(populate_by_name=True)

    found_anything: bool = Field(default=False, alias="foundanything")
    success: bool = False
    elements: Any = None
    statistics: Any = None
    errors: list[str] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _null_errors(cls, v: object) -> object:
        # Some producers serialise an empty error list as null.
        return [] if v is None else v

    def add_error(self, error: str) -> None:
        self.errors.append(error)

    def get_elements(self, target: type[T]) -> T:
        """Decode ``elements`` into *target*.  Raises ``DecodeError``."""
        return decode_payload(self.elements, target, field="elements")

    def get_statistics(self, target: type[T]) -> T:
        """Decode ``statistics`` into *target*.  Raises ``DecodeError``."""
        return decode_payload(self.statistics, target, field="statistics")

    def to_json(self) -> bytes:
        """Compact JSON body, without the line terminator."""
        return encode_payload(
            {
                "foundanything": self.found_anything,
                "success": self.success,
                "elements": self.elements,
                "statistics": self.statistics,
                "errors": self.errors,
            }
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Result":
        """Parse one result line.

        Raises:
            ResultParseError: *raw* is not JSON or not a Result object.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ResultParseError(f"Invalid result JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ResultParseError(
                f"Expected a JSON object for a result, got {type(data).__name__}."
            )
        try:
            return cls.model_validate(data, strict=True)
        except ValidationError as exc:
            errors = exc.errors(include_url=False)
            messages = "; ".join(e.get("msg", "") for e in errors)
            raise ResultParseError(f"Result validation failed: {messages}", errors=errors) from exc


def decode_elements(result: Result, target: type[T]) -> T:
    return result.get_elements(target)


def decode_statistics(result: Result, target: type[T]) -> T:
    return result.get_statistics(target)

"""Unit tests — Message and Result envelopes, decode-on-demand."""

from __future__ import annotations

import json
from dataclasses import dataclass

import pytest
from pydantic import BaseModel, ValidationError

from modwire.exceptions import DecodeError, ProtocolError, ResultParseError
from modwire.protocol.models import (
    Message,
    MessageClass,
    Result,
    decode_elements,
    decode_statistics,
)
from modwire.protocol.reader import parse_message


class Point(BaseModel):
    x: int
    y: int


class Stats(BaseModel):
    scanned: int
    took: float


@dataclass
class Pair:
    left: str
    right: str


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestMessage:
    @pytest.mark.parametrize(
        "message_class,parameters",
        [
            (MessageClass.PARAMETERS, {"path": "/tmp", "depth": 3, "flags": [True, None]}),
            (MessageClass.PARAMETERS, ["a", 1, 2.5]),
            (MessageClass.PARAMETERS, "just a string"),
            (MessageClass.STOP, None),
        ],
    )
    def test_encode_then_decode_preserves_class_and_payload(
        self, message_class: MessageClass, parameters: object
    ) -> None:
        original = Message(message_class=message_class, parameters=parameters)
        decoded = parse_message(original.to_json())
        assert decoded.message_class is message_class
        assert decoded.parameters == parameters

    def test_wire_field_is_named_class(self) -> None:
        body = Message(message_class=MessageClass.PARAMETERS, parameters={"a": 1}).to_json()
        assert json.loads(body) == {"class": "parameters", "parameters": {"a": 1}}

    def test_stop_message_omits_parameters(self) -> None:
        body = Message(message_class=MessageClass.STOP).to_json()
        assert body == b'{"class":"stop"}'

    def test_stop_with_parameters_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="do not carry parameters"):
            Message(message_class=MessageClass.STOP, parameters={"x": 1})

    def test_stop_with_parameters_on_the_wire_is_protocol_error(self) -> None:
        with pytest.raises(ProtocolError):
            parse_message(b'{"class":"stop","parameters":{"x":1}}')

    def test_model_parameters_are_serialised(self) -> None:
        body = Message(message_class=MessageClass.PARAMETERS, parameters=Point(x=1, y=2)).to_json()
        assert json.loads(body)["parameters"] == {"x": 1, "y": 2}

    def test_message_is_frozen(self) -> None:
        msg = Message(message_class=MessageClass.STOP)
        with pytest.raises(ValidationError):
            msg.message_class = MessageClass.PARAMETERS  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestResultSerialisation:
    def test_to_json_uses_wire_field_names(self) -> None:
        result = Result(found_anything=True, success=True, elements=[1], statistics={}, errors=["e"])
        assert json.loads(result.to_json()) == {
            "foundanything": True,
            "success": True,
            "elements": [1],
            "statistics": {},
            "errors": ["e"],
        }

    def test_from_json_reads_wire_field_names(self) -> None:
        raw = '{"foundanything":true,"success":false,"elements":null,"statistics":null,"errors":["x"]}'
        result = Result.from_json(raw)
        assert result.found_anything is True
        assert result.success is False
        assert result.errors == ["x"]

    def test_null_errors_become_empty_list(self) -> None:
        result = Result.from_json('{"foundanything":false,"success":true,"errors":null}')
        assert result.errors == []

    def test_defaults(self) -> None:
        result = Result()
        assert result.found_anything is False
        assert result.success is False
        assert result.errors == []

    def test_add_error_keeps_order(self) -> None:
        result = Result()
        result.add_error("first")
        result.add_error("second")
        assert result.errors == ["first", "second"]

    def test_invalid_json_raises_result_parse_error(self) -> None:
        with pytest.raises(ResultParseError, match="Invalid result JSON"):
            Result.from_json("{nope")

    def test_non_object_raises_result_parse_error(self) -> None:
        with pytest.raises(ResultParseError, match="Expected a JSON object"):
            Result.from_json("[1, 2]")

    def test_wrong_field_type_raises_result_parse_error(self) -> None:
        with pytest.raises(ResultParseError, match="validation failed"):
            Result.from_json('{"success": "maybe"}')

    def test_string_flags_are_not_coerced(self) -> None:
        with pytest.raises(ResultParseError):
            Result.from_json('{"foundanything":"yes","success":true,"errors":[]}')

    def test_result_parse_error_is_protocol_error(self) -> None:
        assert issubclass(ResultParseError, ProtocolError)


@pytest.mark.unit
class TestResultDecoding:
    def test_decode_elements_into_int_list(self) -> None:
        result = Result.from_json(
            '{"foundanything":true,"success":true,"elements":[1,2,3],"statistics":{},"errors":[]}'
        )
        assert decode_elements(result, list[int]) == [1, 2, 3]

    def test_decode_elements_into_models(self) -> None:
        result = Result(elements=[{"x": 1, "y": 2}, {"x": 3, "y": 4}])
        points = result.get_elements(list[Point])
        assert points == [Point(x=1, y=2), Point(x=3, y=4)]

    def test_decode_statistics_into_model(self) -> None:
        result = Result(statistics={"scanned": 10, "took": 0.5})
        assert decode_statistics(result, Stats) == Stats(scanned=10, took=0.5)

    def test_decode_into_dataclass(self) -> None:
        result = Result(elements={"left": "a", "right": "b"})
        assert result.get_elements(Pair) == Pair(left="a", right="b")

    def test_typed_producer_value_round_trips(self) -> None:
        produced = [Point(x=5, y=6)]
        result = Result.from_json(Result(elements=produced, statistics=Stats(scanned=1, took=2.0)).to_json())
        assert result.get_elements(list[Point]) == produced
        assert result.get_statistics(Stats) == Stats(scanned=1, took=2.0)

    def test_elements_shape_mismatch_raises_decode_error(self) -> None:
        result = Result(elements={"not": "a list"})
        with pytest.raises(DecodeError) as exc_info:
            result.get_elements(list[int])
        assert exc_info.value.field == "elements"
        assert exc_info.value.errors

    def test_numeric_strings_are_not_coerced(self) -> None:
        result = Result(elements=["1", "2", "3"])
        with pytest.raises(DecodeError):
            result.get_elements(list[int])

    def test_int_statistics_accepted_for_float_fields(self) -> None:
        result = Result(statistics={"scanned": 3, "took": 2})
        assert result.get_statistics(Stats) == Stats(scanned=3, took=2.0)

    def test_statistics_shape_mismatch_raises_decode_error(self) -> None:
        result = Result(statistics={"scanned": "many"})
        with pytest.raises(DecodeError) as exc_info:
            decode_statistics(result, Stats)
        assert exc_info.value.field == "statistics"
        assert exc_info.value.target == "Stats"

    def test_decoding_does_not_mutate_the_envelope(self) -> None:
        elements = [{"x": 1, "y": 2}]
        result = Result(elements=elements)
        points = result.get_elements(list[Point])
        points[0].x = 99
        assert result.elements == [{"x": 1, "y": 2}]

    def test_unserialisable_payload_raises_decode_error(self) -> None:
        result = Result(elements=object())
        with pytest.raises(DecodeError, match="not serialisable"):
            result.get_elements(list[int])

"""Unit tests for ResponseParser and ObjectStreamBuffer."""

import json

import pytest
from pydantic import BaseModel

from llm_adapter.core.errors import EmptyResponseError, LLMAppError, ParseFailureError
from llm_adapter.utils.response_parser import (
    ObjectStreamBuffer,
    ResponseParser,
    StreamState,
    parse_partial_object,
    strip_code_fence,
)


class Person(BaseModel):
    name: str
    age: int
    tags: list[str] = []


DOCUMENT = json.dumps({"name": "Ada", "age": 36, "tags": ["math", "engines"]})


@pytest.fixture
def parser() -> ResponseParser[Person]:
    return ResponseParser(Person)


class TestStripCodeFence:
    def test_json_tagged_fence(self) -> None:
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_untagged_fence(self) -> None:
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_surrounding_whitespace(self) -> None:
        assert strip_code_fence('  \n```json\n{"a": 1}\n```\n  ') == '{"a": 1}'

    def test_unfenced_text_is_only_trimmed(self) -> None:
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


class TestParseFinal:
    def test_valid_json(self, parser: ResponseParser[Person]) -> None:
        result = parser.parse_final(DOCUMENT)

        assert result == Person(name="Ada", age=36, tags=["math", "engines"])

    @pytest.mark.parametrize(
        "wrapped",
        [
            f"```json\n{DOCUMENT}\n```",
            f"```\n{DOCUMENT}\n```",
            f"```json{DOCUMENT}```",
        ],
    )
    def test_fenced_json_parses_like_unwrapped(
        self, parser: ResponseParser[Person], wrapped: str
    ) -> None:
        assert parser.parse_final(wrapped) == parser.parse_final(DOCUMENT)

    def test_truncated_json_is_repaired(self, parser: ResponseParser[Person]) -> None:
        result = parser.parse_final('{"name": "Ada", "age": 36')

        assert result.name == "Ada"
        assert result.age == 36

    def test_trailing_comma_is_repaired(self, parser: ResponseParser[Person]) -> None:
        result = parser.parse_final('{"name": "Ada", "age": 36,}')

        assert result.age == 36

    @pytest.mark.parametrize("text", [None, "", "   \n\t"])
    def test_empty_text_raises_empty_response(
        self, parser: ResponseParser[Person], text: str | None
    ) -> None:
        with pytest.raises(EmptyResponseError) as exc_info:
            parser.parse_final(text)

        assert exc_info.value.code == "llm_empty_response"

    def test_unrecoverable_text_raises_parse_failure(
        self, parser: ResponseParser[Person]
    ) -> None:
        with pytest.raises(ParseFailureError) as exc_info:
            parser.parse_final("This is not JSON")

        assert exc_info.value.code == "llm_parse_failure"

    def test_schema_invalid_json_raises_parse_failure(
        self, parser: ResponseParser[Person]
    ) -> None:
        with pytest.raises(ParseFailureError) as exc_info:
            parser.parse_final('{"name": "Ada"}')

        assert "Person" in exc_info.value.message
        assert exc_info.value.details is not None
        assert "schema" in exc_info.value.details["hint"]

    def test_parse_failure_is_an_llm_error(self, parser: ResponseParser[Person]) -> None:
        with pytest.raises(LLMAppError):
            parser.parse_final('{"name": 1, "age": "old"}')

    def test_deeply_nested_text_raises_parse_failure(
        self, parser: ResponseParser[Person]
    ) -> None:
        with pytest.raises(ParseFailureError) as exc_info:
            parser.parse_final("[" * 5000)

        assert exc_info.value.code == "llm_parse_failure"

    def test_failure_does_not_echo_model_output(self, parser: ResponseParser[Person]) -> None:
        with pytest.raises(ParseFailureError) as exc_info:
            parser.parse_final('{"name": "Ada", "age": "patient-record-42"}')

        assert "patient-record-42" not in exc_info.value.message
        assert "patient-record-42" not in json.dumps(exc_info.value.details)


class TestParsePartial:
    def test_every_prefix_is_tolerated(self, parser: ResponseParser[Person]) -> None:
        for end in range(len(DOCUMENT) + 1):
            result = parser.parse_partial(DOCUMENT[:end])
            assert isinstance(result, dict)

    def test_complete_document(self, parser: ResponseParser[Person]) -> None:
        assert parser.parse_partial(DOCUMENT) == json.loads(DOCUMENT)

    def test_empty_buffer_gives_placeholder(self, parser: ResponseParser[Person]) -> None:
        assert parser.parse_partial("") == {}
        assert parser.parse_partial("   ") == {}

    def test_deeply_nested_buffer_gives_placeholder(
        self, parser: ResponseParser[Person]
    ) -> None:
        assert parser.parse_partial("[" * 5000) == {}

    def test_truncated_object_keeps_complete_fields(
        self, parser: ResponseParser[Person]
    ) -> None:
        result = parser.parse_partial('{"name": "Ada", "age": 36, "tags": ["ma')

        assert result["name"] == "Ada"
        assert result["age"] == 36

    def test_non_object_gives_placeholder(self) -> None:
        assert parse_partial_object("[1, 2, 3]") == {}


class TestObjectStreamBuffer:
    def test_starts_idle(self, parser: ResponseParser[Person]) -> None:
        buffer = ObjectStreamBuffer(parser)

        assert buffer.state is StreamState.IDLE
        assert buffer.text == ""

    def test_feed_accumulates_and_returns_partial(
        self, parser: ResponseParser[Person]
    ) -> None:
        buffer = ObjectStreamBuffer(parser)

        first = buffer.feed('{"name": "Ada", ')
        second = buffer.feed('"age": 36}')

        assert buffer.state is StreamState.ACCUMULATING
        assert buffer.text == '{"name": "Ada", "age": 36}'
        assert first.get("name") == "Ada"
        assert second == {"name": "Ada", "age": 36}

    def test_finish_uses_buffer_when_no_final_text(
        self, parser: ResponseParser[Person]
    ) -> None:
        buffer = ObjectStreamBuffer(parser)
        buffer.feed('{"name": "Ada", "age": 36}')

        result = buffer.finish()

        assert result == Person(name="Ada", age=36)
        assert buffer.state is StreamState.DONE
        assert buffer.text == ""

    def test_finish_prefers_final_text(self, parser: ResponseParser[Person]) -> None:
        buffer = ObjectStreamBuffer(parser)
        buffer.feed('{"name": "Ad')

        result = buffer.finish('{"name": "Ada", "age": 36}')

        assert result.name == "Ada"

    def test_failed_final_parse_moves_to_errored(
        self, parser: ResponseParser[Person]
    ) -> None:
        buffer = ObjectStreamBuffer(parser)
        buffer.feed('{"name": "Ada"}')

        with pytest.raises(ParseFailureError):
            buffer.finish()

        assert buffer.state is StreamState.ERRORED
        assert buffer.text == ""

    @pytest.mark.parametrize("final_text", ['{"name": "Ada", "age": 36}', "not json"])
    def test_feed_after_terminal_state_raises(
        self, parser: ResponseParser[Person], final_text: str
    ) -> None:
        buffer = ObjectStreamBuffer(parser)
        try:
            buffer.finish(final_text)
        except ParseFailureError:
            pass

        with pytest.raises(LLMAppError) as exc_info:
            buffer.feed("{")

        assert exc_info.value.code == "llm_stream_closed"

    def test_reset_discards_text(self, parser: ResponseParser[Person]) -> None:
        buffer = ObjectStreamBuffer(parser)
        buffer.feed('{"name": ')

        buffer.reset()

        assert buffer.text == ""
        assert buffer.state is StreamState.IDLE

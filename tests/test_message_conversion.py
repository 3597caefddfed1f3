"""Tests for internal-to-OpenAI payload conversion and stream normalisation."""

import json

import pytest
from openai.types.chat import ChatCompletionChunk
from pydantic import BaseModel, TypeAdapter

from llm_adapter.adapters.llm.openai_client import (
    chunk_events,
    to_openai_messages,
    to_openai_tools,
    to_responses_input,
)
from llm_adapter.schemas.messages import (
    AssistantMessage,
    Message,
    SystemMessage,
    ToolCall,
    ToolDefinition,
    ToolMessage,
    UserMessage,
)
from llm_adapter.schemas.stream import FunctionCallDelta, StreamDone, TextDelta


class SearchArgs(BaseModel):
    query: str
    limit: int = 5


@pytest.fixture
def conversation() -> list:
    return [
        SystemMessage(content="Be helpful."),
        UserMessage(content="Find python docs"),
        AssistantMessage(
            content="",
            tool_calls=[ToolCall(id="call_1", name="search", arguments={"query": "python"})],
        ),
        ToolMessage(id="call_1", name="search", content="docs.python.org"),
        AssistantMessage(content="See docs.python.org"),
    ]


def test_chat_messages(conversation: list) -> None:
    converted = to_openai_messages(conversation)

    assert converted[0] == {"role": "system", "content": "Be helpful."}
    assert converted[1] == {"role": "user", "content": "Find python docs"}
    assert converted[2]["role"] == "assistant"
    assert converted[2]["tool_calls"] == [
        {
            "id": "call_1",
            "type": "function",
            "function": {"name": "search", "arguments": json.dumps({"query": "python"})},
        }
    ]
    assert converted[3] == {
        "role": "tool",
        "tool_call_id": "call_1",
        "content": "docs.python.org",
    }
    assert converted[4] == {"role": "assistant", "content": "See docs.python.org"}


def test_assistant_without_tool_calls_has_no_tool_calls_key() -> None:
    converted = to_openai_messages([AssistantMessage(content="hi")])

    assert "tool_calls" not in converted[0]


def test_responses_input(conversation: list) -> None:
    items = to_responses_input(conversation)

    assert items == [
        {"role": "system", "content": "Be helpful."},
        {"role": "user", "content": "Find python docs"},
        {
            "type": "function_call",
            "call_id": "call_1",
            "name": "search",
            "arguments": json.dumps({"query": "python"}),
        },
        {"type": "function_call_output", "call_id": "call_1", "output": "docs.python.org"},
        {"role": "assistant", "content": "See docs.python.org"},
    ]


def test_messages_validate_from_plain_dicts() -> None:
    messages = TypeAdapter(list[Message]).validate_python(
        [
            {"role": "user", "content": "hi"},
            {"role": "tool", "id": "call_1", "content": "42"},
        ]
    )

    assert isinstance(messages[0], UserMessage)
    assert isinstance(messages[1], ToolMessage)


def test_tools_from_model() -> None:
    tool = ToolDefinition.from_model("search", SearchArgs, description="Search the web")

    converted = to_openai_tools([tool])

    assert converted[0]["type"] == "function"
    function = converted[0]["function"]
    assert function["name"] == "search"
    assert function["description"] == "Search the web"
    assert function["parameters"]["required"] == ["query"]


def _chunk(choices: list) -> ChatCompletionChunk:
    return ChatCompletionChunk.model_validate(
        {
            "id": "chatcmpl-1",
            "object": "chat.completion.chunk",
            "created": 1700000000,
            "model": "gpt-4o",
            "choices": choices,
        }
    )


def test_chunk_without_choices_has_no_events() -> None:
    assert chunk_events(_chunk([])) is None


def test_chunk_events_are_tagged() -> None:
    chunk = _chunk(
        [
            {
                "index": 0,
                "delta": {
                    "content": "Hi",
                    "tool_calls": [
                        {
                            "index": 1,
                            "id": "call_2",
                            "type": "function",
                            "function": {"name": "search", "arguments": "{"},
                        }
                    ],
                },
                "finish_reason": "tool_calls",
            }
        ]
    )

    events = chunk_events(chunk)

    assert events is not None
    assert [type(e) for e in events] == [TextDelta, FunctionCallDelta, StreamDone]
    assert events[0].text == "Hi"
    assert events[1].index == 1
    assert events[1].id == "call_2"
    assert events[1].name == "search"
    assert events[1].arguments == "{"
    assert events[2].finish_reason == "tool_calls"


def test_empty_delta_has_no_events() -> None:
    events = chunk_events(_chunk([{"index": 0, "delta": {"content": ""}, "finish_reason": None}]))

    assert events == []

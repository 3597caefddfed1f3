"""OpenAI LLM client adapter."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from llm_adapter.adapters.llm.base import AbstractLLMClient
from llm_adapter.core.errors import EmptyResponseError, LLMAppError, ParseFailureError
from llm_adapter.core.logging import preview
from llm_adapter.schemas.messages import (
    AdditionalInfo,
    AssistantMessage,
    GenerateObjectInput,
    GenerateOptions,
    GenerateTextInput,
    GenerateTextOutput,
    Message,
    ObjectStreamOutput,
    StreamTextOutput,
    ToolCall,
    ToolDefinition,
    ToolMessage,
)
from llm_adapter.schemas.stream import (
    FunctionCallDelta,
    StreamDone,
    StreamEvent,
    TextDelta,
    stream_events_adapter,
)
from llm_adapter.utils.response_parser import ObjectStreamBuffer, ResponseParser, StreamState
from llm_adapter.utils.tool_calls import ToolCallAccumulator

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 1.0

# GenerateOptions field -> Chat Completions parameter
_CHAT_OPTION_PARAMS = {
    "top_p": "top_p",
    "max_tokens": "max_completion_tokens",
    "stop_sequences": "stop",
    "frequency_penalty": "frequency_penalty",
    "presence_penalty": "presence_penalty",
}

# The Responses API has no stop/penalty parameters
_RESPONSES_OPTION_PARAMS = {
    "top_p": "top_p",
    "max_tokens": "max_output_tokens",
}


def to_openai_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert internal messages to Chat Completions message params."""
    converted: list[dict[str, Any]] = []
    for msg in messages:
        if isinstance(msg, ToolMessage):
            converted.append(
                {"role": "tool", "tool_call_id": msg.id, "content": msg.content}
            )
        elif isinstance(msg, AssistantMessage):
            param: dict[str, Any] = {"role": "assistant", "content": msg.content}
            if msg.tool_calls:
                param["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments),
                        },
                    }
                    for tc in msg.tool_calls
                ]
            converted.append(param)
        else:
            converted.append({"role": msg.role, "content": msg.content})
    return converted


def to_responses_input(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert internal messages to Responses API input items.

    Tool calls and tool results become ``function_call`` and
    ``function_call_output`` items; everything else is a plain message.
    """
    items: list[dict[str, Any]] = []
    for msg in messages:
        if isinstance(msg, ToolMessage):
            items.append(
                {"type": "function_call_output", "call_id": msg.id, "output": msg.content}
            )
            continue
        if msg.content or not isinstance(msg, AssistantMessage):
            items.append({"role": msg.role, "content": msg.content})
        if isinstance(msg, AssistantMessage):
            for tc in msg.tool_calls:
                items.append(
                    {
                        "type": "function_call",
                        "call_id": tc.id,
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments),
                    }
                )
    return items


def to_openai_tools(tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    """Convert tool definitions to Chat Completions function tools."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def chunk_events(chunk: Any) -> list[StreamEvent] | None:
    """Normalise one ChatCompletionChunk into validated stream events.

    Returns:
        The events carried by the chunk's first choice, or None when the
        chunk has no choices (e.g. a trailing usage-only chunk).

    Raises:
        LLMAppError: If the chunk does not have the expected shape.
    """
    choices = getattr(chunk, "choices", None)
    if not choices:
        return None

    choice = choices[0]
    raw: list[dict[str, Any]] = []
    delta = choice.delta
    if delta is not None:
        if delta.content:
            raw.append({"type": "text_delta", "text": delta.content})
        for tc in delta.tool_calls or []:
            function = tc.function
            raw.append(
                {
                    "type": "function_call",
                    "index": tc.index,
                    "id": tc.id,
                    "name": function.name if function else None,
                    "arguments": (function.arguments if function else None) or "",
                }
            )
    if choice.finish_reason is not None:
        raw.append({"type": "done", "finish_reason": choice.finish_reason})

    try:
        return stream_events_adapter.validate_python(raw)
    except ValidationError as exc:
        raise LLMAppError(
            code="llm_invalid_stream_chunk",
            message=f"Unexpected stream chunk from OpenAI: {exc}",
        ) from exc


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI chat completions and structured outputs.

    Uses the official OpenAI Python SDK with async support.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
        options: GenerateOptions | None = None,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: OpenAI API key for authentication.
            model: Model name (e.g., "gpt-4o", "gpt-4o-mini").
            base_url: Optional custom base URL for OpenAI-compatible servers.
            timeout_seconds: Timeout for requests in seconds.
            options: Model-level default sampling options.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model
        self.options = options or GenerateOptions()

    def _option(self, options: GenerateOptions | None, name: str) -> Any:
        """Per-call value for ``name``, else the model-level default."""
        value = getattr(options, name) if options is not None else None
        if value is None:
            value = getattr(self.options, name)
        return value

    def _sampling_params(
        self,
        options: GenerateOptions | None,
        param_names: dict[str, str],
    ) -> dict[str, Any]:
        temperature = self._option(options, "temperature")
        params: dict[str, Any] = {
            "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
        }
        for option, param in param_names.items():
            value = self._option(options, option)
            if value is not None:
                params[param] = value
        return params

    def _chat_params(
        self,
        messages: list[Message],
        options: GenerateOptions | None,
        tools: list[ToolDefinition] | None = None,
    ) -> dict[str, Any]:
        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": to_openai_messages(messages),
            **self._sampling_params(options, _CHAT_OPTION_PARAMS),
        }
        if tools:
            request_params["tools"] = to_openai_tools(tools)
        return request_params

    def _provider_error(self, exc: OpenAIError) -> LLMAppError:
        return LLMAppError(
            code="llm_provider_error",
            message=f"OpenAI API error: {exc}",
            details={"model": self.model, "provider": "openai"},
        )

    @staticmethod
    def _decode_tool_call(tc: Any) -> ToolCall:
        try:
            arguments = json.loads(tc.function.arguments or "{}")
        except (json.JSONDecodeError, RecursionError) as exc:
            logger.error(
                "tool_call_decode_failed",
                extra={
                    "tool_name": tc.function.name,
                    "raw_preview": preview(tc.function.arguments),
                },
            )
            raise ParseFailureError(
                code="llm_parse_failure",
                message=f"Tool call '{tc.function.name}' has invalid JSON arguments: {exc}",
                details={"hint": "tool call arguments are not valid JSON"},
            ) from exc
        if not isinstance(arguments, dict):
            raise ParseFailureError(
                code="llm_parse_failure",
                message=f"Tool call '{tc.function.name}' arguments are not a JSON object",
                details={"hint": "tool call arguments must be a JSON object"},
            )
        return ToolCall(id=tc.id, name=tc.function.name, arguments=arguments)

    async def generate_text(self, input: GenerateTextInput) -> GenerateTextOutput:
        request_params = self._chat_params(input.messages, input.options, input.tools)
        logger.info(
            "llm_request",
            extra={
                "operation": "generate_text",
                "model": self.model,
                "message_count": len(input.messages),
                "tool_count": len(input.tools),
            },
        )

        try:
            response = await self.client.chat.completions.create(**request_params)
        except OpenAIError as exc:
            raise self._provider_error(exc) from exc

        if not response.choices:
            raise EmptyResponseError(
                code="llm_empty_response",
                message="No response from OpenAI",
                details={"model": self.model},
            )

        choice = response.choices[0]
        tool_calls = [
            self._decode_tool_call(tc)
            for tc in choice.message.tool_calls or []
            if tc.type == "function"
        ]
        return GenerateTextOutput(
            content=choice.message.content or "",
            tool_calls=tool_calls,
            additional_info=AdditionalInfo(finish_reason=choice.finish_reason),
        )

    async def stream_text(self, input: GenerateTextInput) -> AsyncIterator[StreamTextOutput]:
        request_params = self._chat_params(input.messages, input.options, input.tools)
        logger.info(
            "llm_request",
            extra={
                "operation": "stream_text",
                "model": self.model,
                "message_count": len(input.messages),
                "tool_count": len(input.tools),
            },
        )

        try:
            stream = await self.client.chat.completions.create(**request_params, stream=True)
        except OpenAIError as exc:
            raise self._provider_error(exc) from exc

        accumulator = ToolCallAccumulator()
        async with stream:
            async for chunk in stream:
                events = chunk_events(chunk)
                if events is None:
                    continue
                yield self._stream_output(events, accumulator)

    @staticmethod
    def _stream_output(
        events: list[StreamEvent],
        accumulator: ToolCallAccumulator,
    ) -> StreamTextOutput:
        content = ""
        tool_call_chunk: list[ToolCall] = []
        finish_reason: str | None = None
        for event in events:
            if isinstance(event, TextDelta):
                content += event.text
            elif isinstance(event, FunctionCallDelta):
                tool_call_chunk.append(accumulator.feed(event))
            elif isinstance(event, StreamDone):
                finish_reason = event.finish_reason
        return StreamTextOutput(
            content_chunk=content,
            tool_call_chunk=tool_call_chunk,
            done=finish_reason is not None,
            additional_info=AdditionalInfo(finish_reason=finish_reason),
        )

    async def generate_object(self, input: GenerateObjectInput) -> BaseModel:
        parser = ResponseParser(input.schema_)
        request_params = self._chat_params(input.messages, input.options)
        content: str | None = None

        try:
            response = await self.client.chat.completions.parse(
                **request_params,
                response_format=input.schema_,
            )
            if response.choices:
                content = response.choices[0].message.content
        except Exception as exc:  # any failure here falls back to JSON mode
            logger.info(
                "structured_output_unavailable",
                extra={
                    "model": self.model,
                    "schema": input.schema_.__name__,
                    "error_type": type(exc).__name__,
                },
            )

        if not content:
            try:
                fallback_response = await self.client.chat.completions.create(
                    **request_params,
                    response_format={"type": "json_object"},
                )
            except OpenAIError as exc:
                raise self._provider_error(exc) from exc
            if fallback_response.choices:
                content = fallback_response.choices[0].message.content

        if not content:
            raise EmptyResponseError(
                code="llm_empty_response",
                message="No response from OpenAI",
                details={"model": self.model},
            )

        logger.info(
            "structured_output_received",
            extra={"model": self.model, "content_preview": preview(content)},
        )
        return parser.parse_final(content)

    async def stream_object(self, input: GenerateObjectInput) -> AsyncIterator[ObjectStreamOutput]:
        buffer = ObjectStreamBuffer(ResponseParser(input.schema_))
        # Sent as a raw json_schema format so the SDK does not parse (and
        # reject) the final text before it reaches the repairing parser.
        request_params: dict[str, Any] = {
            "model": self.model,
            "input": to_responses_input(input.messages),
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": input.schema_.__name__,
                    "schema": input.schema_.model_json_schema(),
                    "strict": False,
                }
            },
            **self._sampling_params(input.options, _RESPONSES_OPTION_PARAMS),
        }
        logger.info(
            "llm_request",
            extra={
                "operation": "stream_object",
                "model": self.model,
                "message_count": len(input.messages),
                "schema": input.schema_.__name__,
            },
        )

        try:
            stream = await self.client.responses.create(**request_params, stream=True)
        except OpenAIError as exc:
            raise self._provider_error(exc) from exc

        try:
            async with stream:
                async for event in stream:
                    if event.type == "response.output_text.delta" and event.delta:
                        yield ObjectStreamOutput(partial=buffer.feed(event.delta))
                    elif event.type == "response.output_text.done":
                        yield self._object_done(buffer.finish(event.text))
                    elif event.type == "error":
                        raise LLMAppError(
                            code="llm_stream_error",
                            message=f"OpenAI stream error: {event.message}",
                            details={"model": self.model, "provider": "openai"},
                        )
            # Refused or incomplete responses end without a final text event
            if buffer.state is not StreamState.DONE:
                logger.warning(
                    "structured_stream_ended_early",
                    extra={"model": self.model, "buffer_chars": len(buffer.text)},
                )
                yield self._object_done(buffer.finish())
        except OpenAIError as exc:
            raise self._provider_error(exc) from exc
        finally:
            if buffer.state is StreamState.ACCUMULATING:
                buffer.reset()

    @staticmethod
    def _object_done(result: BaseModel) -> ObjectStreamOutput:
        return ObjectStreamOutput(partial=result.model_dump(), done=True, object=result)

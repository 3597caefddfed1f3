from abc import ABC, abstractmethod
from typing import AsyncIterator

from pydantic import BaseModel

from llm_adapter.schemas.messages import (
    GenerateObjectInput,
    GenerateTextInput,
    GenerateTextOutput,
    ObjectStreamOutput,
    StreamTextOutput,
)


class AbstractLLMClient(ABC):
    """Provider-neutral interface for text, streaming and structured output."""

    @abstractmethod
    async def generate_text(self, input: GenerateTextInput) -> GenerateTextOutput:
        """Generate a complete reply, possibly containing tool calls.

        Args:
            input: Messages, tool definitions and per-call options.

        Returns:
            GenerateTextOutput: Content, decoded tool calls and finish reason.

        Raises:
            EmptyResponseError: If the provider returned no choices.
            ParseFailureError: If tool-call arguments are not valid JSON.
            LLMAppError: If the provider call fails.
        """
        ...

    @abstractmethod
    def stream_text(self, input: GenerateTextInput) -> AsyncIterator[StreamTextOutput]:
        """Stream a reply chunk by chunk.

        Tool calls are re-emitted on every fragment with the arguments
        accumulated so far. Partial arguments never raise.

        Args:
            input: Messages, tool definitions and per-call options.

        Yields:
            StreamTextOutput: One item per provider chunk.
        """
        ...

    @abstractmethod
    async def generate_object(self, input: GenerateObjectInput) -> BaseModel:
        """Generate an instance of ``input.schema_``.

        Args:
            input: Messages, target schema and per-call options.

        Returns:
            A validated instance of the requested schema.

        Raises:
            EmptyResponseError: If no content was produced.
            ParseFailureError: If the content cannot be repaired or validated.
        """
        ...

    @abstractmethod
    def stream_object(self, input: GenerateObjectInput) -> AsyncIterator[ObjectStreamOutput]:
        """Stream partial objects, ending with the validated instance.

        Args:
            input: Messages, target schema and per-call options.

        Yields:
            ObjectStreamOutput: Partial reconstructions, then a terminal item
                with ``done=True`` and the validated object.
        """
        ...

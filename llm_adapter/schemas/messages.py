"""Pydantic schemas for the provider-neutral LLM interface.

These types are what callers hand to an AbstractLLMClient and what they get
back. Provider adapters translate them to and from vendor payloads.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolCall(BaseModel):
    """A function call requested by the model."""

    id: str = Field(..., description="Provider-assigned call identifier.")
    name: str = Field(..., description="Name of the tool to invoke.")
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description="Decoded call arguments (possibly partial while streaming).",
    )


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)


class ToolMessage(BaseModel):
    """Result of a tool invocation, answering the call with the same id."""

    role: Literal["tool"] = "tool"
    id: str = Field(..., description="Id of the ToolCall this message answers.")
    name: str | None = None
    content: str


Message = Annotated[
    SystemMessage | UserMessage | AssistantMessage | ToolMessage,
    Field(discriminator="role"),
]


class ToolDefinition(BaseModel):
    """A function the model may call.

    ``parameters`` is a JSON Schema object. Use :meth:`from_model` to derive it
    from a pydantic model.
    """

    name: str = Field(..., min_length=1, max_length=64)
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
    )

    @classmethod
    def from_model(
        cls,
        name: str,
        model: type[BaseModel],
        description: str | None = None,
    ) -> "ToolDefinition":
        """Build a tool definition whose arguments follow ``model``."""
        return cls(
            name=name,
            description=description if description is not None else (model.__doc__ or "").strip(),
            parameters=model.model_json_schema(),
        )


class GenerateOptions(BaseModel):
    """Sampling options. Unset fields fall back to model-level defaults."""

    model_config = ConfigDict(extra="forbid")

    temperature: float | None = Field(None, ge=0.0, le=2.0)
    top_p: float | None = Field(None, ge=0.0, le=1.0)
    max_tokens: int | None = Field(None, ge=1)
    stop_sequences: list[str] | None = None
    frequency_penalty: float | None = Field(None, ge=-2.0, le=2.0)
    presence_penalty: float | None = Field(None, ge=-2.0, le=2.0)


class GenerateTextInput(BaseModel):
    """Input for text generation and text streaming."""

    messages: list[Message] = Field(..., min_length=1)
    tools: list[ToolDefinition] = Field(default_factory=list)
    options: GenerateOptions | None = None


class GenerateObjectInput(BaseModel):
    """Input for structured-object generation.

    Attributes:
        messages: Conversation to send.
        schema_: Pydantic model the output must validate against
            (passed as ``schema=``).
        options: Per-call sampling options.
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    messages: list[Message] = Field(..., min_length=1)
    schema_: type[BaseModel] = Field(..., alias="schema")
    options: GenerateOptions | None = None


class AdditionalInfo(BaseModel):
    finish_reason: str | None = None


class GenerateTextOutput(BaseModel):
    """Complete (non-streamed) model reply."""

    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    additional_info: AdditionalInfo = Field(default_factory=AdditionalInfo)


class StreamTextOutput(BaseModel):
    """One increment of a streamed reply.

    ``tool_call_chunk`` carries the tool calls touched by this chunk, each with
    the arguments accumulated so far for its slot.
    """

    content_chunk: str = ""
    tool_call_chunk: list[ToolCall] = Field(default_factory=list)
    done: bool = False
    additional_info: AdditionalInfo = Field(default_factory=AdditionalInfo)


class ObjectStreamOutput(BaseModel):
    """One increment of a streamed structured object.

    ``partial`` is the best-effort reconstruction of the buffer so far (``{}``
    when nothing is recoverable yet). ``object`` is set only on the terminal
    event, with the fully validated instance.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    partial: dict[str, Any] = Field(default_factory=dict)
    done: bool = False
    object: BaseModel | None = None

"""Normalised streaming events.

Provider chunks are translated into these tagged variants at the adapter
boundary and validated there, so downstream code never inspects vendor
objects.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter


class TextDelta(BaseModel):
    """A fragment of assistant text content."""

    type: Literal["text_delta"] = "text_delta"
    text: str


class FunctionCallDelta(BaseModel):
    """A fragment of a tool call for a given slot.

    Only the first fragment for a slot usually carries ``id`` and ``name``;
    later fragments carry argument text only.
    """

    type: Literal["function_call"] = "function_call"
    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""


class StreamDone(BaseModel):
    """End-of-stream marker carrying the provider finish reason."""

    type: Literal["done"] = "done"
    finish_reason: str


StreamEvent = Annotated[
    TextDelta | FunctionCallDelta | StreamDone,
    Field(discriminator="type"),
]

stream_events_adapter: TypeAdapter[list[StreamEvent]] = TypeAdapter(list[StreamEvent])

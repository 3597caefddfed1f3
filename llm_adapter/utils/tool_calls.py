"""Reassemble streamed tool calls from per-slot fragments."""

from __future__ import annotations

from dataclasses import dataclass

from llm_adapter.core.errors import LLMAppError
from llm_adapter.schemas.messages import ToolCall
from llm_adapter.schemas.stream import FunctionCallDelta
from llm_adapter.utils.response_parser import parse_partial_object


@dataclass
class _Slot:
    id: str
    name: str
    arguments: str


class ToolCallAccumulator:
    """Per-request mapping from slot index to the tool call built so far.

    The first fragment for a slot creates the entry; later fragments append
    to its argument string. Every read re-parses the accumulated arguments
    tolerantly, so a half-received call still yields the fields seen so far.
    """

    def __init__(self) -> None:
        self._slots: dict[int, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, index: object) -> bool:
        return index in self._slots

    def feed(self, delta: FunctionCallDelta) -> ToolCall:
        """Apply one fragment and return the current state of its slot.

        Raises:
            LLMAppError: If the slot index is negative.
        """
        if delta.index < 0:
            raise LLMAppError(
                code="invalid_tool_call_index",
                message=f"Tool call slot index must be non-negative, got {delta.index}",
                details={"slot_index": delta.index},
            )

        slot = self._slots.get(delta.index)
        if slot is None:
            slot = _Slot(id=delta.id or "", name=delta.name or "", arguments=delta.arguments)
            self._slots[delta.index] = slot
        else:
            # Some OpenAI-compatible servers repeat or delay id/name
            if delta.id and not slot.id:
                slot.id = delta.id
            if delta.name and not slot.name:
                slot.name = delta.name
            slot.arguments += delta.arguments

        return self.get(delta.index)

    def get(self, index: int) -> ToolCall:
        """Return the tool call for ``index`` with tolerantly parsed arguments.

        Raises:
            KeyError: If no fragment has been received for ``index``.
        """
        try:
            slot = self._slots[index]
        except KeyError:
            raise KeyError(f"no tool call received for slot {index}") from None
        return ToolCall(
            id=slot.id,
            name=slot.name,
            arguments=parse_partial_object(slot.arguments),
        )

"""Turn raw model text into validated objects.

Two entry points share the same cleanup rules:

- ``ResponseParser.parse_final`` for a complete reply: strip a fenced code
  block, repair the JSON, parse it and validate it against the caller's
  pydantic model. Failures are terminal.
- ``ResponseParser.parse_partial`` for a growing stream buffer: tolerant
  parsing that closes open strings/brackets and never raises, returning an
  empty placeholder when nothing is recoverable yet.

``ObjectStreamBuffer`` owns the accumulated text of one streamed request and
tracks its lifecycle (idle, accumulating, done, errored).
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Generic, TypeVar

import json_repair
from pydantic import BaseModel, ValidationError

from llm_adapter.core.errors import EmptyResponseError, LLMAppError, ParseFailureError
from llm_adapter.core.logging import preview

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# A reply that is exactly one fenced block, optionally tagged json
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a fenced code block wrapping the whole text, if present.

    Args:
        text: Raw model output.

    Returns:
        The inner content of the fence (trimmed), or the trimmed input.
    """
    cleaned = text.strip()
    match = _CODE_FENCE_RE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def repair_json_text(text: str) -> str:
    """Best-effort correction of truncated or malformed JSON.

    Leading prose before the first JSON value is skipped, missing closing
    quotes/brackets are added and trailing commas dropped.

    Raises:
        ValueError: If the text cannot be turned into a JSON document.
    """
    repaired = json_repair.repair_json(text)
    if not isinstance(repaired, str) or not repaired or repaired == '""':
        raise ValueError("no JSON value could be recovered from the text")
    return repaired


def parse_partial_object(text: str) -> dict[str, Any]:
    """Parse a possibly truncated JSON object, returning ``{}`` on a miss."""
    if not text or not text.strip():
        return {}
    try:
        value = json_repair.loads(strip_code_fence(text))
    except Exception as exc:  # partial buffers are expected to be broken
        logger.debug(
            "partial_parse_miss",
            extra={"error_type": type(exc).__name__, "buffer_chars": len(text)},
        )
        return {}
    if not isinstance(value, dict):
        logger.debug(
            "partial_parse_miss",
            extra={"error_type": "not_an_object", "buffer_chars": len(text)},
        )
        return {}
    return value


class ResponseParser(Generic[ModelT]):
    """Parse model output into instances of ``schema``.

    Attributes:
        schema: Pydantic model the final output must validate against.
    """

    def __init__(self, schema: type[ModelT]) -> None:
        self.schema = schema

    def parse_final(self, text: str | None) -> ModelT:
        """Parse a complete reply into a validated ``schema`` instance.

        Args:
            text: Full text returned by the provider.

        Returns:
            Validated instance of ``schema``.

        Raises:
            EmptyResponseError: If the provider produced no text.
            ParseFailureError: If repair, decoding or validation fails.
        """
        if text is None or not text.strip():
            raise EmptyResponseError(
                code="llm_empty_response",
                message="No response content returned by the model",
            )

        cleaned = strip_code_fence(text)

        try:
            repaired = repair_json_text(cleaned)
            data = json.loads(repaired)
        except (ValueError, RecursionError) as exc:
            logger.error(
                "response_repair_failed",
                extra={"error_msg": str(exc), "raw_preview": preview(text)},
            )
            raise ParseFailureError(
                code="llm_parse_failure",
                message=f"Error parsing response from model: {exc}",
                details={"hint": "output is not recoverable JSON"},
            ) from exc

        logger.debug("response_repaired", extra={"repaired_preview": preview(repaired)})

        try:
            return self.schema.model_validate(data)
        except ValidationError as exc:
            logger.error(
                "response_validation_failed",
                extra={
                    "schema": self.schema.__name__,
                    "error_count": exc.error_count(),
                    "raw_preview": preview(text),
                },
            )
            raise ParseFailureError(
                code="llm_parse_failure",
                message=(
                    f"Response does not match {self.schema.__name__} "
                    f"({exc.error_count()} validation errors)"
                ),
                details={"hint": "output is valid JSON but fails schema validation"},
            ) from exc

    def parse_partial(self, buffer: str) -> dict[str, Any]:
        """Best-effort reconstruction of an incomplete reply.

        Never raises: an unparseable buffer yields ``{}`` so the stream can
        continue until the final text arrives.
        """
        return parse_partial_object(buffer)


class StreamState(str, Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    DONE = "done"
    ERRORED = "errored"


class ObjectStreamBuffer(Generic[ModelT]):
    """Accumulated text of one streamed structured-output request.

    The buffer only grows by concatenation while accumulating, and is cleared
    when the stream finishes or is abandoned.
    """

    def __init__(self, parser: ResponseParser[ModelT]) -> None:
        self.parser = parser
        self.text = ""
        self.state = StreamState.IDLE

    def feed(self, delta: str) -> dict[str, Any]:
        """Append a chunk and return the partial object parsed so far."""
        if self.state in (StreamState.DONE, StreamState.ERRORED):
            raise LLMAppError(
                code="llm_stream_closed",
                message=f"Cannot feed a stream buffer in state '{self.state.value}'",
            )
        self.state = StreamState.ACCUMULATING
        self.text += delta
        return self.parser.parse_partial(self.text)

    def finish(self, final_text: str | None = None) -> ModelT:
        """Close the stream and parse the complete text.

        Args:
            final_text: Full text reported by the provider's end-of-stream
                event. Falls back to the accumulated buffer when missing.

        Raises:
            EmptyResponseError: If nothing was produced.
            ParseFailureError: If the final text cannot be parsed/validated.
        """
        text = final_text if final_text else self.text
        try:
            result = self.parser.parse_final(text)
        except LLMAppError:
            self.state = StreamState.ERRORED
            raise
        finally:
            self.text = ""
        self.state = StreamState.DONE
        return result

    def reset(self) -> None:
        """Discard accumulated text (stream cancelled by the caller)."""
        self.text = ""
        if self.state is StreamState.ACCUMULATING:
            self.state = StreamState.IDLE

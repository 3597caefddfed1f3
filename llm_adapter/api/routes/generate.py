import json
import logging
from functools import lru_cache
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from llm_adapter.adapters.llm.base import AbstractLLMClient
from llm_adapter.adapters.llm.factory import create_llm_client
from llm_adapter.core.errors import AppError
from llm_adapter.core.logging import get_request_id
from llm_adapter.schemas.messages import GenerateTextInput, GenerateTextOutput

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Generate"])


@lru_cache(maxsize=1)
def get_llm_client() -> AbstractLLMClient:
    """Provide the process-wide LLM client (overridable in tests)."""
    return create_llm_client()


@router.post("/generate/text", response_model=GenerateTextOutput)
async def generate_text(
    payload: GenerateTextInput,
    llm: AbstractLLMClient = Depends(get_llm_client),
) -> GenerateTextOutput:
    """Generate a complete reply for a conversation.

    Args:
        payload: Messages, optional tool definitions and sampling options.
        llm: Injected LLM client.

    Returns:
        GenerateTextOutput: Content, tool calls and finish reason.
    """
    return await llm.generate_text(payload)


async def _ndjson_lines(
    llm: AbstractLLMClient,
    payload: GenerateTextInput,
) -> AsyncIterator[str]:
    """Serialize stream items as NDJSON, ending with an error line on failure.

    The response status is already sent once streaming starts, so domain
    errors are reported in-band.
    """
    try:
        async for item in llm.stream_text(payload):
            yield item.model_dump_json() + "\n"
    except AppError as exc:
        logger.warning(
            "stream_aborted",
            extra={"error_code": exc.code, "error_message": exc.message},
        )
        error_content = {
            "code": exc.code,
            "message": exc.message,
            "request_id": get_request_id(),
        }
        yield json.dumps({"error": error_content}) + "\n"


@router.post("/generate/stream")
async def stream_text(
    payload: GenerateTextInput,
    llm: AbstractLLMClient = Depends(get_llm_client),
) -> StreamingResponse:
    """Stream a reply as newline-delimited JSON StreamTextOutput items."""
    return StreamingResponse(
        _ndjson_lines(llm, payload),
        media_type="application/x-ndjson",
    )

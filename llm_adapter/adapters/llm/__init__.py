"""LLM adapter layer - maps the internal LLM interface onto provider SDKs."""

from llm_adapter.adapters.llm.base import AbstractLLMClient
from llm_adapter.adapters.llm.factory import create_llm_client
from llm_adapter.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]

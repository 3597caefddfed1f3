"""Factory pattern for creating LLM client instances."""

from llm_adapter.adapters.llm.base import AbstractLLMClient
from llm_adapter.adapters.llm.openai_client import OpenAIClient
from llm_adapter.core.config import LLMSettings, settings
from llm_adapter.core.errors import ValidationAppError
from llm_adapter.schemas.messages import GenerateOptions


def default_options(llm_settings: LLMSettings) -> GenerateOptions:
    """Model-level default sampling options taken from LLM_* settings."""
    return GenerateOptions(
        temperature=llm_settings.temperature,
        top_p=llm_settings.top_p,
        max_tokens=llm_settings.max_tokens,
        stop_sequences=llm_settings.stop_sequences,
        frequency_penalty=llm_settings.frequency_penalty,
        presence_penalty=llm_settings.presence_penalty,
    )


def create_llm_client() -> AbstractLLMClient:
    """Factory function to instantiate the configured LLM client.

    Reads configuration from llm_adapter.core.config.settings (Pydantic Settings).
    Validates provider-specific requirements and routes to the matching client.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    llm_settings = settings.llm
    provider = llm_settings.provider.lower()

    if provider == "openai":
        if not llm_settings.api_key:
            raise ValidationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY environment variable",
            )
        return OpenAIClient(
            api_key=llm_settings.api_key,
            model=llm_settings.model,
            base_url=llm_settings.base_url,
            timeout_seconds=llm_settings.timeout_seconds,
            options=default_options(llm_settings),
        )

    raise ValidationAppError(
        code="llm_unknown_provider",
        message=(
            f"Unknown LLM provider: '{provider}'. Supported providers: openai"
        ),
    )

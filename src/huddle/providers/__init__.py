"""Provider implementations for the supported LLM vendors."""

from __future__ import annotations

from typing import Callable, Dict

from ..config import LLMConfig, normalize_provider
from ..exceptions import ProviderConfigurationError
from .anthropic_provider import AnthropicProvider
from .base import ChatOptions, Provider, ProviderError
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider
from .perplexity_provider import PerplexityProvider
from .stubs import LocalProvider

PROVIDERS: Dict[str, Callable[..., Provider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "perplexity": PerplexityProvider,
    "local": LocalProvider,
}


def create_provider(config: LLMConfig) -> Provider:
    """
    Build the adapter selected by ``config.provider``.

    Raises:
        ProviderConfigurationError: If the provider name is not supported or
            its API key is missing.
    """
    name = normalize_provider(config.provider)
    factory = PROVIDERS.get(name)
    if factory is None:
        raise ProviderConfigurationError(
            provider_name=config.provider,
            missing_config=f"supported provider (one of: {', '.join(sorted(PROVIDERS))})",
        )
    if name == "local":
        return factory(model=config.model or LocalProvider.default_model)
    return factory(
        api_key=config.api_key,
        model=config.model or factory.default_model,
        base_url=config.base_url,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )


__all__ = [
    "Provider",
    "ProviderError",
    "ChatOptions",
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "PerplexityProvider",
    "LocalProvider",
    "PROVIDERS",
    "create_provider",
]

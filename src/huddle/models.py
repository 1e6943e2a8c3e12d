"""
Canonical model registry for the supported providers.

This module is the single source of truth for model ids and their prices.
Use the typed constants for IDE autocomplete.

Example:
    >>> from huddle.models import OpenAI, Anthropic
    >>> model = OpenAI.GPT_4O
    >>> print(f"Cost: ${model.prompt_cost}/${model.completion_cost} per 1M tokens")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class ModelInfo:
    """
    Metadata for a chat model.

    Attributes:
        id: Model identifier (e.g., "gpt-4o", "claude-3-5-sonnet-20241022")
        provider: Provider name ("openai", "anthropic", "gemini", "perplexity", "local")
        prompt_cost: Cost in USD per 1M input tokens
        completion_cost: Cost in USD per 1M output tokens
        native_tools: Whether the vendor API accepts function/tool definitions
    """

    id: str
    provider: str
    prompt_cost: float
    completion_cost: float
    native_tools: bool = True


# =============================================================================
# Anthropic
# =============================================================================


class Anthropic:
    """Anthropic Claude models."""

    SONNET_3_5 = ModelInfo("claude-3-5-sonnet-20241022", "anthropic", 3.00, 15.00)
    HAIKU_3_5 = ModelInfo("claude-3-5-haiku-20241022", "anthropic", 1.00, 5.00)
    OPUS_3 = ModelInfo("claude-3-opus-20240229", "anthropic", 15.00, 75.00)
    SONNET_3 = ModelInfo("claude-3-sonnet-20240229", "anthropic", 3.00, 15.00)
    HAIKU_3 = ModelInfo("claude-3-haiku-20240307", "anthropic", 0.25, 1.25)


# =============================================================================
# OpenAI
# =============================================================================


class OpenAI:
    """OpenAI GPT models."""

    GPT_4O = ModelInfo("gpt-4o", "openai", 2.50, 10.00)
    GPT_4O_MINI = ModelInfo("gpt-4o-mini", "openai", 0.15, 0.60)
    GPT_4_TURBO = ModelInfo("gpt-4-turbo", "openai", 10.00, 30.00)
    GPT_4 = ModelInfo("gpt-4", "openai", 30.00, 60.00)
    GPT_3_5_TURBO = ModelInfo("gpt-3.5-turbo", "openai", 0.50, 1.50)
    O1_PREVIEW = ModelInfo("o1-preview", "openai", 15.00, 60.00)
    O1_MINI = ModelInfo("o1-mini", "openai", 3.00, 12.00)


# =============================================================================
# Google Gemini
# =============================================================================


class Gemini:
    """Google Gemini models."""

    FLASH_2_0_EXP = ModelInfo("gemini-2.0-flash-exp", "gemini", 0.075, 0.30)
    PRO_1_5 = ModelInfo("gemini-1.5-pro", "gemini", 3.50, 10.50)
    FLASH_1_5 = ModelInfo("gemini-1.5-flash", "gemini", 0.075, 0.30)
    PRO_1_0 = ModelInfo("gemini-1.0-pro", "gemini", 0.50, 1.50)
    PRO = ModelInfo("gemini-pro", "gemini", 0.50, 1.50)


# =============================================================================
# Perplexity (OpenAI-compatible, no native function calling)
# =============================================================================


class Perplexity:
    """Perplexity Sonar models. Tool use is simulated through text."""

    SONAR_HUGE_ONLINE = ModelInfo(
        "llama-3.1-sonar-huge-128k-online", "perplexity", 5.00, 5.00, native_tools=False
    )
    SONAR_LARGE_ONLINE = ModelInfo(
        "llama-3.1-sonar-large-128k-online", "perplexity", 1.00, 1.00, native_tools=False
    )
    SONAR_SMALL_ONLINE = ModelInfo(
        "llama-3.1-sonar-small-128k-online", "perplexity", 0.20, 0.20, native_tools=False
    )
    SONAR_HUGE_CHAT = ModelInfo(
        "llama-3.1-sonar-huge-128k-chat", "perplexity", 5.00, 5.00, native_tools=False
    )
    SONAR_LARGE_CHAT = ModelInfo(
        "llama-3.1-sonar-large-128k-chat", "perplexity", 1.00, 1.00, native_tools=False
    )
    SONAR_SMALL_CHAT = ModelInfo(
        "llama-3.1-sonar-small-128k-chat", "perplexity", 0.20, 0.20, native_tools=False
    )


class Local:
    """Offline echo model. Free."""

    ECHO = ModelInfo("local-echo", "local", 0.0, 0.0, native_tools=False)


def _collect(*families: type) -> List[ModelInfo]:
    models: List[ModelInfo] = []
    for family in families:
        models.extend(
            value for name, value in vars(family).items() if isinstance(value, ModelInfo)
        )
    return models


ALL_MODELS: List[ModelInfo] = _collect(Anthropic, OpenAI, Gemini, Perplexity, Local)

MODELS_BY_KEY: Dict[Tuple[str, str], ModelInfo] = {
    (model.provider, model.id): model for model in ALL_MODELS
}

# Fallback pricing tier when a provider is asked about a model it does not know.
DEFAULT_MODELS: Dict[str, ModelInfo] = {
    "anthropic": Anthropic.SONNET_3_5,
    "openai": OpenAI.GPT_4O,
    "gemini": Gemini.FLASH_2_0_EXP,
    "perplexity": Perplexity.SONAR_LARGE_ONLINE,
    "local": Local.ECHO,
}


def models_for(provider: str) -> List[ModelInfo]:
    """Return all registered models for a provider, in declaration order."""
    return [model for model in ALL_MODELS if model.provider == provider]


__all__ = [
    "ModelInfo",
    "Anthropic",
    "OpenAI",
    "Gemini",
    "Perplexity",
    "Local",
    "ALL_MODELS",
    "MODELS_BY_KEY",
    "DEFAULT_MODELS",
    "models_for",
]

"""
Pricing lookups for the supported providers.

Prices derive from the model registry (models.py) and are stored there per
1M tokens. This module converts them to per-token rates and applies each
provider's default tier when a specific model key is missing.

Prices are subject to change - check provider documentation for current rates:
- Anthropic: https://www.anthropic.com/pricing
- OpenAI: https://openai.com/api/pricing/
- Google: https://ai.google.dev/pricing
- Perplexity: https://docs.perplexity.ai/guides/pricing
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .models import ALL_MODELS, DEFAULT_MODELS, MODELS_BY_KEY

logger = logging.getLogger(__name__)

# Per-1M-token prices keyed by "provider/model"
PRICING: Dict[str, Dict[str, float]] = {
    f"{model.provider}/{model.id}": {"prompt": model.prompt_cost, "completion": model.completion_cost}
    for model in ALL_MODELS
}


@dataclass(frozen=True)
class ModelPricing:
    """Per-token prices for one (provider, model) pair."""

    provider: str
    model: str
    input_cost_per_token: float
    output_cost_per_token: float
    currency: str = "USD"
    is_default: bool = False

    def cost(self, input_tokens: Optional[int], output_tokens: Optional[int]) -> float:
        """Missing token counts contribute nothing."""
        return (input_tokens or 0) * self.input_cost_per_token + (
            output_tokens or 0
        ) * self.output_cost_per_token


def get_model_pricing(provider: str, model: str) -> ModelPricing:
    """
    Return per-token pricing for a model.

    Falls back to the provider's default tier when the model is unknown, and
    to a free tier (with a warning) when the provider itself is unknown.
    """
    info = MODELS_BY_KEY.get((provider, model))
    is_default = False
    if info is None:
        info = DEFAULT_MODELS.get(provider)
        is_default = True
        if info is None:
            logger.warning(
                "Unknown provider '%s' - cannot price model '%s'. Returning $0.00.",
                provider,
                model,
            )
            return ModelPricing(provider, model, 0.0, 0.0, is_default=True)
        logger.debug(
            "No pricing for %s/%s, using default tier %s", provider, model, info.id
        )

    return ModelPricing(
        provider=provider,
        model=model,
        input_cost_per_token=info.prompt_cost / 1_000_000,
        output_cost_per_token=info.completion_cost / 1_000_000,
        is_default=is_default,
    )


def calculate_cost(
    provider: str, model: str, input_tokens: Optional[int], output_tokens: Optional[int]
) -> float:
    """
    Calculate cost in USD for given token usage.

    Args:
        provider: Provider name (e.g., "anthropic").
        model: Model name (e.g., "claude-3-5-sonnet-20241022").
        input_tokens: Prompt tokens, or None if the vendor did not report them.
        output_tokens: Completion tokens, or None if the vendor did not report them.

    Returns:
        Estimated cost in USD.
    """
    return get_model_pricing(provider, model).cost(input_tokens, output_tokens)


__all__ = ["PRICING", "ModelPricing", "calculate_cost", "get_model_pricing"]

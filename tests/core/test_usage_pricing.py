"""
Tests for usage aggregation, the model registry and pricing lookups.
"""

from __future__ import annotations

import pytest

from huddle.models import ALL_MODELS, DEFAULT_MODELS, Anthropic, Perplexity, models_for
from huddle.pricing import PRICING, calculate_cost, get_model_pricing
from huddle.usage import ConversationUsage, UsageStats


class TestUsageStats:
    def test_total_derived_from_parts(self) -> None:
        assert UsageStats(input_tokens=100, output_tokens=50).total_tokens == 150

    def test_vendor_total_is_kept(self) -> None:
        assert UsageStats(input_tokens=100, output_tokens=50, total_tokens=160).total_tokens == 160

    def test_missing_counts_stay_undefined(self) -> None:
        stats = UsageStats()
        assert stats.input_tokens is None
        assert stats.total_tokens is None
        assert not stats.reported


class TestConversationUsage:
    def test_aggregates_and_counts_unreported(self) -> None:
        usage = ConversationUsage()
        usage.add_usage(UsageStats(input_tokens=100, output_tokens=20, cost_usd=0.01))
        usage.add_usage(UsageStats(cost_usd=0.0))
        usage.add_tool_call("web_search")
        usage.add_tool_call("web_search")

        assert usage.total_input_tokens == 100
        assert usage.total_tokens == 120
        assert usage.unreported_calls == 1
        assert usage.to_dict()["provider_calls"] == 2
        assert usage.tool_usage == {"web_search": 2}
        assert "web_search: 2 calls" in str(usage)


class TestModelRegistry:
    def test_every_provider_has_default(self) -> None:
        for provider in ("anthropic", "openai", "gemini", "perplexity", "local"):
            assert DEFAULT_MODELS[provider].provider == provider
            assert models_for(provider)

    def test_ids_unique_per_provider(self) -> None:
        keys = [(m.provider, m.id) for m in ALL_MODELS]
        assert len(keys) == len(set(keys))

    def test_perplexity_has_no_native_tools(self) -> None:
        assert all(not m.native_tools for m in models_for("perplexity"))
        assert Perplexity.SONAR_LARGE_ONLINE.id == "llama-3.1-sonar-large-128k-online"


class TestPricing:
    def test_known_model(self) -> None:
        cost = calculate_cost("anthropic", Anthropic.SONNET_3_5.id, 1_000_000, 1_000_000)
        assert cost == pytest.approx(18.0)
        assert PRICING["anthropic/claude-3-5-sonnet-20241022"] == {"prompt": 3.0, "completion": 15.0}

    def test_unknown_model_uses_provider_default(self) -> None:
        pricing = get_model_pricing("openai", "gpt-unknown")
        assert pricing.is_default
        assert pricing.input_cost_per_token == pytest.approx(2.5e-6)

    def test_unknown_provider_is_free(self) -> None:
        assert calculate_cost("mystery", "x", 1000, 1000) == 0.0

    def test_missing_counts_cost_nothing(self) -> None:
        assert calculate_cost("openai", "gpt-4o", None, None) == 0.0
        assert calculate_cost("openai", "gpt-4o", 1000, None) == pytest.approx(0.0025)

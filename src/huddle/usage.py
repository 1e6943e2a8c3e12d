"""
Token usage and cost tracking for LLM API calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class UsageStats:
    """
    Tracks token usage and cost for a single provider call.

    Token counts stay ``None`` when the vendor omits them; they are never
    fabricated.

    Attributes:
        input_tokens: Tokens in the prompt, or None if not reported.
        output_tokens: Tokens in the completion, or None if not reported.
        total_tokens: Total reported by the vendor, else the sum of the parts.
        cost_usd: Estimated cost in USD for this call.
        model: Model name used for this call.
        provider: Provider name (openai, anthropic, gemini, perplexity...).
    """

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    cost_usd: float = 0.0
    model: str = ""
    provider: str = ""

    def __post_init__(self):
        """Derive total_tokens when the vendor reported only the parts."""
        if self.total_tokens is None and (
            self.input_tokens is not None or self.output_tokens is not None
        ):
            self.total_tokens = (self.input_tokens or 0) + (self.output_tokens or 0)

    @property
    def reported(self) -> bool:
        return self.input_tokens is not None or self.output_tokens is not None


@dataclass
class ConversationUsage:
    """
    Aggregates usage stats across the provider calls of one conversation.

    Attributes:
        total_input_tokens: Cumulative input tokens across all calls.
        total_output_tokens: Cumulative output tokens across all calls.
        total_tokens: Cumulative total tokens across all calls.
        total_cost_usd: Cumulative cost in USD across all calls.
        unreported_calls: Calls whose vendor reported no usage at all.
        tool_usage: Dictionary mapping tool names to dispatch counts.
        calls: List of UsageStats for each provider call.
    """

    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    unreported_calls: int = 0

    tool_usage: Dict[str, int] = field(default_factory=dict)
    calls: List[UsageStats] = field(default_factory=list)

    def add_usage(self, stats: UsageStats) -> None:
        """Add usage stats from a single provider call."""
        if not stats.reported:
            self.unreported_calls += 1
        self.total_input_tokens += stats.input_tokens or 0
        self.total_output_tokens += stats.output_tokens or 0
        self.total_tokens += stats.total_tokens or 0
        self.total_cost_usd += stats.cost_usd
        self.calls.append(stats)

    def add_tool_call(self, tool_name: str) -> None:
        self.tool_usage[tool_name] = self.tool_usage.get(tool_name, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for logging/display."""
        return {
            "total_tokens": self.total_tokens,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost_usd": round(self.total_cost_usd, 6),
            "tool_usage": self.tool_usage,
            "provider_calls": len(self.calls),
            "unreported_calls": self.unreported_calls,
        }

    def __str__(self) -> str:
        lines = [
            "\n" + "=" * 60,
            "📊 Usage Summary",
            "=" * 60,
            f"Total Tokens: {self.total_tokens:,}",
            f"  - Input: {self.total_input_tokens:,}",
            f"  - Output: {self.total_output_tokens:,}",
            f"Total Cost: ${self.total_cost_usd:.6f}",
            f"Provider Calls: {len(self.calls)}",
        ]
        if self.unreported_calls:
            lines.append(f"  - without usage data: {self.unreported_calls}")

        if self.tool_usage:
            lines.append("\nTool Usage:")
            for tool_name, count in sorted(self.tool_usage.items(), key=lambda x: -x[1]):
                lines.append(f"  - {tool_name}: {count} calls")

        lines.append("=" * 60 + "\n")
        return "\n".join(lines)


__all__ = ["UsageStats", "ConversationUsage"]

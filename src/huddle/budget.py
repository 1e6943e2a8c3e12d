"""
Per-conversation budget: turn and tool-call ceilings plus accumulated spend.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import BudgetExceededError
from .usage import ConversationUsage, UsageStats


@dataclass
class Budget:
    """
    Mutable ledger owned by exactly one conversation.

    ``turns_used`` counts provider round-trips that returned a response and
    ``tool_calls_used`` counts accepted dispatches, successful or not. Both
    are hard ceilings: the ``record_*`` methods refuse to go past them.
    """

    turns_max: int = 10
    tool_calls_max: int = 5
    turns_used: int = 0
    tool_calls_used: int = 0
    accumulated_cost: float = 0.0
    usage: ConversationUsage = field(default_factory=ConversationUsage)

    def __post_init__(self) -> None:
        if self.turns_max < 1:
            raise ValueError("turns_max must be at least 1")
        if self.tool_calls_max < 0:
            raise ValueError("tool_calls_max must not be negative")

    @property
    def turns_remaining(self) -> int:
        return self.turns_max - self.turns_used

    @property
    def tool_calls_remaining(self) -> int:
        return self.tool_calls_max - self.tool_calls_used

    @property
    def turns_exhausted(self) -> bool:
        return self.turns_used >= self.turns_max

    @property
    def tools_exhausted(self) -> bool:
        return self.tool_calls_used >= self.tool_calls_max

    def can_call_provider(self) -> bool:
        return not self.turns_exhausted

    def can_dispatch_tool(self) -> bool:
        return not self.tools_exhausted

    def record_provider_call(self, usage: UsageStats) -> None:
        """Count one completed round-trip and add its cost."""
        if self.turns_exhausted:
            raise BudgetExceededError("turn", self.turns_used + 1, self.turns_max)
        self.turns_used += 1
        self.accumulated_cost += usage.cost_usd
        self.usage.add_usage(usage)

    def record_tool_call(self, tool_name: str) -> None:
        """Count one accepted dispatch."""
        if self.tools_exhausted:
            raise BudgetExceededError("tool-call", self.tool_calls_used + 1, self.tool_calls_max)
        self.tool_calls_used += 1
        self.usage.add_tool_call(tool_name)

    def snapshot(self) -> dict:
        return {
            "turns_used": self.turns_used,
            "turns_max": self.turns_max,
            "tool_calls_used": self.tool_calls_used,
            "tool_calls_max": self.tool_calls_max,
            "accumulated_cost": round(self.accumulated_cost, 6),
        }


__all__ = ["Budget"]

"""
Conversation states and the result object returned by a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..types import FinishReason, Message, ToolResult
from ..usage import ConversationUsage


class ConversationState(str, Enum):
    AWAITING_PROVIDER = "awaiting_provider"
    HAS_RESPONSE = "has_response"
    DISPATCHING_TOOLS = "dispatching_tools"
    TERMINAL = "terminal"


class Termination(str, Enum):
    """Why a run reached ``TERMINAL``."""

    COMPLETED = "completed"
    TURN_LIMIT = "turn_limit"
    FALLBACK = "fallback"
    TRUNCATED = "truncated"
    EMPTY = "empty"


@dataclass
class ConversationResult:
    """
    Outcome of one orchestrator run.

    Attributes:
        content: Final answer, or an explanatory placeholder when the turn
            limit was reached or the model answered with nothing.
        state: Always ``TERMINAL`` for a returned result.
        termination: Which terminal case fired. ``TRUNCATED`` when the final
            response stopped on length or a content filter, ``EMPTY`` when it
            carried no text.
        finish_reason: Finish reason of the last provider response, if any.
        turns_used: Provider round-trips made.
        tool_calls_used: Accepted tool dispatches.
        cost_usd: Accumulated estimated cost.
        messages: Full history, in order, including the final answer.
        tool_results: Every tool result of the run, in order.
        usage: Aggregated token usage.
        used_fallback: True when the tools-free fallback produced the answer.
    """

    content: str
    state: ConversationState = ConversationState.TERMINAL
    termination: Termination = Termination.COMPLETED
    turns_used: int = 0
    tool_calls_used: int = 0
    cost_usd: float = 0.0
    messages: Tuple[Message, ...] = ()
    tool_results: List[ToolResult] = field(default_factory=list)
    usage: ConversationUsage = field(default_factory=ConversationUsage)
    used_fallback: bool = False
    finish_reason: Optional[FinishReason] = None

    @property
    def completed(self) -> bool:
        return self.termination == Termination.COMPLETED

    @property
    def truncated(self) -> bool:
        return self.termination == Termination.TRUNCATED


__all__ = ["ConversationState", "Termination", "ConversationResult"]

"""
Core message and response types for the orchestration layer.

These primitives are provider-agnostic and are reused across adapters,
the conversation loop, and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .usage import UsageStats


class Role(str, Enum):
    """Conversation role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class FinishReason(str, Enum):
    """Why the provider stopped generating."""

    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"

    @classmethod
    def parse(cls, value: Any) -> Optional["FinishReason"]:
        """Map a vendor string to a FinishReason, or None when unrecognised."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


TERMINAL_FINISH_REASONS = frozenset(
    {FinishReason.STOP, FinishReason.LENGTH, FinishReason.CONTENT_FILTER}
)


class ToolCallingMode(str, Enum):
    """How tool calls reached us: the vendor's function-calling API or text parsing."""

    NATIVE = "native"
    SIMULATED = "simulated"
    NONE = "none"


@dataclass(frozen=True)
class Message:
    """A single conversation message. Frozen: history is append-only."""

    role: Role
    content: str

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain-JSON-safe representation for logging or debugging."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class ToolCall:
    """A tool invocation requested by the model. Not yet validated."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None


@dataclass
class ToolResult:
    """
    Outcome of one accepted or rejected tool invocation.

    ``error`` is set for executor failures as well as for rejected requests;
    ``reason`` carries a machine-readable code for the latter
    (``"unknown_tool"``, ``"invalid_arguments"``, ``"budget_exhausted"``).
    """

    tool_name: str
    output_text: str = ""
    error: Optional[str] = None
    reason: Optional[str] = None
    arguments: Dict[str, Any] = field(default_factory=dict)
    dispatched: bool = False
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def render(self) -> str:
        """Text block used inside the consolidated tool-result message."""
        if self.error is None:
            return f'Tool "{self.tool_name}" result:\n{self.output_text}'
        label = f" ({self.reason})" if self.reason else ""
        return f'Tool "{self.tool_name}" failed{label}: {self.error}'


@dataclass
class ChatResponse:
    """
    Vendor-neutral reply from a provider adapter.

    ``tool_calling_mode`` tells the orchestrator whether ``tool_calls`` came
    from native function calling or from parsing free text. Simulated calls
    are lower confidence and are always validated before dispatch.
    """

    content: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: UsageStats = field(default_factory=UsageStats)
    finish_reason: Optional[FinishReason] = None
    tool_calling_mode: ToolCallingMode = ToolCallingMode.NONE
    provider: str = ""
    model: str = ""
    response_time_ms: float = 0.0

    @property
    def wants_tools(self) -> bool:
        """
        True when the response asks for more tool use.

        An explicit stop-like finish reason wins over any tool calls. A missing
        or unrecognised finish reason with tool calls present counts as a tool
        request; those calls are validated before anything is dispatched.
        """
        if not self.tool_calls:
            return False
        return self.finish_reason not in TERMINAL_FINISH_REASONS


__all__ = [
    "Role",
    "FinishReason",
    "TERMINAL_FINISH_REASONS",
    "ToolCallingMode",
    "Message",
    "ToolCall",
    "ToolResult",
    "ChatResponse",
]

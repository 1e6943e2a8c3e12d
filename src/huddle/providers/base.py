"""
Provider abstraction for model-agnostic chat with tools.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..exceptions import ProviderError
from ..pricing import ModelPricing, get_model_pricing
from ..tools.base import ToolDefinition
from ..types import ChatResponse, Message, Role

logger = logging.getLogger(__name__)

TOOL_CHOICE_AUTO = "auto"
TOOL_CHOICE_NONE = "none"


@dataclass
class ChatOptions:
    """
    Per-call options for ``Provider.chat``.

    Attributes:
        tools: Tool definitions to offer. None or empty means no tools.
        max_tokens: Output token cap; falls back to the adapter's default.
        temperature: Sampling temperature; falls back to the adapter's default.
        tool_choice: ``"auto"``, ``"none"``, or the name of one tool to force.
        timeout: Optional request timeout in seconds.
    """

    tools: Optional[List[ToolDefinition]] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    tool_choice: str = TOOL_CHOICE_AUTO
    timeout: Optional[float] = None

    @property
    def offers_tools(self) -> bool:
        return bool(self.tools) and self.tool_choice != TOOL_CHOICE_NONE

    @property
    def forced_tool(self) -> Optional[str]:
        if self.tool_choice in (TOOL_CHOICE_AUTO, TOOL_CHOICE_NONE):
            return None
        return self.tool_choice


@runtime_checkable
class Provider(Protocol):
    """
    Interface every provider adapter must satisfy.

    Adapters translate vendor-neutral messages and tool definitions into one
    vendor's wire format and back. They never retry; wrap calls with
    ``huddle.retry.call_with_retry`` for that.
    """

    name: str
    models: List[str]
    default_model: str
    model: str
    supports_native_tools: bool

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        """
        Send the conversation and return the vendor's reply.

        Raises:
            ProviderError: On network failure, non-2xx response, or a
                malformed response body.
        """
        ...

    def pricing(self, model: Optional[str] = None) -> ModelPricing:
        """Per-token pricing for ``model`` (default: the adapter's model)."""
        return get_model_pricing(self.name, model or self.model)

    async def validate(self) -> bool:
        """
        Probe the configured credentials with a tiny request.

        Returns True when the model answers "OK". Failures are logged and
        reported as False.
        """
        probe = [Message(role=Role.USER, content='Hello, this is a test. Please respond with just "OK".')]
        try:
            response = await self.chat(probe, ChatOptions(max_tokens=10))
        except ProviderError as exc:
            logger.error("%s config validation failed: %s", self.name, exc)
            return False
        return "ok" in response.content.lower()


def split_system(messages: Sequence[Message]) -> Tuple[str, List[Message]]:
    """
    Separate leading system messages for vendors that take them out of band.

    System messages that appear later in the history keep their position and
    become user messages prefixed with ``System:``. Consecutive messages with
    the same role are merged, since several vendors require alternation.
    """
    system_parts: List[str] = []
    rest: List[Message] = []
    leading = True
    for message in messages:
        if message.role == Role.SYSTEM:
            if leading:
                system_parts.append(message.content.strip())
                continue
            message = Message(role=Role.USER, content=f"System: {message.content.strip()}")
        else:
            leading = False
        rest.append(message)
    return "\n\n".join(p for p in system_parts if p), merge_consecutive(rest)


def merge_consecutive(messages: Sequence[Message]) -> List[Message]:
    merged: List[Message] = []
    for message in messages:
        content = message.content.strip()
        if merged and merged[-1].role == message.role:
            previous = merged.pop()
            content = f"{previous.content}\n\n{content}".strip()
        merged.append(Message(role=message.role, content=content))
    return merged


__all__ = [
    "Provider",
    "ProviderError",
    "ChatOptions",
    "TOOL_CHOICE_AUTO",
    "TOOL_CHOICE_NONE",
    "split_system",
    "merge_consecutive",
]

"""
Anthropic provider adapter.
"""

from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional, Sequence

from ..env import load_default_env
from ..exceptions import ProviderConfigurationError
from ..models import Anthropic as AnthropicModels
from ..models import models_for
from ..tools.base import ToolDefinition
from ..types import ChatResponse, FinishReason, Message, ToolCall, ToolCallingMode
from ..usage import UsageStats
from .base import (
    TOOL_CHOICE_AUTO,
    TOOL_CHOICE_NONE,
    ChatOptions,
    Provider,
    ProviderError,
    split_system,
)

_STOP_REASONS = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "tool_use": FinishReason.TOOL_CALLS,
    "max_tokens": FinishReason.LENGTH,
    "refusal": FinishReason.CONTENT_FILTER,
}


class AnthropicProvider(Provider):
    """Anthropic Messages API adapter with native tool use."""

    name = "anthropic"
    supports_native_tools = True
    default_model = AnthropicModels.SONNET_3_5.id
    models = [m.id for m in models_for("anthropic")]

    def __init__(
        self,
        api_key: str | None = None,
        model: str = AnthropicModels.SONNET_3_5.id,
        base_url: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ):
        load_default_env()
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY") or os.getenv("CLAUDE_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError(
                provider_name="anthropic", missing_config="API key", env_var="ANTHROPIC_API_KEY"
            )

        try:
            from anthropic import AsyncAnthropic
        except ImportError as exc:
            raise ProviderError(
                self.name,
                "anthropic package not installed. Install with `pip install anthropic`.",
                cause=exc,
            ) from exc

        self._client = AsyncAnthropic(api_key=self.api_key, base_url=base_url, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        """
        Call Anthropic's messages API.

        Leading system messages go into the separate ``system`` field, which
        the Messages API requires.

        Raises:
            ProviderError: If the API call fails or the body has no content.
        """
        options = options or ChatOptions()
        system_prompt, conversation = split_system(messages)
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": self._format_messages(conversation),
            "max_tokens": options.max_tokens or self.max_tokens,
            "temperature": self.temperature if options.temperature is None else options.temperature,
        }
        if system_prompt:
            request["system"] = system_prompt
        if options.tools:
            request["tools"] = [self._format_tool(tool) for tool in options.tools]
            request["tool_choice"] = self._format_tool_choice(options.tool_choice)
        if options.timeout is not None:
            request["timeout"] = options.timeout

        started = time.monotonic()
        try:
            response = await self._client.messages.create(**request)
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(self.name, f"completion failed: {exc}", cause=exc) from exc

        blocks = getattr(response, "content", None)
        if blocks is None:
            raise ProviderError(self.name, "malformed response: missing content", transient=False)

        text_chunks: List[str] = []
        tool_calls: List[ToolCall] = []
        for block in blocks:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                text_chunks.append(block.text)
            elif block_type == "tool_use":
                arguments = block.input if isinstance(block.input, dict) else {}
                tool_calls.append(ToolCall(name=block.name, arguments=arguments, id=block.id))

        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "input_tokens", None) if usage else None
        output_tokens = getattr(usage, "output_tokens", None) if usage else None

        return ChatResponse(
            content="".join(text_chunks).strip(),
            tool_calls=tool_calls,
            usage=UsageStats(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost_usd=self.pricing().cost(input_tokens, output_tokens),
                model=self.model,
                provider=self.name,
            ),
            finish_reason=_STOP_REASONS.get(getattr(response, "stop_reason", None) or ""),
            tool_calling_mode=ToolCallingMode.NATIVE if options.tools else ToolCallingMode.NONE,
            provider=self.name,
            model=self.model,
            response_time_ms=(time.monotonic() - started) * 1000,
        )

    def _format_messages(self, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        return [
            {"role": m.role.value, "content": [{"type": "text", "text": m.content}]}
            for m in messages
        ]

    def _format_tool(self, tool: ToolDefinition) -> Dict[str, Any]:
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.input_schema,
        }

    def _format_tool_choice(self, tool_choice: str) -> Dict[str, str]:
        if tool_choice == TOOL_CHOICE_AUTO:
            return {"type": "auto"}
        if tool_choice == TOOL_CHOICE_NONE:
            return {"type": "none"}
        return {"type": "tool", "name": tool_choice}


__all__ = ["AnthropicProvider"]

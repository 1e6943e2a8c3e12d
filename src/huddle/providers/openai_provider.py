"""
OpenAI provider adapter.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, List, Optional, Sequence

from ..env import load_default_env
from ..exceptions import ProviderConfigurationError
from ..models import OpenAI as OpenAIModels
from ..models import models_for
from ..tools.base import ToolDefinition
from ..types import ChatResponse, FinishReason, Message, ToolCall, ToolCallingMode
from ..usage import UsageStats
from .base import TOOL_CHOICE_AUTO, TOOL_CHOICE_NONE, ChatOptions, Provider, ProviderError

logger = logging.getLogger(__name__)


def format_openai_messages(messages: Sequence[Message]) -> List[Dict[str, str]]:
    """Chat Completions accepts user/assistant/system roles inline."""
    return [{"role": m.role.value, "content": m.content.strip()} for m in messages]


def openai_usage(response: Any, provider: str, model: str, pricing) -> UsageStats:
    """Build UsageStats from a Chat Completions ``usage`` block, which may be absent."""
    usage = getattr(response, "usage", None)
    input_tokens = getattr(usage, "prompt_tokens", None) if usage else None
    output_tokens = getattr(usage, "completion_tokens", None) if usage else None
    total_tokens = getattr(usage, "total_tokens", None) if usage else None
    return UsageStats(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
        cost_usd=pricing.cost(input_tokens, output_tokens),
        model=model,
        provider=provider,
    )


def first_choice(response: Any, provider: str) -> Any:
    choices = getattr(response, "choices", None)
    if not choices or getattr(choices[0], "message", None) is None:
        raise ProviderError(provider, "malformed response: no message in choices", transient=False)
    return choices[0]


class OpenAIProvider(Provider):
    """Adapter that speaks to OpenAI's Chat Completions API with native tools."""

    name = "openai"
    supports_native_tools = True
    default_model = OpenAIModels.GPT_4O.id
    models = [m.id for m in models_for("openai")]

    def __init__(
        self,
        api_key: str | None = None,
        model: str = OpenAIModels.GPT_4O.id,
        base_url: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ):
        load_default_env()
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError(
                provider_name="openai", missing_config="API key", env_var="OPENAI_API_KEY"
            )

        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise ProviderError(
                self.name, "openai package not installed. Install with `pip install openai`.", cause=exc
            ) from exc

        # Retries are owned by huddle.retry, not the SDK.
        self._client = AsyncOpenAI(api_key=self.api_key, base_url=base_url, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        options = options or ChatOptions()
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": format_openai_messages(messages),
            "max_tokens": options.max_tokens or self.max_tokens,
            "temperature": self.temperature if options.temperature is None else options.temperature,
        }
        if options.tools:
            request["tools"] = [self._format_tool(tool) for tool in options.tools]
            request["tool_choice"] = self._format_tool_choice(options.tool_choice)
        if options.timeout is not None:
            request["timeout"] = options.timeout

        started = time.monotonic()
        try:
            response = await self._client.chat.completions.create(**request)
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(self.name, f"completion failed: {exc}", cause=exc) from exc

        choice = first_choice(response, self.name)
        message = choice.message
        tool_calls = self._parse_tool_calls(getattr(message, "tool_calls", None))

        return ChatResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            usage=openai_usage(response, self.name, self.model, self.pricing()),
            finish_reason=FinishReason.parse(getattr(choice, "finish_reason", None)),
            tool_calling_mode=ToolCallingMode.NATIVE if options.tools else ToolCallingMode.NONE,
            provider=self.name,
            model=self.model,
            response_time_ms=(time.monotonic() - started) * 1000,
        )

    def _format_tool(self, tool: ToolDefinition) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }

    def _format_tool_choice(self, tool_choice: str) -> Any:
        if tool_choice in (TOOL_CHOICE_AUTO, TOOL_CHOICE_NONE):
            return tool_choice
        return {"type": "function", "function": {"name": tool_choice}}

    def _parse_tool_calls(self, raw_calls: Any) -> List[ToolCall]:
        calls: List[ToolCall] = []
        for raw in raw_calls or []:
            function = getattr(raw, "function", None)
            if function is None:
                continue
            try:
                arguments = json.loads(function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(
                    "Dropping %s tool call with undecodable arguments: %r",
                    function.name,
                    function.arguments,
                )
                continue
            if not isinstance(arguments, dict):
                logger.warning("Dropping %s tool call: arguments are not an object", function.name)
                continue
            calls.append(ToolCall(name=function.name, arguments=arguments, id=getattr(raw, "id", None)))
        return calls


__all__ = ["OpenAIProvider", "format_openai_messages", "openai_usage", "first_choice"]

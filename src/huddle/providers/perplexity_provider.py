"""
Perplexity provider adapter.

Perplexity serves an OpenAI-compatible Chat Completions endpoint but has no
function calling, so tools are degraded to the text-simulated channel: the
catalogue is appended to the last user message and the reply is scanned for
``name: {json}`` directives.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, List, Optional, Sequence

from ..env import load_default_env
from ..exceptions import ProviderConfigurationError
from ..models import Perplexity as PerplexityModels
from ..models import models_for
from ..parser import ToolCallParser
from ..prompt import PromptBuilder
from ..tools.base import ToolDefinition
from ..types import ChatResponse, FinishReason, Message, Role, ToolCallingMode
from .base import ChatOptions, Provider, ProviderError, split_system
from .openai_provider import first_choice, format_openai_messages, openai_usage

logger = logging.getLogger(__name__)

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"


class PerplexityProvider(Provider):
    """Perplexity Sonar adapter with text-simulated tool calling."""

    name = "perplexity"
    supports_native_tools = False
    default_model = PerplexityModels.SONAR_LARGE_ONLINE.id
    models = [m.id for m in models_for("perplexity")]

    def __init__(
        self,
        api_key: str | None = None,
        model: str = PerplexityModels.SONAR_LARGE_ONLINE.id,
        base_url: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        parser: ToolCallParser | None = None,
        prompt_builder: PromptBuilder | None = None,
    ):
        load_default_env()
        self.api_key = api_key or os.getenv("PERPLEXITY_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError(
                provider_name="perplexity", missing_config="API key", env_var="PERPLEXITY_API_KEY"
            )

        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise ProviderError(
                self.name, "openai package not installed. Install with `pip install openai`.", cause=exc
            ) from exc

        self._client = AsyncOpenAI(
            api_key=self.api_key, base_url=base_url or PERPLEXITY_BASE_URL, max_retries=0
        )
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.parser = parser or ToolCallParser()
        self.prompt_builder = prompt_builder or PromptBuilder()

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        """
        Call Perplexity, simulating tools through the prompt when offered.

        Perplexity requires strict user/assistant alternation after the
        system message, so mid-history system notices are folded into the
        neighbouring user turn.
        """
        options = options or ChatOptions()
        system_prompt, conversation = split_system(messages)
        tools = self._offered_tools(options)
        if tools:
            conversation = self._with_tool_catalogue(conversation, tools)

        history: List[Message] = []
        if system_prompt:
            history.append(Message(role=Role.SYSTEM, content=system_prompt))
        history.extend(conversation)

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": format_openai_messages(history),
            "max_tokens": options.max_tokens or self.max_tokens,
            "temperature": self.temperature if options.temperature is None else options.temperature,
        }
        if options.timeout is not None:
            request["timeout"] = options.timeout

        started = time.monotonic()
        try:
            response = await self._client.chat.completions.create(**request)
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(self.name, f"completion failed: {exc}", cause=exc) from exc

        choice = first_choice(response, self.name)
        content = choice.message.content or ""
        finish_reason = FinishReason.parse(getattr(choice, "finish_reason", None))

        tool_calls = []
        mode = ToolCallingMode.NONE
        if tools:
            mode = ToolCallingMode.SIMULATED
            parsed = self.parser.parse(content, [tool.name for tool in tools])
            if parsed.tool_calls:
                logger.debug(
                    "Parsed %d simulated tool call(s) from %s reply",
                    len(parsed.tool_calls),
                    self.name,
                )
                tool_calls = parsed.tool_calls
                content = parsed.remaining_text
                # The vendor reports "stop"; the parsed directives are the request.
                if finish_reason in (None, FinishReason.STOP):
                    finish_reason = FinishReason.TOOL_CALLS

        return ChatResponse(
            content=content,
            tool_calls=tool_calls,
            usage=openai_usage(response, self.name, self.model, self.pricing()),
            finish_reason=finish_reason,
            tool_calling_mode=mode,
            provider=self.name,
            model=self.model,
            response_time_ms=(time.monotonic() - started) * 1000,
        )

    def _offered_tools(self, options: ChatOptions) -> List[ToolDefinition]:
        if not options.offers_tools:
            return []
        forced = options.forced_tool
        if forced:
            return [tool for tool in options.tools or [] if tool.name == forced]
        return list(options.tools or [])

    def _with_tool_catalogue(
        self, conversation: List[Message], tools: List[ToolDefinition]
    ) -> List[Message]:
        catalogue = self.prompt_builder.simulated_tools(tools)
        for index in range(len(conversation) - 1, -1, -1):
            if conversation[index].role == Role.USER:
                updated = Message(
                    role=Role.USER, content=f"{conversation[index].content}\n\n{catalogue}"
                )
                return conversation[:index] + [updated] + conversation[index + 1 :]
        return conversation + [Message(role=Role.USER, content=catalogue)]


__all__ = ["PerplexityProvider", "PERPLEXITY_BASE_URL"]

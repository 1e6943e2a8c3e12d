"""
Google Gemini provider adapter using the google-genai SDK.

Uses the centralized Client API (``client.aio.models.generate_content``) with
function declarations for native tool calling. Automatic function calling is
disabled: the orchestrator, not the SDK, decides what gets dispatched.
See: https://ai.google.dev/gemini-api/docs/function-calling
"""

from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional, Sequence

from ..env import load_default_env
from ..exceptions import ProviderConfigurationError
from ..models import Gemini as GeminiModels
from ..models import models_for
from ..tools.base import JsonSchema, ToolDefinition
from ..types import ChatResponse, FinishReason, Message, Role, ToolCall, ToolCallingMode
from ..usage import UsageStats
from .base import (
    TOOL_CHOICE_AUTO,
    TOOL_CHOICE_NONE,
    ChatOptions,
    Provider,
    ProviderError,
    split_system,
)

_FINISH_REASONS = {
    "STOP": FinishReason.STOP,
    "MAX_TOKENS": FinishReason.LENGTH,
    "SAFETY": FinishReason.CONTENT_FILTER,
    "RECITATION": FinishReason.CONTENT_FILTER,
    "BLOCKLIST": FinishReason.CONTENT_FILTER,
    "PROHIBITED_CONTENT": FinishReason.CONTENT_FILTER,
}


def gemini_schema(schema: JsonSchema) -> JsonSchema:
    """Gemini's Schema type wants upper-case type names (``STRING``, ``OBJECT``...)."""
    converted: JsonSchema = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            converted[key] = value.upper()
        elif key == "properties" and isinstance(value, dict):
            converted[key] = {name: gemini_schema(prop) for name, prop in value.items()}
        elif key == "items" and isinstance(value, dict):
            converted[key] = gemini_schema(value)
        else:
            converted[key] = value
    return converted


class GeminiProvider(Provider):
    """
    Google Gemini adapter.

    Gemini reports ``STOP`` even when the candidate holds function calls, so
    a reply with calls and a ``STOP`` reason is reported as ``tool_calls``.
    """

    name = "gemini"
    supports_native_tools = True
    default_model = GeminiModels.FLASH_2_0_EXP.id
    models = [m.id for m in models_for("gemini")]

    def __init__(
        self,
        api_key: str | None = None,
        model: str = GeminiModels.FLASH_2_0_EXP.id,
        base_url: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ):
        load_default_env()
        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError(
                provider_name="gemini", missing_config="API key", env_var="GEMINI_API_KEY"
            )

        try:
            from google import genai
        except ImportError as exc:
            raise ProviderError(
                self.name,
                "google-genai package not installed. Install with `pip install google-genai`.",
                cause=exc,
            ) from exc

        http_options = {"base_url": base_url} if base_url else None
        self._client = genai.Client(api_key=self.api_key, http_options=http_options)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        from google.genai import types

        options = options or ChatOptions()
        system_prompt, conversation = split_system(messages)

        config_kwargs: Dict[str, Any] = {
            "temperature": self.temperature if options.temperature is None else options.temperature,
            "max_output_tokens": options.max_tokens or self.max_tokens,
            "system_instruction": system_prompt or None,
        }
        if options.tools:
            config_kwargs["tools"] = [
                types.Tool(
                    function_declarations=[self._format_tool(types, tool) for tool in options.tools]
                )
            ]
            config_kwargs["tool_config"] = self._format_tool_config(types, options.tool_choice)
            config_kwargs["automatic_function_calling"] = types.AutomaticFunctionCallingConfig(
                disable=True
            )
        config = types.GenerateContentConfig(**config_kwargs)

        started = time.monotonic()
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=self._format_contents(types, conversation),
                config=config,
            )
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(self.name, f"completion failed: {exc}", cause=exc) from exc

        candidates = getattr(response, "candidates", None)
        if not candidates:
            raise ProviderError(self.name, "malformed response: no candidates", transient=False)
        candidate = candidates[0]

        text_chunks: List[str] = []
        tool_calls: List[ToolCall] = []
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            function_call = getattr(part, "function_call", None)
            if function_call is not None:
                tool_calls.append(
                    ToolCall(
                        name=function_call.name,
                        arguments=dict(function_call.args or {}),
                        id=getattr(function_call, "id", None),
                    )
                )
            elif getattr(part, "text", None):
                text_chunks.append(part.text)

        finish_reason = self._map_finish_reason(getattr(candidate, "finish_reason", None))
        if tool_calls and finish_reason == FinishReason.STOP:
            finish_reason = FinishReason.TOOL_CALLS

        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", None) if usage else None
        output_tokens = getattr(usage, "candidates_token_count", None) if usage else None
        total_tokens = getattr(usage, "total_token_count", None) if usage else None

        return ChatResponse(
            content="".join(text_chunks),
            tool_calls=tool_calls,
            usage=UsageStats(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=total_tokens,
                cost_usd=self.pricing().cost(input_tokens, output_tokens),
                model=self.model,
                provider=self.name,
            ),
            finish_reason=finish_reason,
            tool_calling_mode=ToolCallingMode.NATIVE if options.tools else ToolCallingMode.NONE,
            provider=self.name,
            model=self.model,
            response_time_ms=(time.monotonic() - started) * 1000,
        )

    def _format_contents(self, types: Any, messages: Sequence[Message]) -> List[Any]:
        """Map our roles to Gemini roles. System messages are already split out."""
        contents = []
        for message in messages:
            role = "model" if message.role == Role.ASSISTANT else "user"
            contents.append(types.Content(role=role, parts=[types.Part(text=message.content)]))
        return contents

    def _format_tool(self, types: Any, tool: ToolDefinition) -> Any:
        return types.FunctionDeclaration(
            name=tool.name,
            description=tool.description,
            parameters=gemini_schema(tool.input_schema),
        )

    def _format_tool_config(self, types: Any, tool_choice: str) -> Any:
        if tool_choice == TOOL_CHOICE_AUTO:
            calling = types.FunctionCallingConfig(mode="AUTO")
        elif tool_choice == TOOL_CHOICE_NONE:
            calling = types.FunctionCallingConfig(mode="NONE")
        else:
            calling = types.FunctionCallingConfig(mode="ANY", allowed_function_names=[tool_choice])
        return types.ToolConfig(function_calling_config=calling)

    @staticmethod
    def _map_finish_reason(raw: Any) -> Optional[FinishReason]:
        if raw is None:
            return None
        key = getattr(raw, "name", None) or str(raw).rsplit(".", 1)[-1]
        return _FINISH_REASONS.get(key.upper())


__all__ = ["GeminiProvider", "gemini_schema"]

"""
Local provider for offline testing and development.

This provider doesn't call any external API and simply echoes user messages.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..models import Local as LocalModels
from ..types import ChatResponse, FinishReason, Message, Role, ToolCallingMode
from ..usage import UsageStats
from .base import ChatOptions, Provider


class LocalProvider(Provider):
    """
    Local fallback provider.

    This does not call a model. It echoes the latest user content and never
    requests tools, so a conversation backed by it always ends in one turn.
    Used by ``huddle run --dry-run``.
    """

    name = "local"
    supports_native_tools = False
    default_model = LocalModels.ECHO.id
    models = [LocalModels.ECHO.id]

    def __init__(self, model: str = LocalModels.ECHO.id, **_: object):
        self.model = model

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        last_user = next((m for m in reversed(messages) if m.role == Role.USER), None)
        user_text = last_user.content if last_user else ""
        return ChatResponse(
            content=f"[local provider: {self.model}] {user_text or 'No user message provided.'}",
            usage=UsageStats(model=self.model, provider=self.name),
            finish_reason=FinishReason.STOP,
            tool_calling_mode=ToolCallingMode.NONE,
            provider=self.name,
            model=self.model,
        )

    async def validate(self) -> bool:
        return True


__all__ = ["LocalProvider"]

"""
Pytest configuration for huddle tests.

This file configures pytest with custom markers and command-line options
for running different types of tests, and provides a scripted fake provider
shared by the orchestrator tests.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

import pytest

from huddle.providers.base import ChatOptions
from huddle.types import ChatResponse, FinishReason, Message, ToolCall, ToolCallingMode
from huddle.usage import UsageStats


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run end-to-end tests with real API calls",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real API keys, use --run-e2e to run)"
    )
    config.addinivalue_line("markers", "openai: mark test as requiring OpenAI API key")
    config.addinivalue_line("markers", "anthropic: mark test as requiring Anthropic API key")
    config.addinivalue_line("markers", "gemini: mark test as requiring Gemini API key")
    config.addinivalue_line("markers", "perplexity: mark test as requiring Perplexity API key")


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --run-e2e is passed."""
    if config.getoption("--run-e2e"):
        return

    skip_e2e = pytest.mark.skip(reason="Need --run-e2e option to run end-to-end tests")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


# ---------------------------------------------------------------------------
# Scripted provider
# ---------------------------------------------------------------------------


def reply(
    content: str = "",
    tool_calls: Optional[List[ToolCall]] = None,
    finish_reason: Optional[FinishReason] = None,
    input_tokens: Optional[int] = 10,
    output_tokens: Optional[int] = 5,
    cost: float = 0.001,
) -> ChatResponse:
    """Build a ChatResponse the way an adapter would."""
    if finish_reason is None:
        finish_reason = FinishReason.TOOL_CALLS if tool_calls else FinishReason.STOP
    return ChatResponse(
        content=content,
        tool_calls=list(tool_calls or []),
        usage=UsageStats(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=cost,
            model="fake-model",
            provider="fake",
        ),
        finish_reason=finish_reason,
        tool_calling_mode=ToolCallingMode.NATIVE if tool_calls else ToolCallingMode.NONE,
        provider="fake",
        model="fake-model",
    )


class ScriptedProvider:
    """
    Fake provider that plays back a script.

    Each script entry is either a ChatResponse (returned) or an exception
    (raised). When the script runs out, the last entry repeats. Every call's
    messages and options are recorded for inspection.
    """

    name = "fake"
    supports_native_tools = True
    default_model = "fake-model"
    models = ["fake-model"]

    def __init__(self, script: Sequence[Union[ChatResponse, BaseException]]) -> None:
        self.script = list(script)
        self.model = "fake-model"
        self.calls: List[List[Message]] = []
        self.options: List[ChatOptions] = []

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        index = min(len(self.calls), len(self.script) - 1)
        self.calls.append(list(messages))
        self.options.append(options or ChatOptions())
        entry: Any = self.script[index]
        if isinstance(entry, BaseException):
            raise entry
        return entry

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def scripted_provider():
    """Factory fixture: ``scripted_provider([reply(...), ...])``."""
    return ScriptedProvider


@pytest.fixture
def make_reply():
    return reply

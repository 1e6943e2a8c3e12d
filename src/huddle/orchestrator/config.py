"""
Configuration options for the conversation orchestrator.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Mapping, Optional

from ..env import load_default_env
from ..providers.base import TOOL_CHOICE_AUTO
from ..retry import RetryPolicy

logger = logging.getLogger(__name__)

# Hook type definitions
HookCallable = Callable[..., None]
Hooks = Dict[str, HookCallable]


@dataclass
class OrchestratorConfig:
    """
    Loop knobs for one orchestrator.

    Attributes:
        turns_max: Hard ceiling on provider round-trips. Default: 10.
        tool_calls_max: Hard ceiling on accepted tool dispatches. Default: 5.
        max_tokens: Output token cap per provider call. None = the provider's
            configured value (``LLMConfig.max_tokens``).
        temperature: Sampling temperature. None = the provider's configured value.
        tool_choice: ``"auto"``, ``"none"`` or a tool name to force. Default: ``"auto"``.
        system_prompt: Optional system message placed first in the history.
        retry: Retry policy for provider calls.
        request_timeout: Per-request timeout handed to the vendor SDK, in seconds.
        tool_timeout_seconds: Per-tool deadline. None = no timeout.
        timeout_seconds: Wall-clock deadline for a whole run. None = no deadline.
        parallel_tool_execution: Dispatch the tool calls of one turn concurrently
            with asyncio.gather. Default: True.
        fallback_without_tools: After retries are exhausted, try the same
            request once more without tools. Default: True.
        cost_warning_threshold: Log a warning (once per run) when the run's
            cost exceeds this USD amount. None = no warnings.
        operation: Label written to cost-ledger records. Default: ``"chat"``.
        verbose: Print a ``[orchestrator]`` trace line per turn and per tool.
        hooks: Optional dict of lifecycle hooks for observability.
               Available hooks:
               - 'on_conversation_start': (messages,)
               - 'on_turn_start': (turn_number, messages)
               - 'on_llm_end': (response, usage)
               - 'on_tool_start': (tool_name, arguments)
               - 'on_tool_end': (tool_name, result, duration)
               - 'on_tool_error': (tool_name, error, arguments)
               - 'on_conversation_end': (result,)
               - 'on_error': (error, context)
    """

    turns_max: int = 10
    tool_calls_max: int = 5
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    tool_choice: str = TOOL_CHOICE_AUTO
    system_prompt: Optional[str] = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    request_timeout: Optional[float] = 60.0
    tool_timeout_seconds: Optional[float] = None
    timeout_seconds: Optional[float] = None
    parallel_tool_execution: bool = True
    fallback_without_tools: bool = True
    cost_warning_threshold: Optional[float] = None
    operation: str = "chat"
    verbose: bool = False
    hooks: Optional[Hooks] = None

    def __post_init__(self) -> None:
        if self.turns_max < 1:
            raise ValueError("turns_max must be at least 1")
        if self.tool_calls_max < 0:
            raise ValueError("tool_calls_max must not be negative")

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides
    ) -> "OrchestratorConfig":
        """
        Read loop limits from the environment.

        ``MAX_WEB_SEARCHES`` sets ``tool_calls_max``; ``MAX_TURNS``,
        ``TOOL_TIMEOUT_SECONDS``, ``CONVERSATION_TIMEOUT_SECONDS`` and
        ``COST_WARNING_THRESHOLD`` set their namesakes. Keyword overrides win.
        """
        if environ is None:
            load_default_env()
            environ = os.environ

        config = cls()
        values = {
            "turns_max": _read(environ, "MAX_TURNS", int),
            "tool_calls_max": _read(environ, "MAX_WEB_SEARCHES", int),
            "tool_timeout_seconds": _read(environ, "TOOL_TIMEOUT_SECONDS", float),
            "timeout_seconds": _read(environ, "CONVERSATION_TIMEOUT_SECONDS", float),
            "cost_warning_threshold": _read(environ, "COST_WARNING_THRESHOLD", float),
        }
        values = {key: value for key, value in values.items() if value is not None}
        values.update(overrides)
        return replace(config, **values)


def _read(environ: Mapping[str, str], name: str, kind):
    raw = environ.get(name)
    if not raw:
        return None
    try:
        return kind(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return None


__all__ = ["OrchestratorConfig", "Hooks", "HookCallable"]

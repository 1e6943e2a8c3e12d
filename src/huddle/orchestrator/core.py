"""
Provider-agnostic conversation loop with bounded tool calling.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from ..budget import Budget
from ..exceptions import (
    BudgetExceededError,
    ConversationTimeoutError,
    InvalidToolArgumentsError,
    ProviderError,
    ToolDispatchError,
    UnknownToolError,
)
from ..ledger import CostLedger, CostRecord
from ..prompt import PromptBuilder
from ..providers.base import TOOL_CHOICE_AUTO, TOOL_CHOICE_NONE, ChatOptions, Provider
from ..retry import NO_RETRY, call_with_retry
from ..tools.executor import FunctionToolExecutor, ToolExecution, ToolExecutor
from ..tools.registry import CapabilityRegistry
from ..types import (
    ChatResponse,
    FinishReason,
    Message,
    Role,
    ToolCall,
    ToolCallingMode,
    ToolResult,
)
from .config import OrchestratorConfig
from .state import ConversationResult, ConversationState, Termination

logger = logging.getLogger(__name__)

BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass
class _Conversation:
    """Everything one run owns. Never shared between runs."""

    budget: Budget
    history: List[Message] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    state: ConversationState = ConversationState.AWAITING_PROVIDER
    used_fallback: bool = False
    cost_warned: bool = False
    best_content: str = ""
    finish_reason: Optional[FinishReason] = None

    def append(self, role: Role, content: str) -> None:
        self.history.append(Message(role=role, content=content))


class Orchestrator:
    """
    Drives the multi-turn loop between a provider and the caller's tools.

    The loop:
    1. Sends the history (plus tool definitions while the tool budget lasts)
       to the provider through the retry wrapper
    2. Returns the content when the response is terminal
    3. Otherwise validates the requested calls, dispatches the accepted ones
       and appends one consolidated result message
    4. Repeats until a terminal response or ``turns_max``

    Each ``run`` builds its own history and Budget, so one instance can serve
    concurrent runs.

    Example:
        >>> orchestrator = Orchestrator(
        ...     provider=AnthropicProvider(),
        ...     registry=CapabilityRegistry([WEB_SEARCH]),
        ...     executor=FunctionToolExecutor({"web_search": web_search}),
        ... )
        >>> result = await orchestrator.run("Should I start Justin Jefferson this week?")
        >>> print(result.content)
    """

    def __init__(
        self,
        provider: Provider,
        registry: Optional[CapabilityRegistry] = None,
        executor: Optional[ToolExecutor] = None,
        config: Optional[OrchestratorConfig] = None,
        ledger: Optional[CostLedger] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.provider = provider
        self.registry = registry or CapabilityRegistry()
        self.executor = executor or FunctionToolExecutor()
        self.config = config or OrchestratorConfig()
        self.ledger = ledger
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._ledger_tasks: Set["asyncio.Future[Any]"] = set()

    # ------------------------------------------------------------------ helpers

    def _call_hook(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Safely call a hook if it exists, swallowing any exceptions."""
        if not self.config.hooks or hook_name not in self.config.hooks:
            return
        try:
            self.config.hooks[hook_name](*args, **kwargs)
        except Exception:  # noqa: BLE001
            logger.debug("Hook %s raised", hook_name, exc_info=True)

    def _trace(self, text: str) -> None:
        if self.config.verbose:
            print(f"[orchestrator] {text}")

    # ---------------------------------------------------------------------- run

    async def run(self, messages: Union[str, Sequence[Message]]) -> ConversationResult:
        """
        Run one conversation to a terminal state.

        Args:
            messages: The opening history, or a single user prompt.

        Returns:
            ConversationResult with the final content and bookkeeping.

        Raises:
            ProviderError: The provider failed after retries and the
                tools-free fallback.
            ConversationTimeoutError: ``timeout_seconds`` expired first.
        """
        if isinstance(messages, str):
            messages = [Message(role=Role.USER, content=messages)]

        conversation = _Conversation(
            budget=Budget(
                turns_max=self.config.turns_max, tool_calls_max=self.config.tool_calls_max
            )
        )
        if self.config.system_prompt:
            conversation.append(Role.SYSTEM, self.config.system_prompt)
        conversation.history.extend(messages)

        self._call_hook("on_conversation_start", list(conversation.history))
        try:
            if self.config.timeout_seconds:
                try:
                    result = await asyncio.wait_for(
                        self._drive(conversation), timeout=self.config.timeout_seconds
                    )
                except asyncio.TimeoutError as exc:
                    raise ConversationTimeoutError(
                        self.config.timeout_seconds, conversation.budget.turns_used
                    ) from exc
            else:
                result = await self._drive(conversation)
        except (ProviderError, ConversationTimeoutError) as exc:
            logger.error("Conversation failed: %s", exc)
            self._call_hook(
                "on_error", exc, {"messages": list(conversation.history), **conversation.budget.snapshot()}
            )
            raise

        self._call_hook("on_conversation_end", result)
        return result

    async def _drive(self, conversation: _Conversation) -> ConversationResult:
        budget = conversation.budget
        while True:
            if not budget.can_call_provider():
                return self._finish_at_turn_limit(conversation)

            conversation.state = ConversationState.AWAITING_PROVIDER
            response = await self._call_provider(conversation)
            conversation.state = ConversationState.HAS_RESPONSE
            conversation.finish_reason = response.finish_reason
            if response.content.strip():
                conversation.best_content = response.content

            if not response.wants_tools:
                return self._finish(conversation, response)

            conversation.append(
                Role.ASSISTANT,
                self.prompt_builder.assistant_tool_request(response.content, response.tool_calls),
            )

            if budget.turns_exhausted:
                # No provider call is left to read tool results.
                return self._finish_at_turn_limit(conversation)

            if budget.tools_exhausted:
                logger.info(
                    "%s; asking %s for a final answer",
                    BudgetExceededError("tool-call", budget.tool_calls_used, budget.tool_calls_max),
                    self.provider.name,
                )
                self._trace("tool budget exhausted, requesting final answer")
                conversation.append(Role.SYSTEM, self.prompt_builder.tools_exhausted())
                continue

            conversation.state = ConversationState.DISPATCHING_TOOLS
            results = await self._dispatch(
                conversation, response.tool_calls, response.tool_calling_mode
            )
            conversation.tool_results.extend(results)
            conversation.append(Role.USER, self.prompt_builder.tool_results(results))

    # ----------------------------------------------------------------- provider

    def _chat_options(self, with_tools: bool) -> ChatOptions:
        tools = self.registry.definitions() if with_tools else None
        return ChatOptions(
            tools=tools,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            tool_choice=self.config.tool_choice if tools else TOOL_CHOICE_AUTO,
            timeout=self.config.request_timeout,
        )

    async def _call_provider(self, conversation: _Conversation) -> ChatResponse:
        budget = conversation.budget
        offer_tools = (
            len(self.registry) > 0
            and not budget.tools_exhausted
            and self.config.tool_choice != TOOL_CHOICE_NONE
        )
        options = self._chat_options(offer_tools)
        history = list(conversation.history)
        turn = budget.turns_used + 1

        self._call_hook("on_turn_start", turn, history)
        mode = self.registry.tool_calling_mode(self.provider) if options.tools else ToolCallingMode.NONE
        self._trace(
            f"turn {turn}/{budget.turns_max}: calling {self.provider.name} "
            f"({len(history)} messages, tools={mode.value}, "
            f"{budget.turns_remaining - 1} turn(s) left after this)"
        )

        def on_retry(attempt: int, error: ProviderError, delay: float) -> None:
            self._trace(
                f"provider error attempt {attempt}/{self.config.retry.max_attempts}: {error}"
            )

        try:
            response = await call_with_retry(
                lambda: self.provider.chat(history, options), self.config.retry, on_retry=on_retry
            )
        except ProviderError as exc:
            if not options.tools or not self.config.fallback_without_tools:
                raise
            logger.warning(
                "%s failed with tools (%s); retrying once without tools", self.provider.name, exc
            )
            self._call_hook("on_error", exc, {"turn": turn, "fallback": True})
            fallback_options = self._chat_options(False)
            response = await call_with_retry(
                lambda: self.provider.chat(history, fallback_options), NO_RETRY
            )
            conversation.used_fallback = True

        budget.record_provider_call(response.usage)
        self._emit_cost_record(response)
        self._call_hook("on_llm_end", response, response.usage)

        usage = response.usage
        if usage.reported:
            self._trace(
                f"tokens: {usage.total_tokens or 0:,} (input: {usage.input_tokens or 0:,}, "
                f"output: {usage.output_tokens or 0:,}), cost: ${usage.cost_usd:.6f}"
            )
        else:
            self._trace("tokens: not reported by provider")

        threshold = self.config.cost_warning_threshold
        if threshold is not None and not conversation.cost_warned and budget.accumulated_cost > threshold:
            conversation.cost_warned = True
            logger.warning(
                "Cost warning: conversation cost $%.6f exceeds threshold $%.6f",
                budget.accumulated_cost,
                threshold,
            )
        return response

    def _emit_cost_record(self, response: ChatResponse) -> None:
        """Hand one record to the ledger without waiting on it or failing the run."""
        if self.ledger is None:
            return
        record = CostRecord(
            provider=response.provider or self.provider.name,
            model=response.model or self.provider.model,
            operation=self.config.operation,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            cost=response.usage.cost_usd,
        )
        if inspect.iscoroutinefunction(self.ledger.record):
            task = asyncio.ensure_future(self.ledger.record(record))
        else:
            # File-backed ledgers do blocking I/O; keep it off the event loop.
            loop = asyncio.get_running_loop()
            task = loop.run_in_executor(None, self.ledger.record, record)
        self._ledger_tasks.add(task)
        task.add_done_callback(self._ledger_done)

    async def drain_ledger(self) -> None:
        """Wait for every pending cost-ledger write of this orchestrator."""
        while self._ledger_tasks:
            pending = list(self._ledger_tasks)
            await asyncio.gather(*pending, return_exceptions=True)
            self._ledger_tasks.difference_update(pending)

    def _ledger_done(self, task: "asyncio.Future[Any]") -> None:
        self._ledger_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Cost ledger failed: %s", exc)

    # -------------------------------------------------------------------- tools

    async def _dispatch(
        self,
        conversation: _Conversation,
        calls: Sequence[ToolCall],
        mode: ToolCallingMode = ToolCallingMode.NATIVE,
    ) -> List[ToolResult]:
        """
        Validate every requested call in order and run the accepted ones.

        Budget slots are reserved during validation so that a batch can never
        overshoot ``tool_calls_max``. Results come back in request order.
        Text-simulated calls are always checked against the input schema.
        """
        budget = conversation.budget
        results: List[Optional[ToolResult]] = [None] * len(calls)
        accepted: List[int] = []

        for index, call in enumerate(calls):
            try:
                self.registry.validate(call, mode)
            except (UnknownToolError, InvalidToolArgumentsError) as exc:
                logger.info("Rejected tool call %s: %s", call.name, exc)
                self._trace(f"tool={call.name} rejected ({exc.reason})")
                results[index] = ToolResult(
                    tool_name=call.name,
                    error=str(exc),
                    reason=exc.reason,
                    arguments=call.arguments if isinstance(call.arguments, dict) else {},
                )
                continue
            if not budget.can_dispatch_tool():
                results[index] = ToolResult(
                    tool_name=call.name,
                    error="Tool-call budget exhausted; this call was not executed.",
                    reason=BUDGET_EXHAUSTED,
                    arguments=call.arguments,
                )
                continue
            budget.record_tool_call(call.name)
            accepted.append(index)

        if self.config.parallel_tool_execution and len(accepted) > 1:
            executed = await asyncio.gather(*(self._run_tool(calls[i]) for i in accepted))
        else:
            executed = [await self._run_tool(calls[i]) for i in accepted]

        for index, result in zip(accepted, executed):
            results[index] = result
        return [result for result in results if result is not None]

    async def _run_tool(self, call: ToolCall) -> ToolResult:
        self._call_hook("on_tool_start", call.name, call.arguments)
        logger.debug("Dispatching tool %s with %s", call.name, call.arguments)
        start = time.monotonic()
        try:
            if self.config.tool_timeout_seconds:
                execution = await asyncio.wait_for(
                    self.executor.execute(call.name, call.arguments),
                    timeout=self.config.tool_timeout_seconds,
                )
            else:
                execution = await self.executor.execute(call.name, call.arguments)
        except asyncio.TimeoutError:
            execution = ToolExecution(
                success=False,
                error=f"Tool '{call.name}' timed out after {self.config.tool_timeout_seconds} seconds",
            )
        except Exception as exc:  # noqa: BLE001
            # Executors should report failures, but a raising one must not end the run.
            execution = ToolExecution(
                success=False, error=str(ToolDispatchError(call.name, exc, call.arguments))
            )
        duration = time.monotonic() - start

        if execution.success:
            result = ToolResult(
                tool_name=call.name,
                output_text=execution.output_text,
                arguments=call.arguments,
                dispatched=True,
                duration=duration,
            )
            self._call_hook("on_tool_end", call.name, result.output_text, duration)
        else:
            result = ToolResult(
                tool_name=call.name,
                error=execution.error or "Tool failed without an error message",
                reason="tool_error",
                arguments=call.arguments,
                dispatched=True,
                duration=duration,
            )
            logger.info("Tool %s failed: %s", call.name, result.error)
            self._call_hook("on_tool_error", call.name, result.error, call.arguments)

        status = "OK" if result.ok else "ERR"
        self._trace(f"tool={call.name} [{status}] {duration:.3f}s")
        return result

    # ---------------------------------------------------------------- terminal

    def _result(
        self, conversation: _Conversation, content: str, termination: Termination
    ) -> ConversationResult:
        conversation.state = ConversationState.TERMINAL
        budget = conversation.budget
        return ConversationResult(
            content=content,
            state=conversation.state,
            termination=termination,
            turns_used=budget.turns_used,
            tool_calls_used=budget.tool_calls_used,
            cost_usd=budget.accumulated_cost,
            messages=tuple(conversation.history),
            tool_results=list(conversation.tool_results),
            usage=budget.usage,
            used_fallback=conversation.used_fallback,
            finish_reason=conversation.finish_reason,
        )

    def _finish(self, conversation: _Conversation, response: ChatResponse) -> ConversationResult:
        content = response.content
        conversation.append(Role.ASSISTANT, content)
        if response.finish_reason in (FinishReason.LENGTH, FinishReason.CONTENT_FILTER):
            logger.warning(
                "%s stopped early (%s); answer is incomplete",
                self.provider.name,
                response.finish_reason.value,
            )
            termination = Termination.TRUNCATED
            if not content.strip():
                content = conversation.best_content or self.prompt_builder.empty_answer_placeholder()
        elif not content.strip():
            logger.warning("%s returned an empty final answer", self.provider.name)
            termination = Termination.EMPTY
            content = conversation.best_content or self.prompt_builder.empty_answer_placeholder()
        elif conversation.used_fallback:
            termination = Termination.FALLBACK
        else:
            termination = Termination.COMPLETED
        self._trace(f"done after {conversation.budget.turns_used} turn(s): {termination.value}")
        return self._result(conversation, content, termination)

    def _finish_at_turn_limit(self, conversation: _Conversation) -> ConversationResult:
        budget = conversation.budget
        logger.warning(
            "Stopping: %s",
            BudgetExceededError("turn", budget.turns_used, budget.turns_max),
        )
        content = conversation.best_content or self.prompt_builder.turn_limit_placeholder(
            budget.turns_max
        )
        self._trace(f"turn limit {budget.turns_max} reached")
        return self._result(conversation, content, Termination.TURN_LIMIT)


__all__ = ["Orchestrator"]

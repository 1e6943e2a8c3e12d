"""
Tests for the conversation loop.

Covers:
- Single-turn completion (no tools requested)
- Tool request, dispatch, consolidated result, final answer
- Empty and truncated final answers are flagged, never returned silently
- Unknown tools and invalid arguments are rejected without dispatch
- Turn ceiling with best-available content
- Retry on transient errors, tools-free fallback, hard failure
- Tool budget exhaustion notice and in-batch budget enforcement
- Executor failures and per-tool timeouts are folded into results
- Message ordering of the history handed to the provider
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Dict, List

import pytest

from huddle.exceptions import ProviderError
from huddle.orchestrator import Orchestrator, OrchestratorConfig, Termination
from huddle.prompt import TOOL_REQUEST_PLACEHOLDER, TOOLS_EXHAUSTED_NOTICE, PromptBuilder
from huddle.providers.base import TOOL_CHOICE_NONE
from huddle.retry import RetryPolicy
from huddle.toolbox import WEB_SEARCH
from huddle.tools import CapabilityRegistry, FunctionToolExecutor
from huddle.types import FinishReason, Message, Role, ToolCall, ToolCallingMode

FAST_RETRY = RetryPolicy(max_attempts=3, backoff_seconds=0.0, rate_limit_cooldown_seconds=0.0)

SEARCH_CALL = ToolCall(name="web_search", arguments={"query": "Justin Jefferson injury"}, id="c1")


class RecordingSearch:
    """Async web_search stand-in that records every query."""

    def __init__(self, output: str = "Jefferson practiced in full on Thursday.") -> None:
        self.output = output
        self.queries: List[Dict[str, Any]] = []

    async def __call__(self, **arguments: Any) -> str:
        self.queries.append(arguments)
        return self.output


def _orchestrator(provider, search=None, **config: Any) -> Orchestrator:
    config.setdefault("retry", FAST_RETRY)
    search = search or RecordingSearch()
    return Orchestrator(
        provider=provider,
        registry=CapabilityRegistry([WEB_SEARCH]),
        executor=FunctionToolExecutor({"web_search": search}),
        config=OrchestratorConfig(**config),
    )


class TestSingleTurn:
    @pytest.mark.asyncio
    async def test_no_tool_calls_returns_content_unchanged(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider([make_reply("Start Justin Jefferson.")])
        search = RecordingSearch()

        result = await _orchestrator(provider, search).run("Who should I start?")

        assert result.content == "Start Justin Jefferson."
        assert result.termination == Termination.COMPLETED
        assert result.turns_used == 1
        assert result.tool_calls_used == 0
        assert provider.call_count == 1
        assert search.queries == []

    @pytest.mark.asyncio
    async def test_tools_are_offered_on_first_call(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider([make_reply("ok")])

        await _orchestrator(provider).run("hi")

        assert [t.name for t in provider.options[0].tools] == ["web_search"]
        assert provider.options[0].max_tokens is None
        assert provider.options[0].temperature is None

    @pytest.mark.asyncio
    async def test_terminal_finish_reason_wins_over_tool_calls(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider(
            [make_reply("Final.", tool_calls=[SEARCH_CALL], finish_reason=FinishReason.STOP)]
        )

        result = await _orchestrator(provider).run("hi")

        assert result.content == "Final."
        assert result.tool_calls_used == 0
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_system_prompt_is_first_message(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider([make_reply("ok")])

        await _orchestrator(provider, system_prompt="You are a fantasy analyst.").run("hi")

        first = provider.calls[0][0]
        assert first.role == Role.SYSTEM
        assert first.content == "You are a fantasy analyst."

    @pytest.mark.asyncio
    async def test_tool_choice_none_never_offers_tools(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider([make_reply("ok")])

        await _orchestrator(provider, tool_choice=TOOL_CHOICE_NONE).run("hi")

        assert provider.options[0].tools is None


class TestFinalAnswer:
    @pytest.mark.asyncio
    async def test_blank_answer_is_flagged_with_placeholder(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider([make_reply("   ")])

        result = await _orchestrator(provider).run("Who should I start?")

        assert result.termination == Termination.EMPTY
        assert result.content == PromptBuilder().empty_answer_placeholder()
        assert result.finish_reason == FinishReason.STOP
        assert not result.completed

    @pytest.mark.asyncio
    async def test_blank_answer_keeps_earlier_model_text(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider(
            [make_reply("Checking the injury report first.", tool_calls=[SEARCH_CALL]), make_reply("")]
        )

        result = await _orchestrator(provider).run("Start Jefferson?")

        assert result.termination == Termination.EMPTY
        assert result.content == "Checking the injury report first."

    @pytest.mark.asyncio
    async def test_length_finish_is_reported_as_truncated(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider([make_reply("Start Jeff", finish_reason=FinishReason.LENGTH)])

        result = await _orchestrator(provider).run("Start Jefferson?")

        assert result.content == "Start Jeff"
        assert result.termination == Termination.TRUNCATED
        assert result.truncated
        assert result.finish_reason == FinishReason.LENGTH

    @pytest.mark.asyncio
    async def test_blank_content_filter_finish_is_not_silent(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider([make_reply("", finish_reason=FinishReason.CONTENT_FILTER)])

        result = await _orchestrator(provider).run("Start Jefferson?")

        assert result.termination == Termination.TRUNCATED
        assert result.content == PromptBuilder().empty_answer_placeholder()
        assert result.finish_reason == FinishReason.CONTENT_FILTER


class TestToolDispatch:
    @pytest.mark.asyncio
    async def test_tool_result_reaches_next_provider_call(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider(
            [
                make_reply(tool_calls=[SEARCH_CALL]),
                make_reply("Jefferson is healthy. Start him."),
            ]
        )
        search = RecordingSearch()

        result = await _orchestrator(provider, search).run("Is Jefferson playing?")

        assert result.content == "Jefferson is healthy. Start him."
        assert result.tool_calls_used == 1
        assert result.turns_used == 2
        assert search.queries == [{"query": "Justin Jefferson injury"}]

        second_call = provider.calls[1]
        assert second_call[-1].role == Role.USER
        assert "Jefferson practiced in full on Thursday." in second_call[-1].content
        assert "TOOL RESULTS" in second_call[-1].content

    @pytest.mark.asyncio
    async def test_history_order_is_request_then_results_then_answer(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider(
            [make_reply(tool_calls=[SEARCH_CALL]), make_reply("Answer.")]
        )

        result = await _orchestrator(provider).run("question")

        roles = [m.role for m in result.messages]
        assert roles == [Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT]
        assert result.messages[-1].content == "Answer."
        # The provider saw exactly the prefix of the final history.
        assert provider.calls[1] == list(result.messages[:3])

    @pytest.mark.asyncio
    async def test_empty_tool_request_gets_placeholder_text(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider(
            [make_reply("", tool_calls=[SEARCH_CALL]), make_reply("Answer.")]
        )

        result = await _orchestrator(provider).run("question")

        request = result.messages[1]
        assert request.content.startswith(TOOL_REQUEST_PLACEHOLDER)
        assert 'web_search: {"query": "Justin Jefferson injury"}' in request.content

    @pytest.mark.asyncio
    async def test_unknown_tool_is_rejected_without_dispatch(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider(
            [
                make_reply(tool_calls=[ToolCall(name="lookup_weather", arguments={"city": "MIN"})]),
                make_reply("Proceeding without weather."),
            ]
        )
        search = RecordingSearch()

        result = await _orchestrator(provider, search).run("Weather?")

        assert result.content == "Proceeding without weather."
        assert result.tool_calls_used == 0
        assert search.queries == []
        rejected = result.tool_results[0]
        assert rejected.reason == "unknown_tool"
        assert rejected.dispatched is False
        assert "lookup_weather" in provider.calls[1][-1].content

    @pytest.mark.asyncio
    async def test_invalid_arguments_are_rejected_without_dispatch(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider(
            [
                make_reply(tool_calls=[ToolCall(name="web_search", arguments={"q": "typo"})]),
                make_reply("done"),
            ]
        )
        search = RecordingSearch()

        result = await _orchestrator(provider, search).run("go")

        assert result.tool_calls_used == 0
        assert result.tool_results[0].reason == "invalid_arguments"
        assert search.queries == []

    @pytest.mark.asyncio
    async def test_simulated_call_is_schema_checked_when_validation_is_off(
        self, scripted_provider, make_reply
    ) -> None:
        simulated = replace(
            make_reply(tool_calls=[ToolCall(name="web_search", arguments={"q": 5})]),
            tool_calling_mode=ToolCallingMode.SIMULATED,
        )
        provider = scripted_provider([simulated, make_reply("done")])
        search = RecordingSearch()
        orchestrator = Orchestrator(
            provider=provider,
            registry=CapabilityRegistry([WEB_SEARCH], validate_schema=False),
            executor=FunctionToolExecutor({"web_search": search}),
            config=OrchestratorConfig(retry=FAST_RETRY),
        )

        result = await orchestrator.run("go")

        assert search.queries == []
        assert result.tool_calls_used == 0
        assert result.tool_results[0].reason == "invalid_arguments"
        assert result.tool_results[0].dispatched is False

    @pytest.mark.asyncio
    async def test_failing_executor_is_not_fatal(self, scripted_provider, make_reply) -> None:
        def broken_search(query: str) -> str:
            raise RuntimeError("search backend down")

        provider = scripted_provider([make_reply(tool_calls=[SEARCH_CALL]), make_reply("Partial answer.")])
        orchestrator = Orchestrator(
            provider=provider,
            registry=CapabilityRegistry([WEB_SEARCH]),
            executor=FunctionToolExecutor({"web_search": broken_search}),
            config=OrchestratorConfig(retry=FAST_RETRY),
        )

        result = await orchestrator.run("go")

        assert result.content == "Partial answer."
        assert result.tool_calls_used == 1
        failure = result.tool_results[0]
        assert failure.dispatched is True
        assert "search backend down" in failure.error
        assert "search backend down" in provider.calls[1][-1].content

    @pytest.mark.asyncio
    async def test_tool_timeout_becomes_error_result(self, scripted_provider, make_reply) -> None:
        async def slow_search(query: str) -> str:
            await asyncio.sleep(1.0)
            return "too late"

        provider = scripted_provider([make_reply(tool_calls=[SEARCH_CALL]), make_reply("ok")])
        orchestrator = Orchestrator(
            provider=provider,
            registry=CapabilityRegistry([WEB_SEARCH]),
            executor=FunctionToolExecutor({"web_search": slow_search}),
            config=OrchestratorConfig(retry=FAST_RETRY, tool_timeout_seconds=0.05),
        )

        result = await orchestrator.run("go")

        assert result.content == "ok"
        assert "timed out" in result.tool_results[0].error

    @pytest.mark.asyncio
    async def test_always_failing_tool_still_terminates(self, scripted_provider, make_reply) -> None:
        def broken_search(query: str) -> str:
            raise RuntimeError("nope")

        provider = scripted_provider([make_reply(tool_calls=[SEARCH_CALL])])
        orchestrator = Orchestrator(
            provider=provider,
            registry=CapabilityRegistry([WEB_SEARCH]),
            executor=FunctionToolExecutor({"web_search": broken_search}),
            config=OrchestratorConfig(retry=FAST_RETRY, turns_max=4, tool_calls_max=10),
        )

        result = await orchestrator.run("go")

        assert result.termination == Termination.TURN_LIMIT
        assert provider.call_count == 4
        assert all(not r.ok for r in result.tool_results)


class TestBudgets:
    @pytest.mark.asyncio
    async def test_turn_limit_stops_before_extra_provider_call(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider([make_reply(tool_calls=[SEARCH_CALL])])

        result = await _orchestrator(provider, turns_max=3).run("go")

        assert provider.call_count == 3
        assert result.turns_used == 3
        assert result.termination == Termination.TURN_LIMIT
        assert result.tool_calls_used == 2
        assert "maximum of 3 conversation turns" in result.content

    @pytest.mark.asyncio
    async def test_turn_limit_keeps_best_available_content(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider(
            [make_reply("Leaning towards Jefferson, checking news.", tool_calls=[SEARCH_CALL])]
        )

        result = await _orchestrator(provider, turns_max=2).run("go")

        assert result.content == "Leaning towards Jefferson, checking news."

    @pytest.mark.asyncio
    async def test_exhausted_tool_budget_adds_notice_and_drops_tools(
        self, scripted_provider, make_reply
    ) -> None:
        provider = scripted_provider(
            [
                make_reply(tool_calls=[SEARCH_CALL]),
                make_reply(tool_calls=[SEARCH_CALL]),
                make_reply("Final answer."),
            ]
        )
        search = RecordingSearch()

        result = await _orchestrator(provider, search, tool_calls_max=1).run("go")

        assert result.content == "Final answer."
        assert result.tool_calls_used == 1
        assert len(search.queries) == 1
        assert provider.options[1].tools is None
        notice = provider.calls[2][-1]
        assert notice.role == Role.SYSTEM
        assert notice.content == TOOLS_EXHAUSTED_NOTICE

    @pytest.mark.asyncio
    async def test_batch_never_exceeds_tool_budget(self, scripted_provider, make_reply) -> None:
        calls = [
            ToolCall(name="web_search", arguments={"query": f"player {i}"}, id=f"c{i}")
            for i in range(3)
        ]
        provider = scripted_provider([make_reply(tool_calls=calls), make_reply("done")])
        search = RecordingSearch()

        result = await _orchestrator(provider, search, tool_calls_max=2).run("go")

        assert result.tool_calls_used == 2
        assert len(search.queries) == 2
        assert [r.reason for r in result.tool_results] == [None, None, "budget_exhausted"]

    @pytest.mark.asyncio
    async def test_zero_tool_budget_never_offers_tools(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider([make_reply("ok")])

        await _orchestrator(provider, tool_calls_max=0).run("go")

        assert provider.options[0].tools is None


class TestProviderFailures:
    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider(
            [
                ProviderError("fake", "connection reset"),
                ProviderError("fake", "connection reset"),
                make_reply("Recovered.", cost=0.002),
            ]
        )

        result = await _orchestrator(provider).run("go")

        assert result.content == "Recovered."
        assert provider.call_count == 3
        assert result.turns_used == 1
        assert result.cost_usd == pytest.approx(0.002)
        assert len(result.usage.calls) == 1
        assert result.used_fallback is False

    @pytest.mark.asyncio
    async def test_falls_back_without_tools(self, scripted_provider, make_reply) -> None:
        provider = scripted_provider(
            [ProviderError("fake", "bad tool schema", status_code=400), make_reply("Plain answer.")]
        )

        result = await _orchestrator(provider).run("go")

        assert result.content == "Plain answer."
        assert result.termination == Termination.FALLBACK
        assert result.used_fallback is True
        assert provider.call_count == 2
        assert provider.options[0].tools
        assert provider.options[1].tools is None

    @pytest.mark.asyncio
    async def test_fallback_failure_raises_provider_error(self, scripted_provider) -> None:
        provider = scripted_provider([ProviderError("fake", "unauthorized", status_code=401)])

        with pytest.raises(ProviderError):
            await _orchestrator(provider).run("go")

        assert provider.call_count == 2

    @pytest.mark.asyncio
    async def test_no_fallback_when_no_tools_were_offered(self, scripted_provider) -> None:
        provider = scripted_provider([ProviderError("fake", "unauthorized", status_code=401)])
        orchestrator = Orchestrator(provider=provider, config=OrchestratorConfig(retry=FAST_RETRY))

        with pytest.raises(ProviderError):
            await orchestrator.run([Message(role=Role.USER, content="go")])

        assert provider.call_count == 1

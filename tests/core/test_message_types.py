"""
Tests for message, response and budget primitives.
"""

from __future__ import annotations

import pytest

from huddle.budget import Budget
from huddle.exceptions import BudgetExceededError, ProviderError
from huddle.types import ChatResponse, FinishReason, Message, Role, ToolCall, ToolResult
from huddle.usage import UsageStats


class TestFinishReason:
    def test_parse_vendor_strings(self) -> None:
        assert FinishReason.parse("stop") == FinishReason.STOP
        assert FinishReason.parse("TOOL_CALLS") == FinishReason.TOOL_CALLS
        assert FinishReason.parse(FinishReason.LENGTH) == FinishReason.LENGTH

    def test_parse_unknown_is_none(self) -> None:
        assert FinishReason.parse("function_call") is None
        assert FinishReason.parse(None) is None
        assert FinishReason.parse("") is None


class TestWantsTools:
    def test_no_calls_never_wants_tools(self) -> None:
        assert not ChatResponse(content="hi", finish_reason=FinishReason.TOOL_CALLS).wants_tools

    def test_tool_calls_finish(self) -> None:
        response = ChatResponse(
            content="",
            tool_calls=[ToolCall(name="web_search")],
            finish_reason=FinishReason.TOOL_CALLS,
        )
        assert response.wants_tools

    def test_stop_wins_over_calls(self) -> None:
        response = ChatResponse(
            content="done", tool_calls=[ToolCall(name="web_search")], finish_reason=FinishReason.STOP
        )
        assert not response.wants_tools

    def test_missing_finish_with_calls_is_tool_request(self) -> None:
        response = ChatResponse(content="", tool_calls=[ToolCall(name="web_search")])
        assert response.wants_tools


class TestMessages:
    def test_message_is_frozen(self) -> None:
        message = Message(role=Role.USER, content="hi")
        with pytest.raises(AttributeError):
            message.content = "changed"  # type: ignore[misc]

    def test_to_dict(self) -> None:
        assert Message(role=Role.ASSISTANT, content="a").to_dict() == {
            "role": "assistant",
            "content": "a",
        }

    def test_tool_result_render(self) -> None:
        ok = ToolResult(tool_name="web_search", output_text="Jefferson is active")
        assert ok.ok
        assert ok.render() == 'Tool "web_search" result:\nJefferson is active'

        rejected = ToolResult(tool_name="lookup", error="Unknown tool 'lookup'.", reason="unknown_tool")
        assert not rejected.ok
        assert rejected.render() == "Tool \"lookup\" failed (unknown_tool): Unknown tool 'lookup'."


class TestProviderErrorClassification:
    @pytest.mark.parametrize(
        "status,transient", [(None, True), (408, True), (429, True), (500, True), (503, True), (400, False), (401, False), (404, False)]
    )
    def test_status_classification(self, status, transient) -> None:
        assert ProviderError("openai", "boom", status_code=status).is_transient is transient

    def test_status_pulled_from_cause(self) -> None:
        class SDKError(Exception):
            status_code = 429

        error = ProviderError("anthropic", "slow down", cause=SDKError())
        assert error.status_code == 429
        assert error.is_rate_limit

    def test_explicit_transient_overrides(self) -> None:
        assert ProviderError("gemini", "malformed", transient=False).is_transient is False


class TestBudget:
    def test_turn_ceiling(self) -> None:
        budget = Budget(turns_max=2)
        budget.record_provider_call(UsageStats(input_tokens=10, output_tokens=5, cost_usd=0.01))
        budget.record_provider_call(UsageStats(cost_usd=0.02))

        assert budget.turns_exhausted
        assert not budget.can_call_provider()
        assert budget.accumulated_cost == pytest.approx(0.03)
        with pytest.raises(BudgetExceededError) as exc_info:
            budget.record_provider_call(UsageStats())
        assert exc_info.value.limit == 2

    def test_tool_ceiling(self) -> None:
        budget = Budget(tool_calls_max=1)
        assert budget.can_dispatch_tool()
        budget.record_tool_call("web_search")
        assert budget.tools_exhausted
        assert budget.tool_calls_remaining == 0
        with pytest.raises(BudgetExceededError):
            budget.record_tool_call("web_search")

    def test_zero_tool_budget_is_allowed(self) -> None:
        assert Budget(tool_calls_max=0).tools_exhausted

    def test_invalid_ceilings(self) -> None:
        with pytest.raises(ValueError):
            Budget(turns_max=0)
        with pytest.raises(ValueError):
            Budget(tool_calls_max=-1)

    def test_snapshot(self) -> None:
        budget = Budget(turns_max=3, tool_calls_max=2)
        budget.record_tool_call("web_search")
        assert budget.snapshot() == {
            "turns_used": 0,
            "turns_max": 3,
            "tool_calls_used": 1,
            "tool_calls_max": 2,
            "accumulated_cost": 0.0,
        }

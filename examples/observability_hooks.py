"""
Observability Hooks: lifecycle callbacks and a cost ledger on an offline run.

Uses a scripted provider so it runs without API keys.
Run: python examples/observability_hooks.py
"""

import asyncio
import time
from typing import Any, Dict, Optional, Sequence

from huddle import (
    CapabilityRegistry,
    ChatOptions,
    ChatResponse,
    FinishReason,
    FunctionToolExecutor,
    InMemoryCostLedger,
    Message,
    Orchestrator,
    OrchestratorConfig,
    ToolCall,
    ToolCallingMode,
    ToolDefinition,
    ToolParameter,
    UsageStats,
)

PLAYER_STATUS = ToolDefinition.from_parameters(
    name="player_status",
    description="Current injury designation for a player",
    parameters=[ToolParameter(name="player", param_type=str, description="Player name")],
)


class TwoStepProvider:
    """Requests one tool call, then answers."""

    name = "demo"
    supports_native_tools = True
    default_model = "demo-model"
    models = ["demo-model"]
    model = "demo-model"

    async def chat(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> ChatResponse:
        usage = UsageStats(input_tokens=120, output_tokens=30, cost_usd=0.0004, model=self.model, provider=self.name)
        if "TOOL RESULTS" not in messages[-1].content:
            return ChatResponse(
                content="",
                tool_calls=[ToolCall(name="player_status", arguments={"player": "Justin Jefferson"})],
                usage=usage,
                finish_reason=FinishReason.TOOL_CALLS,
                tool_calling_mode=ToolCallingMode.NATIVE,
                provider=self.name,
                model=self.model,
            )
        return ChatResponse(
            content="START Justin Jefferson: no injury designation.",
            usage=usage,
            finish_reason=FinishReason.STOP,
            provider=self.name,
            model=self.model,
        )


def player_status(player: str) -> str:
    time.sleep(0.1)
    return f"{player}: active"


class Timeline:
    """Collects hook events with relative timestamps."""

    def __init__(self) -> None:
        self.started = time.time()

    def log(self, event: str, detail: str = "") -> None:
        print(f"  [{time.time() - self.started:6.3f}s] {event} {detail}")

    def hooks(self) -> Dict[str, Any]:
        return {
            "on_conversation_start": lambda messages: self.log("conversation_start", f"{len(messages)} message(s)"),
            "on_turn_start": lambda turn, messages: self.log("turn_start", f"#{turn}"),
            "on_llm_end": lambda response, usage: self.log("llm_end", f"${usage.cost_usd:.4f}"),
            "on_tool_start": lambda name, args: self.log("tool_start", f"{name} {args}"),
            "on_tool_end": lambda name, result, duration: self.log("tool_end", f"{name} in {duration:.3f}s"),
            "on_tool_error": lambda name, error, args: self.log("tool_error", f"{name}: {error}"),
            "on_conversation_end": lambda result: self.log("conversation_end", result.termination.value),
        }


async def main() -> None:
    timeline = Timeline()
    ledger = InMemoryCostLedger()
    orchestrator = Orchestrator(
        provider=TwoStepProvider(),
        registry=CapabilityRegistry([PLAYER_STATUS]),
        executor=FunctionToolExecutor({"player_status": player_status}),
        config=OrchestratorConfig(hooks=timeline.hooks(), operation="start_sit"),
        ledger=ledger,
    )

    print("Hook timeline:")
    result = await orchestrator.run("Start Jefferson?")
    await orchestrator.drain_ledger()

    print(f"\nAnswer: {result.content}")
    print(f"Ledger records: {len(ledger.records)}, total ${ledger.total_cost:.4f}")


if __name__ == "__main__":
    asyncio.run(main())

"""
Start/Sit with web search: one orchestrated conversation with the web_search tool.

Prerequisites: one of CLAUDE_API_KEY, OPENAI_API_KEY, PERPLEXITY_API_KEY, GEMINI_API_KEY
Run: python examples/start_sit_with_search.py
"""

import asyncio

from huddle import (
    CapabilityRegistry,
    FunctionToolExecutor,
    LLMConfig,
    Orchestrator,
    OrchestratorConfig,
    ProviderConfigurationError,
    create_provider,
)
from huddle.providers.stubs import LocalProvider
from huddle.toolbox import FUNCTIONS, TOOLS

SYSTEM_PROMPT = (
    "You are a fantasy football analyst. Check recent injury news before "
    "recommending a starter, then answer with a clear START or SIT."
)

try:
    config = LLMConfig.from_env()
    provider = create_provider(config)
    print(f"Using {config.provider} provider ({config.model})")
except ProviderConfigurationError:
    provider = LocalProvider()
    print("Using LocalProvider (no API calls)")


async def main() -> None:
    orchestrator = Orchestrator(
        provider=provider,
        registry=CapabilityRegistry(TOOLS.values()),
        executor=FunctionToolExecutor(FUNCTIONS, timeout_seconds=15),
        config=OrchestratorConfig(
            system_prompt=SYSTEM_PROMPT,
            turns_max=4,
            tool_calls_max=2,
            timeout_seconds=120,
            verbose=True,
        ),
    )

    result = await orchestrator.run("Should I start Justin Jefferson or Ja'Marr Chase this week?")

    print("\n" + "=" * 70)
    print(result.content)
    print("=" * 70)
    print(f"Termination: {result.termination.value}")
    print(f"Turns: {result.turns_used}, tool calls: {result.tool_calls_used}")
    for tool_result in result.tool_results:
        status = "ok" if tool_result.ok else f"failed ({tool_result.reason or 'tool_error'})"
        print(f"  - {tool_result.tool_name}: {status}")
    print(result.usage)


if __name__ == "__main__":
    asyncio.run(main())

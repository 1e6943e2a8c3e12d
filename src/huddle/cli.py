"""
CLI entrypoint for huddle.

Examples:
    huddle list-tools
    huddle providers
    huddle list-models --provider gemini
    huddle run --provider anthropic --prompt "Start Jefferson or Chase this week?"
    huddle run --dry-run --prompt "Hello"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

from .config import DEFAULT_CONFIG_FILE, LLMConfig
from .exceptions import ConversationTimeoutError, HuddleError, ProviderError
from .ledger import JsonFileCostLedger
from .models import DEFAULT_MODELS, models_for
from .orchestrator import ConversationResult, Orchestrator, OrchestratorConfig
from .providers import PROVIDERS, create_provider
from .providers.base import Provider
from .providers.stubs import LocalProvider
from .retry import RetryPolicy
from .toolbox import FUNCTIONS, TOOLS
from .tools import CapabilityRegistry, FunctionToolExecutor


def list_tools() -> None:
    for definition in TOOLS.values():
        required = ", ".join(definition.required) or "none"
        print(f"- {definition.name}: {definition.description}")
        print(f"    required: {required}")


def list_models(provider: Optional[str]) -> None:
    names = [provider] if provider else list(PROVIDERS)
    for name in names:
        print(f"{name}:")
        for model in models_for(name):
            marker = " (default)" if DEFAULT_MODELS.get(name) == model else ""
            print(
                f"  - {model.id}{marker}: ${model.prompt_cost:.3f} / ${model.completion_cost:.3f} per 1M tokens"
            )


def list_providers() -> None:
    for name, factory in PROVIDERS.items():
        tools = "native tools" if factory.supports_native_tools else "simulated tools"
        print(f"- {name}: default model {factory.default_model} ({tools})")


def _build_provider(args: argparse.Namespace) -> Provider:
    if args.dry_run:
        return LocalProvider()
    if args.provider:
        config = LLMConfig(provider=args.provider, model=args.model or "")
    else:
        config = LLMConfig.load(args.config)
        if args.model:
            config.model = args.model
    return create_provider(config)


def _build_orchestrator(args: argparse.Namespace) -> Orchestrator:
    overrides = {
        "verbose": args.verbose,
        "retry": RetryPolicy(max_attempts=args.retries, backoff_seconds=args.backoff),
    }
    if args.max_turns is not None:
        overrides["turns_max"] = args.max_turns
    if args.max_tool_calls is not None:
        overrides["tool_calls_max"] = args.max_tool_calls
    if args.timeout is not None:
        overrides["timeout_seconds"] = args.timeout
    if args.system:
        overrides["system_prompt"] = args.system
    config = OrchestratorConfig.from_env(**overrides)

    definitions = [] if args.no_tools else list(TOOLS.values())
    return Orchestrator(
        provider=_build_provider(args),
        registry=CapabilityRegistry(definitions),
        executor=FunctionToolExecutor(FUNCTIONS, timeout_seconds=config.tool_timeout_seconds),
        config=config,
        ledger=JsonFileCostLedger(args.cost_log) if args.cost_log else None,
    )


async def _run_and_drain(orchestrator: Orchestrator, prompt: str) -> ConversationResult:
    try:
        return await orchestrator.run(prompt)
    finally:
        await orchestrator.drain_ledger()


def run_conversation(args: argparse.Namespace) -> int:
    try:
        orchestrator = _build_orchestrator(args)
    except HuddleError as exc:
        print(exc)
        return 1

    try:
        result = asyncio.run(_run_and_drain(orchestrator, args.prompt))
    except ConversationTimeoutError as exc:
        print(f"❌ {exc}")
        return 1
    except ProviderError as exc:
        print(f"❌ Provider error: {exc}")
        return 1

    print(result.content)
    print(f"\n[{result.termination.value}] turns={result.turns_used} tool_calls={result.tool_calls_used}")
    if result.truncated and result.finish_reason is not None:
        print(f"⚠️  Answer was cut off (finish reason: {result.finish_reason.value})")
    print(result.usage)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Multi-provider LLM orchestration for fantasy analysis")
    parser.add_argument(
        "--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list-tools", help="List available tools")
    list_parser.set_defaults(func="list-tools")

    models_parser = subparsers.add_parser("list-models", help="List known models and prices")
    models_parser.add_argument("--provider", choices=sorted(PROVIDERS), help="Only this provider")
    models_parser.set_defaults(func="list-models")

    providers_parser = subparsers.add_parser("providers", help="List supported providers")
    providers_parser.set_defaults(func="providers")

    run_parser = subparsers.add_parser("run", help="Run one conversation")
    run_parser.add_argument("--prompt", required=True, help="User prompt")
    run_parser.add_argument(
        "--provider",
        help="Provider name (anthropic|claude|openai|gemini|perplexity|local). "
        "Default: first provider with an API key in the environment",
    )
    run_parser.add_argument("--model", help="Model name for the provider")
    run_parser.add_argument(
        "--config", default=DEFAULT_CONFIG_FILE, help="JSON config used when no key is in the environment"
    )
    run_parser.add_argument("--system", help="Optional system prompt")
    run_parser.add_argument("--max-turns", type=int, help="Maximum provider round-trips")
    run_parser.add_argument("--max-tool-calls", type=int, help="Maximum tool dispatches")
    run_parser.add_argument("--timeout", type=float, help="Wall-clock deadline in seconds")
    run_parser.add_argument(
        "--retries", type=int, default=3, help="Provider attempts per call (including the first)"
    )
    run_parser.add_argument(
        "--backoff", type=float, default=1.0, help="Backoff seconds between retries"
    )
    run_parser.add_argument("--no-tools", action="store_true", help="Do not offer any tools")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Use the offline local provider instead of a vendor"
    )
    run_parser.add_argument("--cost-log", help="Append cost records to this JSON file")
    run_parser.add_argument("--verbose", action="store_true", help="Trace each turn and tool call")
    run_parser.set_defaults(func="run")

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.func == "list-tools":
        list_tools()
    elif args.func == "list-models":
        list_models(args.provider)
    elif args.func == "providers":
        list_providers()
    elif args.func == "run":
        return run_conversation(args)
    else:
        parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

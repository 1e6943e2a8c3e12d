"""
Tests for tool definitions, argument validation and the capability registry.
"""

from __future__ import annotations

import pytest

from huddle.exceptions import InvalidToolArgumentsError, ToolValidationError, UnknownToolError
from huddle.providers import LocalProvider
from huddle.tools import CapabilityRegistry, ToolDefinition, ToolParameter
from huddle.toolbox import WEB_SEARCH
from huddle.types import ToolCall, ToolCallingMode

PLAYER_STATS = ToolDefinition.from_parameters(
    name="player_stats",
    description="Recent stats for a player",
    parameters=[
        ToolParameter(name="player", param_type=str, description="Player name"),
        ToolParameter(name="weeks", param_type=int, description="Weeks back", required=False),
        ToolParameter(
            name="scoring",
            param_type=str,
            description="Scoring format",
            required=False,
            enum=["ppr", "half", "standard"],
        ),
    ],
)


class TestToolDefinition:
    def test_from_parameters_schema(self) -> None:
        assert PLAYER_STATS.required == ["player"]
        assert PLAYER_STATS.properties["weeks"] == {"type": "integer", "description": "Weeks back"}
        assert PLAYER_STATS.properties["scoring"]["enum"] == ["ppr", "half", "standard"]
        assert PLAYER_STATS.schema()["name"] == "player_stats"

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ToolValidationError):
            ToolDefinition(name=" ", description="x")

    def test_empty_description_rejected(self) -> None:
        with pytest.raises(ToolValidationError):
            ToolDefinition(name="x", description="")

    def test_duplicate_parameters_rejected(self) -> None:
        with pytest.raises(ToolValidationError, match="Duplicate"):
            ToolDefinition.from_parameters(
                "x",
                "y",
                [
                    ToolParameter(name="a", param_type=str, description="a"),
                    ToolParameter(name="a", param_type=int, description="a"),
                ],
            )

    def test_schema_defaults_filled(self) -> None:
        definition = ToolDefinition(name="ping", description="Ping", input_schema={})
        assert definition.input_schema == {"type": "object", "properties": {}}

    def test_caller_schema_is_not_mutated(self) -> None:
        schema = {"required": ["host"]}
        definition = ToolDefinition(name="ping", description="Ping", input_schema=schema)
        assert schema == {"required": ["host"]}
        assert definition.input_schema["type"] == "object"


class TestArgumentValidation:
    def test_valid_arguments(self) -> None:
        PLAYER_STATS.validate_arguments({"player": "Chase", "weeks": 3, "extra": True})

    def test_missing_required_with_hint(self) -> None:
        with pytest.raises(InvalidToolArgumentsError) as exc_info:
            PLAYER_STATS.validate_arguments({"playr": "Chase"})
        assert "player" in exc_info.value.issue
        assert "did you mean" in exc_info.value.issue

    def test_wrong_type(self) -> None:
        with pytest.raises(InvalidToolArgumentsError, match="must be of type integer"):
            PLAYER_STATS.validate_arguments({"player": "Chase", "weeks": "3"})

    def test_bool_is_not_integer(self) -> None:
        with pytest.raises(InvalidToolArgumentsError):
            PLAYER_STATS.validate_arguments({"player": "Chase", "weeks": True})

    def test_enum(self) -> None:
        with pytest.raises(InvalidToolArgumentsError, match="must be one of"):
            PLAYER_STATS.validate_arguments({"player": "Chase", "scoring": "dynasty"})

    def test_non_object(self) -> None:
        with pytest.raises(InvalidToolArgumentsError, match="must be an object"):
            PLAYER_STATS.validate_arguments(["Chase"])


class TestCapabilityRegistry:
    def test_register_and_lookup(self) -> None:
        registry = CapabilityRegistry([WEB_SEARCH, PLAYER_STATS])
        assert len(registry) == 2
        assert "web_search" in registry
        assert registry.names() == ["web_search", "player_stats"]
        assert registry.get("player_stats") is PLAYER_STATS
        assert [d.name for d in registry] == ["web_search", "player_stats"]

    def test_duplicate_name_rejected(self) -> None:
        registry = CapabilityRegistry([WEB_SEARCH])
        with pytest.raises(ToolValidationError, match="already registered"):
            registry.register(WEB_SEARCH)

    def test_validate_unknown_tool(self) -> None:
        registry = CapabilityRegistry([WEB_SEARCH])
        with pytest.raises(UnknownToolError) as exc_info:
            registry.validate(ToolCall(name="send_email", arguments={}))
        assert exc_info.value.reason == "unknown_tool"
        assert exc_info.value.available == ["web_search"]

    def test_validate_returns_definition(self) -> None:
        registry = CapabilityRegistry([WEB_SEARCH])
        assert registry.validate(ToolCall(name="web_search", arguments={"query": "x"})) is WEB_SEARCH

    def test_schema_validation_can_be_disabled(self) -> None:
        registry = CapabilityRegistry([WEB_SEARCH], validate_schema=False)
        registry.validate(ToolCall(name="web_search", arguments={}))
        with pytest.raises(InvalidToolArgumentsError):
            registry.validate(ToolCall(name="web_search", arguments="query"))  # type: ignore[arg-type]

    def test_simulated_calls_always_checked_against_schema(self) -> None:
        registry = CapabilityRegistry([WEB_SEARCH], validate_schema=False)
        call = ToolCall(name="web_search", arguments={"q": 5})
        assert registry.validate(call, ToolCallingMode.NATIVE) is WEB_SEARCH
        with pytest.raises(InvalidToolArgumentsError) as exc_info:
            registry.validate(call, ToolCallingMode.SIMULATED)
        assert exc_info.value.reason == "invalid_arguments"

    def test_tool_calling_mode(self) -> None:
        class Native:
            supports_native_tools = True

        assert CapabilityRegistry().tool_calling_mode(Native()) == ToolCallingMode.NONE
        registry = CapabilityRegistry([WEB_SEARCH])
        assert registry.tool_calling_mode(Native()) == ToolCallingMode.NATIVE
        assert registry.tool_calling_mode(LocalProvider()) == ToolCallingMode.SIMULATED

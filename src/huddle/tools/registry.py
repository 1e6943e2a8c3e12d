"""
Capability registry: the set of tools offered in one conversation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional

from ..exceptions import ToolValidationError, UnknownToolError
from ..types import ToolCall, ToolCallingMode
from .base import ToolDefinition

if TYPE_CHECKING:
    from ..providers.base import Provider


class CapabilityRegistry:
    """
    Per-conversation collection of tool definitions.

    The registry never runs tools. It answers two questions for the
    orchestrator: is this invocation request acceptable, and how will tools
    reach a given provider (native function calling or simulated through text).
    """

    def __init__(
        self, definitions: Iterable[ToolDefinition] = (), *, validate_schema: bool = True
    ) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        self.validate_schema = validate_schema
        for definition in definitions:
            self.register(definition)

    def register(self, definition: ToolDefinition) -> None:
        """
        Register a tool definition.

        Raises:
            ToolValidationError: If a tool with the same name is already registered.
        """
        if definition.name in self._tools:
            raise ToolValidationError(
                tool_name=definition.name,
                param_name="name",
                issue="A tool with this name is already registered",
                suggestion="Tool names must be unique within a conversation",
            )
        self._tools[definition.name] = definition

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool by name."""
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def definitions(self) -> List[ToolDefinition]:
        """Return all registered definitions in registration order."""
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def validate(
        self, call: ToolCall, mode: ToolCallingMode = ToolCallingMode.NATIVE
    ) -> ToolDefinition:
        """
        Check that a requested invocation may be dispatched.

        Args:
            call: The requested invocation.
            mode: How the call reached us. Text-simulated calls are checked
                against the input schema even when ``validate_schema`` is off.

        Raises:
            UnknownToolError: The name is not registered in this conversation.
            InvalidToolArgumentsError: Arguments are not an object, or (when
                ``validate_schema`` is on or the call was simulated) do not
                satisfy the input schema.
        """
        definition = self._tools.get(call.name)
        if definition is None:
            raise UnknownToolError(call.name, self.names())
        if (
            self.validate_schema
            or mode == ToolCallingMode.SIMULATED
            or not isinstance(call.arguments, dict)
        ):
            definition.validate_arguments(call.arguments)
        return definition

    def tool_calling_mode(self, provider: "Provider") -> ToolCallingMode:
        """How this registry's tools reach ``provider``."""
        if not self._tools:
            return ToolCallingMode.NONE
        if getattr(provider, "supports_native_tools", False):
            return ToolCallingMode.NATIVE
        return ToolCallingMode.SIMULATED


__all__ = ["CapabilityRegistry"]

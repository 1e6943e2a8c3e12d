"""
Tool definitions, schemas, and argument validation.

A ``ToolDefinition`` is the caller-supplied description of a capability the
model may invoke: a unique name, a description shown to the model, and a
JSON schema for its arguments. Definitions are plain data; executing them is
the job of a ``ToolExecutor``.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidToolArgumentsError, ToolValidationError

JsonSchema = Dict[str, Any]

_JSON_TYPES: Dict[str, tuple] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


def _python_type_to_json(param_type: type) -> str:
    """Map a Python type to a JSON schema type string."""
    type_map = {
        str: "string",
        int: "integer",
        float: "number",
        bool: "boolean",
        list: "array",
        dict: "object",
    }
    return type_map.get(param_type, "string")


@dataclass
class ToolParameter:
    """
    Schema definition for a single tool argument.

    Attributes:
        name: Argument name.
        param_type: Python type (str, int, float, bool, list, dict).
        description: Human-readable description shown to the model.
        required: Whether this argument must be provided (default: True).
        enum: Optional list of allowed string values.

    Example:
        >>> ToolParameter(name="query", param_type=str, description="Search query")
    """

    name: str
    param_type: type
    description: str
    required: bool = True
    enum: Optional[List[str]] = None

    def to_schema(self) -> JsonSchema:
        """Convert the parameter to a JSON Schema property."""
        schema: JsonSchema = {
            "type": _python_type_to_json(self.param_type),
            "description": self.description,
        }
        if self.enum:
            schema["enum"] = self.enum
        return schema


@dataclass
class ToolDefinition:
    """
    A tool that may be offered to any provider.

    Attributes:
        name: Unique identifier within a conversation.
        description: What the tool does (used by the model to decide on a call).
        input_schema: JSON schema with ``properties`` and optional ``required``.
    """

    name: str
    description: str
    input_schema: JsonSchema = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ToolValidationError(
                tool_name="<unnamed>",
                param_name="name",
                issue="Tool name cannot be empty",
                suggestion="Provide a descriptive name for the tool",
            )
        if not self.description or not self.description.strip():
            raise ToolValidationError(
                tool_name=self.name,
                param_name="description",
                issue="Tool description cannot be empty",
                suggestion="Provide a clear description explaining what the tool does",
            )
        if not isinstance(self.input_schema, dict):
            raise ToolValidationError(
                tool_name=self.name,
                param_name="input_schema",
                issue=f"Schema must be a dict, got {type(self.input_schema).__name__}",
            )
        self.input_schema = dict(self.input_schema)
        self.input_schema.setdefault("type", "object")
        self.input_schema.setdefault("properties", {})

    @classmethod
    def from_parameters(
        cls, name: str, description: str, parameters: List[ToolParameter]
    ) -> "ToolDefinition":
        """Build a definition from ToolParameter objects."""
        names = [p.name for p in parameters]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ToolValidationError(
                tool_name=name,
                param_name=", ".join(duplicates),
                issue="Duplicate parameter name(s)",
                suggestion="Each parameter must have a unique name",
            )
        return cls(
            name=name,
            description=description,
            input_schema={
                "type": "object",
                "properties": {p.name: p.to_schema() for p in parameters},
                "required": [p.name for p in parameters if p.required],
            },
        )

    @property
    def properties(self) -> Dict[str, JsonSchema]:
        return self.input_schema.get("properties") or {}

    @property
    def required(self) -> List[str]:
        return list(self.input_schema.get("required") or [])

    def schema(self) -> JsonSchema:
        """Return a JSON-schema style dict describing this tool."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def validate_arguments(self, arguments: Any) -> None:
        """
        Check arguments against the schema.

        Raises InvalidToolArgumentsError when arguments are not an object, a
        required key is missing, or a declared property has the wrong JSON
        type. Undeclared keys are allowed.
        """
        if not isinstance(arguments, dict):
            raise InvalidToolArgumentsError(
                self.name, f"arguments must be an object, got {type(arguments).__name__}"
            )

        missing = [key for key in self.required if key not in arguments]
        if missing:
            hint = ""
            for key in missing:
                close = difflib.get_close_matches(key, list(arguments), n=1, cutoff=0.6)
                if close:
                    hint = f" ('{close[0]}' -> did you mean '{key}'?)"
                    break
            raise InvalidToolArgumentsError(
                self.name, f"missing required argument(s): {', '.join(missing)}{hint}"
            )

        for key, value in arguments.items():
            prop = self.properties.get(key)
            if not prop:
                continue
            expected = _JSON_TYPES.get(prop.get("type", ""))
            if expected is None:
                continue
            # bool is an int subclass; keep them apart
            if isinstance(value, bool) and bool not in expected:
                ok = False
            else:
                ok = isinstance(value, expected)
            if not ok:
                raise InvalidToolArgumentsError(
                    self.name,
                    f"'{key}' must be of type {prop['type']}, got {type(value).__name__}",
                )
            allowed = prop.get("enum")
            if allowed and value not in allowed:
                raise InvalidToolArgumentsError(
                    self.name, f"'{key}' must be one of {allowed}, got {value!r}"
                )


__all__ = ["JsonSchema", "ToolParameter", "ToolDefinition"]

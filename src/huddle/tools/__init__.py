"""
Tools package exports.
"""

from .base import JsonSchema, ToolDefinition, ToolParameter
from .executor import FunctionToolExecutor, ToolExecution, ToolExecutor
from .registry import CapabilityRegistry

__all__ = [
    "JsonSchema",
    "ToolDefinition",
    "ToolParameter",
    "CapabilityRegistry",
    "ToolExecutor",
    "ToolExecution",
    "FunctionToolExecutor",
]

"""
Ready-made tools for the fantasy workflow.

Example:
    >>> from huddle.toolbox import WEB_SEARCH, web_search
    >>> registry = CapabilityRegistry([WEB_SEARCH])
    >>> executor = FunctionToolExecutor({"web_search": web_search})
"""

from typing import Dict

from ..tools.base import ToolDefinition
from ..tools.executor import ToolFunction
from .web_tools import WEB_SEARCH, format_instant_answer, web_search

TOOLS: Dict[str, ToolDefinition] = {WEB_SEARCH.name: WEB_SEARCH}
FUNCTIONS: Dict[str, ToolFunction] = {WEB_SEARCH.name: web_search}

__all__ = ["WEB_SEARCH", "web_search", "format_instant_answer", "TOOLS", "FUNCTIONS"]

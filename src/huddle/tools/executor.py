"""
Tool executor contract and a function-backed implementation.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union, runtime_checkable

from ..exceptions import ToolDispatchError

logger = logging.getLogger(__name__)

ToolFunction = Callable[..., Union[str, Awaitable[str]]]


@dataclass
class ToolExecution:
    """What an executor reports back for one invocation."""

    success: bool
    output_text: str = ""
    error: Optional[str] = None


@runtime_checkable
class ToolExecutor(Protocol):
    """
    Runs tools on behalf of the orchestrator.

    Implementations may perform network I/O. They must report every failure
    through ``ToolExecution`` rather than raising.
    """

    async def execute(self, name: str, arguments: Dict[str, Any]) -> ToolExecution:
        ...


class FunctionToolExecutor:
    """
    Executor backed by plain Python callables keyed by tool name.

    Callables receive the tool arguments as keyword arguments and return text.
    Sync callables run in the default thread pool so they do not block the
    event loop; async callables are awaited directly.

    Example:
        >>> executor = FunctionToolExecutor({"web_search": web_search})
        >>> result = await executor.execute("web_search", {"query": "Justin Jefferson injury"})
    """

    def __init__(
        self,
        functions: Optional[Dict[str, ToolFunction]] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._functions: Dict[str, ToolFunction] = dict(functions or {})
        self.timeout_seconds = timeout_seconds

    def register(self, name: str, function: ToolFunction) -> None:
        self._functions[name] = function

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    async def execute(self, name: str, arguments: Dict[str, Any]) -> ToolExecution:
        function = self._functions.get(name)
        if function is None:
            return ToolExecution(success=False, error=f"No implementation registered for '{name}'")

        try:
            if self.timeout_seconds:
                output = await asyncio.wait_for(
                    self._invoke(function, arguments), timeout=self.timeout_seconds
                )
            else:
                output = await self._invoke(function, arguments)
        except asyncio.TimeoutError:
            logger.warning("Tool '%s' timed out after %ss", name, self.timeout_seconds)
            return ToolExecution(
                success=False,
                error=f"Tool '{name}' timed out after {self.timeout_seconds} seconds",
            )
        except Exception as exc:
            logger.warning("Tool '%s' raised %s", name, exc)
            return ToolExecution(success=False, error=str(ToolDispatchError(name, exc, arguments)))

        return ToolExecution(success=True, output_text="" if output is None else str(output))

    async def _invoke(self, function: ToolFunction, arguments: Dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(function):
            return await function(**arguments)
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, functools.partial(function, **arguments))
        if inspect.isawaitable(result):
            return await result
        return result


__all__ = ["ToolExecution", "ToolExecutor", "FunctionToolExecutor", "ToolFunction"]

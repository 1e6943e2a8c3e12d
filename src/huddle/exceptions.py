"""
Custom exceptions with helpful error messages.

Only two of these ever escape a conversation run: ``ProviderError`` (after
retries and the tools-free fallback) and ``ConversationTimeoutError``. The
tool-level errors are folded into ``ToolResult`` objects and handed back to
the model.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

RATE_LIMIT_STATUS = 429
TRANSIENT_CLIENT_STATUSES = frozenset({408, RATE_LIMIT_STATUS})


class HuddleError(Exception):
    """Base exception for all huddle errors."""

    pass


class ProviderError(HuddleError):
    """
    Raised when a vendor call fails.

    Attributes:
        vendor: Provider name (``"anthropic"``, ``"openai"``...).
        cause: The underlying exception, if any.
        status_code: HTTP status reported by the vendor SDK. ``None`` means the
            request never got a response (network failure, timeout).
        transient: Overrides the status-based retry classification.
    """

    def __init__(
        self,
        vendor: str,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
        transient: Optional[bool] = None,
    ):
        self.vendor = vendor
        self.cause = cause
        self._transient = transient
        self.status_code = status_code if status_code is not None else _status_of(cause)
        super().__init__(f"{vendor}: {message}")

    @property
    def is_rate_limit(self) -> bool:
        if self.status_code == RATE_LIMIT_STATUS:
            return True
        lowered = str(self).lower()
        return "rate limit" in lowered or "rate_limit" in lowered

    @property
    def is_transient(self) -> bool:
        """Network errors, timeouts, rate limits and 5xx responses are worth retrying."""
        if self._transient is not None:
            return self._transient
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code in TRANSIENT_CLIENT_STATUSES


class ProviderConfigurationError(HuddleError):
    """Raised when provider configuration is incorrect."""

    def __init__(self, provider_name: str, missing_config: str, env_var: str = ""):
        self.provider_name = provider_name
        self.missing_config = missing_config
        self.env_var = env_var

        message = f"\n{'='*60}\n"
        message += f"❌ Provider Configuration Error: '{provider_name}'\n"
        message += f"{'='*60}\n\n"
        message += f"Missing: {missing_config}\n"
        if env_var:
            message += f"\n💡 How to fix:\n"
            message += f"  1. Set the environment variable:\n"
            message += f"     export {env_var}='your-api-key'\n"
            message += f"  2. Or pass it directly:\n"
            message += f"     LLMConfig(provider='{provider_name}', api_key='your-api-key', ...)\n"
        message += f"\n{'='*60}\n"

        super().__init__(message)


class ToolValidationError(HuddleError):
    """Raised when a tool definition is invalid at registration time."""

    def __init__(self, tool_name: str, param_name: str, issue: str, suggestion: str = ""):
        self.tool_name = tool_name
        self.param_name = param_name
        self.issue = issue
        self.suggestion = suggestion

        message = f"\n{'='*60}\n"
        message += f"❌ Tool Validation Error: '{tool_name}'\n"
        message += f"{'='*60}\n\n"
        message += f"Parameter: {param_name}\n"
        message += f"Issue: {issue}\n"
        if suggestion:
            message += f"\n💡 Suggestion: {suggestion}\n"
        message += f"\n{'='*60}\n"

        super().__init__(message)


class ToolDispatchError(HuddleError):
    """An individual tool invocation failed. Non-fatal."""

    def __init__(self, tool_name: str, error: Any, arguments: Optional[Dict[str, Any]] = None):
        self.tool_name = tool_name
        self.error = error
        self.arguments = arguments or {}
        if isinstance(error, BaseException):
            detail = f"{type(error).__name__}: {error}"
        else:
            detail = str(error)
        super().__init__(f"Tool '{tool_name}' failed: {detail}")


class UnknownToolError(HuddleError):
    """The model asked for a tool that is not registered in this conversation."""

    reason = "unknown_tool"

    def __init__(self, tool_name: str, available: Optional[list] = None):
        self.tool_name = tool_name
        self.available = list(available or [])
        message = f"Unknown tool '{tool_name}'."
        if self.available:
            message += f" Available tools: {', '.join(self.available)}"
        super().__init__(message)


class InvalidToolArgumentsError(HuddleError):
    """Arguments for a known tool are malformed or miss required fields."""

    reason = "invalid_arguments"

    def __init__(self, tool_name: str, issue: str):
        self.tool_name = tool_name
        self.issue = issue
        super().__init__(f"Invalid arguments for tool '{tool_name}': {issue}")


class BudgetExceededError(HuddleError):
    """Raised when the turn or tool-call ceiling is hit."""

    def __init__(self, limit_type: str, used: int, limit: int):
        self.limit_type = limit_type
        self.used = used
        self.limit = limit
        super().__init__(f"{limit_type} budget exhausted ({used}/{limit})")


class ConversationTimeoutError(HuddleError, TimeoutError):
    """The caller-imposed wall-clock deadline expired before a terminal answer."""

    def __init__(self, timeout_seconds: float, turns_used: int = 0):
        self.timeout_seconds = timeout_seconds
        self.turns_used = turns_used
        super().__init__(
            f"Conversation exceeded its {timeout_seconds:g}s deadline after {turns_used} turn(s)"
        )


def _status_of(exc: Optional[BaseException]) -> Optional[int]:
    """Pull an HTTP status out of a vendor SDK exception, if it carries one."""
    if exc is None:
        return None
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 100 <= value < 600:
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


__all__ = [
    "HuddleError",
    "ProviderError",
    "ProviderConfigurationError",
    "ToolValidationError",
    "ToolDispatchError",
    "UnknownToolError",
    "InvalidToolArgumentsError",
    "BudgetExceededError",
    "ConversationTimeoutError",
]

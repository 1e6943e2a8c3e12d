"""Public exports for the huddle package."""

from .budget import Budget
from .config import LLMConfig
from .exceptions import (
    BudgetExceededError,
    ConversationTimeoutError,
    HuddleError,
    InvalidToolArgumentsError,
    ProviderConfigurationError,
    ProviderError,
    ToolDispatchError,
    ToolValidationError,
    UnknownToolError,
)
from .ledger import CostAlert, CostLimits, CostRecord, InMemoryCostLedger, JsonFileCostLedger
from .orchestrator import (
    ConversationResult,
    ConversationState,
    Orchestrator,
    OrchestratorConfig,
    Termination,
)
from .parser import ToolCallParser
from .pricing import PRICING, calculate_cost, get_model_pricing
from .prompt import PromptBuilder
from .providers import (
    AnthropicProvider,
    ChatOptions,
    GeminiProvider,
    LocalProvider,
    OpenAIProvider,
    PerplexityProvider,
    Provider,
    create_provider,
)
from .retry import RetryPolicy, call_with_retry
from .tools import CapabilityRegistry, FunctionToolExecutor, ToolDefinition, ToolParameter
from .types import ChatResponse, FinishReason, Message, Role, ToolCall, ToolCallingMode, ToolResult
from .usage import ConversationUsage, UsageStats

__version__ = "0.1.0"

__all__ = [
    "Orchestrator",
    "OrchestratorConfig",
    "ConversationResult",
    "ConversationState",
    "Termination",
    "Budget",
    "LLMConfig",
    "Message",
    "Role",
    "ToolCall",
    "ToolResult",
    "ChatResponse",
    "FinishReason",
    "ToolCallingMode",
    "ToolDefinition",
    "ToolParameter",
    "CapabilityRegistry",
    "FunctionToolExecutor",
    "ToolCallParser",
    "PromptBuilder",
    "RetryPolicy",
    "call_with_retry",
    # Providers
    "Provider",
    "ChatOptions",
    "create_provider",
    "AnthropicProvider",
    "OpenAIProvider",
    "GeminiProvider",
    "PerplexityProvider",
    "LocalProvider",
    # Exceptions
    "HuddleError",
    "ProviderError",
    "ProviderConfigurationError",
    "ToolValidationError",
    "ToolDispatchError",
    "UnknownToolError",
    "InvalidToolArgumentsError",
    "BudgetExceededError",
    "ConversationTimeoutError",
    # Usage, pricing and cost ledger
    "UsageStats",
    "ConversationUsage",
    "PRICING",
    "calculate_cost",
    "get_model_pricing",
    "CostRecord",
    "CostLimits",
    "CostAlert",
    "InMemoryCostLedger",
    "JsonFileCostLedger",
]

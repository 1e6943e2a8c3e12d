"""
Conversation orchestrator package.
"""

from .config import HookCallable, Hooks, OrchestratorConfig
from .core import Orchestrator
from .state import ConversationResult, ConversationState, Termination

__all__ = [
    "Orchestrator",
    "OrchestratorConfig",
    "ConversationResult",
    "ConversationState",
    "Termination",
    "Hooks",
    "HookCallable",
]

"""Shared building blocks for agent workflows."""

from .chat_history import (
    DEFAULT_MAX_CHAT_HISTORY_LENGTH,
    EXTENDED_MAX_CHAT_HISTORY_LENGTH,
    ChatHistoryContainer,
    ContextType,
    HistoryEntry,
    manage_chat_history,
)
from .errors import AgentLoopError, GuidanceRetrievalError, MaxAttemptsReached
from .llm_loop import IterationState, LlmLoopConfig, run_llm_loop

__all__ = [
    # Chat history
    "DEFAULT_MAX_CHAT_HISTORY_LENGTH",
    "EXTENDED_MAX_CHAT_HISTORY_LENGTH",
    "ChatHistoryContainer",
    "ContextType",
    "HistoryEntry",
    "manage_chat_history",
    # Errors
    "AgentLoopError",
    "GuidanceRetrievalError",
    "MaxAttemptsReached",
    # Loop
    "IterationState",
    "LlmLoopConfig",
    "run_llm_loop",
]

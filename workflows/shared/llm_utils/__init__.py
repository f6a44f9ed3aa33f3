"""LLM utilities for the edit loop.

This module provides Anthropic Claude model integration with:
- Tiered model selection (Haiku/Sonnet/Opus)
- Extended thinking support for hard edits
- A tool-chat client that binds the coding tool set for a single turn
"""

from .models import ModelConfig, ModelTier, check_tool_choice, get_llm, get_llm_for_config
from .tool_chat import ChatModelClient, prepare_messages

__all__ = [
    "ModelConfig",
    "ModelTier",
    "get_llm",
    "get_llm_for_config",
    "check_tool_choice",
    "ChatModelClient",
    "prepare_messages",
]

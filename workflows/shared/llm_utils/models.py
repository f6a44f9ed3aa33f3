"""Model selection for tool-chat turns."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

from core.config import configure_langsmith

configure_langsmith()

from langchain_anthropic import ChatAnthropic

DEFAULT_TOOL_CHAT_MAX_TOKENS = 8192


class ModelTier(Enum):
    """Claude models available to the edit loop.

    SONNET is the default for authoring turns; OPUS is for hard edits and
    supports extended thinking.
    """
    HAIKU = "claude-haiku-4-5-20251001"
    SONNET = "claude-sonnet-4-5-20250929"
    OPUS = "claude-opus-4-5-20251101"

    @classmethod
    def from_name(cls, name: str) -> "ModelTier":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"unknown model tier: {name!r}") from None


@dataclass
class ModelConfig:
    """Model selection for a tool-chat call.

    Attributes:
        tier: Model tier to use
        max_tokens: Maximum output tokens
        thinking_budget: Extended thinking budget (disabled when None)
    """

    tier: ModelTier = ModelTier.SONNET
    max_tokens: int = DEFAULT_TOOL_CHAT_MAX_TOKENS
    thinking_budget: Optional[int] = None

    @classmethod
    def from_env(cls) -> "ModelConfig":
        """Read EDITLOOP_MODEL_TIER, EDITLOOP_MAX_TOKENS and EDITLOOP_THINKING_BUDGET."""
        budget = os.getenv("EDITLOOP_THINKING_BUDGET")
        return cls(
            tier=ModelTier.from_name(os.getenv("EDITLOOP_MODEL_TIER", "sonnet")),
            max_tokens=int(os.getenv("EDITLOOP_MAX_TOKENS", str(DEFAULT_TOOL_CHAT_MAX_TOKENS))),
            thinking_budget=int(budget) if budget else None,
        )


def check_tool_choice(model_config: ModelConfig, tool_choice: str) -> None:
    """Extended thinking only allows the model to choose freely between tools."""
    if model_config.thinking_budget is not None and tool_choice != "auto":
        raise ValueError(
            f"tool_choice {tool_choice!r} cannot be forced while extended thinking is enabled"
        )


def get_llm(
    tier: ModelTier = ModelTier.SONNET,
    thinking_budget: Optional[int] = None,
    max_tokens: int = 4096,
) -> ChatAnthropic:
    """
    Get a configured Anthropic Claude LLM instance.

    Args:
        tier: Model tier selection (HAIKU, SONNET, OPUS)
        thinking_budget: Token budget for extended thinking (enables if set)
        max_tokens: Maximum output tokens (must be > thinking_budget if set)

    Raises:
        ValueError: ANTHROPIC_API_KEY is missing or the thinking budget does not fit
    """
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise ValueError("ANTHROPIC_API_KEY not set")

    kwargs: dict[str, Any] = {
        "model": tier.value,
        "api_key": api_key,
        "max_tokens": max_tokens,
    }

    if thinking_budget is not None:
        if thinking_budget >= max_tokens:
            raise ValueError(
                f"thinking_budget ({thinking_budget}) must be less than max_tokens ({max_tokens})"
            )
        kwargs["thinking"] = {"type": "enabled", "budget_tokens": thinking_budget}

    return ChatAnthropic(**kwargs)


def get_llm_for_config(model_config: ModelConfig) -> ChatAnthropic:
    """Build the LLM described by a ModelConfig."""
    return get_llm(
        tier=model_config.tier,
        thinking_budget=model_config.thinking_budget,
        max_tokens=model_config.max_tokens,
    )

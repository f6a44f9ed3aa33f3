"""
Human channel for the edit loop: guidance requests and the ask-for-help tool.

Guidance is the last resort: any failure to obtain it is raised as
GuidanceRetrievalError and never retried.
"""

import asyncio
import logging
from typing import Any, Optional

from core.task_state import UserResponse
from langchain_tools.coding_tools import GET_HELP_OR_INPUT, GetHelpOrInputArgs
from workflows.shared.chat_history import ChatHistoryContainer

from .collaborators import GuidanceSource
from .errors import GuidanceRetrievalError
from .prompts import PromptSettings, render_prompt_info
from .schemas import (
    INITIAL_PROMPT_INFO_TYPES,
    FeedbackInfo,
    FeedbackType,
    SkipInfo,
    ToolResultInfo,
)

logger = logging.getLogger(__name__)


class QueuedGuidanceSource:
    """In-process GuidanceSource fed by a queue of human responses.

    A UI (or a test) calls `respond()`; the loop awaits `get_guidance()`.
    Every request is kept in `requests` as (context, params).
    """

    def __init__(self) -> None:
        self._responses: asyncio.Queue[UserResponse] = asyncio.Queue()
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def respond(self, content: str, params: Optional[dict[str, Any]] = None) -> None:
        self._responses.put_nowait(UserResponse(content=content, params=params or {}))

    async def get_guidance(self, context: str, params: dict[str, Any]) -> UserResponse:
        self.requests.append((context, dict(params)))
        logger.info(f"Guidance requested: {context[:120]}")
        return await self._responses.get()


async def request_guidance(
    guidance: GuidanceSource,
    context: str,
    params: Optional[dict[str, Any]] = None,
) -> UserResponse:
    """Ask the human for guidance, wrapping failures as GuidanceRetrievalError."""
    try:
        return await guidance.get_guidance(context, params or {})
    except Exception as e:
        logger.error(f"Guidance retrieval failed: {e}")
        raise GuidanceRetrievalError(f"failed to get user response: {e}") from e


async def get_user_feedback(
    prompt_info,
    guidance_context: str,
    chat_history: ChatHistoryContainer,
    guidance: GuidanceSource,
    settings: PromptSettings,
    params: Optional[dict[str, Any]] = None,
) -> FeedbackInfo:
    """Obtain guidance and merge it into the current prompt info.

    - Feedback: guidance is appended to the existing feedback
    - Skip: replaced by the guidance
    - Tool result: the tool message is flushed to history first
    - Initial prompt: rendered and recorded first, so instructions stay first

    Returns:
        FeedbackInfo of type user_guidance

    Raises:
        GuidanceRetrievalError: If guidance could not be obtained
        TypeError: If prompt_info is not a PromptInfo variant
    """
    response = await request_guidance(guidance, guidance_context, params)

    if isinstance(prompt_info, FeedbackInfo):
        return FeedbackInfo(
            feedback=f"{prompt_info.feedback}\n\n{response.content}",
            feedback_type=FeedbackType.USER_GUIDANCE,
        )
    if isinstance(prompt_info, SkipInfo):
        return FeedbackInfo(feedback=response.content, feedback_type=FeedbackType.USER_GUIDANCE)
    if isinstance(prompt_info, (ToolResultInfo, *INITIAL_PROMPT_INFO_TYPES)):
        rendered = render_prompt_info(prompt_info, settings)
        if rendered is not None:
            message, context_type = rendered
            chat_history.append(message, context_type)
        return FeedbackInfo(feedback=response.content, feedback_type=FeedbackType.USER_GUIDANCE)
    raise TypeError(f"Unsupported prompt info for user feedback: {type(prompt_info).__name__}")


async def get_help_or_input(args: GetHelpOrInputArgs, guidance: GuidanceSource) -> str:
    """Handle a get_help_or_input tool call.

    When every request names self-help tools and some of them were not tried
    yet, the model is told to use those first instead of asking a human.

    Args:
        args: Tool arguments
        guidance: Where human answers come from

    Returns:
        Tool response text
    """
    lines = []
    all_self_help = True
    self_help_tools: list[str] = []
    for index, request in enumerate(args.requests, start=1):
        if len(args.requests) > 1:
            lines.append(f"{index}. {request.content}")
        else:
            lines.append(request.content)

        if request.self_help.functions:
            for name in request.self_help.functions:
                if name == GET_HELP_OR_INPUT:
                    continue
                if name not in request.self_help.already_attempted_tools:
                    self_help_tools.append(name)
        else:
            all_self_help = False

    if all_self_help and self_help_tools:
        logger.info(f"Redirecting help request to self-help tools: {self_help_tools}")
        return (
            "Try using the following function(s) to unblock yourself before asking for "
            f"help again: {', '.join(self_help_tools)}"
        )

    message = "\n".join(lines) + "\n"
    response = await request_guidance(guidance, message, {"request_kind": "free_form"})
    return response.content

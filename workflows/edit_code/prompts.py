"""LLM prompts for edit authoring, and rendering of PromptInfo into messages."""

import re
from dataclasses import dataclass
from typing import Optional

from langchain_core.messages import BaseMessage, HumanMessage, ToolMessage

from langchain_tools.coding_tools import (
    BULK_READ_FILE,
    BULK_SEARCH_REPOSITORY,
    GET_HELP_OR_INPUT,
    GET_SYMBOL_DEFINITIONS,
)
from workflows.shared.chat_history import ContextType

from .extraction import DIVIDER, FENCES, REPLACE, SEARCH
from .schemas import (
    FeedbackInfo,
    FeedbackType,
    InitialStepInfo,
    InitialTaskInfo,
    SkipInfo,
    ToolResultInfo,
)

START_INITIAL_CODE_CONTEXT = "#START INITIAL CODE CONTEXT"
END_INITIAL_CODE_CONTEXT = "#END INITIAL CODE CONTEXT"
GUIDANCE_START = "#START Guidance From the User"
GUIDANCE_END = "#END Guidance From the User"

# =============================================================================
# Initial instructions
# =============================================================================

EDIT_BLOCK_FORMAT = """Write every change as an *edit block* inside a fenced code block, in this exact format:

{fence}
edit_block:1
path/to/file.py
{search}
exact lines currently in the file
{divider}
replacement lines
{replace}
{fence}

Rules:
- Number edit blocks sequentially with an edit_block:N line.
- The SEARCH_EXACT section must match the current file content exactly, including indentation. Only edit code you have actually seen via tools or the code context.
- Use "<<<<<<< CREATE_FILE", "<<<<<<< APPEND_TO_FILE" or "<<<<<<< DELETE_FILE" instead of SEARCH_EXACT to create, append to or delete a file.
- Keep each edit block small and focused; use several blocks rather than one large one.
- To look up code you need, call {symbol_tool} before editing it."""

APPLY_IMMEDIATELY_NOTE = """Edit blocks are applied as soon as you write them; you will be told which succeeded. When you are finished, reply without calling any tools."""

APPLY_DEFERRED_NOTE = """Edit blocks are applied together once you reply without calling any tools. Write all the edit blocks needed before finishing."""

HELP_NOTE = """If you are stuck and the other tools cannot help, call {help_tool}."""

INITIAL_TASK_PROMPT = """You are an expert software engineer. Edit the code to satisfy the requirements below.

{start_context}
{code_context}
{end_context}

Requirements:
{requirements}

{edit_block_format}

{apply_note}
{help_note}{hints}"""

INITIAL_STEP_PROMPT = """You are an expert software engineer following a plan. Edit the code to complete the current step only.

{start_context}
{code_context}
{end_context}

Overall requirements:
{requirements}

Plan progress:
{plan}

Current step:
{step}

{edit_block_format}

{apply_note}
{help_note}{hints}"""

# =============================================================================
# Feedback
# =============================================================================

GENERAL_FEEDBACK_PROMPTS = {
    FeedbackType.PAUSE: (
        "-- PAUSED --\n\nIMPORTANT: The user paused and provided the following guidance:\n\n"
        f"{GUIDANCE_START}\n{{feedback}}\n{GUIDANCE_END}"
    ),
    FeedbackType.USER_GUIDANCE: (
        f"The user provided the following guidance:\n\n{GUIDANCE_START}\n{{feedback}}\n{GUIDANCE_END}"
    ),
    FeedbackType.SYSTEM_ERROR: "System message:\n\n{feedback}",
}

EDIT_FEEDBACK_PROMPT = """{intro}

{feedback}
{hints}"""

FEEDBACK_INTROS = {
    FeedbackType.APPLY_ERROR: "Some edit blocks could not be applied:",
    FeedbackType.EDIT_BLOCK_ERROR: "The edit blocks could not be processed:",
    FeedbackType.TEST_FAILURE: "The tests failed after your edits:",
    FeedbackType.AUTO_REVIEW: "A review of your edits raised the following issues:",
}

APPLY_ERROR_HINT = (
    "Hint: failed edit blocks usually search for lines that don't exactly match the "
    "current file. Retrieve the latest code with {symbol_tool} or {read_tool} and "
    "write only the failed edit blocks again."
)
EDIT_BLOCK_ERROR_HINT = "Hint: follow the edit block format exactly, with every marker on its own line."
LINE_NUMBER_HINT = "Hint: use {read_tool} to look at the lines referenced above."
SEARCH_HINT = "Hint: use {search_tool} to find code related to the failure."

_LINE_REFERENCE = re.compile(r"\w+\.\w+:\d+")


@dataclass
class PromptSettings:
    """Task-level settings that shape rendered prompts."""

    apply_immediately: bool = False
    human_in_the_loop: bool = True
    hints: str = ""
    fence_style: str = "backtick"


def _initial_parts(settings: PromptSettings) -> dict[str, str]:
    return {
        "start_context": START_INITIAL_CODE_CONTEXT,
        "end_context": END_INITIAL_CODE_CONTEXT,
        "edit_block_format": EDIT_BLOCK_FORMAT.format(
            fence=FENCES[settings.fence_style],
            search=SEARCH,
            divider=DIVIDER,
            replace=REPLACE,
            symbol_tool=GET_SYMBOL_DEFINITIONS,
        ),
        "apply_note": APPLY_IMMEDIATELY_NOTE if settings.apply_immediately else APPLY_DEFERRED_NOTE,
        "help_note": HELP_NOTE.format(help_tool=GET_HELP_OR_INPUT) if settings.human_in_the_loop else "",
        "hints": f"\n\n{settings.hints}" if settings.hints else "",
    }


def render_feedback_prompt(feedback: str, feedback_type: FeedbackType) -> str:
    """Render feedback, adding hints for edit-related failures."""
    if feedback_type in GENERAL_FEEDBACK_PROMPTS:
        return GENERAL_FEEDBACK_PROMPTS[feedback_type].format(feedback=feedback)

    hints = []
    if feedback_type == FeedbackType.APPLY_ERROR:
        hints.append(APPLY_ERROR_HINT.format(symbol_tool=GET_SYMBOL_DEFINITIONS, read_tool=BULK_READ_FILE))
    elif feedback_type == FeedbackType.EDIT_BLOCK_ERROR:
        hints.append(EDIT_BLOCK_ERROR_HINT)
    else:
        hints.append(SEARCH_HINT.format(search_tool=BULK_SEARCH_REPOSITORY))
    if _LINE_REFERENCE.search(feedback):
        hints.append(LINE_NUMBER_HINT.format(read_tool=BULK_READ_FILE))

    return EDIT_FEEDBACK_PROMPT.format(
        intro=FEEDBACK_INTROS[feedback_type],
        feedback=feedback,
        hints="\n" + "\n".join(hints),
    ).strip()


def render_prompt_info(
    prompt_info,
    settings: PromptSettings,
) -> Optional[tuple[BaseMessage, Optional[ContextType]]]:
    """Render the message to append for a prompt info.

    Returns:
        (message, context_type), or None for SkipInfo

    Raises:
        TypeError: If prompt_info is not a PromptInfo variant
    """
    if isinstance(prompt_info, InitialTaskInfo):
        content = INITIAL_TASK_PROMPT.format(
            code_context=prompt_info.code_context,
            requirements=prompt_info.requirements,
            **_initial_parts(settings),
        )
        return HumanMessage(content=content.strip()), ContextType.INITIAL_INSTRUCTIONS
    if isinstance(prompt_info, InitialStepInfo):
        content = INITIAL_STEP_PROMPT.format(
            code_context=prompt_info.code_context,
            requirements=prompt_info.requirements,
            plan=prompt_info.plan,
            step=prompt_info.step,
            **_initial_parts(settings),
        )
        return HumanMessage(content=content.strip()), ContextType.INITIAL_INSTRUCTIONS
    if isinstance(prompt_info, FeedbackInfo):
        content = render_feedback_prompt(prompt_info.feedback, prompt_info.feedback_type)
        context_type = ContextType.USER_FEEDBACK
        if prompt_info.feedback_type == FeedbackType.APPLY_ERROR:
            context_type = ContextType.EDIT_BLOCK_REPORT
        elif prompt_info.feedback_type == FeedbackType.TEST_FAILURE:
            context_type = ContextType.TEST_RESULT
        elif prompt_info.feedback_type == FeedbackType.AUTO_REVIEW:
            context_type = ContextType.SELF_REVIEW_FEEDBACK
        return HumanMessage(content=content), context_type
    if isinstance(prompt_info, ToolResultInfo):
        message = ToolMessage(
            content=prompt_info.response,
            tool_call_id=prompt_info.call_id,
            name=prompt_info.tool_name,
            status="error" if prompt_info.is_error else "success",
        )
        return message, None
    if isinstance(prompt_info, SkipInfo):
        return None
    raise TypeError(f"Unsupported prompt info for authoring edit blocks: {type(prompt_info).__name__}")

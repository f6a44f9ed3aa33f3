"""
State schema for the edit loop controller graph.

The graph is compiled per run (it closes over the task's collaborators and
chat history), so state may hold pydantic models directly.
"""

from typing import Literal, Optional
from typing_extensions import TypedDict

from .schemas import EditBlock


class EditLoopState(TypedDict):
    """State carried between the author, apply and report nodes."""

    prompt_info: object  # PromptInfo variant rendered by the next authoring run
    attempt_count: int
    max_attempts: int
    context_size_extension: int

    # Authoring output
    pending_edit_blocks: list[EditBlock]
    applied_edit_blocks: list[EditBlock]
    report_message: Optional[str]
    pending_action: Optional[str]

    # Routing
    next_step: Literal["author", "apply", "report", "done"]
    status: Literal["running", "success", "pending_action"]

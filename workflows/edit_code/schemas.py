"""Pydantic schemas for the edit loop: prompt infos, edit blocks and reports."""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Prompt Info (what to render for the next model turn)
# =============================================================================


class FeedbackType(str, Enum):
    """Source of a feedback prompt."""

    PAUSE = "pause"
    USER_GUIDANCE = "user_guidance"
    EDIT_BLOCK_ERROR = "edit_block_error"
    APPLY_ERROR = "apply_error"
    SYSTEM_ERROR = "system_error"
    TEST_FAILURE = "test_failure"
    AUTO_REVIEW = "auto_review"


class InitialTaskInfo(BaseModel):
    """First turn of a standalone coding task."""

    kind: Literal["initial_task"] = "initial_task"
    code_context: str = Field(description="Code the model starts from")
    requirements: str = Field(description="What the edits must achieve")


class InitialStepInfo(BaseModel):
    """First turn of one step in a multi-step plan."""

    kind: Literal["initial_step"] = "initial_step"
    code_context: str
    requirements: str
    plan: str = Field(description="Rendered plan execution so far")
    step: str = Field(description="Definition of the current step")


class FeedbackInfo(BaseModel):
    """Feedback for the model (errors, reports, human guidance)."""

    kind: Literal["feedback"] = "feedback"
    feedback: str
    feedback_type: FeedbackType


class ToolResultInfo(BaseModel):
    """A tool response still to be added to history."""

    kind: Literal["tool_result"] = "tool_result"
    response: str
    tool_name: str
    call_id: str
    is_error: bool = False


class SkipInfo(BaseModel):
    """Nothing to render: history already holds the next turn's input."""

    kind: Literal["skip"] = "skip"


PromptInfo = Annotated[
    Union[InitialTaskInfo, InitialStepInfo, FeedbackInfo, ToolResultInfo, SkipInfo],
    Field(discriminator="kind"),
]

INITIAL_PROMPT_INFO_TYPES = (InitialTaskInfo, InitialStepInfo)


# =============================================================================
# Edit Blocks
# =============================================================================


class EditBlock(BaseModel):
    """A proposed search/replace edit, immutable once extracted."""

    model_config = ConfigDict(frozen=True)

    sequence_number: int = Field(description="Stable number, defines report order")
    file_path: str
    edit_type: Literal["update", "create", "append", "delete"] = "update"
    old_lines: tuple[str, ...] = ()
    new_lines: tuple[str, ...] = ()
    visible_snippets: tuple[str, ...] = Field(
        default=(),
        description="Code for file_path the model could see when the block was extracted",
    )


class ApplyEditBlockReport(BaseModel):
    """Outcome of applying one edit block."""

    original_edit_block: EditBlock
    did_apply: bool
    error: Optional[str] = None
    check_result: Optional[str] = None


class ApplyEditBlocksResult(BaseModel):
    """Aggregated outcome of applying a batch of edit blocks."""

    report_message: str
    all_applied: bool
    reports: list[ApplyEditBlockReport]


class CodeDiffEvent(BaseModel):
    """Observability event emitted after edits applied."""

    event_type: Literal["code_diff"] = "code_diff"
    task_id: str
    diff: str


# =============================================================================
# Outcomes
# =============================================================================


class AuthoringOutcome(BaseModel):
    """Result of one authoring run."""

    edit_blocks: list[EditBlock] = Field(
        default_factory=list,
        description="Blocks extracted but not applied yet (deferred-apply mode)",
    )
    applied_edit_blocks: list[EditBlock] = Field(
        default_factory=list,
        description="Blocks applied during authoring (immediate-apply mode)",
    )
    report_message: Optional[str] = None
    context_size_extension: int = 0
    pending_action: Optional[str] = Field(
        default=None,
        description="User action left pending for the caller (not consumed)",
    )


class EditLoopResult(BaseModel):
    """Result of the edit loop controller."""

    status: Literal["success", "pending_action"]
    attempt_count: int
    applied_edit_blocks: list[EditBlock] = Field(default_factory=list)
    report_message: Optional[str] = None
    pending_action: Optional[str] = None
    context_size_extension: int = 0

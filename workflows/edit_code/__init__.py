"""
Edit code workflow: author edit blocks with a tool-using model and apply them.

Entry point:
    result = await run_edit_code(deps, chat_history, InitialTaskInfo(...))
"""

from .apply_report import ApplyReportAggregator, feedback_from_apply_reports
from .authoring import EditAuthoringEngine
from .controller import create_edit_code_graph, run_edit_code
from .dependencies import EditCodeDependencies
from .errors import (
    ApplyEditBlocksError,
    EditCodeError,
    ExtractEditBlocksError,
    GuidanceRetrievalError,
    MaxAttemptsReached,
)
from .extraction import FencedEditBlockExtractor, parse_edit_blocks
from .human import QueuedGuidanceSource, get_help_or_input, get_user_feedback
from .schemas import (
    ApplyEditBlockReport,
    ApplyEditBlocksResult,
    AuthoringOutcome,
    CodeDiffEvent,
    EditBlock,
    EditLoopResult,
    FeedbackInfo,
    FeedbackType,
    InitialStepInfo,
    InitialTaskInfo,
    PromptInfo,
    SkipInfo,
    ToolResultInfo,
)
from .thresholds import ThresholdPolicy, threshold_message_for_counter

__all__ = [
    # Entry point
    "run_edit_code",
    "create_edit_code_graph",
    "EditCodeDependencies",
    # Components
    "ApplyReportAggregator",
    "EditAuthoringEngine",
    "FencedEditBlockExtractor",
    "QueuedGuidanceSource",
    "ThresholdPolicy",
    "feedback_from_apply_reports",
    "get_help_or_input",
    "get_user_feedback",
    "parse_edit_blocks",
    "threshold_message_for_counter",
    # Schemas
    "ApplyEditBlockReport",
    "ApplyEditBlocksResult",
    "AuthoringOutcome",
    "CodeDiffEvent",
    "EditBlock",
    "EditLoopResult",
    "FeedbackInfo",
    "FeedbackType",
    "InitialStepInfo",
    "InitialTaskInfo",
    "PromptInfo",
    "SkipInfo",
    "ToolResultInfo",
    # Errors
    "ApplyEditBlocksError",
    "EditCodeError",
    "ExtractEditBlocksError",
    "GuidanceRetrievalError",
    "MaxAttemptsReached",
]

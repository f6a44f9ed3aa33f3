"""
Edit loop controller: outer retry around edit authoring.

Graph flow (deferred-apply mode):
    START -> author -> apply -> report -> END
                ^        |
                +--------+  (apply error / partial apply, report as feedback)

In immediate-apply mode blocks are applied inside authoring, so the graph
ends after the author node. Malformed edit blocks loop author -> author
with format feedback. Every retry counts against the controller's own
attempt bound, checked at the top of the author node together with the
go-next and pause checkpoints.
"""

import logging
from typing import Any

from langchain_core.messages import SystemMessage
from langgraph.graph import END, START, StateGraph

from core.task_state import USER_ACTION_GO_NEXT, PauseAborted
from workflows.shared.chat_history import ChatHistoryContainer, ContextType
from workflows.shared.llm_loop import NO_MAX_UNLESS_DISABLED_HUMAN
from workflows.shared.tracing import add_trace_metadata, graph_run_config, workflow_traceable

from .authoring import (
    APPLY_ABORTED_BY_PAUSE,
    APPLY_ERROR_FEEDBACK,
    PAUSE_PROMPT,
    USER_ACTION_GO_NEXT_GATE,
    EditAuthoringEngine,
    max_chat_history_length,
)
from .dependencies import EditCodeDependencies
from .errors import ApplyEditBlocksError, ExtractEditBlocksError, MaxAttemptsReached
from .prompts import render_prompt_info
from .schemas import INITIAL_PROMPT_INFO_TYPES, EditLoopResult, FeedbackInfo, FeedbackType
from .state import EditLoopState

logger = logging.getLogger(__name__)

DEFAULT_MAX_EDIT_LOOP_ATTEMPTS = 17
UNBOUNDED_GRAPH_STEPS = 10000

EDIT_BLOCK_FORMAT_FEEDBACK = (
    "Please write out all the *edit blocks* again and ensure we follow the format, "
    "as we encountered this error when processing them: {error}"
)

def _max_attempts(deps: EditCodeDependencies) -> int:
    if deps.config.max_iterations > 0:
        return deps.config.max_iterations
    return DEFAULT_MAX_EDIT_LOOP_ATTEMPTS


def _is_bounded(deps: EditCodeDependencies) -> bool:
    version = deps.gates.get_version(NO_MAX_UNLESS_DISABLED_HUMAN)
    return version < 1 or not deps.human_in_the_loop


def _pending_go_next(deps: EditCodeDependencies) -> str | None:
    if deps.gates.get_version(USER_ACTION_GO_NEXT_GATE) < 1:
        return None
    action = deps.pause.get_pending_user_action()
    if action == USER_ACTION_GO_NEXT:
        return action
    return None


def route_next_step(state: dict[str, Any]) -> str:
    return state["next_step"]


def create_edit_code_graph(
    deps: EditCodeDependencies,
    engine: EditAuthoringEngine,
    chat_history: ChatHistoryContainer,
) -> StateGraph:
    """Build the controller graph for one run.

    Nodes close over the task's collaborators and chat history, which the
    run owns exclusively.
    """

    async def author_node(state: dict[str, Any]) -> dict[str, Any]:
        attempt_count = state["attempt_count"]
        prompt_info = state["prompt_info"]
        extension = state["context_size_extension"]

        action = _pending_go_next(deps)
        if action is not None:
            logger.info("Pending go-next action before authoring")
            return {"pending_action": action, "status": "pending_action", "next_step": "done"}

        response = await deps.pause.request_if_paused(PAUSE_PROMPT)
        if response is not None and response.content:
            if isinstance(prompt_info, INITIAL_PROMPT_INFO_TYPES):
                rendered = render_prompt_info(prompt_info, deps.prompt_settings())
                chat_history.append(*rendered)
            prompt_info = FeedbackInfo(feedback=response.content, feedback_type=FeedbackType.PAUSE)

        if attempt_count >= state["max_attempts"] and _is_bounded(deps):
            logger.warning(f"Edit loop reached max attempts ({state['max_attempts']})")
            raise MaxAttemptsReached(attempt_count, state["max_attempts"])

        deps.windower(chat_history, max_chat_history_length(extension))

        try:
            outcome = await engine.author_edit_blocks(chat_history, prompt_info, extension)
        except ExtractEditBlocksError as e:
            logger.info(f"Asking for edit blocks again after extraction error (attempt {attempt_count + 1})")
            return {
                "prompt_info": FeedbackInfo(
                    feedback=EDIT_BLOCK_FORMAT_FEEDBACK.format(error=e),
                    feedback_type=FeedbackType.EDIT_BLOCK_ERROR,
                ),
                "attempt_count": attempt_count + 1,
                "next_step": "author",
            }

        update: dict[str, Any] = {
            "prompt_info": prompt_info,
            "context_size_extension": outcome.context_size_extension,
        }

        action = outcome.pending_action or _pending_go_next(deps)
        if action is not None:
            logger.info("Pending go-next action after authoring")
            return {**update, "pending_action": action, "status": "pending_action", "next_step": "done"}

        if deps.apply_immediately():
            return {
                **update,
                "applied_edit_blocks": state["applied_edit_blocks"] + outcome.applied_edit_blocks,
                "report_message": outcome.report_message,
                "status": "success",
                "next_step": "done",
            }

        return {**update, "pending_edit_blocks": outcome.edit_blocks, "next_step": "apply"}

    async def apply_node(state: dict[str, Any]) -> dict[str, Any]:
        edit_blocks = state["pending_edit_blocks"]
        attempt_count = state["attempt_count"]

        if not edit_blocks:
            logger.info("Authoring finished without edit blocks")
            return {"status": "success", "next_step": "done"}

        try:
            result = await deps.pause.scope().run(deps.aggregator().apply_and_report(edit_blocks))
        except PauseAborted:
            logger.info("Edit block application aborted by pause")
            return {
                "prompt_info": FeedbackInfo(
                    feedback=APPLY_ERROR_FEEDBACK.format(error=APPLY_ABORTED_BY_PAUSE),
                    feedback_type=FeedbackType.SYSTEM_ERROR,
                ),
                "pending_edit_blocks": [],
                "next_step": "author",
            }
        except ApplyEditBlocksError as e:
            logger.warning(f"Error while applying edit blocks: {e}")
            return {
                "prompt_info": FeedbackInfo(
                    feedback=APPLY_ERROR_FEEDBACK.format(error=e),
                    feedback_type=FeedbackType.SYSTEM_ERROR,
                ),
                "pending_edit_blocks": [],
                "attempt_count": attempt_count + 1,
                "next_step": "author",
            }

        applied = state["applied_edit_blocks"] + [
            report.original_edit_block for report in result.reports if report.did_apply
        ]

        if not result.all_applied:
            logger.info(f"Some edit blocks failed to apply, authoring again (attempt {attempt_count + 1})")
            return {
                "prompt_info": FeedbackInfo(
                    feedback=result.report_message,
                    feedback_type=FeedbackType.APPLY_ERROR,
                ),
                "pending_edit_blocks": [],
                "applied_edit_blocks": applied,
                "attempt_count": attempt_count + 1,
                "next_step": "author",
            }

        return {
            "pending_edit_blocks": [],
            "applied_edit_blocks": applied,
            "report_message": result.report_message,
            "next_step": "report",
        }

    def report_node(state: dict[str, Any]) -> dict[str, Any]:
        chat_history.append(
            SystemMessage(content=state["report_message"]),
            ContextType.EDIT_BLOCK_REPORT,
        )
        return {"status": "success", "next_step": "done"}

    builder = StateGraph(EditLoopState)

    builder.add_node("author", author_node)
    builder.add_node("apply", apply_node)
    builder.add_node("report", report_node)

    builder.add_edge(START, "author")
    builder.add_conditional_edges(
        "author",
        route_next_step,
        {"author": "author", "apply": "apply", "done": END},
    )
    builder.add_conditional_edges(
        "apply",
        route_next_step,
        {"author": "author", "report": "report", "done": END},
    )
    builder.add_edge("report", END)

    return builder.compile()


@workflow_traceable(name="EditCode", workflow_type="edit_code")
async def run_edit_code(
    deps: EditCodeDependencies,
    chat_history: ChatHistoryContainer,
    prompt_info,
    context_size_extension: int = 0,
) -> EditLoopResult:
    """Run the edit loop until edits are applied or a go-next action is pending.

    Args:
        deps: Collaborators and configuration for the task
        chat_history: The task's history, appended to in place
        prompt_info: Initial prompt info (usually InitialTaskInfo or InitialStepInfo)
        context_size_extension: Extra history budget carried over from earlier work

    Returns:
        EditLoopResult with status "success" or "pending_action"

    Raises:
        MaxAttemptsReached: The controller or authoring bound was exhausted
        GuidanceRetrievalError: Human guidance could not be obtained
    """
    max_attempts = _max_attempts(deps)
    apply_immediately = deps.apply_immediately()

    add_trace_metadata({
        "task_id": deps.task_id,
        "apply_immediately": apply_immediately,
        "max_attempts": max_attempts,
    })
    logger.info(
        f"Starting edit loop for task {deps.task_id}: "
        f"max_attempts={max_attempts}, apply_immediately={apply_immediately}"
    )

    engine = EditAuthoringEngine(deps)
    graph = create_edit_code_graph(deps, engine, chat_history)

    initial_state = EditLoopState(
        prompt_info=prompt_info,
        attempt_count=0,
        max_attempts=max_attempts,
        context_size_extension=context_size_extension,
        pending_edit_blocks=[],
        applied_edit_blocks=[],
        report_message=None,
        pending_action=None,
        next_step="author",
        status="running",
    )

    # Each attempt visits author -> apply -> (author) at most
    max_graph_steps = (max_attempts * 4) + 10 if _is_bounded(deps) else UNBOUNDED_GRAPH_STEPS
    config = graph_run_config(max_graph_steps, run_name="edit_code_graph")

    final_state = await graph.ainvoke(initial_state, config=config)

    result = EditLoopResult(
        status=final_state["status"],
        attempt_count=final_state["attempt_count"],
        applied_edit_blocks=final_state.get("applied_edit_blocks", []),
        report_message=final_state.get("report_message"),
        pending_action=final_state.get("pending_action"),
        context_size_extension=final_state.get("context_size_extension", context_size_extension),
    )
    logger.info(
        f"Edit loop finished for task {deps.task_id}: status={result.status}, "
        f"attempts={result.attempt_count}, applied={len(result.applied_edit_blocks)}"
    )
    return result

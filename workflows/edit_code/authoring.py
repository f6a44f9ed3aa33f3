"""
Edit authoring: drive tool-augmented model turns until edit blocks are written.

Each turn renders the current prompt info, windows the history, calls the
model with the coding tools and then:
- extracts edit blocks from the response (against the history the model saw)
- applies them right away in immediate-apply mode, or accumulates them
- runs the tool calls in order and records their results

A response without tool calls ends authoring. Failures that the model can
fix (partial application, applier errors) become feedback for the next turn;
malformed edit blocks raise ExtractEditBlocksError for the controller to
turn into feedback.
"""

import logging
from typing import Optional

from langchain_core.messages import SystemMessage

from core.task_state import USER_ACTION_GO_NEXT, PauseAborted
from langchain_tools.coding_tools import GET_HELP_OR_INPUT, GetHelpOrInputArgs, build_coding_tools
from workflows.shared.chat_history import (
    DEFAULT_MAX_CHAT_HISTORY_LENGTH,
    EXTENDED_MAX_CHAT_HISTORY_LENGTH,
    ChatHistoryContainer,
    ContextType,
    message_text,
)

from .dependencies import EditCodeDependencies
from .errors import ApplyEditBlocksError, ExtractEditBlocksError, MaxAttemptsReached
from .human import get_help_or_input, get_user_feedback
from .prompts import PromptSettings, render_prompt_info
from .schemas import (
    INITIAL_PROMPT_INFO_TYPES,
    ApplyEditBlocksResult,
    AuthoringOutcome,
    EditBlock,
    FeedbackInfo,
    FeedbackType,
    SkipInfo,
)
from .tool_calls import handle_tool_calls

logger = logging.getLogger(__name__)

DEFAULT_MAX_AUTHORING_ATTEMPTS = 7
DEFAULT_FEEDBACK_ITERATIONS = 3
EXTENDED_FEEDBACK_ITERATIONS = 6
LARGE_TOOL_RESPONSE_LENGTH = 5000

USER_ACTION_GO_NEXT_GATE = "user-action-go-next"
AUTHOR_EDIT_FEEDBACK_ITERATIONS = "author-edit-feedback-iterations"
AUTHOR_EDIT_NO_MAX_UNLESS_DISABLED_HUMAN = "author-edit-no-max-unless-disabled-human"

PAUSE_PROMPT = "Paused. Provide some guidance to continue:"
AUTHORING_GUIDANCE_CONTEXT = (
    "The system has attempted to generate edits multiple times without success. "
    "Please provide some guidance."
)
PENDING_EDIT_BLOCKS_NOTE = "Note: {count} edit block(s) are pending application."
APPLY_ERROR_FEEDBACK = "Error while applying edit blocks: {error}"
APPLY_ABORTED_BY_PAUSE = "application was aborted because the task was paused"


def max_chat_history_length(context_size_extension: int) -> int:
    return min(DEFAULT_MAX_CHAT_HISTORY_LENGTH + context_size_extension, EXTENDED_MAX_CHAT_HISTORY_LENGTH)


class EditAuthoringEngine:
    """Produces edit blocks from one or more model turns."""

    def __init__(self, deps: EditCodeDependencies):
        self.deps = deps

    def _max_attempts(self) -> int:
        if self.deps.config.max_iterations > 0:
            return self.deps.config.max_iterations
        return DEFAULT_MAX_AUTHORING_ATTEMPTS

    def _feedback_iterations(self) -> int:
        cadence = DEFAULT_FEEDBACK_ITERATIONS
        if self.deps.gates.get_version(AUTHOR_EDIT_FEEDBACK_ITERATIONS) >= 1:
            cadence = EXTENDED_FEEDBACK_ITERATIONS
        if self.deps.config.auto_iterations > 0:
            cadence = self.deps.config.auto_iterations
        return cadence

    def _build_tools(self):
        help_handler = None
        if self.deps.human_in_the_loop:

            async def help_handler(args: GetHelpOrInputArgs) -> str:
                return await get_help_or_input(args, self.deps.guidance)

        return build_coding_tools(self.deps.tool_handlers, help_handler)

    @staticmethod
    def _record_prompt(chat_history: ChatHistoryContainer, prompt_info, settings: PromptSettings) -> None:
        rendered = render_prompt_info(prompt_info, settings)
        if rendered is not None:
            message, context_type = rendered
            chat_history.append(message, context_type)

    async def _apply(self, scope, edit_blocks: list[EditBlock]) -> tuple[Optional[ApplyEditBlocksResult], Optional[str]]:
        """Apply through the pause scope. PauseAborted propagates to the caller."""
        try:
            return await scope.run(self.deps.aggregator().apply_and_report(edit_blocks)), None
        except ApplyEditBlocksError as e:
            logger.warning(f"Error while applying edit blocks: {e}")
            return None, str(e)

    async def author_edit_blocks(
        self,
        chat_history: ChatHistoryContainer,
        prompt_info,
        context_size_extension: int = 0,
    ) -> AuthoringOutcome:
        """Author edit blocks for the current prompt info.

        Args:
            chat_history: Task history, appended to in call order
            prompt_info: What to render for the first turn
            context_size_extension: Extra history budget from earlier large tool outputs

        Returns:
            AuthoringOutcome with accumulated (deferred) or applied (immediate) blocks,
            or with pending_action set when a "go next" user action is pending

        Raises:
            MaxAttemptsReached: Attempt bound exceeded with nothing to return
            ExtractEditBlocksError: The response had malformed edit blocks
            GuidanceRetrievalError: Guidance could not be obtained
        """
        deps = self.deps
        gates = deps.gates
        extracted: list[EditBlock] = []
        applied: list[EditBlock] = []
        report_message: Optional[str] = None
        attempt_count = 0
        since_last = 0
        retrying_turn = False

        max_attempts = self._max_attempts()
        feedback_iterations = self._feedback_iterations()
        settings = deps.prompt_settings()
        apply_immediately = settings.apply_immediately
        tools = self._build_tools()

        logger.info(
            f"Authoring edit blocks: max_attempts={max_attempts}, "
            f"feedback_every={feedback_iterations}, apply_immediately={apply_immediately}"
        )

        while True:
            if gates.get_version(USER_ACTION_GO_NEXT_GATE) >= 1:
                action = deps.pause.get_pending_user_action()
                if action == USER_ACTION_GO_NEXT:
                    logger.info("Pending go-next action, leaving authoring")
                    return AuthoringOutcome(
                        context_size_extension=context_size_extension,
                        pending_action=action,
                    )

            response = await deps.pause.request_if_paused(PAUSE_PROMPT)
            if response is not None and response.content:
                if isinstance(prompt_info, INITIAL_PROMPT_INFO_TYPES):
                    self._record_prompt(chat_history, prompt_info, settings)
                prompt_info = FeedbackInfo(feedback=response.content, feedback_type=FeedbackType.PAUSE)
                since_last = 0

            if not retrying_turn:
                nudge, should_inject = deps.threshold_policy.message_for(feedback_iterations, since_last)
                if should_inject:
                    prompt_info = FeedbackInfo(feedback=nudge, feedback_type=FeedbackType.SYSTEM_ERROR)
            retrying_turn = False

            max_version = gates.get_version(AUTHOR_EDIT_NO_MAX_UNLESS_DISABLED_HUMAN)
            if attempt_count >= max_attempts and (max_version < 1 or not deps.human_in_the_loop):
                if not apply_immediately and extracted:
                    logger.info(f"Max attempts reached, returning {len(extracted)} pending edit blocks")
                    return AuthoringOutcome(
                        edit_blocks=extracted,
                        context_size_extension=context_size_extension,
                    )
                logger.warning(f"Authoring reached max attempts ({max_attempts})")
                raise MaxAttemptsReached(attempt_count, max_attempts)
            elif (
                deps.human_in_the_loop
                and since_last > 0
                and since_last % feedback_iterations == 0
            ):
                prompt_info = await get_user_feedback(
                    prompt_info,
                    AUTHORING_GUIDANCE_CONTEXT,
                    chat_history,
                    deps.guidance,
                    settings,
                )
                since_last = 0

            self._record_prompt(chat_history, prompt_info, settings)
            visible_history = chat_history.messages()
            deps.windower(chat_history, max_chat_history_length(context_size_extension))

            if not apply_immediately and extracted:
                note = PENDING_EDIT_BLOCKS_NOTE.format(count=len(extracted))
                entries = chat_history.entries()
                if not entries or entries[-1].message.content != note:
                    chat_history.append(SystemMessage(content=note))

            attempt_count += 1
            since_last += 1

            scope = deps.pause.scope()
            try:
                ai_message = await scope.run(
                    deps.chat_client.complete(chat_history.messages(), tools, "auto", deps.model_config)
                )
            except PauseAborted:
                logger.info(f"Model call aborted by pause (attempt {attempt_count})")
                attempt_count -= 1
                since_last -= 1
                # The prompt is already in history
                prompt_info = SkipInfo()
                retrying_turn = True
                continue

            chat_history.append(ai_message)
            visible_history.append(ai_message)

            extraction_error: Optional[ExtractEditBlocksError] = None
            current: list[EditBlock] = []
            try:
                current = deps.extractor.extract(
                    message_text(ai_message), visible_history, settings.fence_style
                )
            except ExtractEditBlocksError as e:
                logger.warning(f"Edit block extraction failed: {e}")
                extraction_error = e

            apply_result: Optional[ApplyEditBlocksResult] = None
            apply_error: Optional[str] = None
            apply_aborted = False
            if current:
                since_last = 0
                if apply_immediately:
                    try:
                        apply_result, apply_error = await self._apply(scope, current)
                    except PauseAborted:
                        logger.info(f"Edit block application aborted by pause (attempt {attempt_count})")
                        apply_aborted = True
                else:
                    extracted.extend(current)

            tool_calls = ai_message.tool_calls
            results = await handle_tool_calls(tool_calls, tools, scope) if tool_calls else []
            for result in results:
                if result.tool_name == GET_HELP_OR_INPUT:
                    since_last = 0
                if len(result.response) > LARGE_TOOL_RESPONSE_LENGTH:
                    context_size_extension += len(result.response) - LARGE_TOOL_RESPONSE_LENGTH
                self._record_prompt(chat_history, result, settings)

            if extraction_error is not None:
                raise extraction_error

            if apply_aborted:
                # The turn does not count; the blocks are written again after the pause
                attempt_count -= 1
                prompt_info = FeedbackInfo(
                    feedback=APPLY_ERROR_FEEDBACK.format(error=APPLY_ABORTED_BY_PAUSE),
                    feedback_type=FeedbackType.SYSTEM_ERROR,
                )
                continue

            if current and apply_immediately:
                if apply_error is not None:
                    prompt_info = FeedbackInfo(
                        feedback=APPLY_ERROR_FEEDBACK.format(error=apply_error),
                        feedback_type=FeedbackType.SYSTEM_ERROR,
                    )
                    attempt_count += 1
                    continue
                if not apply_result.all_applied:
                    prompt_info = FeedbackInfo(
                        feedback=apply_result.report_message,
                        feedback_type=FeedbackType.APPLY_ERROR,
                    )
                    applied.extend(r.original_edit_block for r in apply_result.reports if r.did_apply)
                    attempt_count += 1
                    continue
                chat_history.append(
                    SystemMessage(content=apply_result.report_message),
                    ContextType.EDIT_BLOCK_REPORT,
                )
                applied.extend(current)
                report_message = apply_result.report_message

            if tool_calls:
                prompt_info = SkipInfo()
                continue
            break

        logger.info(
            f"Authoring finished after {attempt_count} attempts: "
            f"{len(extracted)} pending, {len(applied)} applied"
        )
        return AuthoringOutcome(
            edit_blocks=extracted,
            applied_edit_blocks=applied,
            report_message=report_message,
            context_size_extension=context_size_extension,
        )

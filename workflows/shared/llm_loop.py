"""
Generic resumable loop for human-in-the-loop LLM iterations.

run_llm_loop drives a caller-supplied step through bounded iterations,
interleaving pause checkpoints and periodic guidance solicitation:

    async def step(iteration: IterationState) -> Optional[Plan]:
        response = await iteration.scope.run(client.complete(...))
        ...
        return plan_or_none

    plan = await run_llm_loop(
        step,
        chat_history=history,
        pause=coordinator,
        guidance=guidance_source,
        gates=gates,
        config=LlmLoopConfig(max_iterations=10),
    )

Each step receives a fresh IterationState value. The step may reset
num_since_last_feedback or replace state on that value; the loop adopts both
once the step returns. A step interrupted by a pause (PauseAborted) does not
count: with the `no-max-unless-disabled-human` gate at version >= 1 both
counters are rewound by one and the same logical iteration runs again.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from langchain_core.messages import HumanMessage

from core.task_state import PauseAborted, PauseScope, VersionGates
from workflows.shared.chat_history import ChatHistoryContainer, ContextType
from workflows.shared.errors import GuidanceRetrievalError, MaxAttemptsReached

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_MAX_UNLESS_DISABLED_HUMAN = "no-max-unless-disabled-human"

PAUSED_GUIDANCE_TEMPLATE = (
    "-- PAUSED --\n\nIMPORTANT: The user paused and provided the following guidance:\n\n{guidance}"
)
LOOP_GUIDANCE_CONTEXT = (
    "The LLM has looped {num} times without finalizing. "
    'Please provide guidance or just say "continue" if they are on track.'
)


@dataclass
class LlmLoopConfig:
    """Loop bounds.

    Attributes:
        max_iterations: Hard bound on iterations (ignored while human-in-the-loop
            is enabled and the gate is at version >= 1)
        feedback_every: Iterations between guidance solicitations
        initial_state: Caller-owned state handed to the first step
    """

    max_iterations: int = 17
    feedback_every: int = 3
    initial_state: Any = None


@dataclass
class IterationState:
    """Value handed to each step invocation."""

    num: int
    num_since_last_feedback: int
    max_iterations: int
    feedback_every: int
    scope: PauseScope
    chat_history: ChatHistoryContainer
    state: Any = None


async def run_llm_loop(
    step: Callable[[IterationState], Awaitable[Optional[T]]],
    *,
    chat_history: Optional[ChatHistoryContainer] = None,
    pause,
    guidance,
    gates: VersionGates,
    config: Optional[LlmLoopConfig] = None,
    disable_human_in_the_loop: bool = False,
) -> T:
    """Run step until it returns a non-None result.

    Args:
        step: Async step function
        chat_history: History shared with the step (created when None)
        pause: PauseSource for pause checkpoints and per-iteration scopes
        guidance: GuidanceSource used every feedback_every iterations
        gates: Version gates of the running task
        config: Loop bounds
        disable_human_in_the_loop: Skip guidance solicitation and enforce the bound

    Returns:
        The first non-None step result

    Raises:
        MaxAttemptsReached: The bound was exceeded without override
        GuidanceRetrievalError: Guidance could not be obtained
    """
    config = config or LlmLoopConfig()
    if chat_history is None:
        chat_history = ChatHistoryContainer()

    num = 0
    since_last = 0
    state = config.initial_state

    version = gates.get_version(NO_MAX_UNLESS_DISABLED_HUMAN)

    while True:
        num += 1
        since_last += 1
        scope = pause.scope()

        if num > config.max_iterations and (version < 1 or disable_human_in_the_loop):
            logger.warning(f"LLM loop exceeded {config.max_iterations} iterations")
            raise MaxAttemptsReached(num - 1, config.max_iterations)

        response = await pause.request_if_paused(f"LlmLoop iteration {num}")
        if response is not None and response.content:
            chat_history.append(
                HumanMessage(content=PAUSED_GUIDANCE_TEMPLATE.format(guidance=response.content)),
                ContextType.USER_FEEDBACK,
            )
            since_last = 0

        if not disable_human_in_the_loop and since_last >= config.feedback_every:
            context = LOOP_GUIDANCE_CONTEXT.format(num=num)
            try:
                user_response = await guidance.get_guidance(context, {})
            except Exception as e:
                raise GuidanceRetrievalError(f"failed to get user feedback: {e}") from e
            chat_history.append(
                HumanMessage(content=user_response.content),
                ContextType.USER_FEEDBACK,
            )
            since_last = 0

        iteration = IterationState(
            num=num,
            num_since_last_feedback=since_last,
            max_iterations=config.max_iterations,
            feedback_every=config.feedback_every,
            scope=scope,
            chat_history=chat_history,
            state=state,
        )
        try:
            result = await step(iteration)
        except PauseAborted:
            logger.info(f"Iteration {num} aborted by pause")
            if version >= 1:
                num -= 1
                since_last -= 1
            continue

        since_last = iteration.num_since_last_feedback
        state = iteration.state

        if result is not None:
            logger.debug(f"LLM loop finished after {num} iterations")
            return result

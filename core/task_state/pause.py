"""
Pause coordination for a running agent task.

Provides an asyncio-native pause signal that:
- Lets a human pause the task and resume it with optional guidance
- Aborts any in-flight blocking call (model, apply, search) when a pause
  arrives, via a per-iteration PauseScope
- Carries at most one pending user action (e.g. "go_next")

Usage:
    coordinator = PauseCoordinator()

    scope = coordinator.scope()  # fresh scope per loop iteration
    try:
        response = await scope.run(client.complete(...))
    except PauseAborted:
        ...  # rewind counters, then honour the pause at the next checkpoint

    response = await coordinator.request_if_paused("Paused. Provide some guidance:")
    if response and response.content:
        ...  # inject guidance
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_ACTION_GO_NEXT = "go_next"


class PauseAborted(Exception):
    """A blocking call was aborted because the task was paused."""


@dataclass
class UserResponse:
    """A human's answer to a pause or guidance request."""

    content: str = ""
    params: dict[str, Any] = field(default_factory=dict)


class PauseScope:
    """Cancellation token bound to the pause signal for one iteration.

    Checked only at defined yield points: explicitly via raise_if_paused(),
    or implicitly around a blocking call wrapped with run().
    """

    def __init__(self, coordinator: "PauseCoordinator"):
        self._coordinator = coordinator

    @property
    def paused(self) -> bool:
        return self._coordinator.paused

    def raise_if_paused(self) -> None:
        if self._coordinator.paused:
            raise PauseAborted("task is paused")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await a blocking call, aborting it if the task gets paused.

        Args:
            awaitable: The collaborator call to run

        Returns:
            The call's result

        Raises:
            PauseAborted: If a pause arrived before the call finished
        """
        self.raise_if_paused()

        call = asyncio.ensure_future(awaitable)
        pause_wait = asyncio.ensure_future(self._coordinator.wait_paused())
        try:
            done, _ = await asyncio.wait(
                {call, pause_wait}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            pause_wait.cancel()
            if not call.done():
                call.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await call

        if call in done:
            return call.result()

        logger.info("Blocking call aborted by pause")
        raise PauseAborted("blocking call aborted by pause")


class PauseCoordinator:
    """In-process pause source for a single task.

    Uses asyncio.Event so that waiting for a resume, and aborting in-flight
    calls when a pause arrives, happen without polling.
    """

    def __init__(self) -> None:
        self._pause_event = asyncio.Event()
        self._resume_event = asyncio.Event()
        self._guidance: Optional[str] = None
        self._pending_action: Optional[str] = None

    @property
    def paused(self) -> bool:
        return self._pause_event.is_set()

    def pause(self) -> None:
        """Pause the task. In-flight calls in a PauseScope are aborted."""
        if not self._pause_event.is_set():
            logger.info("Pause requested")
            self._resume_event.clear()
            self._pause_event.set()

    def resume(self, guidance: Optional[str] = None) -> None:
        """Resume the task, optionally with guidance for the model.

        Args:
            guidance: Free-form text injected as pause feedback
        """
        logger.info(f"Resume requested (guidance: {bool(guidance)})")
        self._guidance = guidance
        self._pause_event.clear()
        self._resume_event.set()

    async def wait_paused(self) -> None:
        await self._pause_event.wait()

    def scope(self) -> PauseScope:
        """Derive a fresh cancellation scope bound to this pause signal."""
        return PauseScope(self)

    def set_pending_user_action(self, action: str) -> None:
        """Record a user action; only one is honoured at a time."""
        if self._pending_action is not None and self._pending_action != action:
            logger.warning(
                f"Replacing pending user action {self._pending_action} with {action}"
            )
        self._pending_action = action

    def get_pending_user_action(self) -> Optional[str]:
        """Peek at the pending user action without consuming it."""
        return self._pending_action

    def consume_pending_user_action(self) -> Optional[str]:
        action, self._pending_action = self._pending_action, None
        return action

    async def request_if_paused(self, prompt: str) -> Optional[UserResponse]:
        """Block until resumed if the task is paused.

        Args:
            prompt: What the human is being asked, for logs/UI

        Returns:
            None when not paused, otherwise the resume response (content is
            empty when the human resumed without guidance)
        """
        if not self.paused:
            return None

        logger.info(f"Waiting for resume: {prompt}")
        await self._resume_event.wait()

        guidance, self._guidance = self._guidance, None
        return UserResponse(content=guidance or "")

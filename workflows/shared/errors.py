"""Errors raised by the iteration loops."""


class AgentLoopError(Exception):
    """Base exception for iteration loop failures."""


class MaxAttemptsReached(AgentLoopError):
    """The hard attempt bound was exceeded and no override was active."""

    def __init__(self, attempts: int, max_attempts: int):
        self.attempts = attempts
        self.max_attempts = max_attempts
        super().__init__(f"reached max attempts ({attempts}/{max_attempts})")


class GuidanceRetrievalError(AgentLoopError):
    """The human guidance channel failed. Never retried."""

"""Exception classes for the edit loop.

MaxAttemptsReached and GuidanceRetrievalError come from the shared loop
errors so one hierarchy covers both loops.
"""

from workflows.shared.errors import AgentLoopError, GuidanceRetrievalError, MaxAttemptsReached


class EditCodeError(AgentLoopError):
    """Base edit loop exception."""


class ExtractEditBlocksError(EditCodeError):
    """Model output contained malformed edit blocks. Recoverable."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"failed to extract edit blocks: {message}")


class ApplyEditBlocksError(EditCodeError):
    """The applier failed as a whole (not a per-block failure). Recoverable."""


__all__ = [
    "EditCodeError",
    "ExtractEditBlocksError",
    "ApplyEditBlocksError",
    "GuidanceRetrievalError",
    "MaxAttemptsReached",
]

"""
Per-task state for the edit loop.

Provides:
- Task configuration (MaxIterations, DisableHumanInTheLoop, AutoIterations, EditCode.Hints)
- Replay-stable version gates persisted with the task
- Pause coordination with per-iteration cancellation scopes
"""

from .pause import (
    USER_ACTION_GO_NEXT,
    PauseAborted,
    PauseCoordinator,
    PauseScope,
    UserResponse,
)
from .task_config import EditCodeConfig, TaskConfig, load_task_config
from .version_gates import (
    DEFAULT_VERSION,
    InMemoryVersionGateStore,
    UnsupportedVersionError,
    VersionGates,
    VersionGateStore,
)

__all__ = [
    # Pause
    "USER_ACTION_GO_NEXT",
    "PauseAborted",
    "PauseCoordinator",
    "PauseScope",
    "UserResponse",
    # Config
    "EditCodeConfig",
    "TaskConfig",
    "load_task_config",
    # Version gates
    "DEFAULT_VERSION",
    "InMemoryVersionGateStore",
    "UnsupportedVersionError",
    "VersionGates",
    "VersionGateStore",
]

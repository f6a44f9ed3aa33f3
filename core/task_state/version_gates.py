"""
Replay-stable version gates.

A version gate is a named decision point in the edit loop whose outcome
must never change for a task instance once it has been made. The first
time a gate is resolved for a task, the decision is persisted alongside
the task state; every later resolution (including after a process restart
that replays the task) reads it back, regardless of what the gate's
default is at that point.

Usage:
    store = VersionGateStore()
    gates = VersionGates(task_id, store)

    if gates.get_version("apply-edit-blocks-immediately") >= 1:
        ...  # new behaviour

A task resumed from state written before a gate existed should be
constructed with replaying=True so that unknown gates resolve to
DEFAULT_VERSION, keeping the legacy behaviour for that task.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from .paths import TASKS_DIR
from .schemas import TaskStateFile, VersionDecisionRecord

logger = logging.getLogger(__name__)

DEFAULT_VERSION = 0

STATE_FILE_FORMAT = "1.0"


class UnsupportedVersionError(Exception):
    """A persisted decision is outside the range the running code supports."""

    def __init__(self, change_id: str, version: int, min_supported: int, max_supported: int):
        self.change_id = change_id
        self.version = version
        super().__init__(
            f"version gate '{change_id}' resolved to {version}, "
            f"supported range is [{min_supported}, {max_supported}]"
        )


class DecisionStore(Protocol):
    """Persistence for version gate decisions, keyed by task id."""

    def load(self, task_id: str) -> dict[str, int]: ...

    def record(self, task_id: str, change_id: str, version: int) -> None: ...


class InMemoryVersionGateStore:
    """Decision store that lives only as long as the process (tests, dry runs)."""

    def __init__(self, decisions: Optional[dict[str, dict[str, int]]] = None):
        self._decisions: dict[str, dict[str, int]] = {
            task_id: dict(gates) for task_id, gates in (decisions or {}).items()
        }

    def load(self, task_id: str) -> dict[str, int]:
        return dict(self._decisions.get(task_id, {}))

    def record(self, task_id: str, change_id: str, version: int) -> None:
        self._decisions.setdefault(task_id, {})[change_id] = version


class VersionGateStore:
    """JSON-file decision store, one file per task under .editloop/tasks/."""

    def __init__(self, tasks_dir: Optional[Path] = None):
        """Initialize the store.

        Args:
            tasks_dir: Override the state directory (for testing)
        """
        self.tasks_dir = tasks_dir or TASKS_DIR
        self.tasks_dir.mkdir(parents=True, exist_ok=True)

    def _state_file(self, task_id: str) -> Path:
        return self.tasks_dir / f"{task_id}.json"

    def _read_state(self, task_id: str) -> TaskStateFile:
        state_file = self._state_file(task_id)
        if state_file.exists():
            with open(state_file, "r", encoding="utf-8") as f:
                return json.load(f)
        return {
            "version": STATE_FILE_FORMAT,
            "task_id": task_id,
            "decisions": {},
            "last_updated_at": datetime.now(timezone.utc).isoformat(),
        }

    def _write_state(self, task_id: str, state: TaskStateFile) -> None:
        """Write state atomically (temp file + rename)."""
        state_file = self._state_file(task_id)
        temp_file = state_file.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            temp_file.replace(state_file)
        except OSError:
            temp_file.unlink(missing_ok=True)
            raise

    def load(self, task_id: str) -> dict[str, int]:
        state = self._read_state(task_id)
        return {change_id: d["version"] for change_id, d in state["decisions"].items()}

    def record(self, task_id: str, change_id: str, version: int) -> None:
        state = self._read_state(task_id)
        now = datetime.now(timezone.utc).isoformat()
        if change_id in state["decisions"]:
            # First resolution wins
            logger.warning(f"Version gate {change_id} already recorded for {task_id}")
            return
        record: VersionDecisionRecord = {
            "change_id": change_id,
            "version": version,
            "decided_at": now,
        }
        state["decisions"][change_id] = record
        state["last_updated_at"] = now
        self._write_state(task_id, state)


class VersionGates:
    """Resolve-once version gates for a single task instance."""

    def __init__(
        self,
        task_id: str,
        store: DecisionStore,
        replaying: bool = False,
        defaults: Optional[dict[str, int]] = None,
    ):
        """Initialize gates for a task.

        Args:
            task_id: Task instance the decisions belong to
            store: Where decisions are persisted
            replaying: True when resuming a task whose state predates gates
                that are not recorded yet; such gates resolve to DEFAULT_VERSION
            defaults: Version chosen for gates first resolved by this process
                (change_id -> version); unlisted gates pick max_supported
        """
        self.task_id = task_id
        self.store = store
        self.replaying = replaying
        self.defaults = defaults or {}
        self._decisions = store.load(task_id)

    def get_version(
        self,
        change_id: str,
        min_supported: int = DEFAULT_VERSION,
        max_supported: int = 1,
    ) -> int:
        """Resolve a gate, recording the decision on first use.

        Args:
            change_id: Stable identifier of the call site
            min_supported: Oldest version the running code can still execute
            max_supported: Newest version the running code knows about

        Returns:
            The recorded version for this task

        Raises:
            UnsupportedVersionError: If a recorded decision is out of range
        """
        if change_id in self._decisions:
            version = self._decisions[change_id]
            if not min_supported <= version <= max_supported:
                raise UnsupportedVersionError(change_id, version, min_supported, max_supported)
            return version

        if self.replaying:
            version = DEFAULT_VERSION
            if version < min_supported:
                raise UnsupportedVersionError(change_id, version, min_supported, max_supported)
        else:
            version = self.defaults.get(change_id, max_supported)
            version = max(min_supported, min(version, max_supported))

        self._decisions[change_id] = version
        self.store.record(self.task_id, change_id, version)
        logger.debug(f"Version gate {change_id} resolved to {version} for task {self.task_id}")
        return version

    @property
    def decisions(self) -> dict[str, int]:
        """Snapshot of every decision made so far for this task."""
        return dict(self._decisions)

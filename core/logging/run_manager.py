"""Run bookkeeping for task-scoped log rotation.

A run is one agent task (or one test module). The first record written to a
log file during a run rotates that file, so each log holds exactly the
latest run of its module. Run state lives in ContextVars: agent tasks
running side by side in one event loop keep separate runs.

Usage:
    from core.logging import run_scope

    with run_scope(task_id):
        await run_edit_code(deps, chat_history, prompt_info)
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_current_run_id: ContextVar[str | None] = ContextVar("current_run_id", default=None)
_rotated_this_run: ContextVar[set[str] | None] = ContextVar("rotated_this_run", default=None)

_module_log_cache: dict[str, str] = {}

# Logger name prefix -> log file name. Longest prefix wins, the rest is "misc".
MODULE_TO_LOG = {
    "workflows.edit_code": "edit-code",
    "workflows.edit_code.authoring": "authoring",
    "workflows.edit_code.controller": "edit-code",
    "workflows.shared.llm_loop": "llm-loop",
    "workflows.shared": "workflows-shared",
    "core.task_state": "task-state",
    "core.config": "config",
    "core.logging": "logging-internal",
    "langchain_tools": "langchain-tools",
    "testing": "testing",
}

_SORTED_PREFIXES = sorted(MODULE_TO_LOG, key=len, reverse=True)

NO_RUN = "-"


def start_run(run_id: str) -> None:
    """Begin a run; each log file rotates on its first write after this.

    Calling it again starts a fresh run with fresh rotation bookkeeping.
    """
    _current_run_id.set(run_id)
    _rotated_this_run.set(set())


def end_run() -> None:
    _current_run_id.set(None)
    _rotated_this_run.set(None)


@contextmanager
def run_scope(run_id: str) -> Iterator[str]:
    """start_run/end_run around a block."""
    start_run(run_id)
    try:
        yield run_id
    finally:
        end_run()


def get_current_run_id() -> str | None:
    return _current_run_id.get()


def should_rotate(log_name: str) -> bool:
    """True the first time a log file is written to during the current run.

    Outside a run nothing rotates. The log is marked as rotated on return.
    """
    rotated = _rotated_this_run.get()
    if _current_run_id.get() is None or rotated is None or log_name in rotated:
        return False
    rotated.add(log_name)
    return True


def module_to_log_name(module_name: str) -> str:
    """Log file name (without .log) for a logger name, e.g. "edit-code"."""
    log_name = _module_log_cache.get(module_name)
    if log_name is None:
        log_name = _module_log_cache[module_name] = _compute_log_name(module_name)
    return log_name


def _compute_log_name(module_name: str) -> str:
    return next(
        (MODULE_TO_LOG[prefix] for prefix in _SORTED_PREFIXES if module_name.startswith(prefix)),
        "misc",
    )

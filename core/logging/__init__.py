"""Task-scoped file logging.

Modules keep the usual `logger = logging.getLogger(__name__)`; where the
record lands is decided here. Each agent task is a run: the first write of a
run to a log file rotates it, so logs/<name>.log holds the latest run and
logs/<name>.previous.log the one before.

    from core.config import configure_logging

    configure_logging(task_id)

Files under logs/ (EDITLOOP_LOG_DIR): edit-code.log, authoring.log,
llm-loop.log, task-state.log, ... and run-3p.log for third-party libraries.
"""

from core.logging.handlers import ModuleDispatchHandler, RunIdFilter, ThirdPartyHandler
from core.logging.run_manager import (
    MODULE_TO_LOG,
    end_run,
    get_current_run_id,
    module_to_log_name,
    run_scope,
    start_run,
)

__all__ = [
    "start_run",
    "end_run",
    "run_scope",
    "get_current_run_id",
    "module_to_log_name",
    "ModuleDispatchHandler",
    "ThirdPartyHandler",
    "RunIdFilter",
    "MODULE_TO_LOG",
]

"""editloop configuration and environment setup.

This module provides centralized configuration for editloop,
including development mode detection, LangSmith tracing setup and
module-based log routing.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Loggers whose names start with these prefixes are our own modules;
# everything else is routed to the third-party log.
FIRST_PARTY_PREFIXES = ("core", "workflows", "langchain_tools", "testing")


def is_dev_mode() -> bool:
    """Check if running in development mode.

    Returns:
        True if EDITLOOP_MODE is set to 'dev', False otherwise.
    """
    return os.getenv("EDITLOOP_MODE", "prod").lower() == "dev"


def configure_langsmith() -> None:
    """Configure LangSmith tracing based on EDITLOOP_MODE.

    When EDITLOOP_MODE=dev:
        - Enables LangSmith tracing
        - Sets project to 'editloop-dev'

    When EDITLOOP_MODE=prod (or unset):
        - Disables LangSmith tracing

    This function is idempotent and safe to call multiple times.
    """
    if is_dev_mode():
        os.environ.setdefault("LANGSMITH_TRACING", "true")
        os.environ.setdefault("LANGSMITH_PROJECT", "editloop-dev")
    else:
        os.environ["LANGSMITH_TRACING"] = "false"


def get_log_dir() -> Path:
    """Directory for module log files (EDITLOOP_LOG_DIR, default ./logs)."""
    return Path(os.getenv("EDITLOOP_LOG_DIR", "logs"))


class _FirstPartyFilter(logging.Filter):
    def __init__(self, first_party: bool):
        super().__init__()
        self.first_party = first_party

    def filter(self, record: logging.LogRecord) -> bool:
        is_ours = record.name.startswith(FIRST_PARTY_PREFIXES)
        return is_ours if self.first_party else not is_ours


def configure_logging(run_name: str, level: int = logging.INFO) -> None:
    """Install module-dispatch logging and start a run.

    First-party modules log to per-module files (see MODULE_TO_LOG), third
    party libraries to run-3p.log. Calling this again only starts a new run;
    handlers are installed once.

    Args:
        run_name: Identifier for the run (e.g. a task id or test name)
        level: Root logger level
    """
    from core.logging import ModuleDispatchHandler, ThirdPartyHandler, start_run

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)

    if not any(isinstance(h, ModuleDispatchHandler) for h in root.handlers):
        formatter = logging.Formatter(
            "%(asctime)s [%(run_id)s] %(name)s - %(levelname)s - %(message)s"
        )

        module_handler = ModuleDispatchHandler(log_dir)
        module_handler.setFormatter(formatter)
        module_handler.addFilter(_FirstPartyFilter(first_party=True))
        root.addHandler(module_handler)

        third_party_handler = ThirdPartyHandler(log_dir)
        third_party_handler.setFormatter(formatter)
        third_party_handler.addFilter(_FirstPartyFilter(first_party=False))
        root.addHandler(third_party_handler)

    start_run(run_name)

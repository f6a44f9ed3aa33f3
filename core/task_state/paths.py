"""Centralized path constants for the .editloop/ state directory.

All local state is stored under .editloop/:
- .editloop/tasks/          - Per-task persisted state (version gate decisions)
- .editloop/task_config.json - Optional task configuration file
"""

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent

EDITLOOP_DIR = Path(os.getenv("EDITLOOP_STATE_DIR", str(PROJECT_ROOT / ".editloop")))

TASKS_DIR = EDITLOOP_DIR / "tasks"
TASK_CONFIG_FILE = EDITLOOP_DIR / "task_config.json"

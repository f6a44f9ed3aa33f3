"""Per-task configuration for the edit loop.

Recognized options (external name -> field):
    MaxIterations          -> max_iterations (0 = use the loop's default bound)
    DisableHumanInTheLoop  -> disable_human_in_the_loop
    AutoIterations         -> auto_iterations (0 = use the default feedback cadence)
    EditCode.Hints         -> edit_code.hints (extra prompt text)
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .paths import TASK_CONFIG_FILE

load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int = 0) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


class EditCodeConfig(BaseModel):
    """Options specific to edit authoring."""

    model_config = ConfigDict(populate_by_name=True)

    hints: str = Field(default="", alias="Hints", description="Extra prompt text")


class TaskConfig(BaseModel):
    """Configuration for one agent task."""

    model_config = ConfigDict(populate_by_name=True)

    max_iterations: int = Field(
        default=0,
        ge=0,
        alias="MaxIterations",
        description="Overrides the attempt bound when > 0",
    )
    disable_human_in_the_loop: bool = Field(
        default=False,
        alias="DisableHumanInTheLoop",
        description="Removes pause/guidance gating and the ask-for-help tool",
    )
    auto_iterations: int = Field(
        default=0,
        ge=0,
        alias="AutoIterations",
        description="Overrides the feedback cadence when > 0",
    )
    edit_code: EditCodeConfig = Field(default_factory=EditCodeConfig, alias="EditCode")

    @classmethod
    def from_env(cls) -> "TaskConfig":
        """Build a config from EDITLOOP_* environment variables."""
        return cls(
            max_iterations=_env_int("EDITLOOP_MAX_ITERATIONS"),
            disable_human_in_the_loop=_env_bool("EDITLOOP_DISABLE_HUMAN_IN_THE_LOOP"),
            auto_iterations=_env_int("EDITLOOP_AUTO_ITERATIONS"),
            edit_code=EditCodeConfig(hints=os.getenv("EDITLOOP_EDIT_CODE_HINTS", "")),
        )


def load_task_config(path: Optional[Path] = None) -> TaskConfig:
    """Load task configuration from a JSON file, falling back to the environment.

    Args:
        path: Config file (default: .editloop/task_config.json)

    Returns:
        Parsed TaskConfig
    """
    config_file = path or TASK_CONFIG_FILE
    if not config_file.exists():
        logger.debug(f"No task config at {config_file}, using environment")
        return TaskConfig.from_env()

    with open(config_file, "r", encoding="utf-8") as f:
        data = json.load(f)
    logger.info(f"Loaded task config from {config_file}")
    return TaskConfig.model_validate(data)

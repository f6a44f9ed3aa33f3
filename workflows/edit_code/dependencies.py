"""Everything the edit loop needs for one task, and the gate decisions derived from it."""

from dataclasses import dataclass, field
from typing import Optional

from core.task_state import TaskConfig, VersionGates
from workflows.shared.chat_history import manage_chat_history
from workflows.shared.llm_utils import ModelConfig

from .apply_report import ApplyReportAggregator
from .collaborators import (
    DiffSource,
    EditBlockApplier,
    EditBlockExtractor,
    EventSink,
    GuidanceSource,
    HistoryWindower,
    PauseSource,
    RepositoryToolHandlers,
    ToolChatClient,
)
from .prompts import PromptSettings
from .thresholds import ThresholdPolicy

APPLY_EDIT_BLOCKS_IMMEDIATELY = "apply-edit-blocks-immediately"
TILDE_EDIT_BLOCK_FENCE = "tilde-edit-block-fence"


@dataclass
class EditCodeDependencies:
    """Collaborators and configuration for one task's edit loop."""

    task_id: str
    gates: VersionGates
    chat_client: ToolChatClient
    extractor: EditBlockExtractor
    applier: EditBlockApplier
    tool_handlers: RepositoryToolHandlers
    pause: PauseSource
    guidance: GuidanceSource
    config: TaskConfig = field(default_factory=TaskConfig)
    windower: HistoryWindower = manage_chat_history
    model_config: ModelConfig = field(default_factory=ModelConfig)
    threshold_policy: ThresholdPolicy = field(default_factory=ThresholdPolicy)
    diff_enabled: bool = False
    diff_source: Optional[DiffSource] = None
    event_sink: Optional[EventSink] = None

    @property
    def human_in_the_loop(self) -> bool:
        return not self.config.disable_human_in_the_loop

    def apply_immediately(self) -> bool:
        """Immediate-apply mode (never when human-in-the-loop is disabled)."""
        version = self.gates.get_version(APPLY_EDIT_BLOCKS_IMMEDIATELY)
        return version >= 1 and self.human_in_the_loop

    def fence_style(self) -> str:
        return "tilde" if self.gates.get_version(TILDE_EDIT_BLOCK_FENCE) >= 1 else "backtick"

    def prompt_settings(self) -> PromptSettings:
        return PromptSettings(
            apply_immediately=self.apply_immediately(),
            human_in_the_loop=self.human_in_the_loop,
            hints=self.config.edit_code.hints,
            fence_style=self.fence_style(),
        )

    def aggregator(self) -> ApplyReportAggregator:
        return ApplyReportAggregator(
            self.applier,
            self.gates,
            diff_enabled=self.diff_enabled,
            diff_source=self.diff_source,
            event_sink=self.event_sink,
        )

"""Protocols for the collaborators the edit loop depends on.

Reference implementations:
    ToolChatClient          workflows.shared.llm_utils.ChatModelClient
    EditBlockExtractor      workflows.edit_code.extraction.FencedEditBlockExtractor
    HistoryWindower         workflows.shared.chat_history.manage_chat_history
    PauseSource             core.task_state.PauseCoordinator
    GuidanceSource          workflows.edit_code.human.QueuedGuidanceSource

The applier, repository tool handlers, diff source and event sink are
provided by the host environment.
"""

from typing import Any, Optional, Protocol

from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.tools import BaseTool

from core.task_state import PauseScope, UserResponse
from langchain_tools.coding_tools import (
    BulkReadFileArgs,
    BulkSearchRepositoryArgs,
    GetSymbolDefinitionsArgs,
    RunCommandArgs,
)
from workflows.shared.chat_history import ChatHistoryContainer
from workflows.shared.llm_utils import ModelConfig

from .schemas import ApplyEditBlockReport, CodeDiffEvent, EditBlock


class ToolChatClient(Protocol):
    async def complete(
        self,
        history: list[BaseMessage],
        tools: list[BaseTool],
        tool_choice: str,
        model_config: ModelConfig,
    ) -> AIMessage: ...


class EditBlockExtractor(Protocol):
    def extract(
        self,
        response_text: str,
        visible_history: list[BaseMessage],
        fence_style: str,
    ) -> list[EditBlock]: ...


class EditBlockApplier(Protocol):
    """Applies and validates edit blocks, one report per block in input order."""

    async def apply(self, edit_blocks: list[EditBlock]) -> list[ApplyEditBlockReport]: ...


class HistoryWindower(Protocol):
    def __call__(self, chat_history: ChatHistoryContainer, max_length: int) -> None: ...


class PauseSource(Protocol):
    def get_pending_user_action(self) -> Optional[str]: ...

    async def request_if_paused(self, prompt: str) -> Optional[UserResponse]: ...

    def scope(self) -> PauseScope: ...


class GuidanceSource(Protocol):
    async def get_guidance(self, context: str, params: dict[str, Any]) -> UserResponse: ...


class RepositoryToolHandlers(Protocol):
    async def get_symbol_definitions(self, args: GetSymbolDefinitionsArgs) -> str: ...

    async def bulk_search_repository(self, args: BulkSearchRepositoryArgs) -> str: ...

    async def bulk_read_file(self, args: BulkReadFileArgs) -> str: ...

    async def run_command(self, args: RunCommandArgs) -> str: ...


class DiffSource(Protocol):
    async def diff(self) -> str: ...


class EventSink(Protocol):
    async def emit(self, event: CodeDiffEvent) -> None: ...

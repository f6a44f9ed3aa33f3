"""
Chat history owned by a running agent task.

ChatHistoryContainer is append-only for callers: messages are added in call
order and never reordered. Only the history windower (manage_chat_history)
may replace entries, and then only by dropping interior content.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHAT_HISTORY_LENGTH = 50000
EXTENDED_MAX_CHAT_HISTORY_LENGTH = 75000


class ContextType(str, Enum):
    """What a history message carries, used by the windower."""

    INITIAL_INSTRUCTIONS = "initial_instructions"
    USER_FEEDBACK = "user_feedback"
    TEST_RESULT = "test_result"
    EDIT_BLOCK_REPORT = "edit_block_report"
    SELF_REVIEW_FEEDBACK = "self_review_feedback"
    SUMMARY = "summary"


@dataclass(frozen=True)
class HistoryEntry:
    """A message plus its optional context type."""

    message: BaseMessage
    context_type: Optional[ContextType] = None


def message_length(message: BaseMessage) -> int:
    """Character length of a message, including tool call arguments."""
    content = message.content
    if isinstance(content, str):
        length = len(content)
    else:
        length = 0
        for block in content:
            if isinstance(block, str):
                length += len(block)
            elif isinstance(block, dict):
                length += len(str(block.get("text", "")))
    if isinstance(message, AIMessage):
        for tool_call in message.tool_calls:
            length += len(json.dumps(tool_call.get("args", {})))
    return length


def message_text(message: BaseMessage) -> str:
    """Plain text content of a message."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


class ChatHistoryContainer:
    """Ordered chat history for one task."""

    def __init__(self, entries: Optional[Iterable[HistoryEntry]] = None):
        self._entries: list[HistoryEntry] = list(entries or [])

    def append(
        self,
        message: BaseMessage,
        context_type: Optional[ContextType] = None,
    ) -> None:
        self._entries.append(HistoryEntry(message=message, context_type=context_type))

    def messages(self) -> list[BaseMessage]:
        return [entry.message for entry in self._entries]

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def copy(self) -> "ChatHistoryContainer":
        return ChatHistoryContainer(self._entries)

    def total_length(self) -> int:
        return sum(message_length(entry.message) for entry in self._entries)

    def replace_entries(self, entries: Iterable[HistoryEntry]) -> None:
        """Replace the contents. Reserved for the history windower."""
        self._entries = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))


def _group_entries(entries: list[HistoryEntry]) -> list[list[HistoryEntry]]:
    """Group tool calls with their tool responses so they are dropped together."""
    groups: list[list[HistoryEntry]] = []
    for entry in entries:
        if isinstance(entry.message, ToolMessage) and groups:
            groups[-1].append(entry)
        else:
            groups.append([entry])
    return groups


def _is_protected(group: list[HistoryEntry]) -> bool:
    return any(e.context_type == ContextType.INITIAL_INSTRUCTIONS for e in group)


def manage_chat_history(chat_history: ChatHistoryContainer, max_length: int) -> None:
    """Window the history in place to at most max_length characters.

    Always retains initial instructions, the first message, the latest
    message and the most recent tool call with its responses. Drops the
    oldest remaining groups first; never reorders.

    Args:
        chat_history: History to window
        max_length: Character budget
    """
    total = chat_history.total_length()
    if total <= max_length or len(chat_history) <= 1:
        return

    groups = _group_entries(chat_history.entries())
    keep = [True] * len(groups)

    protected = {0, len(groups) - 1}
    for index in range(len(groups) - 1, -1, -1):
        if any(isinstance(e.message, ToolMessage) for e in groups[index]):
            protected.add(index)
            break
    for index, group in enumerate(groups):
        if _is_protected(group):
            protected.add(index)

    for index, group in enumerate(groups):
        if total <= max_length:
            break
        if index in protected:
            continue
        keep[index] = False
        total -= sum(message_length(e.message) for e in group)

    kept = [entry for index, group in enumerate(groups) if keep[index] for entry in group]
    dropped = len(chat_history) - len(kept)
    if dropped:
        logger.debug(
            f"Windowed chat history: dropped {dropped} messages, {total} chars remain "
            f"(max {max_length})"
        )
    chat_history.replace_entries(kept)

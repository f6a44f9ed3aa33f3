"""
Edit block extraction from model responses.

Edit blocks are written inside fenced code blocks:

    ```
    edit_block:1
    path/to/file.py
    <<<<<<< SEARCH_EXACT
    old line
    =======
    new line
    >>>>>>> REPLACE_EXACT
    ```

The `edit_block:N` line is optional (blocks are numbered by position when it
is missing), and a file path line may be omitted for further blocks in the
same fence. The opening marker may name CREATE_FILE, APPEND_TO_FILE or
DELETE_FILE instead of SEARCH_EXACT. Fences use backticks, or tildes when the
task resolved the `tilde-edit-block-fence` gate.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Literal, Optional

from langchain_core.messages import AIMessage, BaseMessage

from workflows.shared.chat_history import message_text

from .errors import ExtractEditBlocksError
from .schemas import EditBlock

logger = logging.getLogger(__name__)

SEARCH = "<<<<<<< SEARCH_EXACT"
DIVIDER = "======="
REPLACE = ">>>>>>> REPLACE_EXACT"

FenceStyle = Literal["backtick", "tilde"]

FENCES: dict[str, str] = {"backtick": "```", "tilde": "~~~"}

_SEQUENCE_LINE = re.compile(r"^edit_block:\s*(\d+)\s*$")


@dataclass
class _PendingBlock:
    sequence_number: Optional[int]
    file_path: str
    edit_type: str
    old_lines: list[str] = field(default_factory=list)
    new_lines: list[str] = field(default_factory=list)
    section: str = "old"


def _edit_type_for(marker_line: str) -> str:
    if "CREATE_FILE" in marker_line:
        return "create"
    if "APPEND_TO_FILE" in marker_line:
        return "append"
    if "DELETE_FILE" in marker_line:
        return "delete"
    return "update"


def _finish_block(block: _PendingBlock, position: int) -> EditBlock:
    old_lines, new_lines = block.old_lines, block.new_lines
    if block.section == "old":
        if block.edit_type in ("create", "append"):
            # Missing divider: read the body as new lines
            old_lines, new_lines = [], old_lines
        elif block.edit_type == "update":
            raise ExtractEditBlocksError(
                f"edit block {position} for '{block.file_path}' is missing the '{DIVIDER}' divider"
            )
    if not block.file_path:
        raise ExtractEditBlocksError(f"edit block {position} has no file path")
    return EditBlock(
        sequence_number=block.sequence_number if block.sequence_number is not None else position,
        file_path=block.file_path,
        edit_type=block.edit_type,
        old_lines=tuple(old_lines),
        new_lines=tuple(new_lines),
    )


def parse_edit_blocks(text: str, fence_style: FenceStyle = "backtick") -> list[EditBlock]:
    """Parse edit blocks from text, in order of appearance.

    Raises:
        ExtractEditBlocksError: On an unterminated fence or edit block
    """
    fence = FENCES[fence_style]
    blocks: list[EditBlock] = []
    in_fence = False
    fence_has_edit = False
    current: Optional[_PendingBlock] = None
    file_path = ""
    next_sequence: Optional[int] = None

    for line in text.splitlines():
        if line.startswith(fence) and current is None:
            in_fence = not in_fence
            if in_fence:
                fence_has_edit = False
                file_path = ""
                next_sequence = None
            continue
        if not in_fence:
            continue

        if current is None:
            if line.startswith("<<<<<<<"):
                fence_has_edit = True
                current = _PendingBlock(
                    sequence_number=next_sequence,
                    file_path=file_path,
                    edit_type=_edit_type_for(line),
                )
                next_sequence = None
                continue
            match = _SEQUENCE_LINE.match(line.strip())
            if match:
                next_sequence = int(match.group(1))
            elif line.strip():
                file_path = line.strip()
            continue

        if line.startswith(DIVIDER) and current.section == "old":
            current.section = "new"
        elif line.startswith(">>>>>>>"):
            blocks.append(_finish_block(current, len(blocks) + 1))
            current = None
        elif line.startswith(fence):
            raise ExtractEditBlocksError(
                f"edit block {len(blocks) + 1} for '{current.file_path}' is missing the "
                f"'{REPLACE}' end marker before the closing fence"
            )
        elif current.section == "old":
            current.old_lines.append(line)
        else:
            current.new_lines.append(line)

    if current is not None:
        raise ExtractEditBlocksError(
            f"edit block {len(blocks) + 1} for '{current.file_path}' is missing the '{REPLACE}' end marker"
        )
    if in_fence and fence_has_edit:
        raise ExtractEditBlocksError("code fence containing edit blocks was never closed")

    return blocks


def _visible_snippets(file_path: str, visible_history: list[BaseMessage], fence: str) -> tuple[str, ...]:
    """Fenced code from non-assistant messages that is labelled with file_path."""
    snippets: list[str] = []
    for message in visible_history:
        if isinstance(message, AIMessage):
            continue
        lines = message_text(message).splitlines()
        label = ""
        index = 0
        while index < len(lines):
            line = lines[index]
            if line.startswith(fence) or line.startswith("```"):
                marker = fence if line.startswith(fence) else "```"
                info = line[len(marker):].strip()
                body: list[str] = []
                index += 1
                while index < len(lines) and not lines[index].startswith(marker):
                    body.append(lines[index])
                    index += 1
                if file_path in label or file_path in info:
                    snippets.append("\n".join(body))
                label = ""
            elif line.strip():
                label = line
            index += 1
    return tuple(snippets)


class FencedEditBlockExtractor:
    """Reference EditBlockExtractor for fenced SEARCH/REPLACE blocks."""

    def extract(
        self,
        response_text: str,
        visible_history: list[BaseMessage],
        fence_style: FenceStyle = "backtick",
    ) -> list[EditBlock]:
        """Extract edit blocks, attaching the code visible for each file.

        Args:
            response_text: Model response content
            visible_history: History as the model saw it for this response
            fence_style: "backtick" or "tilde"

        Returns:
            Edit blocks in extraction order

        Raises:
            ExtractEditBlocksError: If the response has malformed edit blocks
        """
        blocks = parse_edit_blocks(response_text, fence_style)
        fence = FENCES[fence_style]
        extracted = [
            block.model_copy(
                update={"visible_snippets": _visible_snippets(block.file_path, visible_history, fence)}
            )
            for block in blocks
        ]
        if extracted:
            logger.debug(
                f"Extracted {len(extracted)} edit blocks: "
                f"{[(b.sequence_number, b.file_path) for b in extracted]}"
            )
        return extracted

"""
Coding tools offered to the model while authoring edit blocks.

Tools (fixed order):
- bulk_search_repository: Several glob + search term searches at once
- get_symbol_definitions: Full definitions of named symbols in files
- bulk_read_file: Lines around given line numbers
- run_command: A shell command in the repository (subject to approval)
- get_help_or_input: Ask a human (only when human-in-the-loop is enabled)

Argument schemas are pydantic models; the tools are bound at runtime to the
task's repository handlers.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

BULK_SEARCH_REPOSITORY = "bulk_search_repository"
GET_SYMBOL_DEFINITIONS = "get_symbol_definitions"
BULK_READ_FILE = "bulk_read_file"
RUN_COMMAND = "run_command"
GET_HELP_OR_INPUT = "get_help_or_input"


class SingleSearch(BaseModel):
    path_glob: str = Field(description="The file glob path to search within.")
    search_term: str = Field(description="The search term to look for within the files.")


class BulkSearchRepositoryArgs(BaseModel):
    """Input schema for bulk_search_repository."""

    context_lines: int = Field(
        default=3,
        ge=0,
        description="The number of lines of context to include around the search term.",
    )
    searches: list[SingleSearch] = Field(
        min_length=1, description="The list of searches to perform."
    )


class FileSymbolRequest(BaseModel):
    file_path: str = Field(
        description='The name of the file, including relative path, eg: "foo/bar/something.py"'
    )
    symbol_names: list[str] = Field(
        default_factory=list,
        description=(
            "Case-sensitive names of symbols defined in the file (functions, classes, "
            "methods, constants...). If empty, the whole file is returned, which is "
            "discouraged except for non-code files."
        ),
    )


class GetSymbolDefinitionsArgs(BaseModel):
    """Input schema for get_symbol_definitions."""

    analysis: str = Field(
        default="",
        description="Brief analysis of which symbols are most relevant before requesting them.",
    )
    requests: list[FileSymbolRequest] = Field(
        min_length=1,
        description="Requests for full definitions of symbols within the file where they are defined.",
    )


class FileLine(BaseModel):
    file_path: str = Field(description="The file path to read from.")
    line_number: int = Field(ge=1, description="The line number to center the window around.")


class BulkReadFileArgs(BaseModel):
    """Input schema for bulk_read_file."""

    file_lines: list[FileLine] = Field(min_length=1)
    window_size: int = Field(default=20, ge=0, description="Lines of context around each line.")


class RunCommandArgs(BaseModel):
    """Input schema for run_command."""

    command: str = Field(
        description=(
            "The shell command or script to execute. Runs in the repository root "
            "unless working_dir is given."
        )
    )
    working_dir: Optional[str] = Field(
        default=None,
        description="Optional working directory relative to the repository root.",
    )


class SelfHelp(BaseModel):
    analysis: str = Field(
        default="",
        description="Must precede the tools list. Whether any tools could satisfy the request.",
    )
    functions: list[str] = Field(
        default_factory=list,
        description=(
            "Tool names extremely likely to satisfy the request. MUST be empty if only "
            "a human can satisfy the request."
        ),
    )
    already_attempted_tools: list[str] = Field(
        default_factory=list,
        description="Tools already attempted for this issue, based on the chat history.",
    )


class HelpOrInputRequest(BaseModel):
    content: str = Field(
        description=(
            "The substance of the request or question, with just enough context to "
            "understand it. One question per request."
        )
    )
    self_help: SelfHelp = Field(default_factory=SelfHelp)


class GetHelpOrInputArgs(BaseModel):
    """Input schema for get_help_or_input."""

    requests: list[HelpOrInputRequest] = Field(
        min_length=1, description="A list of requests for help and/or questions to ask."
    )


TOOL_DESCRIPTIONS: dict[str, str] = {
    BULK_SEARCH_REPOSITORY: (
        "Used to perform multiple searches within the repository, each for files "
        "matching a given glob pattern and containing a search term."
    ),
    GET_SYMBOL_DEFINITIONS: (
        "Returns the complete definitions of the requested symbols (full function "
        "and type bodies). Analyse first, then request only the symbols you need."
    ),
    BULK_READ_FILE: (
        "Read files from the repo given specific line numbers and a window for "
        "additional context. Most useful for errors that mention a line number. "
        "Prefer get_symbol_definitions for reading code."
    ),
    RUN_COMMAND: (
        "Not for running tests or reading code. Executes other shell commands, "
        "subject to user approval. Don't use it when a more specific tool exists."
    ),
    GET_HELP_OR_INPUT: (
        "Used to ask a human for help, feedback, information or input when you are "
        "stuck. Do NOT use it to find repository files or code except as a last "
        "resort, since other tools exist for that."
    ),
}


def _bind(
    name: str,
    args_schema: type[BaseModel],
    handler: Callable[[Any], Awaitable[str]],
) -> StructuredTool:
    async def _run(**kwargs: Any) -> str:
        return await handler(args_schema.model_validate(kwargs))

    return StructuredTool.from_function(
        coroutine=_run,
        name=name,
        description=TOOL_DESCRIPTIONS[name],
        args_schema=args_schema,
    )


def build_coding_tools(
    handlers: Any,
    help_handler: Optional[Callable[[GetHelpOrInputArgs], Awaitable[str]]] = None,
) -> list[StructuredTool]:
    """Build the coding tool set bound to repository handlers.

    Args:
        handlers: RepositoryToolHandlers implementation
        help_handler: Handler for get_help_or_input; the tool is omitted when None

    Returns:
        Tools in their fixed order
    """
    tools = [
        _bind(BULK_SEARCH_REPOSITORY, BulkSearchRepositoryArgs, handlers.bulk_search_repository),
        _bind(GET_SYMBOL_DEFINITIONS, GetSymbolDefinitionsArgs, handlers.get_symbol_definitions),
        _bind(BULK_READ_FILE, BulkReadFileArgs, handlers.bulk_read_file),
        _bind(RUN_COMMAND, RunCommandArgs, handlers.run_command),
    ]
    if help_handler is not None:
        tools.append(_bind(GET_HELP_OR_INPUT, GetHelpOrInputArgs, help_handler))
    return tools

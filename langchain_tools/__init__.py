"""
LangChain tools for the edit loop.

Tools provided:
- bulk_search_repository: Multiple repository searches at once
- get_symbol_definitions: Full symbol definitions
- bulk_read_file: Read lines around line numbers
- run_command: Run a shell command
- get_help_or_input: Ask a human (human-in-the-loop only)
"""

from .coding_tools import (
    BULK_READ_FILE,
    BULK_SEARCH_REPOSITORY,
    GET_HELP_OR_INPUT,
    GET_SYMBOL_DEFINITIONS,
    RUN_COMMAND,
    BulkReadFileArgs,
    BulkSearchRepositoryArgs,
    FileLine,
    FileSymbolRequest,
    GetHelpOrInputArgs,
    GetSymbolDefinitionsArgs,
    HelpOrInputRequest,
    RunCommandArgs,
    SelfHelp,
    SingleSearch,
    build_coding_tools,
)

__all__ = [
    # Tool names
    "BULK_READ_FILE",
    "BULK_SEARCH_REPOSITORY",
    "GET_HELP_OR_INPUT",
    "GET_SYMBOL_DEFINITIONS",
    "RUN_COMMAND",
    # Schemas
    "BulkReadFileArgs",
    "BulkSearchRepositoryArgs",
    "FileLine",
    "FileSymbolRequest",
    "GetHelpOrInputArgs",
    "GetSymbolDefinitionsArgs",
    "HelpOrInputRequest",
    "RunCommandArgs",
    "SelfHelp",
    "SingleSearch",
    # Builder
    "build_coding_tools",
]

"""Unit tests for the coding tool set and tool call execution."""

import pytest

from core.task_state import PauseCoordinator
from langchain_tools.coding_tools import (
    BULK_READ_FILE,
    GET_HELP_OR_INPUT,
    RUN_COMMAND,
    build_coding_tools,
)
from testing.utils.fakes import FakeRepositoryToolHandlers, pause_during_call
from workflows.edit_code import GuidanceRetrievalError
from workflows.edit_code.tool_calls import PAUSED_TOOL_RESPONSE, SCHEMA_HINT, handle_tool_calls


def _call(name: str, args: dict, call_id: str) -> dict:
    return {"name": name, "args": args, "id": call_id}


READ_ARGS = {"file_lines": [{"file_path": "main.py", "line_number": 3}]}


class TestBuildCodingTools:
    def test_fixed_order_without_help(self):
        tools = build_coding_tools(FakeRepositoryToolHandlers())

        assert [t.name for t in tools] == [
            "bulk_search_repository",
            "get_symbol_definitions",
            "bulk_read_file",
            "run_command",
        ]

    def test_help_tool_appended(self):
        async def help_handler(args):
            return "answer"

        tools = build_coding_tools(FakeRepositoryToolHandlers(), help_handler)

        assert tools[-1].name == GET_HELP_OR_INPUT


class TestHandleToolCalls:
    """Tests for handle_tool_calls()."""

    async def test_results_in_call_order(self):
        handlers = FakeRepositoryToolHandlers(read_response="3: return 0")
        tools = build_coding_tools(handlers)
        calls = [
            _call(BULK_READ_FILE, READ_ARGS, "a"),
            _call(RUN_COMMAND, {"command": "ls"}, "b"),
        ]

        results = await handle_tool_calls(calls, tools, PauseCoordinator().scope())

        assert [(r.call_id, r.response, r.is_error) for r in results] == [
            ("a", "3: return 0", False),
            ("b", "exit status 0", False),
        ]
        assert handlers.calls[0][1].window_size == 20

    async def test_unknown_tool(self):
        results = await handle_tool_calls(
            [_call("delete_repository", {}, "x")],
            build_coding_tools(FakeRepositoryToolHandlers()),
            PauseCoordinator().scope(),
        )

        assert results[0].is_error
        assert results[0].response == "unknown function name: delete_repository"

    async def test_invalid_arguments_get_schema_hint(self):
        results = await handle_tool_calls(
            [_call(BULK_READ_FILE, {"file_lines": "main.py:3"}, "x")],
            build_coding_tools(FakeRepositoryToolHandlers()),
            PauseCoordinator().scope(),
        )

        assert results[0].is_error
        assert SCHEMA_HINT in results[0].response

    async def test_handler_error_becomes_result(self):
        class BrokenHandlers(FakeRepositoryToolHandlers):
            async def run_command(self, args):
                raise PermissionError("command not approved")

        results = await handle_tool_calls(
            [_call(RUN_COMMAND, {"command": "rm -rf build"}, "x")],
            build_coding_tools(BrokenHandlers()),
            PauseCoordinator().scope(),
        )

        assert results[0].is_error
        assert "command not approved" in results[0].response

    async def test_pause_aborts_remaining_calls(self):
        pause = PauseCoordinator()

        class PausingHandlers(FakeRepositoryToolHandlers):
            async def bulk_read_file(self, args):
                return await pause_during_call(pause)([])

        handlers = PausingHandlers()
        calls = [
            _call(BULK_READ_FILE, READ_ARGS, "a"),
            _call(RUN_COMMAND, {"command": "ls"}, "b"),
        ]

        results = await handle_tool_calls(calls, build_coding_tools(handlers), pause.scope())

        assert [r.call_id for r in results] == ["a", "b"]
        assert all(r.is_error and r.response == PAUSED_TOOL_RESPONSE for r in results)
        assert all(name != "run_command" for name, _ in handlers.calls)

    async def test_guidance_failure_propagates(self):
        async def help_handler(args):
            raise GuidanceRetrievalError("failed to get user response: closed")

        tools = build_coding_tools(FakeRepositoryToolHandlers(), help_handler)

        with pytest.raises(GuidanceRetrievalError):
            await handle_tool_calls(
                [_call(GET_HELP_OR_INPUT, {"requests": [{"content": "help"}]}, "x")],
                tools,
                PauseCoordinator().scope(),
            )

"""Unit tests for guidance requests and the ask-for-help tool."""

import pytest

from langchain_tools.coding_tools import GetHelpOrInputArgs
from workflows.edit_code import (
    FeedbackInfo,
    FeedbackType,
    GuidanceRetrievalError,
    InitialTaskInfo,
    QueuedGuidanceSource,
    SkipInfo,
    ToolResultInfo,
    get_help_or_input,
    get_user_feedback,
)
from workflows.edit_code.prompts import PromptSettings
from workflows.shared.chat_history import ChatHistoryContainer, ContextType


class ClosedGuidanceSource:
    async def get_guidance(self, context, params):
        raise ConnectionError("no human attached")


class TestGetUserFeedback:
    """Tests for merging guidance into the current prompt info."""

    async def test_appends_to_existing_feedback(self, guidance):
        guidance.respond("Use the existing parser.")
        prompt_info = FeedbackInfo(feedback="Tests failed.", feedback_type=FeedbackType.TEST_FAILURE)

        result = await get_user_feedback(prompt_info, "Help?", ChatHistoryContainer(), guidance, PromptSettings())

        assert result.feedback == "Tests failed.\n\nUse the existing parser."
        assert result.feedback_type == FeedbackType.USER_GUIDANCE

    async def test_replaces_skip(self, guidance):
        guidance.respond("continue")

        result = await get_user_feedback(SkipInfo(), "Help?", ChatHistoryContainer(), guidance, PromptSettings())

        assert result.feedback == "continue"

    async def test_flushes_initial_prompt_first(self, guidance):
        guidance.respond("Start with the tests.")
        chat_history = ChatHistoryContainer()

        result = await get_user_feedback(
            InitialTaskInfo(code_context="", requirements="Add a flag"),
            "Help?",
            chat_history,
            guidance,
            PromptSettings(),
        )

        assert chat_history.entries()[0].context_type == ContextType.INITIAL_INSTRUCTIONS
        assert result.feedback == "Start with the tests."

    async def test_flushes_tool_result_first(self, guidance):
        guidance.respond("ok")
        chat_history = ChatHistoryContainer()
        tool_result = ToolResultInfo(response="file contents", tool_name="bulk_read_file", call_id="c1")

        await get_user_feedback(tool_result, "Help?", chat_history, guidance, PromptSettings())

        assert chat_history.messages()[0].tool_call_id == "c1"

    async def test_failure_is_wrapped(self):
        with pytest.raises(GuidanceRetrievalError):
            await get_user_feedback(
                SkipInfo(), "Help?", ChatHistoryContainer(), ClosedGuidanceSource(), PromptSettings()
            )


class TestGetHelpOrInput:
    """Tests for the get_help_or_input tool handler."""

    async def test_redirects_to_untried_self_help(self, guidance):
        args = GetHelpOrInputArgs.model_validate({
            "requests": [{
                "content": "Where is parse_config defined?",
                "self_help": {
                    "functions": ["get_symbol_definitions", "bulk_search_repository"],
                    "already_attempted_tools": ["bulk_search_repository"],
                },
            }],
        })

        response = await get_help_or_input(args, guidance)

        assert "get_symbol_definitions" in response
        assert "bulk_search_repository" not in response
        assert guidance.requests == []

    async def test_asks_human_when_any_request_needs_one(self, guidance):
        guidance.respond("1. Yes\n2. Use v2")
        args = GetHelpOrInputArgs.model_validate({
            "requests": [
                {"content": "Should I keep the old API?"},
                {"content": "Which version?", "self_help": {"functions": ["bulk_search_repository"]}},
            ],
        })

        response = await get_help_or_input(args, guidance)

        assert response == "1. Yes\n2. Use v2"
        context, params = guidance.requests[0]
        assert context == "1. Should I keep the old API?\n2. Which version?\n"
        assert params == {"request_kind": "free_form"}

    async def test_all_tried_asks_human(self, guidance):
        guidance.respond("Look in config/")
        args = GetHelpOrInputArgs.model_validate({
            "requests": [{
                "content": "Where is the config?",
                "self_help": {
                    "functions": ["bulk_search_repository"],
                    "already_attempted_tools": ["bulk_search_repository"],
                },
            }],
        })

        assert await get_help_or_input(args, guidance) == "Look in config/"


async def test_queued_guidance_source_records_requests():
    source = QueuedGuidanceSource()
    source.respond("fine", {"choice": "a"})

    response = await source.get_guidance("Pick one", {"options": ["a", "b"]})

    assert response.content == "fine"
    assert response.params == {"choice": "a"}
    assert source.requests == [("Pick one", {"options": ["a", "b"]})]

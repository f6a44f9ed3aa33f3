"""Unit tests for the generic resumable LLM loop."""

import pytest

from testing.utils.fakes import pause_during_call
from workflows.shared import (
    ChatHistoryContainer,
    GuidanceRetrievalError,
    LlmLoopConfig,
    MaxAttemptsReached,
    run_llm_loop,
)
from workflows.shared.chat_history import ContextType


class FailingGuidanceSource:
    async def get_guidance(self, context, params):
        raise ConnectionError("guidance channel closed")


def _recording_step(results, seen):
    """Step that records (num, since_last) and returns scripted results."""

    async def step(iteration):
        seen.append((iteration.num, iteration.num_since_last_feedback))
        return results.pop(0) if results else None

    return step


class TestRunLlmLoop:
    """Tests for run_llm_loop()."""

    async def test_returns_first_result(self, pause, guidance, gates):
        seen = []
        step = _recording_step([None, None, "done"], seen)

        result = await run_llm_loop(
            step, pause=pause, guidance=guidance, gates=gates, config=LlmLoopConfig(feedback_every=10)
        )

        assert result == "done"
        assert [num for num, _ in seen] == [1, 2, 3]

    async def test_legacy_gate_enforces_max(self, pause, guidance, legacy_gates):
        """Human-in-the-loop enabled, but the legacy gate keeps the hard bound."""
        seen = []

        with pytest.raises(MaxAttemptsReached) as exc_info:
            await run_llm_loop(
                _recording_step([], seen),
                pause=pause,
                guidance=guidance,
                gates=legacy_gates,
                config=LlmLoopConfig(max_iterations=3, feedback_every=10),
            )

        assert len(seen) == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.max_attempts == 3

    async def test_max_ignored_with_human_in_the_loop(self, pause, guidance, gates):
        seen = []
        step = _recording_step([None, None, None, "late"], seen)

        result = await run_llm_loop(
            step,
            pause=pause,
            guidance=guidance,
            gates=gates,
            config=LlmLoopConfig(max_iterations=2, feedback_every=10),
        )

        assert result == "late"
        assert len(seen) == 4

    async def test_max_enforced_when_human_disabled(self, pause, guidance, gates):
        with pytest.raises(MaxAttemptsReached):
            await run_llm_loop(
                _recording_step([], []),
                pause=pause,
                guidance=guidance,
                gates=gates,
                config=LlmLoopConfig(max_iterations=2, feedback_every=1),
                disable_human_in_the_loop=True,
            )

        assert guidance.requests == []

    async def test_pause_abort_rewinds_counters(self, pause, guidance, gates):
        """An aborted step is not counted; the same iteration runs again."""
        seen = []
        calls = 0

        async def step(iteration):
            nonlocal calls
            calls += 1
            seen.append((iteration.num, iteration.num_since_last_feedback))
            if calls == 1:
                await iteration.scope.run(pause_during_call(pause)([]))
            return "ok"

        result = await run_llm_loop(
            step, pause=pause, guidance=guidance, gates=gates, config=LlmLoopConfig(feedback_every=10)
        )

        assert result == "ok"
        assert seen == [(1, 1), (1, 1)]

    async def test_pause_guidance_injected(self, pause, guidance, gates):
        chat_history = ChatHistoryContainer()
        seen = []
        calls = 0

        async def step(iteration):
            nonlocal calls
            calls += 1
            seen.append((iteration.num, iteration.num_since_last_feedback))
            if calls == 1:
                await iteration.scope.run(pause_during_call(pause, guidance="look at utils.py")([]))
            return "ok"

        await run_llm_loop(
            step,
            chat_history=chat_history,
            pause=pause,
            guidance=guidance,
            gates=gates,
            config=LlmLoopConfig(feedback_every=10),
        )

        entries = chat_history.entries()
        assert len(entries) == 1
        assert "-- PAUSED --" in entries[0].message.content
        assert "look at utils.py" in entries[0].message.content
        assert entries[0].context_type == ContextType.USER_FEEDBACK
        assert seen == [(1, 1), (1, 0)]

    async def test_guidance_every_cadence(self, pause, guidance, gates):
        chat_history = ChatHistoryContainer()
        guidance.respond("keep going")
        seen = []

        result = await run_llm_loop(
            _recording_step([None, None, "done"], seen),
            chat_history=chat_history,
            pause=pause,
            guidance=guidance,
            gates=gates,
            config=LlmLoopConfig(feedback_every=2),
        )

        assert result == "done"
        assert len(guidance.requests) == 1
        assert "looped 2 times" in guidance.requests[0][0]
        assert [e.message.content for e in chat_history.entries()] == ["keep going"]
        assert seen == [(1, 1), (2, 0), (3, 1)]

    async def test_guidance_failure_is_fatal(self, pause, gates):
        with pytest.raises(GuidanceRetrievalError):
            await run_llm_loop(
                _recording_step([], []),
                pause=pause,
                guidance=FailingGuidanceSource(),
                gates=gates,
                config=LlmLoopConfig(feedback_every=1),
            )

    async def test_step_owns_counter_and_state(self, pause, guidance, gates):
        seen_states = []

        async def step(iteration):
            seen_states.append(iteration.state)
            iteration.state = (iteration.state or 0) + 1
            iteration.num_since_last_feedback = 0
            return "done" if iteration.num == 5 else None

        result = await run_llm_loop(
            step, pause=pause, guidance=guidance, gates=gates, config=LlmLoopConfig(feedback_every=2)
        )

        assert result == "done"
        assert seen_states == [None, 1, 2, 3, 4]
        assert guidance.requests == []

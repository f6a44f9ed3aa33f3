"""
Pytest configuration for edit loop tests.

Usage:
    pytest testing/
    pytest testing/test_edit_code_controller.py -k deferred
"""

import os
from collections.abc import Generator

import pytest

from core.logging import run_scope
from core.task_state import InMemoryVersionGateStore, PauseCoordinator, TaskConfig, VersionGates
from testing.utils.fakes import (
    FakeEditBlockApplier,
    FakeRepositoryToolHandlers,
    ScriptedChatClient,
    make_dependencies,
)
from workflows.edit_code import QueuedGuidanceSource
from workflows.shared.chat_history import ChatHistoryContainer


@pytest.fixture(autouse=True)
def logging_run(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """One log run per test module; xdist workers log to their own directory."""
    worker_id = os.environ.get("PYTEST_XDIST_WORKER")
    if worker_id:
        os.environ["EDITLOOP_LOG_DIR"] = f"logs/test-{worker_id}"

    # e.g. "test-testing-test_thresholds"
    module_path = request.node.nodeid.split("::")[0]
    with run_scope("test-" + module_path.replace("/", "-").removesuffix(".py")):
        yield


@pytest.fixture
def gate_store():
    return InMemoryVersionGateStore()


@pytest.fixture
def gates(gate_store):
    """Gates for a fresh task: every gate resolves to its newest version."""
    return VersionGates("task-test", gate_store)


@pytest.fixture
def legacy_gates(gate_store):
    """Gates for a replayed task: unrecorded gates resolve to the default version."""
    return VersionGates("task-legacy", gate_store, replaying=True)


@pytest.fixture
def pause():
    return PauseCoordinator()


@pytest.fixture
def guidance():
    return QueuedGuidanceSource()


@pytest.fixture
def chat_history():
    return ChatHistoryContainer()


@pytest.fixture
def applier():
    return FakeEditBlockApplier()


@pytest.fixture
def tool_handlers():
    return FakeRepositoryToolHandlers()


@pytest.fixture
def build_deps(gates, pause, guidance, applier, tool_handlers):
    """Factory for EditCodeDependencies around a scripted chat client."""

    def _build(responses, config=None, **overrides):
        params = dict(
            gates=gates,
            pause=pause,
            guidance=guidance,
            applier=applier,
            tool_handlers=tool_handlers,
            config=config or TaskConfig(),
        )
        params.update(overrides)
        return make_dependencies(ScriptedChatClient(responses), **params)

    return _build

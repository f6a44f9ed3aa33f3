"""Unit tests for per-task state: version gates, pause coordination and configuration."""

import asyncio
import json

import pytest

from core.task_state import (
    DEFAULT_VERSION,
    USER_ACTION_GO_NEXT,
    InMemoryVersionGateStore,
    PauseAborted,
    PauseCoordinator,
    TaskConfig,
    UnsupportedVersionError,
    VersionGates,
    VersionGateStore,
    load_task_config,
)


class TestVersionGates:
    """Tests for resolve-once version gates."""

    def test_fresh_task_gets_newest_version(self):
        gates = VersionGates("task-1", InMemoryVersionGateStore())

        assert gates.get_version("apply-edit-blocks-immediately") == 1

    def test_replaying_task_gets_default_version(self):
        gates = VersionGates("task-1", InMemoryVersionGateStore(), replaying=True)

        assert gates.get_version("apply-edit-blocks-immediately") == DEFAULT_VERSION

    def test_decision_survives_default_change(self):
        """Once resolved, later code defaults do not change a task's decision."""
        store = InMemoryVersionGateStore()
        VersionGates("task-1", store, defaults={"tilde-edit-block-fence": 0}).get_version(
            "tilde-edit-block-fence"
        )

        replayed = VersionGates("task-1", store)

        assert replayed.get_version("tilde-edit-block-fence") == 0

    def test_recorded_decision_wins_over_replaying(self):
        store = InMemoryVersionGateStore({"task-1": {"user-action-go-next": 1}})
        gates = VersionGates("task-1", store, replaying=True)

        assert gates.get_version("user-action-go-next") == 1
        assert gates.get_version("edit_code_diff") == 0

    def test_tasks_are_independent(self):
        store = InMemoryVersionGateStore()
        VersionGates("task-1", store, replaying=True).get_version("edit_code_diff")

        assert VersionGates("task-2", store).get_version("edit_code_diff") == 1

    def test_out_of_range_decision(self):
        store = InMemoryVersionGateStore({"task-1": {"edit_code_diff": 3}})

        with pytest.raises(UnsupportedVersionError):
            VersionGates("task-1", store).get_version("edit_code_diff")

    def test_file_store_persists(self, tmp_path):
        VersionGates("task-1", VersionGateStore(tmp_path), replaying=True).get_version("edit_code_diff")

        state = json.loads((tmp_path / "task-1.json").read_text())
        assert state["decisions"]["edit_code_diff"]["version"] == 0
        assert VersionGates("task-1", VersionGateStore(tmp_path)).get_version("edit_code_diff") == 0


class TestPauseCoordinator:
    """Tests for pause scopes and checkpoints."""

    async def test_not_paused_returns_none(self):
        assert await PauseCoordinator().request_if_paused("Paused.") is None

    async def test_scope_runs_call(self):
        async def call():
            return 42

        assert await PauseCoordinator().scope().run(call()) == 42

    async def test_pause_aborts_in_flight_call(self):
        coordinator = PauseCoordinator()
        cancelled = asyncio.Event()

        async def slow_call():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        asyncio.get_running_loop().call_later(0.01, coordinator.pause)

        with pytest.raises(PauseAborted):
            await coordinator.scope().run(slow_call())
        assert cancelled.is_set()

    async def test_scope_rejects_call_while_paused(self):
        coordinator = PauseCoordinator()
        coordinator.pause()

        async def call():
            return 1

        awaitable = call()
        with pytest.raises(PauseAborted):
            await coordinator.scope().run(awaitable)
        awaitable.close()

    async def test_resume_delivers_guidance(self):
        coordinator = PauseCoordinator()
        coordinator.pause()
        asyncio.get_running_loop().call_later(0.01, coordinator.resume, "try again")

        response = await coordinator.request_if_paused("Paused.")

        assert response.content == "try again"
        assert not coordinator.paused

    def test_pending_action_peek_and_consume(self):
        coordinator = PauseCoordinator()
        coordinator.set_pending_user_action(USER_ACTION_GO_NEXT)

        assert coordinator.get_pending_user_action() == USER_ACTION_GO_NEXT
        assert coordinator.get_pending_user_action() == USER_ACTION_GO_NEXT
        assert coordinator.consume_pending_user_action() == USER_ACTION_GO_NEXT
        assert coordinator.get_pending_user_action() is None


class TestTaskConfig:
    """Tests for task configuration loading."""

    def test_external_names(self):
        config = TaskConfig.model_validate({
            "MaxIterations": 5,
            "DisableHumanInTheLoop": True,
            "AutoIterations": 4,
            "EditCode": {"Hints": "Prefer small functions."},
        })

        assert config.max_iterations == 5
        assert config.disable_human_in_the_loop
        assert config.auto_iterations == 4
        assert config.edit_code.hints == "Prefer small functions."

    def test_defaults(self):
        config = TaskConfig()

        assert config.max_iterations == 0
        assert not config.disable_human_in_the_loop
        assert config.edit_code.hints == ""

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "task_config.json"
        path.write_text(json.dumps({"MaxIterations": 3}))

        assert load_task_config(path).max_iterations == 3

    def test_load_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EDITLOOP_MAX_ITERATIONS", "9")
        monkeypatch.setenv("EDITLOOP_DISABLE_HUMAN_IN_THE_LOOP", "true")
        monkeypatch.setenv("EDITLOOP_EDIT_CODE_HINTS", "Run the linter.")

        config = load_task_config(tmp_path / "missing.json")

        assert config.max_iterations == 9
        assert config.disable_human_in_the_loop
        assert config.edit_code.hints == "Run the linter."

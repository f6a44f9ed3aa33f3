"""Unit tests for module-based logging."""

import logging
from pathlib import Path

import pytest

from core.config import configure_logging
from core.logging import (
    MODULE_TO_LOG,
    ModuleDispatchHandler,
    ThirdPartyHandler,
    end_run,
    get_current_run_id,
    module_to_log_name,
    run_scope,
    start_run,
)
from core.logging.handlers import _RunFileHandler
from core.logging.run_manager import _compute_log_name, _module_log_cache, should_rotate


def _record(name: str, message: str) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=message,
        args=(),
        exc_info=None,
    )


def _handler(handler_cls, log_dir: Path):
    handler = handler_cls(log_dir)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


class TestModuleToLogName:
    """Tests for module_to_log_name()."""

    def test_edit_loop_modules(self):
        assert module_to_log_name("workflows.edit_code") == "edit-code"
        assert module_to_log_name("workflows.edit_code.controller") == "edit-code"
        assert module_to_log_name("workflows.edit_code.extraction") == "edit-code"

    def test_longest_prefix_wins(self):
        assert module_to_log_name("workflows.edit_code.authoring") == "authoring"
        assert module_to_log_name("workflows.shared.llm_loop") == "llm-loop"
        assert module_to_log_name("workflows.shared.chat_history") == "workflows-shared"

    def test_core_modules(self):
        assert module_to_log_name("core.task_state.version_gates") == "task-state"
        assert module_to_log_name("core.config") == "config"

    def test_fallback_to_misc(self):
        assert module_to_log_name("unknown.module") == "misc"
        assert module_to_log_name("__main__") == "misc"

    def test_caching(self):
        _module_log_cache.clear()

        first = module_to_log_name("core.task_state.pause")
        assert "core.task_state.pause" in _module_log_cache
        assert module_to_log_name("core.task_state.pause") == first

    def test_all_mappings_valid(self):
        for prefix, log_name in MODULE_TO_LOG.items():
            assert _compute_log_name(prefix) == log_name


class TestRunLifecycle:
    """Tests for start_run/end_run and rotation bookkeeping."""

    def test_start_and_end(self):
        end_run()
        assert get_current_run_id() is None

        start_run("task-123")
        assert get_current_run_id() == "task-123"

        end_run()
        assert get_current_run_id() is None

    def test_no_rotation_without_run(self):
        end_run()
        assert should_rotate("edit-code") is False

    def test_rotates_once_per_log_per_run(self):
        start_run("run-1")
        assert should_rotate("edit-code") is True
        assert should_rotate("authoring") is True
        assert should_rotate("edit-code") is False
        end_run()

        start_run("run-2")
        assert should_rotate("edit-code") is True
        end_run()

    def test_run_scope_ends_run_on_error(self):
        end_run()
        with pytest.raises(RuntimeError):
            with run_scope("task-err"):
                assert get_current_run_id() == "task-err"
                raise RuntimeError("boom")

        assert get_current_run_id() is None


class TestModuleDispatchHandler:
    """Tests for ModuleDispatchHandler."""

    def test_routes_to_module_files(self, tmp_path):
        handler = _handler(ModuleDispatchHandler, tmp_path)

        handler.emit(_record("workflows.edit_code.controller", "Controller message"))
        handler.emit(_record("workflows.edit_code.authoring", "Authoring message"))
        handler.close()

        assert "Controller message" in (tmp_path / "edit-code.log").read_text()
        assert "Authoring message" in (tmp_path / "authoring.log").read_text()

    def test_rotation_on_new_run(self, tmp_path):
        handler = _handler(ModuleDispatchHandler, tmp_path)

        start_run("run-1")
        handler.emit(_record("core.task_state", "Run 1 message"))
        end_run()
        start_run("run-2")
        handler.emit(_record("core.task_state", "Run 2 message"))
        end_run()
        handler.close()

        assert "Run 2 message" in (tmp_path / "task-state.log").read_text()
        assert "Run 1 message" in (tmp_path / "task-state.previous.log").read_text()

    def test_close_releases_files(self, tmp_path):
        handler = _handler(ModuleDispatchHandler, tmp_path)
        for module in ["workflows.edit_code", "workflows.shared.llm_loop", "core.task_state"]:
            handler.emit(_record(module, f"Message from {module}"))

        handler.close()

        assert handler._files.streams == {}

    def test_base_handler_needs_log_name(self, tmp_path):
        with pytest.raises(TypeError):
            _RunFileHandler(tmp_path)

    def test_records_carry_run_id(self, tmp_path):
        handler = ModuleDispatchHandler(tmp_path)
        handler.setFormatter(logging.Formatter("[%(run_id)s] %(message)s"))

        with run_scope("task-42"):
            handler.handle(_record("workflows.edit_code.authoring", "inside"))
        handler.handle(_record("workflows.edit_code.authoring", "outside"))
        handler.close()

        lines = (tmp_path / "authoring.log").read_text().splitlines()
        assert lines == ["[task-42] inside", "[-] outside"]


class TestThirdPartyHandler:
    """Tests for ThirdPartyHandler."""

    def test_writes_to_single_file(self, tmp_path):
        handler = _handler(ThirdPartyHandler, tmp_path)
        for lib in ["langgraph", "langchain_core", "httpx"]:
            handler.emit(_record(lib, f"Message from {lib}"))
        handler.close()

        content = (tmp_path / "run-3p.log").read_text()
        assert "langgraph" in content
        assert "httpx" in content

    def test_rotation_on_new_run(self, tmp_path):
        handler = _handler(ThirdPartyHandler, tmp_path)

        start_run("run-1")
        handler.emit(_record("anthropic", "Run 1 anthropic message"))
        end_run()
        start_run("run-2")
        handler.emit(_record("anthropic", "Run 2 anthropic message"))
        end_run()
        handler.close()

        assert "Run 2" in (tmp_path / "run-3p.log").read_text()
        assert "Run 1" in (tmp_path / "run-3p.previous.log").read_text()


def test_configure_logging_installs_handlers_once(tmp_path, monkeypatch):
    monkeypatch.setenv("EDITLOOP_LOG_DIR", str(tmp_path))
    root = logging.getLogger()
    before = list(root.handlers)
    try:
        configure_logging("task-logging-test")
        configure_logging("task-logging-test-2")
        added = [h for h in root.handlers if h not in before]

        logging.getLogger("workflows.edit_code.controller").info("routed")
        for handler in added:
            handler.flush()

        assert sum(isinstance(h, ModuleDispatchHandler) for h in root.handlers) == 1
        assert get_current_run_id() == "task-logging-test-2"
        assert "routed" in (tmp_path / "edit-code.log").read_text()
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()

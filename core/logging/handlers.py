"""Handlers writing task runs to per-module log files.

ModuleDispatchHandler routes first-party records by logger name (see
MODULE_TO_LOG): the controller, the authoring engine, the generic loop and
task state each get their own file. ThirdPartyHandler collects LangChain,
LangGraph, the Anthropic client and httpx into run-3p.log. Every record is
stamped with the current run id so interleaved task output can be split.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TextIO

from core.logging.run_manager import NO_RUN, get_current_run_id, module_to_log_name, should_rotate

THIRD_PARTY_LOG = "run-3p"


class RunIdFilter(logging.Filter):
    """Sets record.run_id to the current run (or "-") for use in formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_current_run_id() or NO_RUN
        return True


class _RunLogFiles:
    """Open log files by name, rotating each on its first write in a run."""

    def __init__(self, log_dir: Path):
        self.log_dir = log_dir
        self.streams: dict[str, TextIO] = {}

    def _path(self, log_name: str, suffix: str = "") -> Path:
        return self.log_dir / f"{log_name}{suffix}.log"

    def stream_for(self, log_name: str) -> TextIO:
        if should_rotate(log_name):
            stream = self.streams.pop(log_name, None)
            if stream is not None:
                stream.close()
            current = self._path(log_name)
            if current.exists():
                current.replace(self._path(log_name, ".previous"))
        if log_name not in self.streams:
            self.streams[log_name] = self._path(log_name).open("a", encoding="utf-8")
        return self.streams[log_name]

    def write(self, log_name: str, line: str) -> None:
        stream = self.stream_for(log_name)
        stream.write(line + "\n")
        stream.flush()

    def close(self) -> None:
        for stream in self.streams.values():
            stream.close()
        self.streams.clear()


class _RunFileHandler(logging.Handler, ABC):
    """Writes each record to the run-rotated file chosen by log_name_for()."""

    def __init__(self, log_dir: Path):
        super().__init__()
        self._files = _RunLogFiles(log_dir)
        self.addFilter(RunIdFilter())

    @abstractmethod
    def log_name_for(self, record: logging.LogRecord) -> str:
        """Log file name (without .log) for a record."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._files.write(self.log_name_for(record), self.format(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            self._files.close()
        finally:
            self.release()
        super().close()


class ModuleDispatchHandler(_RunFileHandler):
    """One handler fanning records out to per-module files.

    Usage:
        handler = ModuleDispatchHandler(Path("logs"))
        handler.setFormatter(logging.Formatter("%(asctime)s [%(run_id)s] %(message)s"))
        logging.getLogger().addHandler(handler)
    """

    def log_name_for(self, record: logging.LogRecord) -> str:
        return module_to_log_name(record.name)


class ThirdPartyHandler(_RunFileHandler):
    """All records to run-3p.log, rotated per run like the module logs."""

    LOG_NAME = THIRD_PARTY_LOG

    def log_name_for(self, record: logging.LogRecord) -> str:
        return self.LOG_NAME

"""Shared test fixtures for schedwatch."""

import logging
from datetime import datetime
from pathlib import Path

import pytest
import structlog

SYSTEM_SCHEDSTAT = """\
version 15
timestamp 4295350962
cpu0 0 0 0 0 0 0 1000 200 30
domain0 00000003 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0
cpu1 0 0 0 0 0 0 3000 400 50
domain0 00000003 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0 0
"""


class FakeProc:
    """A throwaway procfs tree under tmp_path.

    Only the records schedwatch reads are written: <pid>/stat,
    <pid>/schedstat and the top-level schedstat.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def add_process(
        self,
        pid: int,
        run_time: int = 0,
        wait_time: int = 0,
        timeslices: int | None = 1,
        command: str = "test_cmd",
    ) -> None:
        pid_dir = self.root / str(pid)
        pid_dir.mkdir(exist_ok=True)
        (pid_dir / "stat").write_text(f"{pid} ({command}) S 1 {pid} {pid} 0 -1 4194304\n")
        self.set_counters(pid, run_time, wait_time, timeslices)

    def set_counters(
        self, pid: int, run_time: int, wait_time: int, timeslices: int | None = 1
    ) -> None:
        fields = [run_time, wait_time] + ([timeslices] if timeslices is not None else [])
        (self.root / str(pid) / "schedstat").write_text(" ".join(map(str, fields)) + "\n")

    def remove_process(self, pid: int) -> None:
        pid_dir = self.root / str(pid)
        for child in pid_dir.iterdir():
            child.unlink()
        pid_dir.rmdir()

    def write_system(self, text: str = SYSTEM_SCHEDSTAT) -> None:
        (self.root / "schedstat").write_text(text)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a temp dir so config and log paths never touch the real one."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo structlog/stdlib logging changes made by configure()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """Create an empty fake procfs tree."""
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def fixed_clock():
    """Clock that always returns 2024-01-15 10:41:07."""
    moment = datetime(2024, 1, 15, 10, 41, 7)
    return lambda: moment

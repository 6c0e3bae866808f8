"""
Relaunch Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

from pathlib import Path
from typing import Any, Generator

import pytest

from relaunch.utils.config import get_settings


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, pid: int, kill_error: BaseException | None = None) -> None:
        self.pid = pid
        self.returncode: int | None = None
        self.killed = False
        self._kill_error = kill_error

    def kill(self) -> None:
        if self._kill_error is not None:
            raise self._kill_error
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode


class FakeLauncher:
    """Records spawn calls and hands out FakeProcess instances."""

    def __init__(self) -> None:
        self.calls: list[tuple[tuple[str, ...], dict[str, Any]]] = []
        self.processes: list[FakeProcess] = []
        self.error: BaseException | None = None
        self.kill_error: BaseException | None = None

    async def __call__(self, *args: str, **kwargs: Any) -> FakeProcess:
        self.calls.append((args, kwargs))
        if self.error is not None:
            raise self.error
        process = FakeProcess(pid=1000 + len(self.processes), kill_error=self.kill_error)
        self.processes.append(process)
        return process


class FakeObserver:
    """Minimal watchdog observer double driven from the test."""

    def __init__(self, schedule_error: BaseException | None = None) -> None:
        self.scheduled: list[tuple[str, bool]] = []
        self.handler = None
        self.alive = False
        self.stopped = False
        self.emitters: set = set()
        self._schedule_error = schedule_error

    def schedule(self, handler, path: str, recursive: bool = False) -> None:
        if self._schedule_error is not None:
            raise self._schedule_error
        self.handler = handler
        self.scheduled.append((path, recursive))

    def start(self) -> None:
        self.alive = True

    def stop(self) -> None:
        self.alive = False
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        pass

    def is_alive(self) -> bool:
        return self.alive


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; reset them around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=100.0)


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def go_project(tmp_path: Path) -> Path:
    """Create a small Go-style source tree for testing."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "main.go").write_text("package main\n\nfunc main() {}\n")
    (root / "README.md").write_text("# project\n")

    pkg = root / "pkg"
    pkg.mkdir()
    (pkg / "util.go").write_text("package pkg\n")

    docs = root / "docs"
    docs.mkdir()
    (docs / "guide.md").write_text("guide\n")

    empty = root / "empty"
    empty.mkdir()
    (empty / "nested").mkdir()

    hidden = root / ".git"
    hidden.mkdir()
    (hidden / "HEAD.go").write_text("ref\n")

    return root

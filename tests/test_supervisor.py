"""
Tests for Process Supervisor.

Requires Python 3.11+.
"""

import sys
from pathlib import Path

import pytest

from relaunch.process.supervisor import ProcessSupervisor
from tests.conftest import FakeLauncher


class TestProcessSupervisor:
    """Test cases for ProcessSupervisor with a fake launcher."""

    @pytest.fixture
    def artifact(self, tmp_path: Path) -> Path:
        return tmp_path / "bin" / "server"

    @pytest.fixture
    def supervisor(self, artifact: Path, launcher: FakeLauncher) -> ProcessSupervisor:
        return ProcessSupervisor(artifact, ["-port", "8080"], launcher=launcher)

    @pytest.mark.asyncio
    async def test_first_start(self, supervisor: ProcessSupervisor, launcher: FakeLauncher, artifact: Path):
        """Test starting from the no-process state."""
        result = await supervisor.restart()

        assert result.started
        assert result.killed_pid is None
        assert supervisor.is_running
        args, kwargs = launcher.calls[0]
        assert args == (str(artifact), "-port", "8080")
        assert kwargs["cwd"] == str(artifact.parent)

    @pytest.mark.asyncio
    async def test_restart_supersedes_old_process(self, supervisor: ProcessSupervisor, launcher: FakeLauncher):
        """Test that the old process is killed before the new one starts."""
        await supervisor.restart()
        result = await supervisor.restart()

        old, new = launcher.processes
        assert old.killed
        assert not new.killed
        assert result.killed_pid == old.pid
        assert result.pid == new.pid
        assert supervisor.process is new

    @pytest.mark.asyncio
    async def test_exited_process_not_killed(self, supervisor: ProcessSupervisor, launcher: FakeLauncher):
        """Test that a process that already exited is not signalled."""
        await supervisor.restart()
        launcher.processes[0].returncode = 0

        result = await supervisor.restart()

        assert not launcher.processes[0].killed
        assert result.kill_error is None
        assert result.started

    @pytest.mark.asyncio
    async def test_kill_failure_still_starts(self, supervisor: ProcessSupervisor, launcher: FakeLauncher):
        """Test best-effort kill: a failed kill does not block the new start."""
        launcher.kill_error = PermissionError("operation not permitted")
        await supervisor.restart()

        result = await supervisor.restart()

        assert result.kill_error is not None
        assert result.started
        assert supervisor.process is launcher.processes[1]

    @pytest.mark.asyncio
    async def test_already_gone_is_not_an_error(self, supervisor: ProcessSupervisor, launcher: FakeLauncher):
        """Test that a process vanishing before the kill is not reported."""
        launcher.kill_error = ProcessLookupError()
        await supervisor.restart()

        result = await supervisor.restart()

        assert result.kill_error is None
        assert result.started

    @pytest.mark.asyncio
    async def test_start_failure_leaves_no_process(self, supervisor: ProcessSupervisor, launcher: FakeLauncher):
        """Test that a failed start ends in the no-process state."""
        await supervisor.restart()
        launcher.error = FileNotFoundError("no such file")

        result = await supervisor.restart()

        assert not result.started
        assert result.start_error is not None
        assert launcher.processes[0].killed
        assert supervisor.process is None
        assert not supervisor.is_running

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, supervisor: ProcessSupervisor, launcher: FakeLauncher):
        """Test that unexpected faults are returned, never raised."""
        launcher.error = RuntimeError("boom")

        result = await supervisor.restart()

        assert not result.started
        assert "boom" in str(result.start_error)
        assert supervisor.process is None

    @pytest.mark.asyncio
    async def test_stop(self, supervisor: ProcessSupervisor, launcher: FakeLauncher):
        """Test that stop kills the process and clears the handle."""
        await supervisor.restart()

        assert await supervisor.stop() is None
        assert launcher.processes[0].killed
        assert supervisor.process is None
        assert await supervisor.wait() is None


class TestProcessSupervisorIntegration:
    """Test cases using real child processes."""

    @pytest.mark.asyncio
    async def test_real_restart_cycle(self):
        """Test start, restart and stop with the Python interpreter as artifact."""
        supervisor = ProcessSupervisor(
            Path(sys.executable), ["-c", "import time; time.sleep(60)"]
        )
        try:
            first = await supervisor.restart()
            assert first.started
            old = supervisor.process

            second = await supervisor.restart()
            assert second.started
            assert second.killed_pid == first.pid
            assert old.returncode is not None
            assert supervisor.is_running
        finally:
            await supervisor.stop()

        assert not supervisor.is_running

    @pytest.mark.asyncio
    async def test_missing_artifact(self, tmp_path: Path):
        """Test that a missing artifact produces a start error."""
        supervisor = ProcessSupervisor(tmp_path / "missing")

        result = await supervisor.restart()

        assert not result.started
        assert "cannot start" in str(result.start_error)

"""
Relaunch Process Supervisor.

Owns the lifecycle of the spawned artifact process.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from relaunch.errors import ProcessError
from relaunch.utils.logger import LoggerMixin

Launcher = Callable[..., Awaitable[asyncio.subprocess.Process]]


@dataclass
class RestartResult:
    """Outcome of a restart: what happened to the old and the new process."""

    pid: int | None = None
    killed_pid: int | None = None
    kill_error: ProcessError | None = None
    start_error: ProcessError | None = None

    @property
    def started(self) -> bool:
        return self.pid is not None


class ProcessSupervisor(LoggerMixin):
    """
    Starts, kills and restarts the artifact process.

    At most one process handle is held. Every handle mutation happens
    under a lock so overlapping build tasks cannot interleave restarts.
    """

    def __init__(
        self,
        artifact: Path,
        args: Sequence[str] = (),
        launcher: Launcher = asyncio.create_subprocess_exec,
        kill_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the supervisor.

        Args:
            artifact: Executable to run; its directory is the working directory
            args: Arguments passed to the executable
            launcher: Spawns the process, same signature as
                asyncio.create_subprocess_exec
            kill_timeout: Seconds to wait for a killed process to exit
        """
        self._artifact = Path(artifact)
        self._args = list(args)
        self._launcher = launcher
        self._kill_timeout = kill_timeout
        self._process: asyncio.subprocess.Process | None = None
        self._lock = asyncio.Lock()

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def restart(self) -> RestartResult:
        """
        Kill the current process, if any, and start a new one.

        Never raises. A failed kill is recorded and the new process is
        started anyway; a failed start leaves no live process.

        Returns:
            RestartResult describing both steps
        """
        result = RestartResult()
        async with self._lock:
            try:
                old = self._process
                result.kill_error = await self._kill()
                if old is not None and result.kill_error is None:
                    result.killed_pid = old.pid
                self._process = None

                try:
                    self._process = await self._start()
                except OSError as e:
                    result.start_error = ProcessError(f"cannot start {self._artifact}: {e}")
                else:
                    result.pid = self._process.pid
            except Exception as e:
                self.log.exception("restart_failed", error=str(e))
                result.start_error = ProcessError(f"restart failed: {e}")
        return result

    async def stop(self) -> ProcessError | None:
        """Kill the current process and forget its handle."""
        async with self._lock:
            error = await self._kill()
            self._process = None
            return error

    async def wait(self) -> int | None:
        """Wait for the current process to exit and return its exit code."""
        process = self._process
        if process is None:
            return None
        return await process.wait()

    async def _start(self) -> asyncio.subprocess.Process:
        self.log.info("process_starting", artifact=str(self._artifact), args=self._args)
        process = await self._launcher(
            str(self._artifact),
            *self._args,
            cwd=str(self._artifact.parent),
        )
        self.log.info("process_started", pid=process.pid, outcome="success")
        return process

    async def _kill(self) -> ProcessError | None:
        process = self._process
        if process is None or process.returncode is not None:
            return None

        self.log.info("process_killing", pid=process.pid)
        try:
            process.kill()
        except ProcessLookupError:
            # exited between the returncode check and the signal
            return None
        except OSError as e:
            self.log.warning("process_kill_failed", pid=process.pid, error=str(e))
            return ProcessError(f"cannot kill process {process.pid}: {e}")

        try:
            await asyncio.wait_for(process.wait(), timeout=self._kill_timeout)
        except TimeoutError:
            self.log.warning("process_kill_timeout", pid=process.pid)
            return ProcessError(f"process {process.pid} did not exit after kill")

        self.log.info("process_killed", pid=process.pid, outcome="success")
        return None

    def __repr__(self) -> str:
        state: Any = self._process.pid if self.is_running else None
        return f"ProcessSupervisor(artifact={str(self._artifact)!r}, pid={state})"

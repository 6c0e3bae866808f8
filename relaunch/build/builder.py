"""
Relaunch Builder.

Runs the external build command and restarts the artifact on success.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from relaunch.errors import BuildError
from relaunch.process.supervisor import Launcher, ProcessSupervisor, RestartResult
from relaunch.utils.logger import LoggerMixin
from relaunch.watcher.debouncer import BuildState


@dataclass
class BuildResult:
    """Outcome of one build attempt."""

    success: bool
    error: BuildError | None = None
    duration: float = 0.0
    restart: RestartResult | None = None


class Builder(LoggerMixin):
    """
    Invokes the build command.

    Build output goes straight to this process's stdout/stderr. Build
    activity is recorded in the shared BuildState at start and at end,
    whatever the outcome, so cooldown counts from real build work.
    """

    def __init__(
        self,
        argv: Sequence[str],
        state: BuildState,
        supervisor: ProcessSupervisor,
        delay: float = 0.0,
        launcher: Launcher = asyncio.create_subprocess_exec,
    ) -> None:
        """
        Initialize the builder.

        Args:
            argv: Build command and its arguments
            state: Shared build state
            supervisor: Restarted after every successful build
            delay: Seconds to wait before a triggered build starts
            launcher: Spawns the build command
        """
        if not argv:
            raise ValueError("build command must not be empty")
        self._argv = list(argv)
        self._state = state
        self._supervisor = supervisor
        self._delay = delay
        self._launcher = launcher

    async def run(self) -> BuildResult:
        """Wait for the pre-build delay, then build. Used as the trigger action."""
        if self._delay > 0:
            await asyncio.sleep(self._delay)
        return await self.build()

    async def build(self) -> BuildResult:
        """
        Build, and on success restart the supervised process.

        Never raises for build failures; a failed build leaves the
        running process untouched.

        Returns:
            BuildResult with the restart outcome on success
        """
        started = self._state.record_build()
        self.log.info("build_started", command=self._argv)

        try:
            error = await self._execute()
        finally:
            duration = self._state.record_build() - started

        if error is not None:
            self.log.error("build_failed", error=str(error), returncode=error.returncode)
            return BuildResult(success=False, error=error, duration=duration)

        self.log.info("build_succeeded", duration=round(duration, 3), outcome="success")

        restart = await self._supervisor.restart()
        self._report(restart)
        return BuildResult(success=True, duration=duration, restart=restart)

    async def _execute(self) -> BuildError | None:
        try:
            process = await self._launcher(*self._argv)
        except OSError as e:
            return BuildError(f"cannot run {self._argv[0]}: {e}")

        returncode = await process.wait()
        if returncode != 0:
            return BuildError(f"{self._argv[0]} exited with status {returncode}", returncode)
        return None

    def _report(self, restart: RestartResult) -> None:
        if restart.kill_error is not None:
            self.log.warning("old_process_not_terminated", error=str(restart.kill_error))
        if restart.start_error is not None:
            self.log.error("process_start_failed", error=str(restart.start_error))

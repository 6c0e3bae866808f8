"""
Relaunch Errors.

Exception hierarchy for setup, build and process failures.
"""


class RelaunchError(Exception):
    """Base class for all relaunch errors."""


class WatcherSetupError(RelaunchError):
    """The filesystem watcher could not be created or a directory registered."""


class BuildError(RelaunchError):
    """The build command failed or could not be spawned."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class ProcessError(RelaunchError):
    """The supervised process could not be terminated or started."""

"""
Relaunch Path Filter.

Decides whether a changed path is relevant to the watch set.
"""

import os
from collections.abc import Iterable
from pathlib import Path

from relaunch.utils.config import WILDCARD, WatchConfig


def _normalize(path: str | os.PathLike[str]) -> str:
    return os.path.abspath(os.fspath(path))


class PathFilter:
    """
    Extension-based path filter that always excludes the artifact itself.

    The artifact is excluded first so that writing the freshly built
    binary never triggers another build.
    """

    def __init__(
        self,
        extensions: Iterable[str],
        artifact: str | os.PathLike[str] | None = None,
    ) -> None:
        self._extensions = tuple(extensions)
        self._watch_all = WILDCARD in self._extensions
        self._artifact = _normalize(artifact) if artifact is not None else None

    @classmethod
    def from_config(cls, config: WatchConfig) -> "PathFilter":
        """Create a filter from the watch configuration."""
        return cls(config.extensions, config.artifact)

    @property
    def extensions(self) -> tuple[str, ...]:
        return self._extensions

    def is_ignorable(self, path: str | Path) -> bool:
        """
        Check whether a path should be ignored.

        Args:
            path: File path, absolute or relative to the working directory

        Returns:
            True if changes to the path must not trigger a build
        """
        if self._artifact is not None and _normalize(path) == self._artifact:
            return True

        if self._watch_all:
            return False

        return not os.fspath(path).endswith(self._extensions)

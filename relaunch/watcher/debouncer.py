"""
Relaunch Event Debouncer.

Gates raw filesystem events so that a burst of saves produces one build.
Requires Python 3.11+.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from relaunch.utils.logger import LoggerMixin
from relaunch.watcher.path_filter import PathFilter


class ChangeKind(str, Enum):
    """Kind of filesystem change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"
    METADATA = "metadata"  # attributes/permissions only, or open/close


@dataclass(frozen=True)
class FileEvent:
    """A single filesystem change notification."""

    path: Path
    kind: ChangeKind


@dataclass
class BuildState:
    """
    Mutable build bookkeeping shared by the debouncer and the builder.

    Times come from ``clock``, which must be monotonic.
    """

    clock: Callable[[], float] = time.monotonic
    last_build: float = float("-inf")
    _markers: dict[Path, float] = field(default_factory=dict)

    def now(self) -> float:
        return self.clock()

    def record_build(self, at: float | None = None) -> float:
        """Record build activity; the timestamp never moves backwards."""
        at = self.clock() if at is None else at
        self.last_build = max(self.last_build, at)
        return self.last_build

    def is_pending(self, key: Path, now: float | None = None) -> bool:
        """Check for an unexpired dedup marker, dropping it once expired."""
        expires = self._markers.get(key)
        if expires is None:
            return False
        now = self.clock() if now is None else now
        if now >= expires:
            del self._markers[key]
            return False
        return True

    def mark_pending(self, key: Path, ttl: float, now: float | None = None) -> None:
        now = self.clock() if now is None else now
        self._markers[key] = now + ttl


class EventDebouncer(LoggerMixin):
    """
    Decides whether a filesystem event triggers a build.

    Checks, in order: metadata-only change, ignorable path, cooldown since
    the last build, pending dedup marker. An event passing all four
    triggers a build and arms the relevant gate.
    """

    def __init__(
        self,
        path_filter: PathFilter,
        state: BuildState,
        artifact: Path,
        cooldown: float,
        dedup: bool = True,
        delay: float = 0.0,
    ) -> None:
        """
        Initialize the debouncer.

        Args:
            path_filter: Relevance filter for changed paths
            state: Shared build state
            artifact: Key for the dedup marker
            cooldown: Seconds after a build during which events are ignored;
                with delay, the lifetime of the dedup marker
            dedup: Coalesce triggers with an expiring marker
            delay: Seconds between a trigger and the start of its build; the
                marker is held through the delay as well as the cooldown
        """
        self._filter = path_filter
        self._state = state
        self._artifact = artifact
        self._cooldown = cooldown
        self._dedup = dedup
        self._delay = delay

    @property
    def state(self) -> BuildState:
        return self._state

    def should_trigger(self, event: FileEvent, now: float | None = None) -> bool:
        """
        Gate a single event.

        Args:
            event: The filesystem event
            now: Current monotonic time, defaults to the state's clock

        Returns:
            True if a build should be launched for this event
        """
        now = self._state.now() if now is None else now

        if event.kind is ChangeKind.METADATA:
            self.log.debug("event_ignored_metadata", path=str(event.path))
            return False

        if self._filter.is_ignorable(event.path):
            self.log.debug("event_ignored_unwatched", path=str(event.path))
            return False

        if now - self._state.last_build <= self._cooldown:
            self.log.debug("event_ignored_cooldown", path=str(event.path), kind=event.kind.value)
            return False

        if self._state.is_pending(self._artifact, now):
            self.log.debug("event_ignored_pending", path=str(event.path), kind=event.kind.value)
            return False

        if self._dedup:
            self._state.mark_pending(self._artifact, self._delay + self._cooldown, now)
        else:
            # the build starts once the delay has passed
            self._state.record_build(now + self._delay)

        self.log.info("build_triggered", path=str(event.path), kind=event.kind.value)
        return True

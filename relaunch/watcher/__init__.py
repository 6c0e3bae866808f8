"""
Relaunch File Watcher Package.

Path filtering, directory scanning, event gating and the watch loop.
Requires Python 3.11+.
"""

from relaunch.watcher.debouncer import BuildState, ChangeKind, EventDebouncer, FileEvent
from relaunch.watcher.path_filter import PathFilter
from relaunch.watcher.scanner import DirectoryScanner
from relaunch.watcher.watch_loop import WatchLoop

__all__ = [
    "BuildState",
    "ChangeKind",
    "DirectoryScanner",
    "EventDebouncer",
    "FileEvent",
    "PathFilter",
    "WatchLoop",
]

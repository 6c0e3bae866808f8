"""
Relaunch Directory Scanner.

Reduces candidate directories to those that hold watchable files.
Requires Python 3.11+.
"""

import os
from collections.abc import Iterable
from pathlib import Path

from relaunch.utils.logger import LoggerMixin
from relaunch.watcher.path_filter import PathFilter


class DirectoryScanner(LoggerMixin):
    """
    Computes the watch set.

    Every directory returned by filter_watchable() directly contains at
    least one file the PathFilter would not ignore.
    """

    def __init__(self, path_filter: PathFilter) -> None:
        """
        Initialize the scanner.

        Args:
            path_filter: Filter used to decide which files are watchable
        """
        self._filter = path_filter

    def collect(self, roots: Iterable[Path], recursive: bool = True) -> list[Path]:
        """
        Expand configured roots into candidate directories.

        A file root contributes its parent directory. Hidden directories
        are not descended into. Missing roots are reported and skipped.

        Args:
            roots: Configured files or directories
            recursive: Whether to include subdirectories

        Returns:
            Candidate directories in discovery order, without duplicates
        """
        found: dict[Path, None] = {}

        for root in roots:
            root = Path(root)
            if not root.exists():
                self.log.error("watch_root_missing", path=str(root))
                continue

            if not root.is_dir():
                found.setdefault(root.parent, None)
                continue

            found.setdefault(root, None)
            if not recursive:
                continue

            for dirpath, dirnames, _ in os.walk(root, onerror=self._walk_error):
                dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
                for name in dirnames:
                    found.setdefault(Path(dirpath) / name, None)

        return list(found)

    def filter_watchable(self, dirs: Iterable[Path]) -> list[Path]:
        """
        Drop directories that contain no watchable file.

        Listing errors are reported and the directory is dropped; scanning
        continues with the remaining directories.

        Args:
            dirs: Candidate directories

        Returns:
            Kept directories, in input order
        """
        kept = []
        for directory in dirs:
            try:
                watchable = self._is_watchable(Path(directory))
            except OSError as e:
                self.log.error("directory_scan_failed", path=str(directory), error=str(e))
                continue

            if watchable:
                kept.append(Path(directory))
            else:
                self.log.debug("directory_skipped", path=str(directory))

        return kept

    def _is_watchable(self, directory: Path) -> bool:
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.is_dir():
                    continue
                if not self._filter.is_ignorable(entry.path):
                    return True
        return False

    def _walk_error(self, error: OSError) -> None:
        self.log.error("directory_scan_failed", path=error.filename, error=str(error))

"""
Relaunch Watch Loop.

Bridges watchdog observer threads into a single asyncio consumer.
Requires Python 3.11+.
"""

import asyncio
import os
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from relaunch.errors import WatcherSetupError
from relaunch.utils.logger import LoggerMixin
from relaunch.watcher.debouncer import ChangeKind, EventDebouncer, FileEvent

_KINDS = {
    "created": ChangeKind.CREATED,
    "modified": ChangeKind.MODIFIED,
    "deleted": ChangeKind.DELETED,
}


def translate_event(event: FileSystemEvent) -> list[FileEvent]:
    """
    Convert a watchdog event into FileEvents.

    A move yields the source as deleted and the destination as created,
    so editors that save via rename are seen on the real file name.
    Open/close notifications carry no content change.
    """
    if event.event_type == "moved":
        return [
            FileEvent(Path(event.src_path), ChangeKind.DELETED),
            FileEvent(Path(event.dest_path), ChangeKind.CREATED),
        ]
    kind = _KINDS.get(event.event_type, ChangeKind.METADATA)
    return [FileEvent(Path(event.src_path), kind)]


def _signature(path: str) -> tuple[int, int] | None:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return st.st_size, st.st_mtime_ns


class _QueueingHandler(FileSystemEventHandler):
    """
    Forwards events from the observer thread onto the loop's queue.

    Attribute-only changes (chmod, chown) arrive as ``modified``; a
    modification that leaves size and mtime untouched is reclassified
    as metadata.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
        super().__init__()
        self._loop = loop
        self._queue = queue
        self._signatures: dict[str, tuple[int, int]] = {}

    def seed(self, directory: Path) -> None:
        """Record content signatures of the files directly in ``directory``."""
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.is_file():
                    st = entry.stat()
                    self._signatures[entry.path] = (st.st_size, st.st_mtime_ns)

    def _refine(self, item: FileEvent) -> FileEvent:
        key = str(item.path)
        if item.kind is ChangeKind.DELETED:
            self._signatures.pop(key, None)
            return item

        if item.kind not in (ChangeKind.MODIFIED, ChangeKind.CREATED):
            return item

        signature = _signature(key)
        previous = self._signatures.get(key)
        if signature is not None:
            self._signatures[key] = signature
        if item.kind is ChangeKind.MODIFIED and signature is not None and signature == previous:
            return FileEvent(item.path, ChangeKind.METADATA)
        return item

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        for item in translate_event(event):
            self._loop.call_soon_threadsafe(self._queue.put_nowait, self._refine(item))


class WatchLoop(LoggerMixin):
    """
    Control loop over filesystem events and watcher errors.

    Events go through the debouncer; accepted ones launch ``on_trigger``
    as a fire-and-forget task. The first watcher error ends the loop.
    Builds still in flight are not cancelled when the loop exits.
    """

    def __init__(
        self,
        directories: Iterable[Path],
        debouncer: EventDebouncer,
        on_trigger: Callable[[], Awaitable[Any]],
        observer_factory: Callable[[], BaseObserver] = Observer,
        health_check_interval: float = 1.0,
    ) -> None:
        """
        Initialize the watch loop.

        Args:
            directories: Watch set, each registered non-recursively
            debouncer: Event gate
            on_trigger: Coroutine factory run for every accepted event
            observer_factory: Creates the watchdog observer
            health_check_interval: Seconds between observer liveness checks
        """
        self._directories = list(directories)
        self._debouncer = debouncer
        self._on_trigger = on_trigger
        self._observer_factory = observer_factory
        self._health_check_interval = health_check_interval

        self._queue: asyncio.Queue[FileEvent | BaseException] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: BaseObserver | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self.started = asyncio.Event()
        self.finished = asyncio.Event()

    @property
    def directories(self) -> list[Path]:
        return list(self._directories)

    @property
    def pending_builds(self) -> int:
        return len(self._tasks)

    def report_error(self, error: BaseException) -> None:
        """Report a watcher-level error; safe to call from any thread."""
        if self._loop is None:
            raise RuntimeError("watch loop is not running")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, error)

    def _open(self) -> BaseObserver:
        self.log.info("watcher_initializing", directories=len(self._directories))
        handler = _QueueingHandler(self._loop, self._queue)
        try:
            observer = self._observer_factory()
        except Exception as e:
            raise WatcherSetupError(f"cannot create watcher: {e}") from e

        for directory in self._directories:
            try:
                observer.schedule(handler, str(directory), recursive=False)
            except Exception as e:
                observer.stop()
                raise WatcherSetupError(f"cannot watch {directory}: {e}") from e
            self.log.debug("directory_watched", path=str(directory))

            try:
                handler.seed(directory)
            except OSError as e:
                # its files report every modification as a content change
                self.log.warning("directory_seed_failed", path=str(directory), error=str(e))

        try:
            observer.start()
        except Exception as e:
            raise WatcherSetupError(f"cannot start watcher: {e}") from e

        return observer

    async def _close(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        if self._observer.is_alive():
            await asyncio.to_thread(self._observer.join, 5.0)
        self._observer = None
        self.log.info("watcher_stopped")

    def _observer_alive(self) -> bool:
        observer = self._observer
        if observer is None or not observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in observer.emitters)

    def _launch(self) -> None:
        task = asyncio.create_task(self._on_trigger())
        self._tasks.add(task)
        task.add_done_callback(self._build_done)

    def _build_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.log.error("build_task_failed", error=str(error), exc_info=error)

    async def _next(self) -> FileEvent | BaseException:
        while True:
            try:
                return await asyncio.wait_for(
                    self._queue.get(), timeout=self._health_check_interval
                )
            except TimeoutError:
                if not self._observer_alive():
                    return WatcherSetupError("watcher thread stopped unexpectedly")

    async def run(self) -> None:
        """
        Watch until a watcher-level error occurs.

        Raises:
            WatcherSetupError: If the watcher cannot be created or a
                directory cannot be registered
        """
        self._loop = asyncio.get_running_loop()
        self._observer = self._open()
        self.started.set()
        self.log.info("watcher_started", directories=[str(d) for d in self._directories])

        try:
            while True:
                item = await self._next()
                if isinstance(item, BaseException):
                    self.log.warning("watcher_error", error=str(item))
                    return

                if self._debouncer.should_trigger(item):
                    self._launch()
        finally:
            await self._close()
            self.finished.set()

    async def wait_closed(self) -> None:
        """Wait until run() has returned and the watcher is released."""
        await self.finished.wait()

    async def drain(self) -> None:
        """Wait for in-flight build tasks to complete."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

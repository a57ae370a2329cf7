"""Directory watching and retroactive scanning for new screenshots."""

import asyncio
import os
import re
from concurrent.futures import Future
from pathlib import Path
from typing import Any

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exceptions import WatchDirectoryError
from .processing_queue import ProcessingQueue

logger = structlog.get_logger()


def _to_str(path: str | bytes) -> str:
    return path if isinstance(path, str) else path.decode("utf-8")


def validate_watch_directory(watch_dir: Path) -> None:
    """Check that the watch directory exists and is a readable directory.

    Raises:
        WatchDirectoryError: If it is missing, not a directory or unreadable
    """
    if not watch_dir.exists():
        raise WatchDirectoryError(f"Watch directory {watch_dir} doesn't exist.")
    if not watch_dir.is_dir():
        raise WatchDirectoryError(f"Watch path {watch_dir} is not a directory.")
    if not os.access(watch_dir, os.R_OK):
        raise WatchDirectoryError(f"No read permission for {watch_dir}")


def scan_existing_files(watch_dir: Path, pattern: re.Pattern[str]) -> list[Path]:
    """List regular files in ``watch_dir`` whose name matches ``pattern``.

    Sub-directories are not entered. Entries that cannot be stat'ed are skipped.

    Returns:
        Matching paths sorted by name
    """
    matches = []
    with os.scandir(watch_dir) as entries:
        for entry in entries:
            try:
                if entry.is_file(follow_symlinks=False) and pattern.search(entry.name):
                    matches.append(Path(entry.path))
            except OSError as e:
                logger.warning("Could not stat file, skipping", path=entry.path, error=str(e))
    return sorted(matches)


async def wait_for_write_finish(path: Path, stability_threshold: float, poll_interval: float) -> bool:
    """Wait until a file's size stops changing.

    Args:
        path: File being written
        stability_threshold: Seconds the size must stay unchanged
        poll_interval: Seconds between checks

    Returns:
        False if the file disappeared while waiting
    """
    loop = asyncio.get_running_loop()
    last_size = -1
    stable_since = loop.time()

    while True:
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return False

        now = loop.time()
        if size != last_size:
            last_size = size
            stable_since = now
        elif now - stable_since >= stability_threshold:
            return True

        await asyncio.sleep(poll_interval)


class ScreenshotEventHandler(FileSystemEventHandler):
    """Feeds newly created screenshots into the processing queue."""

    def __init__(
        self,
        queue: ProcessingQueue,
        pattern: re.Pattern[str],
        loop: asyncio.AbstractEventLoop,
        stability_threshold: float = 2.0,
        poll_interval: float = 0.5,
    ) -> None:
        """Initialize the event handler.

        Args:
            queue: Queue receiving matching paths
            pattern: Filename pattern deciding eligibility
            loop: Event loop running the queue
            stability_threshold: Seconds a new file's size must stay unchanged
            poll_interval: Seconds between size checks

        """
        super().__init__()
        self.queue = queue
        self.pattern = pattern
        self.loop = loop
        self.stability_threshold = stability_threshold
        self.poll_interval = poll_interval
        self.pending_tasks: set[Future[Any]] = set()

    def matches(self, path: str | bytes) -> bool:
        """Check a path's basename against the filename pattern."""
        return self.pattern.search(Path(_to_str(path)).name) is not None

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self.matches(event.src_path):
            logger.info("New matching file detected", path=_to_str(event.src_path))
            self._schedule(_to_str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        """Treat files renamed into place (how macOS saves screenshots) as created."""
        dest_path = getattr(event, "dest_path", None)
        if event.is_directory or not dest_path:
            return
        if self.matches(dest_path) and not self.matches(event.src_path):
            logger.info("Matching file moved into place", path=_to_str(dest_path))
            self._schedule(_to_str(dest_path))

    def _schedule(self, path: str) -> None:
        future = asyncio.run_coroutine_threadsafe(self._enqueue_when_ready(Path(path)), self.loop)
        self.pending_tasks.add(future)
        future.add_done_callback(self.pending_tasks.discard)

    async def _enqueue_when_ready(self, path: Path) -> None:
        try:
            ready = await wait_for_write_finish(path, self.stability_threshold, self.poll_interval)
        except OSError as e:
            logger.warning("Could not check new file", path=str(path), error=str(e))
            return

        if not ready:
            logger.warning("File disappeared before it was fully written", path=str(path))
            return

        if self.queue.submit(path):
            logger.info("Added file to queue", path=str(path))


class DirectoryWatcher:
    """Runs a watchdog observer on a single directory, non-recursively."""

    def __init__(self, watch_dir: Path, handler: ScreenshotEventHandler, shutdown_timeout: float = 10.0) -> None:
        """Prepare a watcher for ``watch_dir``; the observer starts in :meth:`start`."""
        self.watch_dir = watch_dir
        self.handler = handler
        self.shutdown_timeout = shutdown_timeout
        self.observer: Any = None

    def start(self) -> None:
        """Start a non-recursive observer thread on the watch directory."""
        self.observer = Observer()
        self.observer.schedule(self.handler, str(self.watch_dir), recursive=False)
        self.observer.start()
        logger.info(
            "Watching for new files",
            path=str(self.watch_dir),
            pattern=self.handler.pattern.pattern,
        )

    def stop(self) -> None:
        """Stop and join the observer thread."""
        if self.observer is None:
            return

        logger.info("Stopping watchdog observer...")
        self.observer.stop()
        self.observer.join(timeout=self.shutdown_timeout)
        if self.observer.is_alive():
            logger.warning("Observer did not stop within timeout", timeout=self.shutdown_timeout)
        self.observer = None

"""Sequential processing queue for screenshot work items."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

ItemHandler = Callable[[Path], Awaitable[Any]]

# Queued by request_stop() to wake the worker
_STOP = object()


class ProcessingQueue:
    """FIFO queue processing one file at a time.

    Items come from the retroactive scan and from the directory watcher. A
    failing item is logged and never blocks the items behind it. Without
    ``keep_alive`` the queue returns from :meth:`run` as soon as it is drained;
    with it the queue waits for new items until :meth:`request_stop` is called.
    """

    def __init__(self, handler: ItemHandler, keep_alive: bool = False) -> None:
        """Initialize the queue.

        Args:
            handler: Coroutine function processing a single path
            keep_alive: Keep waiting for items once the queue is empty

        """
        self.handler = handler
        self.keep_alive = keep_alive
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._pending: set[str] = set()
        self.processed_count = 0
        self.failed_count = 0
        self._stopping = False

    def __len__(self) -> int:
        return len(self._pending)

    def submit(self, path: str | Path) -> bool:
        """Add a path to the queue; must be called from the event loop thread.

        Returns:
            False if the same path is already waiting in the queue
        """
        key = str(path)
        if key in self._pending:
            logger.debug("Path already queued", path=key)
            return False

        self._pending.add(key)
        self._queue.put_nowait(Path(key))
        return True

    def request_stop(self) -> None:
        """Stop after the item currently in flight; items still queued are not processed."""
        self._stopping = True
        # wakes a worker idle in get()
        self._queue.put_nowait(_STOP)

    async def run(self) -> None:
        """Process items until drained (or until stopped when keep_alive is set)."""
        logger.info("Processing queue started", queued=len(self._pending), keep_alive=self.keep_alive)

        while not self._stopping:
            if self._queue.empty() and not self.keep_alive:
                break

            item = await self._queue.get()
            try:
                if item is _STOP or self._stopping:
                    continue
                await self._process(item)
            finally:
                self._queue.task_done()

            if self._queue.empty() and not self._stopping:
                logger.info("All currently queued screenshots have been processed")

        if self._stopping:
            logger.info("Processing queue stop requested", remaining=len(self._pending))
        logger.info(
            "Processing queue stopped",
            processed=self.processed_count,
            failed=self.failed_count,
        )

    async def _process(self, path: Path) -> None:
        self._pending.discard(str(path))
        try:
            await self.handler(path)
            self.processed_count += 1
        except Exception as e:
            self.failed_count += 1
            logger.exception("Error processing file", path=str(path), error=str(e))

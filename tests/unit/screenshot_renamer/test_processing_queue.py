"""Unit tests for the processing queue."""

import asyncio
from pathlib import Path

import pytest

from services.screenshot_renamer.src.processing_queue import ProcessingQueue


class RecordingHandler:
    """Records processed paths and fails on selected names."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.seen = []

    async def __call__(self, path):
        self.seen.append(path.name)
        if path.name in self.fail_on:
            raise RuntimeError(f"cannot process {path.name}")


class TestProcessingQueue:
    """Test suite for ProcessingQueue."""

    @pytest.mark.asyncio
    async def test_fifo_order(self):
        """Test that items are processed in submission order."""
        handler = RecordingHandler()
        queue = ProcessingQueue(handler)
        for name in ("a.png", "b.png", "c.png"):
            queue.submit(Path("/shots") / name)

        await queue.run()

        assert handler.seen == ["a.png", "b.png", "c.png"]
        assert queue.processed_count == 3
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_failure_does_not_block_others(self):
        """Test that a failing item is skipped and the rest still run."""
        handler = RecordingHandler(fail_on={"b.png"})
        queue = ProcessingQueue(handler)
        for name in ("a.png", "b.png", "c.png"):
            queue.submit(Path("/shots") / name)

        await queue.run()

        assert handler.seen == ["a.png", "b.png", "c.png"]
        assert queue.processed_count == 2
        assert queue.failed_count == 1

    @pytest.mark.asyncio
    async def test_empty_queue_returns_immediately(self):
        """Test that run() returns when nothing is queued and keep_alive is off."""
        handler = RecordingHandler()
        queue = ProcessingQueue(handler)

        await queue.run()

        assert handler.seen == []

    def test_duplicate_paths_are_ignored(self):
        """Test that a path already waiting is not queued twice."""
        queue = ProcessingQueue(RecordingHandler())

        assert queue.submit("/shots/a.png") is True
        assert queue.submit(Path("/shots/a.png")) is False
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_path_can_be_requeued_after_processing(self):
        """Test that a processed path may be submitted again."""
        handler = RecordingHandler()
        queue = ProcessingQueue(handler)
        queue.submit("/shots/a.png")
        await queue.run()

        assert queue.submit("/shots/a.png") is True

    @pytest.mark.asyncio
    async def test_stop_before_run(self):
        """Test that a queue stopped before running processes nothing."""
        handler = RecordingHandler()
        queue = ProcessingQueue(handler, keep_alive=True)
        queue.submit("/shots/a.png")
        queue.request_stop()

        await queue.run()

        assert handler.seen == []
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_stop_finishes_in_flight_item_only(self):
        """Test that items queued behind the in-flight one are not processed after a stop."""
        seen = []
        queue = None

        async def handler(path):
            seen.append(path.name)
            if path.name == "a.png":
                queue.request_stop()

        queue = ProcessingQueue(handler, keep_alive=True)
        for name in ("a.png", "b.png", "c.png"):
            queue.submit(Path("/shots") / name)

        await queue.run()

        assert seen == ["a.png"]
        assert queue.processed_count == 1
        assert len(queue) == 2

    @pytest.mark.asyncio
    async def test_stop_wakes_idle_worker(self):
        """Test that a keep_alive queue waiting for work returns on stop."""
        handler = RecordingHandler()
        queue = ProcessingQueue(handler, keep_alive=True)
        worker = asyncio.create_task(queue.run())
        await asyncio.sleep(0.01)

        queue.request_stop()
        await asyncio.wait_for(worker, timeout=1.0)

        assert handler.seen == []

    @pytest.mark.asyncio
    async def test_items_added_during_run(self):
        """Test that items submitted by the handler are picked up in the same run."""
        seen = []
        queue = None

        async def handler(path):
            seen.append(path.name)
            if path.name == "a.png":
                queue.submit("/shots/b.png")

        queue = ProcessingQueue(handler)
        queue.submit("/shots/a.png")

        await queue.run()

        assert seen == ["a.png", "b.png"]

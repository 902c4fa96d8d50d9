"""
Tests for the sequential per-category task queue.

## Test Perspectives Table
| Case ID | Input / Precondition | Perspective (Equivalence / Boundary) | Expected Result | Notes |
|---------|----------------------|---------------------------------------|-----------------|-------|
| TC-Q-01 | Three concurrent enqueues | Equivalence – ordering | FIFO completion, never concurrent | - |
| TC-Q-02 | Thunk raises | Equivalence – failure | Same exception to caller | - |
| TC-Q-03 | Failure then success | Equivalence – drain | Queue keeps draining | - |
| TC-Q-04 | First thunk blocked | Boundary – observability | size=2, is_processing=True | - |
| TC-Q-05 | All work settled | Boundary – idle | size=0, is_processing=False | - |
| TC-Q-06 | Mixed outcomes | Equivalence – stats | completed/failed counted | - |
| TC-Q-07 | Two submitters, distinct LogContext | Equivalence – log context | Each unit sees its own request_id | - |
| TC-SQ-01 | ScrapeQueues | Equivalence – registry | One queue per category | - |
| TC-SQ-02 | Two categories | Equivalence – independence | Run concurrently | - |
"""

import asyncio

import pytest
import structlog

from northdata_scraper.scheduler.task_queue import (
    QueueCategory,
    ScrapeQueues,
    SequentialTaskQueue,
)
from northdata_scraper.utils.logging import LogContext

pytestmark = pytest.mark.unit


class TestSequentialTaskQueue:
    """Tests for SequentialTaskQueue."""

    async def test_fifo_single_flight(self):
        """TC-Q-01: Work completes in submission order, one unit at a time."""
        # Given: A queue and work units with decreasing durations
        queue = SequentialTaskQueue("search")
        order: list[int] = []
        running = 0
        max_running = 0

        async def work(index: int) -> int:
            nonlocal running, max_running
            running += 1
            max_running = max(max_running, running)
            assert queue.is_processing
            await asyncio.sleep(0.01 * (3 - index))
            order.append(index)
            running -= 1
            return index

        # When: Enqueueing three units concurrently
        results = await asyncio.gather(
            *(queue.enqueue(lambda i=i: work(i)) for i in range(3))
        )

        # Then: Results and execution follow submission order, never overlapping
        assert results == [0, 1, 2]
        assert order == [0, 1, 2]
        assert max_running == 1

    async def test_exception_propagates_unchanged(self):
        """TC-Q-02: A failing thunk rejects its caller with the same exception."""
        # Given: A thunk that raises
        queue = SequentialTaskQueue()
        error = ValueError("boom")

        async def failing() -> None:
            raise error

        # When/Then: The caller receives the identical exception
        with pytest.raises(ValueError) as exc_info:
            await queue.enqueue(failing)
        assert exc_info.value is error

    async def test_queue_drains_after_failure(self):
        """TC-Q-03: A failure does not stall later work."""
        # Given: A failing unit followed by a succeeding unit
        queue = SequentialTaskQueue()

        async def failing() -> None:
            raise RuntimeError("first fails")

        async def succeeding() -> str:
            return "ok"

        # When: Both are enqueued concurrently
        results = await asyncio.gather(
            queue.enqueue(failing),
            queue.enqueue(succeeding),
            return_exceptions=True,
        )

        # Then: The second unit still ran
        assert isinstance(results[0], RuntimeError)
        assert results[1] == "ok"

    async def test_size_and_processing_while_blocked(self):
        """TC-Q-04: Accessors report pending count and in-flight state."""
        # Given: A first unit that blocks until released
        queue = SequentialTaskQueue()
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocking() -> str:
            started.set()
            await release.wait()
            return "first"

        async def quick() -> str:
            return "next"

        tasks = [
            asyncio.create_task(queue.enqueue(blocking)),
            asyncio.create_task(queue.enqueue(quick)),
            asyncio.create_task(queue.enqueue(quick)),
        ]

        # When: The first unit is running
        await started.wait()

        # Then: Two are pending and one is in flight
        assert queue.size == 2
        assert queue.is_processing is True

        release.set()
        assert await asyncio.gather(*tasks) == ["first", "next", "next"]

    async def test_idle_after_all_settled(self):
        """TC-Q-05: size is 0 and is_processing False once everything settled."""
        # Given: A queue with completed work
        queue = SequentialTaskQueue()

        async def work() -> int:
            await asyncio.sleep(0)
            return 1

        # When: All work has settled
        await asyncio.gather(queue.enqueue(work), queue.enqueue(work))

        # Then: The queue is idle
        assert queue.size == 0
        assert queue.is_processing is False

    async def test_get_stats(self):
        """TC-Q-06: Statistics count completed and failed units."""
        # Given: One success and one failure
        queue = SequentialTaskQueue("page_content")

        async def ok() -> int:
            return 1

        async def bad() -> None:
            raise RuntimeError("bad")

        await queue.enqueue(ok)
        with pytest.raises(RuntimeError):
            await queue.enqueue(bad)

        # When: Reading stats
        stats = queue.get_stats()

        # Then: Counters reflect outcomes
        assert stats == {"size": 0, "is_processing": False, "completed": 1, "failed": 1}

    async def test_thunk_runs_in_submitter_log_context(self):
        """TC-Q-07: Each unit logs under the context bound by its own submitter."""
        # Given: A first unit that blocks, so the second is started by the queue
        queue = SequentialTaskQueue("search")
        release = asyncio.Event()
        seen: dict[str, str] = {}

        def work(name: str, gate: asyncio.Event | None):
            async def thunk() -> None:
                if gate is not None:
                    await gate.wait()
                seen[name] = structlog.contextvars.get_contextvars().get("request_id")

            return thunk

        async def submit(name: str, gate: asyncio.Event | None) -> None:
            with LogContext(operation="search", request_id=name):
                await queue.enqueue(work(name, gate))

        # When: Two requests are queued, each with its own request_id
        first = asyncio.create_task(submit("req-a", release))
        await asyncio.sleep(0)
        second = asyncio.create_task(submit("req-b", None))
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(first, second)

        # Then: Neither unit saw the other's request_id
        assert seen == {"req-a": "req-a", "req-b": "req-b"}


class TestScrapeQueues:
    """Tests for the per-category queue registry."""

    def test_one_queue_per_category(self):
        """TC-SQ-01: Every category has its own queue."""
        # Given/When: A fresh registry
        queues = ScrapeQueues()

        # Then: Queues are distinct and named by category
        all_queues = [queues.get(category) for category in QueueCategory]
        assert len({id(queue) for queue in all_queues}) == len(QueueCategory)
        assert queues.get(QueueCategory.SEARCH) is queues.search
        assert queues.network_graphic.name == "network_graphic"
        assert set(queues.get_stats()) == {
            "search",
            "suggestions",
            "page_content",
            "network_graphic",
        }

    async def test_categories_run_concurrently(self):
        """TC-SQ-02: Different categories do not block each other."""
        # Given: A blocked search unit
        queues = ScrapeQueues()
        release = asyncio.Event()
        started = asyncio.Event()

        async def blocked_search() -> str:
            started.set()
            await release.wait()
            return "search"

        async def suggestion() -> str:
            return "suggest"

        search_task = asyncio.create_task(queues.search.enqueue(blocked_search))
        await started.wait()

        # When: A suggestion is enqueued while search is in flight
        result = await asyncio.wait_for(queues.suggestions.enqueue(suggestion), timeout=1)

        # Then: It completes without waiting for search
        assert result == "suggest"
        assert queues.search.is_processing is True

        release.set()
        assert await search_task == "search"

"""
Sequential task queues for browser operations.

One queue per operation category. A queue admits work in strict FIFO order
and runs at most one unit at a time; different categories run independently
of each other.

Example:
    queues = ScrapeQueues()
    result = await queues.search.enqueue(lambda: scraper.search("Acme"))
"""

import asyncio
import contextvars
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from northdata_scraper.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class QueueCategory(str, Enum):
    """Operation categories, one queue each."""

    SEARCH = "search"
    SUGGESTIONS = "suggestions"
    PAGE_CONTENT = "page_content"
    NETWORK_GRAPHIC = "network_graphic"


@dataclass
class _QueueEntry:
    future: asyncio.Future[Any]
    thunk: Callable[[], Awaitable[Any]]
    # Submitter's context; the thunk runs under it, not under the previous entry's
    context: contextvars.Context


class SequentialTaskQueue:
    """FIFO queue that runs one thunk at a time.

    Every enqueued thunk runs to completion; there is no cancellation and
    no queue-level timeout.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._pending: deque[_QueueEntry] = deque()
        self._processing = False
        self._runner: asyncio.Task[None] | None = None
        self._completed = 0
        self._failed = 0

    @property
    def size(self) -> int:
        """Number of entries waiting to run (excludes the one in flight)."""
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def enqueue(self, thunk: Callable[[], Awaitable[T]]) -> T:
        """Queue a unit of work and wait for its outcome.

        Args:
            thunk: Zero-argument coroutine function performing the work.

        Returns:
            The thunk's result. The thunk's exception is raised unchanged.
        """
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._pending.append(
            _QueueEntry(future=future, thunk=thunk, context=contextvars.copy_context())
        )
        logger.debug("Task enqueued", queue=self.name, size=self.size)
        self._advance()
        return await future

    def _advance(self) -> None:
        if self._processing or not self._pending:
            return

        entry = self._pending.popleft()
        self._processing = True
        self._runner = asyncio.create_task(
            self._run(entry), name=f"queue-{self.name}", context=entry.context
        )

    async def _run(self, entry: _QueueEntry) -> None:
        try:
            result = await entry.thunk()
        except asyncio.CancelledError:
            entry.future.cancel()
            raise
        except Exception as e:
            self._failed += 1
            if not entry.future.done():
                entry.future.set_exception(e)
        else:
            self._completed += 1
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            self._processing = False
            self._advance()

    def get_stats(self) -> dict[str, Any]:
        """Get queue statistics.

        Returns:
            Dict with size, is_processing, completed and failed counts.
        """
        return {
            "size": self.size,
            "is_processing": self._processing,
            "completed": self._completed,
            "failed": self._failed,
        }


@dataclass
class ScrapeQueues:
    """One SequentialTaskQueue per operation category."""

    search: SequentialTaskQueue = field(
        default_factory=lambda: SequentialTaskQueue(QueueCategory.SEARCH.value)
    )
    suggestions: SequentialTaskQueue = field(
        default_factory=lambda: SequentialTaskQueue(QueueCategory.SUGGESTIONS.value)
    )
    page_content: SequentialTaskQueue = field(
        default_factory=lambda: SequentialTaskQueue(QueueCategory.PAGE_CONTENT.value)
    )
    network_graphic: SequentialTaskQueue = field(
        default_factory=lambda: SequentialTaskQueue(QueueCategory.NETWORK_GRAPHIC.value)
    )

    def get(self, category: QueueCategory) -> SequentialTaskQueue:
        return getattr(self, category.value)

    def get_stats(self) -> dict[str, dict[str, Any]]:
        return {category.value: self.get(category).get_stats() for category in QueueCategory}

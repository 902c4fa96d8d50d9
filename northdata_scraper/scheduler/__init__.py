"""
Northdata scraper scheduler module.

Sequential per-category admission of browser operations.
"""

from northdata_scraper.scheduler.task_queue import (
    QueueCategory,
    ScrapeQueues,
    SequentialTaskQueue,
)

__all__ = [
    "QueueCategory",
    "ScrapeQueues",
    "SequentialTaskQueue",
]

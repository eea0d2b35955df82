"""Bounded concurrency for upload tasks.

This module provides:
- TaskScheduler: Admits at most N tasks at once and paces submissions

The two mechanisms are independent: the semaphore bounds work in flight,
the submission delay bounds how fast new tasks reach the remote endpoint.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CONCURRENT = 5
DEFAULT_SUBMIT_DELAY = 0.1  # seconds


class TaskScheduler:
    """Runs coroutine tasks under a concurrency limit.

    Waiting tasks are admitted in submission order; completion order is
    unspecified.

    Usage:
        scheduler = TaskScheduler(max_concurrent=5, submit_delay=0.1)
        tasks = [await scheduler.submit(process, item) for item in items]
        await scheduler.wait(tasks)
    """

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        submit_delay: float = DEFAULT_SUBMIT_DELAY,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            max_concurrent: Maximum tasks executing at once.
            submit_delay: Pause after each submission in seconds.
            sleep: Awaitable sleep (replaced in tests).
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._submit_delay = submit_delay
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(max_concurrent)

        # Statistics
        self._active = 0
        self._peak_active = 0
        self._submitted = 0
        self._completed = 0

    @property
    def max_concurrent(self) -> int:
        """Get the concurrency limit."""
        return self._max_concurrent

    @property
    def active_count(self) -> int:
        """Get number of tasks currently executing."""
        return self._active

    @property
    def peak_active(self) -> int:
        """Get the highest number of tasks seen executing at once."""
        return self._peak_active

    @property
    def submitted_count(self) -> int:
        """Get number of submitted tasks."""
        return self._submitted

    @property
    def completed_count(self) -> int:
        """Get number of finished tasks (success or failure)."""
        return self._completed

    async def _run(self, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        async with self._semaphore:
            self._active += 1
            self._peak_active = max(self._peak_active, self._active)
            try:
                return await func(*args)
            finally:
                self._active -= 1
                self._completed += 1

    async def submit(self, func: Callable[..., Awaitable[T]], *args: Any) -> asyncio.Task[T]:
        """Submit a task, then pause for the submission delay.

        Args:
            func: Coroutine function to run.
            *args: Arguments for func.

        Returns:
            The created task.
        """
        task = asyncio.create_task(self._run(func, *args))
        self._submitted += 1
        if self._submit_delay > 0:
            await self._sleep(self._submit_delay)
        return task

    async def wait(self, tasks: Iterable[asyncio.Task[T]]) -> list[T]:
        """Wait until every given task has finished.

        Returns:
            Task results in submission order.
        """
        tasks = list(tasks)
        if not tasks:
            return []
        results = await asyncio.gather(*tasks)
        logger.debug(f"{len(tasks)} tasks settled")
        return list(results)

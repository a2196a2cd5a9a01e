"""
Serializing request queues for rate-limited remote APIs.

Two queues share one drain discipline:

    RateLimitedQueue
        Pure FIFO. Used for MusicBrainz, which asks every client to stay at
        or below one request per second and does not queue on its side.

    PriorityRequestQueue
        Three tiers, high > medium > low, FIFO within a tier. Used for
        Spotify so playlist writes (high) are never stuck behind catalog
        lookups (medium) issued earlier.

Drain Discipline:
    - A request is a zero-argument callable returning an awaitable.
      enqueue() stores it and returns an awaitable result for the caller.
    - A single drain task executes requests one at a time. Re-entrant
      enqueue() calls while it runs only append; the is_draining flag
      prevents a second drain task.
    - Before each request the drain waits until ``interval`` seconds have
      passed since the previous request completed, so start times of two
      consecutive requests are always at least ``interval`` apart.
    - A request's own exception is delivered to its caller only; the drain
      moves on to the next entry.
    - clear() rejects every request that has not started with
      RequestCancelled. The request in flight is unaffected.

Usage:
    queue = RateLimitedQueue(interval=1.0)
    data = await queue.enqueue(lambda: session.get_json(url))

    spotify_queue = PriorityRequestQueue(interval=0.1)
    await spotify_queue.enqueue(lambda: write_batch(uris), priority="high")
"""

import asyncio
import itertools
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from labelscope.core.exceptions import RequestCancelled
from labelscope.core.logger import get_logger


logger = get_logger(__name__)

RequestFn = Callable[[], Awaitable[Any]]

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
DEFAULT_INTERVAL_SECONDS = 1.0


@dataclass
class QueuedRequest:
    """
    A request waiting in a queue.

    Attributes:
        id: Monotonic sequence number, unique per queue.
        request_fn: Zero-argument callable producing the awaitable to run.
        priority: "high", "medium" or "low"; fixed at enqueue time.
        future: Resolved or rejected with the request's outcome.
    """
    id: int
    request_fn: RequestFn
    priority: str
    future: asyncio.Future


class RateLimitedQueue:
    """
    FIFO request queue enforcing a minimum spacing between requests.

    Attributes:
        interval: Minimum seconds between the completion of one request and
                  the start of the next.
        is_draining: True while the drain task is running.

    The clock and sleep functions are injectable; tests pass a fake clock
    whose sleep advances simulated time.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        name: str = "queue"
    ) -> None:
        self.interval = interval
        self.name = name
        self.is_draining = False
        self._clock = clock
        self._sleep = sleep
        self._pending: deque[QueuedRequest] = deque()
        self._ids = itertools.count(1)
        self._last_completed: float | None = None
        self._drain_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, request_fn: RequestFn, priority: str = "medium") -> asyncio.Future:
        """
        Queue a request and return a future for its result.

        Args:
            request_fn: Zero-argument callable returning an awaitable.
            priority: Ignored by the FIFO queue; see PriorityRequestQueue.

        Returns:
            A future resolved with the request's result or rejected with its
            exception (or RequestCancelled after clear()).
        """
        if priority not in PRIORITY_ORDER:
            raise ValueError(f"Unknown priority: {priority!r}")

        loop = asyncio.get_running_loop()
        entry = QueuedRequest(
            id=next(self._ids),
            request_fn=request_fn,
            priority=priority,
            future=loop.create_future(),
        )
        self._insert(entry)
        logger.debug(f"[{self.name}] queued request #{entry.id} ({len(self._pending)} pending)")

        if not self.is_draining:
            self.is_draining = True
            self._drain_task = loop.create_task(self._drain())

        return entry.future

    def _insert(self, entry: QueuedRequest) -> None:
        self._pending.append(entry)

    def clear(self) -> int:
        """
        Reject every queued-but-unstarted request.

        Returns:
            Number of requests that were cancelled.
        """
        cancelled = 0
        while self._pending:
            entry = self._pending.popleft()
            if not entry.future.done():
                entry.future.set_exception(
                    RequestCancelled("Request cancelled", details={"request_id": entry.id})
                )
                cancelled += 1
        if cancelled:
            logger.debug(f"[{self.name}] cleared {cancelled} pending request(s)")
        return cancelled

    async def _wait_for_slot(self) -> None:
        if self._last_completed is None:
            return
        remaining = self.interval - (self._clock() - self._last_completed)
        if remaining > 0:
            await self._sleep(remaining)

    async def _drain(self) -> None:
        try:
            while self._pending:
                await self._wait_for_slot()
                # clear() may have emptied the queue while we slept
                if not self._pending:
                    break

                entry = self._pending.popleft()
                if entry.future.done():
                    continue

                try:
                    result = await entry.request_fn()
                except asyncio.CancelledError:
                    entry.future.cancel()
                    raise
                except Exception as e:
                    if not entry.future.done():
                        entry.future.set_exception(e)
                else:
                    if not entry.future.done():
                        entry.future.set_result(result)
                finally:
                    self._last_completed = self._clock()
        finally:
            self.is_draining = False
            self._drain_task = None

    async def join(self) -> None:
        """Wait until the current drain task (if any) has finished."""
        task = self._drain_task
        if task is not None:
            await task


class PriorityRequestQueue(RateLimitedQueue):
    """
    Request queue with three priority tiers.

    Ordering:
        Across tiers strictly high > medium > low; within a tier FIFO.
        The insertion point is found with a linear scan, which is fine for
        the expected depths (a few dozen entries).
    """

    def _insert(self, entry: QueuedRequest) -> None:
        rank = PRIORITY_ORDER[entry.priority]
        for index, queued in enumerate(self._pending):
            if PRIORITY_ORDER[queued.priority] > rank:
                self._pending.insert(index, entry)
                return
        self._pending.append(entry)

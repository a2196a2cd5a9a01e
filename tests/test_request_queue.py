# tests/test_request_queue.py
"""Tests for the FIFO and priority request queues"""

import asyncio

import pytest

from labelscope.core.exceptions import RequestCancelled
from labelscope.core.request_queue import PriorityRequestQueue, RateLimitedQueue


class TestRateLimitedQueue:
    """Test request spacing, isolation and cancellation"""

    @pytest.mark.asyncio
    async def test_start_times_are_spaced_by_interval(self, fake_clock):
        """Consecutive requests never start less than one interval apart"""
        queue = RateLimitedQueue(interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)
        starts = []

        def make_request(duration):
            async def request():
                starts.append(fake_clock())
                fake_clock.advance(duration)
                return duration
            return request

        futures = [queue.enqueue(make_request(d)) for d in (0.0, 0.3, 2.5, 0.0, 0.1)]
        results = await asyncio.gather(*futures)

        assert results == [0.0, 0.3, 2.5, 0.0, 0.1]
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert len(gaps) == 4
        assert all(gap >= 1.0 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_interval_counts_from_completion(self, fake_clock):
        """The full interval elapses after a slow request completes"""
        queue = RateLimitedQueue(interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)

        async def slow():
            fake_clock.advance(0.4)

        async def fast():
            return None

        await asyncio.gather(queue.enqueue(slow), queue.enqueue(fast))

        assert fake_clock.sleeps == [pytest.approx(1.0)]

    @pytest.mark.asyncio
    async def test_requests_run_in_fifo_order(self, fake_clock):
        """Requests execute in enqueue order regardless of priority"""
        queue = RateLimitedQueue(interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)
        order = []

        def make_request(name):
            async def request():
                order.append(name)
            return request

        await asyncio.gather(
            queue.enqueue(make_request("a"), priority="low"),
            queue.enqueue(make_request("b"), priority="high"),
            queue.enqueue(make_request("c")),
        )

        assert order == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_failure_is_delivered_to_its_caller_only(self, fake_clock):
        """A failing request does not stop the queue"""
        queue = RateLimitedQueue(interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)

        async def failing():
            raise ValueError("boom")

        async def working():
            return "ok"

        first = queue.enqueue(failing)
        second = queue.enqueue(working)

        with pytest.raises(ValueError):
            await first
        assert await second == "ok"

    @pytest.mark.asyncio
    async def test_clear_rejects_pending_but_not_in_flight(self, fake_clock):
        """clear() cancels queued requests; the running one completes"""
        queue = RateLimitedQueue(interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow():
            started.set()
            await release.wait()
            return "done"

        async def never_runs():
            raise AssertionError("cancelled request was executed")

        in_flight = queue.enqueue(slow)
        pending = [queue.enqueue(never_runs), queue.enqueue(never_runs)]

        await started.wait()
        assert queue.clear() == 2
        release.set()

        assert await in_flight == "done"
        for future in pending:
            with pytest.raises(RequestCancelled):
                await future
        await queue.join()
        assert not queue.is_draining

    @pytest.mark.asyncio
    async def test_reentrant_enqueue_uses_single_drain(self, fake_clock):
        """A request enqueuing another request does not start a second drain"""
        queue = RateLimitedQueue(interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)
        inner_future = []

        async def inner():
            return "inner"

        async def outer():
            assert queue.is_draining
            inner_future.append(queue.enqueue(inner))
            return "outer"

        assert await queue.enqueue(outer) == "outer"
        assert await inner_future[0] == "inner"
        await queue.join()
        assert not queue.is_draining
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_unknown_priority_rejected(self):
        """Only high, medium and low are accepted"""
        queue = RateLimitedQueue(interval=1.0)

        async def request():
            return None

        with pytest.raises(ValueError):
            queue.enqueue(request, priority="urgent")


class TestPriorityRequestQueue:
    """Test priority ordering"""

    @pytest.mark.asyncio
    async def test_high_before_medium_before_low(self, fake_clock):
        """Tiers run high > medium > low, FIFO within a tier"""
        queue = PriorityRequestQueue(interval=0.1, clock=fake_clock, sleep=fake_clock.sleep)
        order = []

        def make_request(name):
            async def request():
                order.append(name)
            return request

        futures = [
            queue.enqueue(make_request("low-1"), priority="low"),
            queue.enqueue(make_request("medium-1"), priority="medium"),
            queue.enqueue(make_request("high-1"), priority="high"),
            queue.enqueue(make_request("medium-2"), priority="medium"),
            queue.enqueue(make_request("high-2"), priority="high"),
        ]
        await asyncio.gather(*futures)

        assert order == ["high-1", "high-2", "medium-1", "medium-2", "low-1"]

    @pytest.mark.asyncio
    async def test_late_high_priority_jumps_ahead(self, fake_clock):
        """A write queued during lookups runs right after the current request"""
        queue = PriorityRequestQueue(interval=0.1, clock=fake_clock, sleep=fake_clock.sleep)
        order = []
        write_future = []

        async def write():
            order.append("write")

        def make_lookup(name):
            async def lookup():
                order.append(name)
                if name == "lookup-1":
                    write_future.append(queue.enqueue(write, priority="high"))
            return lookup

        lookups = [queue.enqueue(make_lookup(f"lookup-{i}")) for i in range(1, 4)]
        await asyncio.gather(*lookups)
        await write_future[0]

        assert order == ["lookup-1", "write", "lookup-2", "lookup-3"]

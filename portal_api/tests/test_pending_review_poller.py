"""Unit tests for the live worklist poller and its registry."""

import asyncio
from unittest.mock import MagicMock

import pytest

from src.schemas.pending_review import PendingReviewCounts, PendingReviewResult
from src.services.pending_review_poller import PendingReviewPoller, PollerRegistry

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


def _result(total: int) -> PendingReviewResult:
    return PendingReviewResult(counts=PendingReviewCounts(total=total))


async def _until(predicate, timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class Recorder:
    def __init__(self) -> None:
        self.events = []

    async def __call__(self, event) -> None:
        self.events.append(event)


async def test_refresh_delivers_snapshot_with_generation():
    deliver = Recorder()

    async def fetch():
        return _result(3)

    poller = PendingReviewPoller(fetch, deliver, interval=60)
    assert poller.refresh() == 1
    await _until(lambda: deliver.events)

    [event] = deliver.events
    assert event.type == "pending_review.snapshot"
    assert event.generation == 1
    assert event.payload.counts.total == 3
    assert event.error is None


async def test_last_dispatched_wins():
    deliver = Recorder()
    calls = []

    async def fetch():
        calls.append(len(calls))
        return _result(len(calls))

    poller = PendingReviewPoller(fetch, deliver, interval=60)
    poller.refresh()
    poller.refresh()
    await _until(lambda: deliver.events)
    await asyncio.sleep(0.05)

    assert [e.generation for e in deliver.events] == [2]
    assert len(calls) == 1


async def test_refresh_cancels_fetch_in_flight():
    deliver = Recorder()
    calls = []
    cancelled = []

    async def fetch():
        n = len(calls)
        calls.append(n)
        if n == 0:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(n)
                raise
        return _result(n)

    poller = PendingReviewPoller(fetch, deliver, interval=60)
    poller.refresh()
    await _until(lambda: calls)
    poller.refresh()
    await _until(lambda: deliver.events)

    assert cancelled == [0]
    assert [(e.generation, e.payload.counts.total) for e in deliver.events] == [(2, 1)]


async def test_result_of_superseded_fetch_is_discarded():
    deliver = Recorder()
    calls = []

    async def fetch():
        n = len(calls)
        calls.append(n)
        if n == 0:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                return _result(99)
        return _result(n)

    poller = PendingReviewPoller(fetch, deliver, interval=60)
    poller.refresh()
    await _until(lambda: calls)
    poller.refresh()
    await _until(lambda: deliver.events)
    await asyncio.sleep(0.05)

    assert [(e.generation, e.payload.counts.total) for e in deliver.events] == [(2, 1)]


async def test_repeated_invalidate_keeps_one_fetch_in_flight():
    started = []
    cancelled = []

    async def fetch():
        started.append(len(started))
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(1)
            raise

    poller = PendingReviewPoller(fetch, Recorder(), interval=3600)
    task = asyncio.create_task(poller.run())
    await _until(lambda: started)

    for _ in range(10):
        poller.invalidate()
        await asyncio.sleep(0.01)
        assert poller.in_flight <= 1

    assert poller.generation == 11
    assert len(cancelled) == len(started) - 1

    poller.stop()
    await asyncio.wait_for(task, timeout=1)
    assert poller.in_flight == 0


async def test_fetch_error_is_delivered_and_polling_continues():
    deliver = Recorder()
    outcomes = [RuntimeError("database unavailable"), _result(5)]

    async def fetch():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    poller = PendingReviewPoller(fetch, deliver, interval=60)
    poller.refresh()
    await _until(lambda: len(deliver.events) == 1)
    poller.refresh()
    await _until(lambda: len(deliver.events) == 2)

    error, snapshot = deliver.events
    assert error.type == "pending_review.error"
    assert error.error == "database unavailable"
    assert error.payload is None
    assert snapshot.type == "pending_review.snapshot"
    assert snapshot.generation == 2


async def test_run_polls_on_start_and_on_invalidate():
    deliver = Recorder()

    async def fetch():
        return _result(0)

    poller = PendingReviewPoller(fetch, deliver, interval=3600)
    task = asyncio.create_task(poller.run())
    await _until(lambda: len(deliver.events) == 1)

    poller.invalidate()
    await _until(lambda: len(deliver.events) == 2)
    assert [e.generation for e in deliver.events] == [1, 2]

    poller.stop()
    await asyncio.wait_for(task, timeout=1)


async def test_run_polls_on_interval():
    deliver = Recorder()

    async def fetch():
        return _result(0)

    poller = PendingReviewPoller(fetch, deliver, interval=0.02)
    task = asyncio.create_task(poller.run())
    await _until(lambda: len(deliver.events) >= 3)

    poller.stop()
    await asyncio.wait_for(task, timeout=1)


async def test_delivery_failure_stops_the_loop():
    async def fetch():
        return _result(0)

    async def deliver(event):
        raise ConnectionError("socket closed")

    poller = PendingReviewPoller(fetch, deliver, interval=3600)
    await asyncio.wait_for(poller.run(), timeout=1)


async def test_stop_cancels_fetch_in_flight():
    cancelled = asyncio.Event()

    async def fetch():
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    poller = PendingReviewPoller(fetch, Recorder(), interval=3600)
    task = asyncio.create_task(poller.run())
    await asyncio.sleep(0.01)
    poller.stop()
    await asyncio.wait_for(task, timeout=1)
    assert cancelled.is_set()


class TestRegistry:

    async def test_invalidate_tenant_reaches_only_that_tenant(self):
        registry = PollerRegistry()
        a1, a2, b1 = MagicMock(), MagicMock(), MagicMock()
        registry.register("tenant-a", a1)
        registry.register("tenant-a", a2)
        registry.register("tenant-b", b1)

        assert registry.invalidate_tenant("tenant-a") == 2
        a1.invalidate.assert_called_once()
        a2.invalidate.assert_called_once()
        b1.invalidate.assert_not_called()

    async def test_unregister(self):
        registry = PollerRegistry()
        poller = MagicMock()
        registry.register("tenant-a", poller)
        assert registry.count() == 1

        registry.unregister("tenant-a", poller)
        registry.unregister("tenant-a", poller)
        assert registry.count() == 0
        assert registry.invalidate_tenant("tenant-a") == 0

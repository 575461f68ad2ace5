from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Set
from uuid import UUID

from src.schemas.pending_review import PendingReviewEvent, PendingReviewResult

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[PendingReviewResult]]
DeliverFn = Callable[[PendingReviewEvent], Awaitable[None]]


class PendingReviewPoller:
    """
    Re-builds one caller's worklist on a fixed interval and on demand.

    Every dispatch gets an increasing generation number and cancels the fetch
    still in flight, so at most one fetch is outstanding. A result is delivered
    only while its generation is still the latest dispatched
    (last-dispatched-wins). Fetch errors are delivered as error events and
    polling continues; nothing is retried before the next tick.
    """

    def __init__(self, fetch: FetchFn, deliver: DeliverFn, interval: float) -> None:
        self._fetch = fetch
        self._deliver = deliver
        self._interval = interval
        self._generation = 0
        self._wakeup = asyncio.Event()
        self._deliver_lock = asyncio.Lock()
        self._inflight: Set[asyncio.Task] = set()
        self._delivering: Optional[asyncio.Task] = None
        self._running = False

    @property
    def generation(self) -> int:
        """Generation of the most recent dispatch."""
        return self._generation

    @property
    def in_flight(self) -> int:
        """Number of dispatched fetches that have not finished."""
        return sum(1 for task in self._inflight if not task.done())

    # PUBLIC_INTERFACE
    def refresh(self) -> int:
        """Dispatch a fetch now, cancelling any still in flight. Returns its generation."""
        for task in self._inflight:
            if task is not self._delivering:
                task.cancel()
        self._generation += 1
        generation = self._generation
        task = asyncio.create_task(self._fetch_and_deliver(generation))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return generation

    # PUBLIC_INTERFACE
    def invalidate(self) -> None:
        """Ask the run loop to refresh immediately instead of waiting for the next tick."""
        self._wakeup.set()

    # PUBLIC_INTERFACE
    def stop(self) -> None:
        """Stop the run loop after the current wait."""
        self._running = False
        self._wakeup.set()

    # PUBLIC_INTERFACE
    async def run(self) -> None:
        """Poll until stop() is called or the task is cancelled."""
        self._running = True
        try:
            while self._running:
                self.refresh()
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
                self._wakeup.clear()
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Cancel fetches still in flight."""
        tasks = list(self._inflight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _fetch_and_deliver(self, generation: int) -> None:
        try:
            result = await self._fetch()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Worklist refresh failed (generation=%d)", generation)
            event = PendingReviewEvent(
                type="pending_review.error",
                generation=generation,
                error=str(exc) or exc.__class__.__name__,
                at=datetime.now(tz=timezone.utc),
            )
        else:
            event = PendingReviewEvent(
                type="pending_review.snapshot",
                generation=generation,
                payload=result,
                at=datetime.now(tz=timezone.utc),
            )

        async with self._deliver_lock:
            if not self._is_current(generation):
                logger.debug("Discarding superseded worklist (generation=%d, latest=%d)", generation, self._generation)
                return
            self._delivering = asyncio.current_task()
            try:
                await self._deliver(event)
            except Exception:
                logger.exception("Failed to deliver worklist event; stopping poller")
                self.stop()
            finally:
                self._delivering = None


class PollerRegistry:
    """
    Tracks live pollers per tenant so mutations can invalidate open worklists.
    """

    def __init__(self) -> None:
        self._pollers: Dict[str, Set[PendingReviewPoller]] = {}

    # PUBLIC_INTERFACE
    def register(self, tenant_id: UUID | str, poller: PendingReviewPoller) -> None:
        self._pollers.setdefault(str(tenant_id), set()).add(poller)
        logger.info("Worklist poller registered; tenant_pollers=%d", len(self._pollers[str(tenant_id)]))

    # PUBLIC_INTERFACE
    def unregister(self, tenant_id: UUID | str, poller: PendingReviewPoller) -> None:
        pollers = self._pollers.get(str(tenant_id))
        if not pollers:
            return
        pollers.discard(poller)
        if not pollers:
            self._pollers.pop(str(tenant_id), None)

    # PUBLIC_INTERFACE
    def invalidate_tenant(self, tenant_id: UUID | str) -> int:
        """Trigger an immediate refresh of every poller in the tenant; returns how many."""
        pollers = list(self._pollers.get(str(tenant_id), ()))
        for poller in pollers:
            poller.invalidate()
        return len(pollers)

    def count(self, tenant_id: Optional[UUID | str] = None) -> int:
        if tenant_id is None:
            return sum(len(p) for p in self._pollers.values())
        return len(self._pollers.get(str(tenant_id), ()))


# Singleton instance
poller_registry = PollerRegistry()

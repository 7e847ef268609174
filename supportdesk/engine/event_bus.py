from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from supportdesk.models.event import Event, EventType

logger = logging.getLogger(__name__)

Subscriber = Callable[[Event], Awaitable[None]]


@dataclass(frozen=True)
class _Subscription:
    callback: Subscriber
    event_types: frozenset[EventType] | None

    def wants(self, event: Event) -> bool:
        return self.event_types is None or event.event_type in self.event_types


class EventBus:
    """Async fan-out from producers (poller, update manager, tickets) to UI subscribers.

    When the queue is full the oldest pending event is dropped: a UI only
    cares about the newest snapshot, and producers must never block on a slow
    consumer.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=maxsize)
        self._subscriptions: list[_Subscription] = []
        self._running = False
        self._consumer_task: asyncio.Task | None = None
        self._dropped = 0

    # ── lifecycle ────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._consumer_task = asyncio.create_task(self._consume_loop())
        logger.info("EventBus started")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await self._drain()
        if self._consumer_task:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
            self._consumer_task = None
        logger.info("EventBus stopped")

    # ── publish / subscribe ─────────────────────────────

    async def publish(self, event: Event) -> None:
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except asyncio.QueueFull:
                dropped = self._queue.get_nowait()
                self._queue.task_done()
                self._dropped += 1
                logger.warning(
                    "EventBus full, dropped %s event %s", dropped.event_type, dropped.id
                )

    def subscribe(
        self,
        callback: Subscriber,
        event_types: set[EventType] | None = None,
    ) -> None:
        types = frozenset(event_types) if event_types else None
        self._subscriptions.append(_Subscription(callback, types))

    def unsubscribe(self, callback: Subscriber) -> None:
        before = len(self._subscriptions)
        self._subscriptions = [s for s in self._subscriptions if s.callback is not callback]
        if len(self._subscriptions) == before:
            raise ValueError("callback is not subscribed")

    # ── internals ───────────────────────────────────────

    async def _consume_loop(self) -> None:
        while self._running:
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            await self._dispatch(event)
            self._queue.task_done()

    async def _drain(self) -> None:
        while not self._queue.empty():
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            await self._dispatch(event)
            self._queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        for sub in list(self._subscriptions):
            if not sub.wants(event):
                continue
            try:
                await sub.callback(event)
            except Exception:
                logger.exception("Subscriber %s failed for event %s", sub.callback, event.id)

    # ── introspection ───────────────────────────────────

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def running(self) -> bool:
        return self._running

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

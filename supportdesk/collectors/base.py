from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from supportdesk.engine.event_bus import EventBus
from supportdesk.models.event import Event

logger = logging.getLogger(__name__)


class PeriodicPublisher(ABC):
    """Publishes the events returned by ``produce()`` on a fixed schedule.

    An out-of-band ``run_once()`` pushes the next scheduled cycle back by a
    full interval, so a manual refresh is never followed straight away by a
    timed one.
    """

    name: str = "publisher"
    interval: float = 120.0

    def __init__(self, event_bus: EventBus, interval: float | None = None) -> None:
        self._event_bus = event_bus
        if interval is not None:
            self.interval = interval
        self._running = False
        self._task: asyncio.Task | None = None
        self._next_due = 0.0
        self.cycles = 0
        self.consecutive_failures = 0
        self.last_published: datetime | None = None

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._next_due = 0.0
        self._task = asyncio.create_task(self._schedule())
        logger.info("Publisher [%s] started (every %.1fs)", self.name, self.interval)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Publisher [%s] stopped after %d cycle(s)", self.name, self.cycles)

    @abstractmethod
    async def produce(self) -> list[Event]:
        """Build the events for one cycle."""

    async def run_once(self) -> list[Event]:
        try:
            events = await self.produce()
            for event in events:
                await self._event_bus.publish(event)
        except asyncio.CancelledError:
            raise
        except Exception:
            self.consecutive_failures += 1
            raise
        finally:
            self.cycles += 1
            self._next_due = time.monotonic() + self.interval

        self.consecutive_failures = 0
        if events:
            self.last_published = datetime.now(timezone.utc)
        return events

    async def _schedule(self) -> None:
        while self._running:
            delay = self._next_due - time.monotonic()
            if delay > 0:
                # re-checked on wake: run_once() may have moved the deadline
                await asyncio.sleep(delay)
                continue
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Publisher [%s] cycle failed (%d in a row)",
                    self.name,
                    self.consecutive_failures,
                )

    def stats(self) -> dict:
        return {
            "running": self._running,
            "interval": self.interval,
            "cycles": self.cycles,
            "consecutive_failures": self.consecutive_failures,
            "last_published": self.last_published.isoformat() if self.last_published else None,
        }

    @property
    def running(self) -> bool:
        return self._running

from __future__ import annotations

import asyncio
import logging

from supportdesk.collectors.base import PeriodicPublisher
from supportdesk.collectors.snapshot_collector import SnapshotCollector
from supportdesk.engine.event_bus import EventBus
from supportdesk.errors import CollectionError
from supportdesk.models.event import Event, EventSource, EventType
from supportdesk.models.metrics import PerformanceMetrics

logger = logging.getLogger(__name__)


class SnapshotPoller(PeriodicPublisher):
    """Pushes a fresh snapshot to UI subscribers on a fixed interval.

    A new request abandons a collection that is still running, so slow shell
    probes never queue up behind each other.
    """

    name = "snapshot_poller"

    def __init__(
        self,
        event_bus: EventBus,
        collector: SnapshotCollector,
        interval: float = 120.0,
    ) -> None:
        super().__init__(event_bus, interval=interval)
        self._collector = collector
        self._inflight: asyncio.Task | None = None

    async def produce(self) -> list[Event]:
        stale = self._inflight
        if stale is not None and not stale.done():
            logger.info("Abandoning stale snapshot collection")
            stale.cancel()

        task = asyncio.create_task(self._collector.collect())
        self._inflight = task
        try:
            snapshot = await task
        except asyncio.CancelledError:
            if task.cancelled() and self._inflight is not task:
                # superseded by a newer request
                return []
            raise
        except CollectionError as exc:
            logger.error("Snapshot collection failed: %s", exc)
            return [
                Event(
                    source=EventSource.SNAPSHOT_POLLER,
                    event_type=EventType.SNAPSHOT_FAILED,
                    payload={"error": str(exc)},
                )
            ]
        finally:
            if self._inflight is task:
                self._inflight = None

        return [
            Event(
                source=EventSource.SNAPSHOT_POLLER,
                event_type=EventType.SNAPSHOT_READY,
                payload={
                    "snapshot": snapshot.to_json(),
                    "metrics": PerformanceMetrics.from_snapshot(snapshot).model_dump(mode="json"),
                },
            )
        ]

    async def refresh(self) -> list[Event]:
        """Collect and publish now; the next timed poll is a full interval away."""
        return await self.run_once()

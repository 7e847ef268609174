from __future__ import annotations

import asyncio

import pytest

from supportdesk.collectors.base import PeriodicPublisher
from supportdesk.engine.event_bus import EventBus
from supportdesk.models.event import Event, EventSource, EventType


class CountingPublisher(PeriodicPublisher):
    """Publishes one numbered event per cycle."""

    name = "counting"

    def __init__(self, event_bus: EventBus, interval: float = 0.1) -> None:
        super().__init__(event_bus, interval=interval)
        self.produced = 0

    async def produce(self) -> list[Event]:
        self.produced += 1
        return [
            Event(
                source=EventSource.SNAPSHOT_POLLER,
                event_type=EventType.SNAPSHOT_READY,
                payload={"cycle": self.produced},
            )
        ]


class FlakyPublisher(PeriodicPublisher):
    name = "flaky"

    def __init__(self, event_bus: EventBus, failures: int, interval: float = 0.05) -> None:
        super().__init__(event_bus, interval=interval)
        self.failures = failures
        self.attempts = 0

    async def produce(self) -> list[Event]:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise RuntimeError("produce failed")
        return []


class QuietPublisher(PeriodicPublisher):
    name = "quiet"

    async def produce(self) -> list[Event]:
        return []


# ── lifecycle ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_publishes_every_interval():
    bus = EventBus()
    received: list[Event] = []

    async def handler(event: Event) -> None:
        received.append(event)

    bus.subscribe(handler)
    await bus.start()

    publisher = CountingPublisher(bus, interval=0.1)
    await publisher.start()
    await asyncio.sleep(0.35)
    await publisher.stop()
    await bus.stop()

    assert len(received) >= 2
    assert [e.payload["cycle"] for e in received] == list(range(1, len(received) + 1))
    assert publisher.last_published is not None


@pytest.mark.asyncio
async def test_start_stop_idempotent():
    publisher = CountingPublisher(EventBus())

    await publisher.start()
    await publisher.start()
    assert publisher.running is True

    await publisher.stop()
    await publisher.stop()
    assert publisher.running is False
    assert publisher._task is None


@pytest.mark.asyncio
async def test_run_once_publishes_without_schedule():
    bus = EventBus()
    publisher = CountingPublisher(bus)

    events = await publisher.run_once()

    assert len(events) == 1
    assert bus.pending == 1
    assert publisher.cycles == 1
    assert publisher.running is False


@pytest.mark.asyncio
async def test_manual_run_postpones_next_cycle():
    publisher = CountingPublisher(EventBus(), interval=0.3)
    await publisher.start()
    await asyncio.sleep(0.2)
    assert publisher.produced == 1

    await publisher.run_once()
    # the timed cycle that was due at 0.3s moved to 0.5s
    await asyncio.sleep(0.2)
    assert publisher.produced == 2
    await asyncio.sleep(0.2)
    await publisher.stop()
    assert publisher.produced == 3


# ── failures ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_failing_cycle_keeps_schedule_alive(caplog):
    publisher = FlakyPublisher(EventBus(), failures=100)

    await publisher.start()
    await asyncio.sleep(0.2)
    await publisher.stop()

    assert publisher.attempts >= 2
    assert publisher.consecutive_failures == publisher.attempts
    assert "cycle failed" in caplog.text


@pytest.mark.asyncio
async def test_success_resets_failure_count():
    publisher = FlakyPublisher(EventBus(), failures=2)

    for _ in range(2):
        with pytest.raises(RuntimeError):
            await publisher.run_once()
    assert publisher.consecutive_failures == 2

    await publisher.run_once()
    assert publisher.consecutive_failures == 0
    assert publisher.cycles == 3


@pytest.mark.asyncio
async def test_empty_cycle_publishes_nothing():
    bus = EventBus()
    publisher = QuietPublisher(bus, interval=0.1)
    await publisher.start()
    await asyncio.sleep(0.25)
    await publisher.stop()

    assert bus.pending == 0
    assert publisher.last_published is None


def test_stats_and_intervals():
    bus = EventBus()
    assert QuietPublisher(bus).interval == 120.0
    assert CountingPublisher(bus, interval=99.0).interval == 99.0
    assert QuietPublisher(bus).stats() == {
        "running": False,
        "interval": 120.0,
        "cycles": 0,
        "consecutive_failures": 0,
        "last_published": None,
    }

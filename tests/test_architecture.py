"""Architecture and runtime validation tests.

Verifies:
- No circular imports
- Poller + EventBus integrate end-to-end
- Graceful shutdown of the composed application context
"""

from __future__ import annotations

import asyncio
import importlib
import sys

import pytest

from simulator.simulate import build_collector
from supportdesk.collectors.snapshot_poller import SnapshotPoller
from supportdesk.config import Settings
from supportdesk.context import AppContext
from supportdesk.engine.event_bus import EventBus
from supportdesk.models.event import Event, EventType


# ── Circular import checks ────────────────────────────


_MODULES = [
    "supportdesk.config",
    "supportdesk.errors",
    "supportdesk.models",
    "supportdesk.models.snapshot",
    "supportdesk.models.metrics",
    "supportdesk.engine",
    "supportdesk.engine.normalizer",
    "supportdesk.engine.ticket_service",
    "supportdesk.engine.update_manager",
    "supportdesk.collectors",
    "supportdesk.collectors.snapshot_collector",
    "supportdesk.collectors.snapshot_poller",
    "supportdesk.context",
    "supportdesk.api.routes",
]


@pytest.mark.parametrize("module_name", _MODULES)
def test_no_circular_imports(module_name: str):
    """Each module can be imported on its own without circular import errors."""
    saved = dict(sys.modules)
    for k in [k for k in sys.modules if k.startswith("supportdesk")]:
        del sys.modules[k]
    try:
        importlib.import_module(module_name)
    except ImportError as e:
        if "circular" in str(e).lower() or "partially initialized" in str(e).lower():
            pytest.fail(f"Circular import detected in {module_name}: {e}")
        raise
    finally:
        # restore so patches in other tests target the right objects
        for k in [k for k in sys.modules if k.startswith("supportdesk")]:
            del sys.modules[k]
        sys.modules.update(saved)


def test_normalizer_does_not_import_collectors():
    """The normalizer stays pure: no telemetry, no process calls."""
    saved = dict(sys.modules)
    for k in [k for k in sys.modules if k.startswith("supportdesk")]:
        del sys.modules[k]
    try:
        importlib.import_module("supportdesk.engine.normalizer")
        assert "supportdesk.collectors.provider" not in sys.modules
    finally:
        for k in [k for k in sys.modules if k.startswith("supportdesk")]:
            del sys.modules[k]
        sys.modules.update(saved)


# ── Poller + EventBus integration ─────────────────────


@pytest.mark.asyncio
async def test_poller_eventbus_end_to_end():
    """Snapshots flow from poller to EventBus to subscriber."""
    bus = EventBus()
    received: list[Event] = []

    async def handler(event: Event):
        received.append(event)

    bus.subscribe(handler, {EventType.SNAPSHOT_READY})
    await bus.start()

    poller = SnapshotPoller(bus, build_collector("laptop"), interval=0.05)
    await poller.start()
    await asyncio.sleep(0.3)
    await poller.stop()
    await bus.stop()

    assert len(received) >= 2
    for event in received:
        data = event.model_dump(mode="json")
        assert data["payload"]["snapshot"]["hostname"] == "FRONTDESK-07"
        assert "timestamp" in data


# ── Graceful shutdown ─────────────────────────────────


@pytest.mark.asyncio
async def test_context_init_and_shutdown_leave_no_tasks(tmp_path):
    settings = Settings(poll_interval=60, update_feed_url="", download_dir=str(tmp_path))
    context = AppContext.create(settings)

    # swap in canned telemetry so the test does not shell out
    collector = build_collector("desktop")
    context.collector = collector
    context.poller._collector = collector

    await context.init()
    assert context.event_bus.running
    assert context.poller.running
    assert context.updates._task is None  # no feed configured

    await context.shutdown()
    assert context.event_bus._consumer_task is None
    assert context.poller._task is None
    assert context.poller.running is False

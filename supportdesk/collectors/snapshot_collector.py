from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable

from pydantic import ValidationError

from supportdesk.collectors.platform_queries import PlatformQueries
from supportdesk.collectors.provider import HardwareInfoProvider
from supportdesk.engine.normalizer import is_meaningful_adapter, needs_counter_fallback, normalize
from supportdesk.errors import CollectionError, ProbeFailure
from supportdesk.models.probe import PlatformExtras, ProbeResults, RawInterfaceStats
from supportdesk.models.snapshot import SystemSnapshot

logger = logging.getLogger(__name__)


class SnapshotCollector:
    """Fans out every probe concurrently and normalizes the results.

    Each probe is guarded on its own: an exception or a timeout is logged and
    leaves that probe's slot empty, it never cancels the other probes. Only a
    failure to build the snapshot itself raises ``CollectionError``.
    """

    def __init__(
        self,
        provider: HardwareInfoProvider,
        queries: PlatformQueries,
        probe_timeout: float = 5.0,
        counter_window: float = 1.0,
    ) -> None:
        self._provider = provider
        self._queries = queries
        self.probe_timeout = probe_timeout
        self.counter_window = counter_window

    async def collect(self) -> SystemSnapshot:
        started = time.monotonic()
        results = await self.gather_probes()
        try:
            snapshot = normalize(results)
        except (ValidationError, ValueError, TypeError) as exc:
            raise CollectionError(f"could not build system snapshot: {exc}") from exc
        logger.debug(
            "Snapshot collected in %.2fs (%d probe(s) failed: %s)",
            time.monotonic() - started,
            len(results.failed_probes()),
            ", ".join(results.failed_probes()) or "none",
        )
        return snapshot

    async def gather_probes(self) -> ProbeResults:
        p = self._provider
        probes: dict[str, Awaitable[Any]] = {
            "os_info": p.os_info(),
            "hostname": p.hostname(),
            "time": p.time(),
            "cpu": p.cpu(),
            "load": p.current_load(),
            "memory": p.memory(),
            "fs_size": p.fs_size(),
            "disk_layout": p.disk_layout(),
            "interfaces": p.network_interfaces(),
            "interface_stats": p.network_stats(),
            "graphics": p.graphics(),
            "battery": p.battery(),
            "bios": p.bios(),
            "temperature": p.cpu_temperature(),
            "wifi_ssid": self._queries.wifi_ssid(),
            "power_plan": self._queries.power_plan(),
        }
        values = await asyncio.gather(
            *(self._guard(name, probe) for name, probe in probes.items())
        )
        slots = dict(zip(probes, values))
        adapter_stats = await self._counter_fallback(slots["interfaces"], slots["interface_stats"])
        extras = PlatformExtras(
            wifi_ssid=slots.pop("wifi_ssid"),
            power_plan=slots.pop("power_plan"),
            adapter_stats=adapter_stats,
        )
        try:
            return ProbeResults(**slots, extras=extras)
        except ValidationError as exc:
            raise CollectionError(f"malformed probe results: {exc}") from exc

    async def _counter_fallback(self, interfaces, stats) -> dict[str, RawInterfaceStats]:
        """Measure throughput from platform counters where the stats probe had none."""
        if not interfaces:
            return {}
        pending = [
            iface.iface
            for iface in interfaces
            if is_meaningful_adapter(iface) and needs_counter_fallback(iface, stats)
        ]
        if not pending:
            return {}
        measured = await asyncio.gather(
            *(
                self._guard(
                    f"adapter_throughput[{name}]",
                    self._queries.adapter_throughput(name, window=self.counter_window),
                )
                for name in pending
            )
        )
        return {name: value for name, value in zip(pending, measured) if value is not None}

    async def _guard(self, name: str, probe: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(probe, timeout=self.probe_timeout)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning("Probe [%s] timed out after %.1fs", name, self.probe_timeout)
            failure = ProbeFailure(name, exc)
        except Exception as exc:
            failure = ProbeFailure(name, exc)
            logger.warning("%s", failure)
        logger.debug("Using fallback for probe [%s]", failure.probe)
        return None

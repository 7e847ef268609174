"""Scenario simulator for the Support Desk snapshot pipeline.

Feeds canned probe results (healthy laptop, wired desktop, degraded host,
offline host) through the real collector, normalizer and renderers, so the
report can be previewed without touching the local machine.

Usage:
    python simulator/simulate.py                         # every scenario, plain text
    python simulator/simulate.py --scenario degraded
    python simulator/simulate.py --scenario laptop --format html
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from supportdesk.collectors.platform_queries import CommandRunner, PlatformQueries
from supportdesk.collectors.provider import HardwareInfoProvider
from supportdesk.collectors.snapshot_collector import SnapshotCollector
from supportdesk.engine.report_renderer import render_html, render_plain_text
from supportdesk.models.probe import (
    RawBattery,
    RawBios,
    RawController,
    RawCpu,
    RawDiskLayout,
    RawDisplay,
    RawFsEntry,
    RawGraphics,
    RawInterface,
    RawInterfaceStats,
    RawLoad,
    RawMemory,
    RawOsInfo,
    RawTemperature,
    RawTime,
)
from supportdesk.models.security import SecurityStatus
from supportdesk.models.ticket import TicketRequest

logger = logging.getLogger("simulator")

GB = 1_000_000_000


class ScenarioProvider(HardwareInfoProvider):
    """Answers each probe from a script.

    ``results`` maps a probe (method) name to its value, or to an exception
    the probe should raise. ``delays`` adds latency per probe. A probe
    missing from the script raises, like a facility the OS does not offer.
    """

    def __init__(
        self,
        results: dict[str, Any],
        delays: dict[str, float] | None = None,
    ) -> None:
        self.results = results
        self.delays = delays or {}
        self.calls: list[str] = []

    async def _answer(self, probe: str) -> Any:
        self.calls.append(probe)
        delay = self.delays.get(probe, 0.0)
        if delay:
            await asyncio.sleep(delay)
        if probe not in self.results:
            raise RuntimeError(f"{probe} is not available on this host")
        value = self.results[probe]
        if isinstance(value, BaseException):
            raise value
        return value

    async def os_info(self) -> RawOsInfo:
        return await self._answer("os_info")

    async def hostname(self) -> str:
        return await self._answer("hostname")

    async def time(self) -> RawTime:
        return await self._answer("time")

    async def cpu(self) -> RawCpu:
        return await self._answer("cpu")

    async def current_load(self) -> RawLoad:
        return await self._answer("current_load")

    async def memory(self) -> RawMemory:
        return await self._answer("memory")

    async def fs_size(self) -> list[RawFsEntry]:
        return await self._answer("fs_size")

    async def disk_layout(self) -> list[RawDiskLayout]:
        return await self._answer("disk_layout")

    async def network_interfaces(self) -> list[RawInterface]:
        return await self._answer("network_interfaces")

    async def network_stats(self) -> list[RawInterfaceStats]:
        return await self._answer("network_stats")

    async def graphics(self) -> RawGraphics:
        return await self._answer("graphics")

    async def battery(self) -> RawBattery:
        return await self._answer("battery")

    async def bios(self) -> RawBios:
        return await self._answer("bios")

    async def cpu_temperature(self) -> RawTemperature:
        return await self._answer("cpu_temperature")


class ScenarioQueries(PlatformQueries):
    """Platform queries with scripted answers instead of shell-outs."""

    def __init__(
        self,
        wifi_ssid: str | None = None,
        power_plan: str | None = None,
        throughput: dict[str, RawInterfaceStats] | None = None,
        security: SecurityStatus | None = None,
    ) -> None:
        super().__init__(CommandRunner(), system="Simulated")
        self._wifi_ssid = wifi_ssid
        self._power_plan = power_plan
        self._throughput = throughput or {}
        self._security = security or SecurityStatus()
        self.throughput_requests: list[str] = []

    async def wifi_ssid(self, iface: str = "en0") -> str | None:
        return self._wifi_ssid

    async def power_plan(self) -> str | None:
        return self._power_plan

    async def adapter_throughput(self, iface: str, window: float = 1.0) -> RawInterfaceStats | None:
        self.throughput_requests.append(iface)
        return self._throughput.get(iface)

    async def security_status(self) -> SecurityStatus:
        return self._security


# ── Scenario definitions ─────────────────────────────


def laptop() -> tuple[ScenarioProvider, ScenarioQueries]:
    """Windows laptop on Wi-Fi, discharging, everything answers."""
    provider = ScenarioProvider(
        {
            "os_info": RawOsInfo(distro="Microsoft Windows 11 Pro", release="10.0.22631", arch="x64"),
            "hostname": "FRONTDESK-07",
            "time": RawTime(uptime=5 * 3600 + 42 * 60),
            "cpu": RawCpu(brand="Intel Core i5-1235U", cores=10),
            "current_load": RawLoad(current_load=23.4),
            "memory": RawMemory(total=16 * GB, used=9 * GB, free=7 * GB),
            "fs_size": [
                RawFsEntry(mount="C:\\", type="NTFS", size=512 * GB, used=301 * GB),
                RawFsEntry(mount="D:\\", type=None, size=1000 * GB, used=120 * GB),
            ],
            "disk_layout": [RawDiskLayout(device="D:", type="HD", name="WDC WD10")],
            "network_interfaces": [
                RawInterface(iface="Wi-Fi", type="wireless", ip4="192.168.1.44",
                             mac="a4:83:e7:1b:2c:3d", operstate="up"),
                RawInterface(iface="Ethernet", type="ethernet", mac="00:e0:4c:68:00:11",
                             operstate="down"),
                RawInterface(iface="Bluetooth Network Connection", type="wireless",
                             mac="a4:83:e7:1b:2c:3e", operstate="down"),
                RawInterface(iface="Loopback Pseudo-Interface 1", type="ethernet",
                             ip4="127.0.0.1", mac="00:00:00:00:00:00", operstate="up"),
            ],
            "network_stats": [RawInterfaceStats(iface="Wi-Fi", tx_sec=52_000, rx_sec=1_250_000)],
            "graphics": RawGraphics(
                controllers=[RawController(vendor="Intel Corporation", model="Iris Xe Graphics", vram=1024)],
                displays=[RawDisplay(model="Built-in Display", main=True, resolution_x=1920,
                                     resolution_y=1080, pixel_depth=32)],
            ),
            "battery": RawBattery(percent=76, is_charging=False),
            "bios": RawBios(vendor="LENOVO", version="N3MET18W", release_date="2023-05-10"),
            "cpu_temperature": RawTemperature(main=-1, cores=[]),
        }
    )
    queries = ScenarioQueries(
        wifi_ssid="Office-5G",
        power_plan="Balanced",
        throughput={"Ethernet": RawInterfaceStats(iface="Ethernet", tx_sec=0, rx_sec=0)},
    )
    return provider, queries


def desktop() -> tuple[ScenarioProvider, ScenarioQueries]:
    """Linux desktop on a wire, no battery, sensors available."""
    provider = ScenarioProvider(
        {
            "os_info": RawOsInfo(distro="Ubuntu", release="24.04", arch="x86_64"),
            "hostname": "build-box",
            "time": RawTime(uptime=12 * 86400),
            "cpu": RawCpu(brand="AMD Ryzen 7 5800X", cores=8),
            "current_load": RawLoad(current_load=71.5),
            "memory": RawMemory(total=32 * GB, used=12 * GB, free=20 * GB),
            "fs_size": [
                RawFsEntry(mount="/", type="ext4", size=256 * GB, used=180 * GB),
                RawFsEntry(mount="/srv/archive", type="xfs", size=4000 * GB, used=1000 * GB),
            ],
            "disk_layout": [RawDiskLayout(device="/dev/nvme0n1", type="NVMe")],
            "network_interfaces": [
                RawInterface(iface="lo", type="loopback", ip4="127.0.0.1", mac="00:00:00:00:00:00", operstate="up"),
                RawInterface(iface="enp5s0", type="ethernet", ip4="10.0.0.12", mac="2c:f0:5d:01:02:03", operstate="up"),
                RawInterface(iface="docker0", type="virtual", ip4="172.17.0.1", mac="02:42:ac:11:00:01", operstate="down"),
            ],
            "network_stats": [RawInterfaceStats(iface="enp5s0", tx_sec=None, rx_sec="n/a")],
            "graphics": RawGraphics(
                controllers=[RawController(vendor="NVIDIA Corporation", model="GeForce RTX 3070", vram=8192)],
                displays=[
                    RawDisplay(model="DP-1", main=True, resolution_x=2560, resolution_y=1440, pixel_depth=24),
                    RawDisplay(model=None, resolution_x=None, resolution_y=None),
                ],
            ),
            "battery": RawBattery(has_battery=False),
            "bios": RawBios(vendor="American Megatrends Inc.", version="F36", release_date="2022-08-01"),
            "cpu_temperature": RawTemperature(main=54.25, cores=[52.0, 55.5, "NaN"]),
        }
    )
    queries = ScenarioQueries(
        power_plan="Performance",
        throughput={"enp5s0": RawInterfaceStats(iface="enp5s0", tx_sec=125_000, rx_sec=2_500_000)},
    )
    return provider, queries


def degraded() -> tuple[ScenarioProvider, ScenarioQueries]:
    """Half the probes fail or return garbage."""
    provider = ScenarioProvider(
        {
            "os_info": RawOsInfo(distro="Microsoft Windows 10 Home", release="10.0.19045", arch="x64"),
            "hostname": "RECEPTION",
            "time": RawTime(uptime="NaN"),
            "cpu": RuntimeError("WMI query failed"),
            "memory": RawMemory(total=0, used=0),
            "fs_size": [RawFsEntry(mount="C:\\", type="NTFS", size="NaN", used=None)],
            "network_interfaces": OSError("adapter enumeration failed"),
            "graphics": RawGraphics(),
            "battery": RawBattery(percent=-1, is_charging=None),
            "bios": RawBios(),
            "cpu_temperature": RawTemperature(main=float("nan"), cores=[]),
        },
        delays={"bios": 0.05},
    )
    return provider, ScenarioQueries()


def offline() -> tuple[ScenarioProvider, ScenarioQueries]:
    """Only a Bluetooth adapter is present."""
    provider = ScenarioProvider(
        {
            "os_info": RawOsInfo(distro="macOS", release="14.4", arch="arm64"),
            "hostname": "loaner-mbp",
            "time": RawTime(uptime=600),
            "cpu": RawCpu(brand="Apple M2", cores=8),
            "current_load": RawLoad(current_load=4.0),
            "memory": RawMemory(total=16_000_000_000, used=8_000_000_000),
            "fs_size": [],
            "disk_layout": [],
            "network_interfaces": [
                RawInterface(iface="Bluetooth PAN", type="bluetooth", mac="f0:18:98:aa:bb:cc", operstate="up"),
            ],
            "network_stats": [],
            "graphics": RawGraphics(),
            "battery": None,
            "bios": RawBios(),
            "cpu_temperature": RawTemperature(),
        }
    )
    return provider, ScenarioQueries()


SCENARIOS: dict[str, Callable[[], tuple[ScenarioProvider, ScenarioQueries]]] = {
    "laptop": laptop,
    "desktop": desktop,
    "degraded": degraded,
    "offline": offline,
}

SAMPLE_TICKET = TicketRequest(
    full_name="Jane Example",
    email="jane@example.com",
    phone="0825640943",
    description="Printer on the second floor is offline.",
)


def build_collector(name: str, probe_timeout: float = 2.0) -> SnapshotCollector:
    provider, queries = SCENARIOS[name]()
    return SnapshotCollector(provider, queries, probe_timeout=probe_timeout, counter_window=0.0)


# ── Main runner ──────────────────────────────────────


async def render_scenario(name: str, fmt: str) -> str:
    snapshot = await build_collector(name).collect()
    if fmt == "html":
        return render_html(snapshot, SAMPLE_TICKET)
    if fmt == "json":
        return json.dumps(snapshot.to_json(), indent=2)
    return render_plain_text(snapshot)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Support Desk snapshot simulator")
    parser.add_argument("--scenario", choices=list(SCENARIOS.keys()), help="Run a single scenario")
    parser.add_argument("--format", choices=["text", "html", "json"], default="text")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [SIM] %(message)s")
    names = [args.scenario] if args.scenario else list(SCENARIOS)
    for name in names:
        logger.info("=== Scenario: %s ===", name)
        print(await render_scenario(name, args.format))


if __name__ == "__main__":
    asyncio.run(main())

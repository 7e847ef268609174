from __future__ import annotations

import asyncio
import logging
import platform
import socket
import time
from abc import ABC, abstractmethod
from pathlib import Path

import psutil

from supportdesk.collectors.platform_queries import PlatformQueries
from supportdesk.models.probe import (
    RawBattery,
    RawBios,
    RawCpu,
    RawDiskLayout,
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

logger = logging.getLogger(__name__)

_SYS_NET = Path("/sys/class/net")
_SYS_BLOCK = Path("/sys/block")
_SYS_DMI = Path("/sys/class/dmi/id")

_WIRELESS_HINTS = ("wlan", "wi-fi", "wifi", "wireless", "airport")
_WIRELESS_PREFIXES = ("wl", "ath", "ra")
_ETHERNET_HINTS = ("ethernet", "local area connection")
_ETHERNET_PREFIXES = ("eth", "en", "em", "eno", "enp", "ens")
_VIRTUAL_PREFIXES = ("docker", "veth", "br-", "virbr", "vmnet", "vboxnet", "tun", "tap", "utun", "awdl", "llw")
_TEMPERATURE_CHIPS = ("coretemp", "k10temp", "zenpower", "cpu_thermal", "cpu-thermal", "acpitz")


class HardwareInfoProvider(ABC):
    """Async queries against OS/hardware telemetry.

    Implementations may raise from any method; the snapshot collector isolates
    each call.
    """

    @abstractmethod
    async def os_info(self) -> RawOsInfo: ...

    @abstractmethod
    async def hostname(self) -> str: ...

    @abstractmethod
    async def time(self) -> RawTime: ...

    @abstractmethod
    async def cpu(self) -> RawCpu: ...

    @abstractmethod
    async def current_load(self) -> RawLoad: ...

    @abstractmethod
    async def memory(self) -> RawMemory: ...

    @abstractmethod
    async def fs_size(self) -> list[RawFsEntry]: ...

    @abstractmethod
    async def disk_layout(self) -> list[RawDiskLayout]: ...

    @abstractmethod
    async def network_interfaces(self) -> list[RawInterface]: ...

    @abstractmethod
    async def network_stats(self) -> list[RawInterfaceStats]: ...

    @abstractmethod
    async def graphics(self) -> RawGraphics: ...

    @abstractmethod
    async def battery(self) -> RawBattery: ...

    @abstractmethod
    async def bios(self) -> RawBios: ...

    @abstractmethod
    async def cpu_temperature(self) -> RawTemperature: ...


def classify_interface(name: str) -> str:
    """Best guess at an interface's link type from its name."""
    lowered = name.lower()
    if lowered == "lo" or lowered.startswith("lo0") or "loopback" in lowered:
        return "loopback"
    if lowered.startswith(_VIRTUAL_PREFIXES) or "virtual" in lowered:
        return "virtual"
    if "bluetooth" in lowered:
        return "bluetooth"
    if (_SYS_NET / name / "wireless").exists():
        return "wireless"
    if any(hint in lowered for hint in _WIRELESS_HINTS) or lowered.startswith(_WIRELESS_PREFIXES):
        return "wireless"
    if any(hint in lowered for hint in _ETHERNET_HINTS) or lowered.startswith(_ETHERNET_PREFIXES):
        return "ethernet"
    return "other"


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text().strip() or None
    except OSError:
        return None


class PsutilProvider(HardwareInfoProvider):
    """psutil-backed provider, with platform commands where psutil is silent."""

    def __init__(self, queries: PlatformQueries, stats_window: float = 0.5) -> None:
        self._queries = queries
        self._system = queries.system
        self.stats_window = stats_window
        # prime the cpu_percent baseline so the first sample is meaningful
        psutil.cpu_percent(interval=None)

    async def os_info(self) -> RawOsInfo:
        distro = platform.system()
        release = platform.release()
        if self._system == "Linux":
            try:
                release_info = platform.freedesktop_os_release()
            except OSError:
                release_info = {}
            distro = release_info.get("NAME", distro)
            release = release_info.get("VERSION_ID", release)
        elif self._system == "Darwin":
            distro, release = "macOS", platform.mac_ver()[0] or release
        return RawOsInfo(distro=distro, release=release, arch=platform.machine())

    async def hostname(self) -> str:
        return socket.gethostname()

    async def time(self) -> RawTime:
        return RawTime(uptime=time.time() - psutil.boot_time())

    async def cpu(self) -> RawCpu:
        brand = platform.processor() or None
        if self._system == "Linux":
            cpuinfo = _read_text(Path("/proc/cpuinfo")) or ""
            for line in cpuinfo.splitlines():
                if line.startswith("model name"):
                    brand = line.partition(":")[2].strip()
                    break
        return RawCpu(brand=brand, cores=psutil.cpu_count(logical=False))

    async def current_load(self) -> RawLoad:
        # non-blocking sample: compare against the baseline after a short pause
        psutil.cpu_percent(interval=None)
        await asyncio.sleep(0.2)
        return RawLoad(current_load=psutil.cpu_percent(interval=None))

    async def memory(self) -> RawMemory:
        vm = psutil.virtual_memory()
        return RawMemory(total=vm.total, used=vm.used, free=vm.available)

    async def fs_size(self) -> list[RawFsEntry]:
        entries: list[RawFsEntry] = []
        for part in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError):
                # removable drives without media, locked volumes
                logger.debug("Skipping unreadable mount %s", part.mountpoint)
                continue
            entries.append(
                RawFsEntry(
                    mount=part.mountpoint,
                    type=part.fstype or None,
                    size=usage.total,
                    used=usage.used,
                )
            )
        return entries

    async def disk_layout(self) -> list[RawDiskLayout]:
        if self._system != "Linux" or not _SYS_BLOCK.is_dir():
            return []
        layout: list[RawDiskLayout] = []
        for dev in sorted(_SYS_BLOCK.iterdir()):
            if dev.name.startswith(("loop", "ram", "zram", "dm-")):
                continue
            rotational = _read_text(dev / "queue" / "rotational")
            if dev.name.startswith("nvme"):
                kind = "NVMe"
            elif rotational == "0":
                kind = "SSD"
            elif rotational == "1":
                kind = "HD"
            else:
                kind = None
            layout.append(
                RawDiskLayout(
                    device=f"/dev/{dev.name}",
                    type=kind,
                    name=_read_text(dev / "device" / "model") or dev.name,
                )
            )
        return layout

    async def network_interfaces(self) -> list[RawInterface]:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
        interfaces: list[RawInterface] = []
        for name, entries in addrs.items():
            mac = ip4 = ip6 = None
            for addr in entries:
                if addr.family == psutil.AF_LINK:
                    mac = addr.address
                elif addr.family == socket.AF_INET and ip4 is None:
                    ip4 = addr.address
                elif addr.family == socket.AF_INET6 and ip6 is None:
                    ip6 = addr.address.split("%", 1)[0]
            stat = stats.get(name)
            interfaces.append(
                RawInterface(
                    iface=name,
                    iface_name=name,
                    type=classify_interface(name),
                    ip4=ip4,
                    ip6=ip6,
                    mac=mac.replace("-", ":").lower() if mac else None,
                    operstate="up" if stat and stat.isup else "down",
                )
            )
        return interfaces

    async def network_stats(self) -> list[RawInterfaceStats]:
        before = psutil.net_io_counters(pernic=True)
        await asyncio.sleep(self.stats_window)
        after = psutil.net_io_counters(pernic=True)
        result: list[RawInterfaceStats] = []
        for name, now in after.items():
            prev = before.get(name)
            if prev is None:
                result.append(RawInterfaceStats(iface=name))
                continue
            result.append(
                RawInterfaceStats(
                    iface=name,
                    tx_sec=max(now.bytes_sent - prev.bytes_sent, 0) / self.stats_window,
                    rx_sec=max(now.bytes_recv - prev.bytes_recv, 0) / self.stats_window,
                )
            )
        return result

    async def graphics(self) -> RawGraphics:
        controllers, displays = await self._queries.graphics()
        return RawGraphics(controllers=controllers, displays=displays)

    async def battery(self) -> RawBattery:
        battery = psutil.sensors_battery()
        if battery is None:
            return RawBattery(has_battery=False)
        return RawBattery(percent=battery.percent, is_charging=battery.power_plugged)

    async def bios(self) -> RawBios:
        if self._system == "Linux":
            return RawBios(
                vendor=_read_text(_SYS_DMI / "bios_vendor"),
                version=_read_text(_SYS_DMI / "bios_version"),
                release_date=_read_text(_SYS_DMI / "bios_date"),
            )
        return await self._queries.bios() or RawBios()

    async def cpu_temperature(self) -> RawTemperature:
        sensors = getattr(psutil, "sensors_temperatures", None)
        if sensors is None:
            return RawTemperature()
        readings = sensors() or {}
        for chip in _TEMPERATURE_CHIPS:
            entries = readings.get(chip)
            if not entries:
                continue
            main = next(
                (e.current for e in entries if e.label.startswith(("Package", "Tdie", "Tctl"))),
                entries[0].current,
            )
            cores = [e.current for e in entries if e.label.startswith("Core")]
            return RawTemperature(main=main, cores=cores)
        return RawTemperature()

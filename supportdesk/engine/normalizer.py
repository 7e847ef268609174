"""Turns raw probe results into a display-ready ``SystemSnapshot``.

Scalar fields are resolved through ``FIELD_POLICIES``, a table of
(source, validator, fallback) entries. Structured sections (disks, network,
additional info) have their own functions so each rule can be tested alone.
Nothing in here performs I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from supportdesk.models.probe import (
    PlatformExtras,
    ProbeResults,
    RawBattery,
    RawBios,
    RawDiskLayout,
    RawFsEntry,
    RawGraphics,
    RawInterface,
    RawInterfaceStats,
    RawTemperature,
)
from supportdesk.models.snapshot import (
    NOT_AVAILABLE,
    UNKNOWN,
    AdapterStatus,
    AdapterType,
    AdditionalInfo,
    BatteryInfo,
    BiosInfo,
    Carrier,
    CpuInfo,
    DiskInfo,
    DisplayInfo,
    GraphicsController,
    MemoryInfo,
    NetworkAdapter,
    NetworkInfo,
    PlatformInfo,
    SystemSnapshot,
    TemperatureInfo,
)

MEANINGFUL_TYPES = ("wireless", "ethernet")
EXCLUDED_NAME_TOKENS = ("loopback", "pseudo", "bluetooth", "virtual")
MAC_HEADER_TOKENS = ("name", "macaddress", "status", "linkspeed")
ZERO_MAC = "00:00:00:00:00:00"
TEMPERATURE_UNKNOWN = -1
BATTERY_UNKNOWN = -1

NO_ADAPTERS_NAME = "No Meaningful Network Adapters"
DETECTION_FAILED_NAME = "Network Detection Failed"


# ── numeric helpers ─────────────────────────────────


def coerce_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_non_negative(value: Any) -> float | None:
    number = coerce_number(value)
    return number if number is not None and number >= 0 else None


def clamp_percent(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return round(min(max(value, 0.0), 100.0), 2)


def ratio_percent(part: float | None, whole: float | None) -> float:
    if part is None or whole is None or whole <= 0:
        return 0.0
    return clamp_percent(part / whole * 100)


# ── field policy table ──────────────────────────────


@dataclass(frozen=True)
class FieldPolicy:
    source: Callable[[ProbeResults], Any]
    validator: Callable[[Any], bool]
    fallback: Any
    transform: Callable[[Any], Any] = lambda value: value

    def resolve(self, results: ProbeResults) -> Any:
        try:
            value = self.source(results)
        except (AttributeError, TypeError):
            # the probe slot itself is None
            return self.fallback
        if value is None or not self.validator(value):
            return self.fallback
        return self.transform(value)


def _non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _positive_int(value: Any) -> bool:
    number = coerce_number(value)
    return number is not None and number >= 1 and number == int(number)


def _finite_non_negative(value: Any) -> bool:
    return coerce_non_negative(value) is not None


FIELD_POLICIES: dict[str, FieldPolicy] = {
    "platform.distro": FieldPolicy(lambda r: r.os_info.distro, _non_empty, UNKNOWN, str.strip),
    "platform.release": FieldPolicy(lambda r: r.os_info.release, _non_empty, "", str.strip),
    "platform.arch": FieldPolicy(lambda r: r.os_info.arch, _non_empty, "", str.strip),
    "hostname": FieldPolicy(lambda r: r.hostname, _non_empty, UNKNOWN, str.strip),
    "uptime_seconds": FieldPolicy(
        lambda r: r.time.uptime, _finite_non_negative, 0, lambda v: int(coerce_number(v))
    ),
    "cpu.model": FieldPolicy(lambda r: r.cpu.brand, _non_empty, UNKNOWN, str.strip),
    "cpu.core_count": FieldPolicy(
        lambda r: r.cpu.cores, _positive_int, NOT_AVAILABLE, lambda v: int(coerce_number(v))
    ),
    "cpu.current_load_percent": FieldPolicy(
        lambda r: r.load.current_load,
        _finite_non_negative,
        0.0,
        lambda v: clamp_percent(coerce_number(v)),
    ),
    "battery.power_plan": FieldPolicy(lambda r: r.extras.power_plan, _non_empty, UNKNOWN, str.strip),
}


def resolve(field: str, results: ProbeResults) -> Any:
    return FIELD_POLICIES[field].resolve(results)


# ── memory / disks ──────────────────────────────────


def normalize_memory(results: ProbeResults) -> MemoryInfo:
    raw = results.memory
    if raw is None:
        return MemoryInfo()
    total = coerce_non_negative(raw.total)
    used = coerce_non_negative(raw.used)
    if total is None or used is None:
        total = used = None
    free = coerce_non_negative(raw.free)
    if free is None:
        free = max(total - used, 0.0) if total is not None else 0.0
    return MemoryInfo(
        total_bytes=int(total or 0),
        used_bytes=int(used or 0),
        free_bytes=int(free),
        usage_percent=ratio_percent(used, total),
    )


def resolve_disk_type(entry: RawFsEntry, layout: list[RawDiskLayout]) -> str:
    if entry.type and entry.type.strip():
        return entry.type.strip()
    mount = entry.mount.lower()
    for disk in layout:
        if disk.device and disk.device.lower() in mount and disk.type:
            return disk.type
    return UNKNOWN


def normalize_disk(entry: RawFsEntry, layout: list[RawDiskLayout]) -> DiskInfo:
    total = coerce_non_negative(entry.size)
    used = coerce_non_negative(entry.used)
    if total is None or used is None:
        total = used = free = 0.0
        percent = 0.0
    else:
        free = max(total - used, 0.0)
        percent = ratio_percent(used, total)
    return DiskInfo(
        mount=entry.mount,
        type=resolve_disk_type(entry, layout),
        total_bytes=int(total),
        used_bytes=int(used),
        free_bytes=int(free),
        usage_percent=percent,
    )


def normalize_disks(results: ProbeResults) -> tuple[DiskInfo, ...]:
    layout = results.disk_layout or []
    return tuple(normalize_disk(entry, layout) for entry in results.fs_size or [])


# ── network ─────────────────────────────────────────


def is_meaningful_adapter(iface: RawInterface) -> bool:
    """Keep only physical wireless/ethernet adapters with a real MAC."""
    if (iface.type or "").lower() not in MEANINGFUL_TYPES:
        return False
    name = f"{iface.iface} {iface.iface_name or ''}".lower()
    if any(token in name for token in EXCLUDED_NAME_TOKENS):
        return False
    mac = (iface.mac or "").strip().lower()
    if not mac or mac.replace("-", ":") == ZERO_MAC:
        return False
    # drivers sometimes leak table headers into the MAC column
    return not any(token in mac for token in MAC_HEADER_TOKENS)


def format_throughput(bytes_per_sec: float | None) -> str:
    if bytes_per_sec is None:
        return NOT_AVAILABLE
    return f"{bytes_per_sec * 8 / 1_000_000:.2f} Mbps"


def _throughput(
    iface: str,
    stats: dict[str, RawInterfaceStats],
    fallback: dict[str, RawInterfaceStats],
) -> tuple[str, str]:
    tx = rx = None
    for source in (stats.get(iface), fallback.get(iface)):
        if source is None:
            continue
        if tx is None:
            tx = coerce_non_negative(source.tx_sec)
        if rx is None:
            rx = coerce_non_negative(source.rx_sec)
    return format_throughput(tx), format_throughput(rx)


def needs_counter_fallback(iface: RawInterface, stats: list[RawInterfaceStats] | None) -> bool:
    match = next((s for s in stats or [] if s.iface == iface.iface), None)
    if match is None:
        return True
    return coerce_non_negative(match.tx_sec) is None or coerce_non_negative(match.rx_sec) is None


def _adapter_type(raw: str | None) -> AdapterType:
    try:
        return AdapterType((raw or "").upper())
    except ValueError:
        return AdapterType.UNKNOWN


def normalize_adapter(
    iface: RawInterface,
    stats: dict[str, RawInterfaceStats],
    extras: PlatformExtras,
) -> NetworkAdapter:
    adapter_type = _adapter_type(iface.type)
    upload, download = _throughput(iface.iface, stats, extras.adapter_stats)
    wifi = NOT_AVAILABLE
    if adapter_type is AdapterType.WIRELESS and extras.wifi_ssid:
        wifi = extras.wifi_ssid
    operstate = iface.operstate or UNKNOWN
    return NetworkAdapter(
        name=iface.iface_name or iface.iface or "Unknown Interface",
        type=adapter_type,
        ip=iface.ip4 or iface.ip6 or NOT_AVAILABLE,
        mac=iface.mac or NOT_AVAILABLE,
        wifi_network_name=wifi,
        upload_speed=upload,
        download_speed=download,
        status=AdapterStatus(
            operational_state=operstate,
            carrier=Carrier.CONNECTED if operstate == "up" else Carrier.DISCONNECTED,
        ),
    )


def sentinel_adapter(name: str, carrier: Carrier) -> NetworkAdapter:
    return NetworkAdapter(
        name=name,
        status=AdapterStatus(operational_state=UNKNOWN, carrier=carrier),
    )


def normalize_network(results: ProbeResults) -> NetworkInfo:
    if results.interfaces is None:
        return NetworkInfo(
            adapters=(sentinel_adapter(DETECTION_FAILED_NAME, Carrier.ERROR),),
            connected_adapter=None,
        )
    stats = {s.iface: s for s in results.interface_stats or []}
    adapters = tuple(
        normalize_adapter(iface, stats, results.extras)
        for iface in results.interfaces
        if is_meaningful_adapter(iface)
    )
    if not adapters:
        return NetworkInfo(
            adapters=(sentinel_adapter(NO_ADAPTERS_NAME, Carrier.DISCONNECTED),),
            connected_adapter=None,
        )
    connected = next((a for a in adapters if a.status.carrier is Carrier.CONNECTED), None)
    return NetworkInfo(adapters=adapters, connected_adapter=connected)


# ── graphics / battery ──────────────────────────────


def normalize_graphics(raw: RawGraphics | None) -> tuple[GraphicsController, ...]:
    if raw is None:
        return ()
    return tuple(
        GraphicsController(
            vendor=(gpu.vendor or "").strip(),
            model=(gpu.model or "").strip(),
            vram_mb=round(coerce_non_negative(gpu.vram) or 0.0, 2),
        )
        for gpu in raw.controllers
    )


def normalize_battery(raw: RawBattery | None, power_plan: str) -> BatteryInfo | None:
    if raw is None or not raw.has_battery:
        return None
    percent = coerce_number(raw.percent)
    if percent is None or percent == BATTERY_UNKNOWN:
        percentage = NOT_AVAILABLE
    else:
        percentage = f"{clamp_percent(percent):g}%"
    return BatteryInfo(
        percentage=percentage,
        charging=raw.is_charging if raw.is_charging is not None else UNKNOWN,
        power_plan=power_plan,
    )


# ── additional info ─────────────────────────────────


def normalize_bios(raw: RawBios | None) -> BiosInfo | None:
    if raw is None:
        return None
    vendor, version, date = (
        (value or "").strip() for value in (raw.vendor, raw.version, raw.release_date)
    )
    if not (vendor or version or date):
        return None
    return BiosInfo(
        vendor=vendor or NOT_AVAILABLE,
        version=version or NOT_AVAILABLE,
        release_date=date or NOT_AVAILABLE,
    )


def _celsius(value: Any) -> str:
    number = coerce_number(value)
    if number is None or number == TEMPERATURE_UNKNOWN:
        return NOT_AVAILABLE
    return f"{number:.1f}°C"


def normalize_temperatures(raw: RawTemperature | None) -> TemperatureInfo | None:
    if raw is None:
        return None
    main = coerce_number(raw.main)
    has_main = main is not None and main != TEMPERATURE_UNKNOWN
    if not has_main and not raw.cores:
        return None
    return TemperatureInfo(
        cpu_c=_celsius(main),
        cores_c=", ".join(_celsius(core) for core in raw.cores) if raw.cores else NOT_AVAILABLE,
    )


def normalize_displays(raw: RawGraphics | None) -> tuple[DisplayInfo, ...] | None:
    if raw is None:
        return None
    displays = []
    for display in raw.displays:
        width = coerce_non_negative(display.resolution_x)
        height = coerce_non_negative(display.resolution_y)
        if not (display.model or width or height):
            continue
        depth = coerce_non_negative(display.pixel_depth)
        displays.append(
            DisplayInfo(
                model=display.model or UNKNOWN,
                is_main=display.main,
                resolution=f"{int(width or 0)}x{int(height or 0)}",
                pixel_depth=int(depth) if depth is not None else None,
            )
        )
    return tuple(displays) or None


def normalize_additional(results: ProbeResults) -> AdditionalInfo:
    return AdditionalInfo(
        bios=normalize_bios(results.bios),
        temperatures=normalize_temperatures(results.temperature),
        display=normalize_displays(results.graphics),
    )


# ── entry point ─────────────────────────────────────


def normalize(results: ProbeResults, collected_at: datetime | None = None) -> SystemSnapshot:
    """Build the snapshot for one collection cycle."""
    extra: dict[str, Any] = {}
    if collected_at is not None:
        extra["collected_at"] = collected_at
    return SystemSnapshot(
        platform=PlatformInfo(
            distro=resolve("platform.distro", results),
            release=resolve("platform.release", results),
            arch=resolve("platform.arch", results),
        ),
        hostname=resolve("hostname", results),
        uptime_seconds=resolve("uptime_seconds", results),
        cpu=CpuInfo(
            model=resolve("cpu.model", results),
            core_count=resolve("cpu.core_count", results),
            current_load_percent=resolve("cpu.current_load_percent", results),
        ),
        memory=normalize_memory(results),
        disks=normalize_disks(results),
        network=normalize_network(results),
        graphics=normalize_graphics(results.graphics),
        battery=normalize_battery(results.battery, resolve("battery.power_plan", results)),
        additional_info=normalize_additional(results),
        **extra,
    )

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# Raw probe payloads. Numeric fields are typed ``Any`` on purpose: drivers and
# OS utilities hand back strings like "NaN" or nothing at all, and the
# normalizer is the only place allowed to decide what a valid number is.


class RawOsInfo(BaseModel):
    distro: str = ""
    release: str = ""
    arch: str = ""


class RawTime(BaseModel):
    uptime: Any = None


class RawCpu(BaseModel):
    brand: str | None = None
    cores: Any = None


class RawLoad(BaseModel):
    current_load: Any = None


class RawMemory(BaseModel):
    total: Any = None
    used: Any = None
    free: Any = None


class RawFsEntry(BaseModel):
    mount: str = ""
    type: str | None = None
    size: Any = None
    used: Any = None


class RawDiskLayout(BaseModel):
    device: str = ""
    type: str | None = None
    name: str = ""


class RawInterface(BaseModel):
    iface: str = ""
    iface_name: str | None = None
    type: str | None = None
    ip4: str | None = None
    ip6: str | None = None
    mac: str | None = None
    operstate: str | None = None


class RawInterfaceStats(BaseModel):
    iface: str = ""
    tx_sec: Any = None
    rx_sec: Any = None


class RawController(BaseModel):
    vendor: str | None = None
    model: str | None = None
    vram: Any = None  # MB


class RawDisplay(BaseModel):
    model: str | None = None
    main: bool = False
    resolution_x: Any = None
    resolution_y: Any = None
    pixel_depth: Any = None


class RawGraphics(BaseModel):
    controllers: list[RawController] = Field(default_factory=list)
    displays: list[RawDisplay] = Field(default_factory=list)


class RawBattery(BaseModel):
    has_battery: bool = True
    percent: Any = None
    is_charging: bool | None = None


class RawBios(BaseModel):
    vendor: str | None = None
    version: str | None = None
    release_date: str | None = None


class RawTemperature(BaseModel):
    main: Any = -1
    cores: list[Any] = Field(default_factory=list)


class AdapterCounters(BaseModel):
    """Cumulative byte counters from the platform statistics command."""

    sent_bytes: int
    received_bytes: int


class PlatformExtras(BaseModel):
    wifi_ssid: str | None = None
    power_plan: str | None = None
    # throughput measured from platform counters, keyed by interface
    adapter_stats: dict[str, RawInterfaceStats] = Field(default_factory=dict)


class ProbeResults(BaseModel):
    """One slot per probe. ``None`` means the probe failed or timed out."""

    os_info: RawOsInfo | None = None
    hostname: str | None = None
    time: RawTime | None = None
    cpu: RawCpu | None = None
    load: RawLoad | None = None
    memory: RawMemory | None = None
    fs_size: list[RawFsEntry] | None = None
    disk_layout: list[RawDiskLayout] | None = None
    interfaces: list[RawInterface] | None = None
    interface_stats: list[RawInterfaceStats] | None = None
    graphics: RawGraphics | None = None
    battery: RawBattery | None = None
    bios: RawBios | None = None
    temperature: RawTemperature | None = None
    extras: PlatformExtras = Field(default_factory=PlatformExtras)

    def failed_probes(self) -> list[str]:
        return [
            name
            for name in type(self).model_fields
            if name != "extras" and getattr(self, name) is None
        ]

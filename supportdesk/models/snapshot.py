from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"


class Carrier(StrEnum):
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    ERROR = "Error"
    UNKNOWN = "Unknown"


class AdapterType(StrEnum):
    WIRELESS = "WIRELESS"
    ETHERNET = "ETHERNET"
    UNKNOWN = "UNKNOWN"


class SnapshotModel(BaseModel):
    """Immutable base: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PlatformInfo(SnapshotModel):
    distro: str = UNKNOWN
    release: str = ""
    arch: str = ""


class CpuInfo(SnapshotModel):
    model: str = UNKNOWN
    core_count: int | Literal["N/A"] = NOT_AVAILABLE
    current_load_percent: float = Field(default=0.0, ge=0, le=100)


class MemoryInfo(SnapshotModel):
    total_bytes: int = Field(default=0, ge=0)
    used_bytes: int = Field(default=0, ge=0)
    free_bytes: int = Field(default=0, ge=0)
    usage_percent: float = Field(default=0.0, ge=0, le=100)


class DiskInfo(SnapshotModel):
    mount: str
    type: str = UNKNOWN
    total_bytes: int = Field(default=0, ge=0)
    used_bytes: int = Field(default=0, ge=0)
    free_bytes: int = Field(default=0, ge=0)
    usage_percent: float = Field(default=0.0, ge=0, le=100)


class AdapterStatus(SnapshotModel):
    operational_state: str = UNKNOWN
    carrier: Carrier = Carrier.UNKNOWN


class NetworkAdapter(SnapshotModel):
    name: str
    type: AdapterType = AdapterType.UNKNOWN
    ip: str = NOT_AVAILABLE
    mac: str = NOT_AVAILABLE
    wifi_network_name: str = NOT_AVAILABLE
    upload_speed: str = NOT_AVAILABLE
    download_speed: str = NOT_AVAILABLE
    status: AdapterStatus = Field(default_factory=AdapterStatus)


class NetworkInfo(SnapshotModel):
    adapters: tuple[NetworkAdapter, ...]
    connected_adapter: NetworkAdapter | None = None


class GraphicsController(SnapshotModel):
    vendor: str = ""
    model: str = ""
    vram_mb: float = Field(default=0.0, ge=0)


class BatteryInfo(SnapshotModel):
    percentage: str = NOT_AVAILABLE
    charging: bool | Literal["Unknown"] = UNKNOWN
    power_plan: str = UNKNOWN


class BiosInfo(SnapshotModel):
    vendor: str = NOT_AVAILABLE
    version: str = NOT_AVAILABLE
    release_date: str = NOT_AVAILABLE


class TemperatureInfo(SnapshotModel):
    cpu_c: str = NOT_AVAILABLE
    cores_c: str = NOT_AVAILABLE


class DisplayInfo(SnapshotModel):
    model: str = UNKNOWN
    is_main: bool = False
    resolution: str = ""
    pixel_depth: int | None = None


class AdditionalInfo(SnapshotModel):
    bios: BiosInfo | None = None
    temperatures: TemperatureInfo | None = None
    display: tuple[DisplayInfo, ...] | None = None

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler: Any) -> dict[str, Any]:
        # Missing subsections are left out instead of serialized as null.
        return {k: v for k, v in handler(self).items() if v is not None}

    @property
    def is_empty(self) -> bool:
        return self.bios is None and self.temperatures is None and self.display is None


class SystemSnapshot(SnapshotModel):
    """Normalized aggregate of every probe at one point in time."""

    platform: PlatformInfo
    hostname: str
    uptime_seconds: int = Field(ge=0)
    cpu: CpuInfo
    memory: MemoryInfo
    disks: tuple[DiskInfo, ...]
    network: NetworkInfo
    graphics: tuple[GraphicsController, ...]
    battery: BatteryInfo | None = None
    additional_info: AdditionalInfo = Field(default_factory=AdditionalInfo)
    collected_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

from .event import Event, EventSource, EventType
from .metrics import Gauge, PerformanceMetrics, Severity, severity_for
from .probe import ProbeResults
from .security import AntivirusStatus, FirewallStatus, SecurityStatus
from .snapshot import (
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
from .ticket import MailMessage, TicketRequest, TicketResult

__all__ = [
    "Event",
    "EventSource",
    "EventType",
    "Gauge",
    "PerformanceMetrics",
    "Severity",
    "severity_for",
    "ProbeResults",
    "AntivirusStatus",
    "FirewallStatus",
    "SecurityStatus",
    "NOT_AVAILABLE",
    "UNKNOWN",
    "AdapterStatus",
    "AdapterType",
    "AdditionalInfo",
    "BatteryInfo",
    "BiosInfo",
    "Carrier",
    "CpuInfo",
    "DiskInfo",
    "DisplayInfo",
    "GraphicsController",
    "MemoryInfo",
    "NetworkAdapter",
    "NetworkInfo",
    "PlatformInfo",
    "SystemSnapshot",
    "TemperatureInfo",
    "MailMessage",
    "TicketRequest",
    "TicketResult",
]

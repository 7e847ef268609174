from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from supportdesk.models.snapshot import SystemSnapshot


class Severity(StrEnum):
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


# Upper bounds (exclusive) of each progress-bar band.
SEVERITY_BANDS: tuple[tuple[float, Severity], ...] = (
    (50.0, Severity.SUCCESS),
    (70.0, Severity.WARNING),
)


def severity_for(percent: float) -> Severity:
    for upper, band in SEVERITY_BANDS:
        if percent < upper:
            return band
    return Severity.DANGER


class Gauge(BaseModel):
    percent: float = Field(default=0.0, ge=0, le=100)
    severity: Severity = Severity.SUCCESS
    used_bytes: int | None = None
    total_bytes: int | None = None

    @classmethod
    def of(cls, percent: float, used: int | None = None, total: int | None = None) -> Gauge:
        percent = float(round(min(max(percent, 0.0), 100.0)))
        return cls(
            percent=percent,
            severity=severity_for(percent),
            used_bytes=used,
            total_bytes=total,
        )


class PerformanceMetrics(BaseModel):
    """The three gauges the widget shows between ticket submissions."""

    disk: Gauge
    memory: Gauge
    cpu: Gauge

    @classmethod
    def from_snapshot(cls, snapshot: SystemSnapshot) -> PerformanceMetrics:
        if snapshot.disks:
            first = snapshot.disks[0]
            disk = Gauge.of(first.usage_percent, first.used_bytes, first.total_bytes)
        else:
            disk = Gauge.of(0.0, 0, 0)
        memory = snapshot.memory
        return cls(
            disk=disk,
            memory=Gauge.of(memory.usage_percent, memory.used_bytes, memory.total_bytes),
            cpu=Gauge.of(snapshot.cpu.current_load_percent),
        )

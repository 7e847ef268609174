"""Plain-text and HTML renderings of a snapshot.

Both renderers are total: a value that is absent renders as "N/A" (or an
empty cell) instead of raising. Sections always come out in the same order:
platform, hostname, uptime, CPU, CPU load, memory, disks, network, graphics,
battery, BIOS, temperatures, displays.
"""

from __future__ import annotations

from html import escape

from supportdesk.models.snapshot import NOT_AVAILABLE, UNKNOWN, SystemSnapshot
from supportdesk.models.ticket import TicketRequest

GIB = 1024 ** 3
NO_SYSTEM_INFO = "No system info available"

_LABEL_CELL = 'style="background:#f4f4f4;font-weight:bold;"'
_LIST_STYLE = 'style="margin:0;padding-left:15px;"'


def format_uptime(seconds: int) -> str:
    return f"{seconds // 3600} hours, {(seconds % 3600) // 60} minutes"


def format_gb(num_bytes: int) -> str:
    return f"{num_bytes / GIB:.2f} GB"


def _usage(used: int, total: int, percent: float) -> str:
    return f"{format_gb(used)} used / {format_gb(total)} total ({percent:.1f}%)"


def _yes_no(value: bool | str) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return value or UNKNOWN


def _sections(snapshot: SystemSnapshot) -> list[tuple[str, str | list[str]]]:
    """(label, value or list of items) pairs in display order."""
    cpu = snapshot.cpu
    platform = snapshot.platform
    platform_line = platform.distro
    if platform.release:
        platform_line += f" {platform.release}"
    if platform.arch:
        platform_line += f" ({platform.arch})"

    sections: list[tuple[str, str | list[str]]] = [
        ("Platform", platform_line),
        ("Hostname", snapshot.hostname),
        ("Uptime", format_uptime(snapshot.uptime_seconds)),
        ("CPU", f"{cpu.model} ({cpu.core_count} cores)"),
        ("CPU Load", f"{cpu.current_load_percent:.1f}%"),
        (
            "Memory",
            _usage(
                snapshot.memory.used_bytes,
                snapshot.memory.total_bytes,
                snapshot.memory.usage_percent,
            ),
        ),
        (
            "Disks",
            [
                f"{d.mount} ({d.type}): {_usage(d.used_bytes, d.total_bytes, d.usage_percent)}"
                for d in snapshot.disks
            ],
        ),
        (
            "Network",
            [
                f"{a.name} ({a.type}) - IP: {a.ip}, MAC: {a.mac}, "
                f"WiFi: {a.wifi_network_name}, Status: {a.status.carrier}, "
                f"Up: {a.upload_speed}, Down: {a.download_speed}"
                for a in snapshot.network.adapters
            ],
        ),
        (
            "Graphics",
            [f"{g.vendor} {g.model} ({g.vram_mb:.2f} MB)".strip() for g in snapshot.graphics],
        ),
    ]

    battery = snapshot.battery
    if battery is None:
        sections.append(("Battery", NOT_AVAILABLE))
    else:
        sections.append(
            (
                "Battery",
                f"Charge: {battery.percentage}, Charging: {_yes_no(battery.charging)}, "
                f"Power Plan: {battery.power_plan}",
            )
        )

    extra = snapshot.additional_info
    if extra.bios is not None:
        sections.append(
            ("BIOS", f"{extra.bios.vendor} v{extra.bios.version} ({extra.bios.release_date})")
        )
    if extra.temperatures is not None:
        sections.append(
            (
                "Temperatures",
                f"CPU: {extra.temperatures.cpu_c}, Cores: {extra.temperatures.cores_c}",
            )
        )
    if extra.display:
        sections.append(
            (
                "Displays",
                [
                    f"{d.model}{' (Main)' if d.is_main else ''} - {d.resolution}, "
                    f"Depth: {d.pixel_depth if d.pixel_depth is not None else NOT_AVAILABLE}"
                    for d in extra.display
                ],
            )
        )
    return sections


# ── plain text ──────────────────────────────────────


def render_plain_text(snapshot: SystemSnapshot | None) -> str:
    if snapshot is None:
        return NO_SYSTEM_INFO
    lines: list[str] = []
    for label, value in _sections(snapshot):
        if isinstance(value, list):
            if not value:
                lines.append(f"{label}: none")
                continue
            lines.append(f"{label}:")
            lines.extend(f"  - {item}" for item in value)
        else:
            lines.append(f"{label}: {value}")
    return "\n".join(lines)


def render_ticket_text(ticket: TicketRequest, snapshot: SystemSnapshot | None) -> str:
    return (
        "Support Ticket Details:\n\n"
        f"Full Name: {ticket.full_name}\n"
        f"Email: {ticket.email}\n"
        f"Phone: {ticket.phone}\n\n"
        f"Description:\n{ticket.description}\n\n"
        f"System Information:\n{render_plain_text(snapshot)}\n"
    )


# ── html ────────────────────────────────────────────


def _row(label: str, value: str | list[str]) -> str:
    if isinstance(value, list):
        items = "".join(f"<li>{escape(item)}</li>" for item in value)
        cell = f"<ul {_LIST_STYLE}>{items}</ul>" if value else "<em>none</em>"
    else:
        cell = escape(value)
    return f"<tr><td {_LABEL_CELL}>{escape(label)}</td><td>{cell}</td></tr>"


def render_system_table(snapshot: SystemSnapshot | None) -> str:
    if snapshot is None:
        return f"<em>{NO_SYSTEM_INFO}</em>"
    rows = "".join(_row(label, value) for label, value in _sections(snapshot))
    return (
        '<table border="1" cellpadding="6" cellspacing="0" '
        'style="border-collapse:collapse;font-size:13px;margin-top:8px;">'
        f"{rows}</table>"
    )


def render_html(snapshot: SystemSnapshot | None, ticket: TicketRequest) -> str:
    """Full HTML body of a support ticket email."""
    return f"""
<div style="font-family:Segoe UI,Arial,sans-serif;font-size:15px;color:#222;max-width:700px;margin:auto;">
  <h2 style="background:#2ecc71;color:#fff;padding:12px 18px;border-radius:6px 6px 0 0;margin:0 0 12px 0;">Support Ticket Details</h2>
  <table cellpadding="6" cellspacing="0" style="border-collapse:collapse;font-size:15px;width:100%;margin-bottom:18px;">
    <tr><td style="font-weight:bold;width:140px;">Full Name:</td><td>{escape(ticket.full_name)}</td></tr>
    <tr><td style="font-weight:bold;">Email:</td><td>{escape(ticket.email)}</td></tr>
    <tr><td style="font-weight:bold;">Phone:</td><td>{escape(ticket.phone)}</td></tr>
  </table>
  <div style="margin-bottom:18px;padding:10px 14px;background:#f9f9f9;border-left:4px solid #2ecc71;border-radius:4px;">
    <div style="font-weight:bold;margin-bottom:4px;">Description:</div>
    <div style="white-space:pre-line;">{escape(ticket.description)}</div>
  </div>
  <div style="margin-bottom:8px;font-weight:bold;">System Information:</div>
  {render_system_table(snapshot)}
</div>
""".strip()

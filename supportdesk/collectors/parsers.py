"""Parsers for the text emitted by platform commands.

Every function here is pure: it takes captured command output and returns a
typed value, or ``None`` when the output does not contain what we look for.
Nothing in this module runs a process.
"""

from __future__ import annotations

import re

from supportdesk.models.probe import (
    AdapterCounters,
    RawBios,
    RawController,
    RawDisplay,
)
from supportdesk.models.security import AntivirusStatus, FirewallStatus

_NETSH_SSID = re.compile(r"^\s*SSID\s*:\s*(.+?)\s*$", re.MULTILINE)
_AIRPORT_SSID = re.compile(r"Current Wi-Fi Network:\s*(.+?)\s*$", re.MULTILINE)
_POWERCFG_SCHEME = re.compile(r"Power Scheme GUID:\s*\S+\s*\((.+?)\)")
_IP_LINK_RX = re.compile(r"RX:[^\n]*\n\s*(\d+)")
_IP_LINK_TX = re.compile(r"TX:[^\n]*\n\s*(\d+)")
_FIREWALL_STATE = re.compile(r"^\s*State\s+(ON|OFF)\s*$", re.MULTILINE | re.IGNORECASE)
_FIREWALL_PROFILE = re.compile(r"^(\w+) Profile Settings:", re.MULTILINE)
_XRANDR_OUTPUT = re.compile(
    r"^(?P<name>\S+) connected(?P<primary> primary)?\s+(?P<x>\d+)x(?P<y>\d+)\+",
    re.MULTILINE,
)
_XRANDR_DEPTH = re.compile(r"current \d+ x \d+.*?depth (\d+)", re.IGNORECASE)
_LSPCI_LINE = re.compile(r'^\S+\s+"(?P<cls>[^"]*)"\s+"(?P<vendor>[^"]*)"\s+"(?P<device>[^"]*)"')


def parse_list_blocks(output: str) -> list[dict[str, str]]:
    """Split ``Format-List`` style output into one dict per record.

    Records are separated by blank lines, fields are ``Key : Value``.
    """
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}
    for line in output.splitlines():
        if not line.strip():
            if current:
                records.append(current)
                current = {}
            continue
        key, sep, value = line.partition(":")
        if sep and key.strip():
            current[key.strip()] = value.strip()
    if current:
        records.append(current)
    return records


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


# ── Wi-Fi SSID ──────────────────────────────────────


def parse_netsh_ssid(output: str) -> str | None:
    """``netsh wlan show interfaces`` (Windows)."""
    match = _NETSH_SSID.search(output)
    return match.group(1) if match else None


def parse_nmcli_ssid(output: str) -> str | None:
    """``nmcli -t -f active,ssid dev wifi`` (Linux, terse mode)."""
    for line in output.splitlines():
        active, sep, ssid = line.partition(":")
        if sep and active.strip() == "yes" and ssid:
            return ssid.replace("\\:", ":").strip() or None
    return None


def parse_airport_ssid(output: str) -> str | None:
    """``networksetup -getairportnetwork <iface>`` (macOS)."""
    match = _AIRPORT_SSID.search(output)
    return match.group(1) if match else None


# ── adapter counters ────────────────────────────────


def parse_netadapter_statistics(output: str) -> AdapterCounters | None:
    """``Get-NetAdapterStatistics | Format-List SentBytes, ReceivedBytes``."""
    for record in parse_list_blocks(output):
        sent = _to_int(record.get("SentBytes"))
        received = _to_int(record.get("ReceivedBytes"))
        if sent is not None and received is not None:
            return AdapterCounters(sent_bytes=sent, received_bytes=received)
    return None


def parse_ip_link_statistics(output: str) -> AdapterCounters | None:
    """``ip -s link show <iface>`` (Linux)."""
    rx = _IP_LINK_RX.search(output)
    tx = _IP_LINK_TX.search(output)
    if not rx or not tx:
        return None
    return AdapterCounters(sent_bytes=int(tx.group(1)), received_bytes=int(rx.group(1)))


def parse_netstat_interface(output: str, iface: str) -> AdapterCounters | None:
    """``netstat -ib -I <iface>`` (macOS). Uses the first row for the link."""
    lines = [line.split() for line in output.splitlines() if line.strip()]
    if not lines:
        return None
    header = lines[0]
    try:
        ibytes = header.index("Ibytes")
        obytes = header.index("Obytes")
    except ValueError:
        return None
    for row in lines[1:]:
        # rows without an address column are one field short; align from the right
        offset = len(header) - len(row)
        if row[0] != iface:
            continue
        try:
            received = int(row[ibytes - offset])
            sent = int(row[obytes - offset])
        except (IndexError, ValueError):
            continue
        return AdapterCounters(sent_bytes=sent, received_bytes=received)
    return None


# ── power plan ──────────────────────────────────────


def parse_powercfg_scheme(output: str) -> str | None:
    """``powercfg /getactivescheme`` (Windows)."""
    match = _POWERCFG_SCHEME.search(output)
    return match.group(1).strip() if match else None


def parse_power_profile(output: str) -> str | None:
    """``powerprofilesctl get`` (Linux)."""
    profile = output.strip().splitlines()[0].strip() if output.strip() else ""
    return profile.replace("-", " ").title() if profile else None


# ── BIOS ────────────────────────────────────────────


def parse_win32_bios(output: str) -> RawBios | None:
    """``Get-CimInstance Win32_BIOS | Format-List Manufacturer, SMBIOSBIOSVersion, ReleaseDate``."""
    records = parse_list_blocks(output)
    if not records:
        return None
    record = records[0]
    release = record.get("ReleaseDate") or None
    if release and re.fullmatch(r"\d{8}.*", release):
        # WMI datetime: yyyymmddHHMMSS.mmmmmm+UUU
        release = f"{release[:4]}-{release[4:6]}-{release[6:8]}"
    return RawBios(
        vendor=record.get("Manufacturer") or None,
        version=record.get("SMBIOSBIOSVersion") or None,
        release_date=release,
    )


# ── graphics ────────────────────────────────────────


def parse_video_controllers(output: str) -> tuple[list[RawController], list[RawDisplay]]:
    """``Get-CimInstance Win32_VideoController | Format-List ...`` (Windows).

    Each active controller also yields the display it is currently driving.
    """
    controllers: list[RawController] = []
    displays: list[RawDisplay] = []
    for index, record in enumerate(parse_list_blocks(output)):
        ram = _to_int(record.get("AdapterRAM"))
        controllers.append(
            RawController(
                vendor=record.get("AdapterCompatibility") or None,
                model=record.get("Name") or None,
                vram=ram / (1024 * 1024) if ram is not None else None,
            )
        )
        width = _to_int(record.get("CurrentHorizontalResolution"))
        height = _to_int(record.get("CurrentVerticalResolution"))
        if width and height:
            displays.append(
                RawDisplay(
                    model=record.get("Name") or None,
                    main=index == 0,
                    resolution_x=width,
                    resolution_y=height,
                    pixel_depth=_to_int(record.get("CurrentBitsPerPixel")),
                )
            )
    return controllers, displays


def parse_lspci_controllers(output: str) -> list[RawController]:
    """``lspci -mm`` (Linux). VRAM is not exposed here."""
    controllers: list[RawController] = []
    for line in output.splitlines():
        match = _LSPCI_LINE.match(line)
        if not match:
            continue
        cls = match.group("cls").lower()
        if "vga" in cls or "3d" in cls or "display" in cls:
            controllers.append(
                RawController(vendor=match.group("vendor"), model=match.group("device"))
            )
    return controllers


def parse_xrandr_displays(output: str) -> list[RawDisplay]:
    """``xrandr --current`` (Linux/X11)."""
    depth_match = _XRANDR_DEPTH.search(output)
    depth = int(depth_match.group(1)) if depth_match else None
    displays: list[RawDisplay] = []
    for match in _XRANDR_OUTPUT.finditer(output):
        displays.append(
            RawDisplay(
                model=match.group("name"),
                main=bool(match.group("primary")),
                resolution_x=int(match.group("x")),
                resolution_y=int(match.group("y")),
                pixel_depth=depth,
            )
        )
    return displays


# ── security ────────────────────────────────────────


def parse_firewall_profile(output: str) -> FirewallStatus:
    """``netsh advfirewall show currentprofile`` (Windows)."""
    state = _FIREWALL_STATE.search(output)
    profile = _FIREWALL_PROFILE.search(output)
    return FirewallStatus(
        enabled=bool(state) and state.group(1).upper() == "ON",
        profile=profile.group(1) if profile else "Unknown",
    )


def parse_antivirus_products(output: str) -> AntivirusStatus:
    """``wmic /namespace:\\\\root\\SecurityCenter2 path AntiVirusProduct get displayName``."""
    products = [
        line.strip()
        for line in output.splitlines()
        if line.strip() and line.strip().lower() != "displayname"
    ]
    return AntivirusStatus(installed=bool(products), products=products)

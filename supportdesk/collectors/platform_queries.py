from __future__ import annotations

import asyncio
import logging
import platform

from supportdesk.collectors import parsers
from supportdesk.models.probe import (
    AdapterCounters,
    RawBios,
    RawController,
    RawDisplay,
    RawInterfaceStats,
)
from supportdesk.models.security import SecurityStatus

logger = logging.getLogger(__name__)

WINDOWS = "Windows"
LINUX = "Linux"
MACOS = "Darwin"


def _powershell(script: str) -> list[str]:
    return ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]


def _ps_quote(value: str) -> str:
    """Single-quoted PowerShell literal; embedded quotes are doubled."""
    return "'" + value.replace("'", "''") + "'"


async def _reap(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


class CommandRunner:
    """Runs OS-native commands without blocking the event loop.

    ``run()`` returns stdout, or ``None`` when the command is missing, exits
    non-zero, or exceeds ``timeout``. It never raises for those cases.
    """

    def __init__(self, timeout: float = 3.0) -> None:
        self.timeout = timeout

    async def run(self, *argv: str) -> str | None:
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            logger.debug("Command %s unavailable: %s", argv[0], exc)
            return None
        except OSError as exc:
            logger.debug("Command %s could not start: %s", argv[0], exc)
            return None

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Command %s timed out after %.1fs", argv[0], self.timeout)
            return None
        finally:
            # also reached when the caller is cancelled mid-command
            if proc.returncode is None:
                await _reap(proc)

        if proc.returncode != 0:
            logger.debug(
                "Command %s exited %s: %s",
                argv[0],
                proc.returncode,
                stderr.decode("utf-8", errors="replace").strip()[:200],
            )
            return None
        return stdout.decode("utf-8", errors="replace")


class PlatformQueries:
    """Typed queries backed by platform commands and the parsers module.

    Each method picks the command for the current OS, returns ``None`` when the
    OS has no such command or its output cannot be parsed.
    """

    def __init__(self, runner: CommandRunner, system: str | None = None) -> None:
        self._runner = runner
        self.system = system or platform.system()

    # ── network ─────────────────────────────────────

    async def wifi_ssid(self, iface: str = "en0") -> str | None:
        if self.system == WINDOWS:
            output = await self._runner.run("netsh", "wlan", "show", "interfaces")
            return parsers.parse_netsh_ssid(output) if output else None
        if self.system == LINUX:
            output = await self._runner.run("nmcli", "-t", "-f", "active,ssid", "dev", "wifi")
            return parsers.parse_nmcli_ssid(output) if output else None
        if self.system == MACOS:
            output = await self._runner.run("networksetup", "-getairportnetwork", iface)
            return parsers.parse_airport_ssid(output) if output else None
        return None

    async def adapter_counters(self, iface: str) -> AdapterCounters | None:
        if self.system == WINDOWS:
            output = await self._runner.run(
                *_powershell(
                    f"Get-NetAdapterStatistics -Name {_ps_quote(iface)} | "
                    "Format-List SentBytes, ReceivedBytes"
                )
            )
            return parsers.parse_netadapter_statistics(output) if output else None
        if self.system == LINUX:
            output = await self._runner.run("ip", "-s", "link", "show", iface)
            return parsers.parse_ip_link_statistics(output) if output else None
        if self.system == MACOS:
            output = await self._runner.run("netstat", "-ib", "-I", iface)
            return parsers.parse_netstat_interface(output, iface) if output else None
        return None

    async def adapter_throughput(self, iface: str, window: float = 1.0) -> RawInterfaceStats | None:
        """Sample the counters twice, ``window`` seconds apart."""
        window = max(window, 0.1)
        before = await self.adapter_counters(iface)
        if before is None:
            return None
        await asyncio.sleep(window)
        after = await self.adapter_counters(iface)
        if after is None:
            return None
        return RawInterfaceStats(
            iface=iface,
            tx_sec=max(after.sent_bytes - before.sent_bytes, 0) / window,
            rx_sec=max(after.received_bytes - before.received_bytes, 0) / window,
        )

    # ── power / firmware ────────────────────────────

    async def power_plan(self) -> str | None:
        if self.system == WINDOWS:
            output = await self._runner.run("powercfg", "/getactivescheme")
            return parsers.parse_powercfg_scheme(output) if output else None
        if self.system == LINUX:
            output = await self._runner.run("powerprofilesctl", "get")
            return parsers.parse_power_profile(output) if output else None
        return None

    async def bios(self) -> RawBios | None:
        if self.system != WINDOWS:
            return None
        output = await self._runner.run(
            *_powershell(
                "Get-CimInstance Win32_BIOS | "
                "Format-List Manufacturer, SMBIOSBIOSVersion, ReleaseDate"
            )
        )
        return parsers.parse_win32_bios(output) if output else None

    # ── graphics ────────────────────────────────────

    async def graphics(self) -> tuple[list[RawController], list[RawDisplay]]:
        if self.system == WINDOWS:
            output = await self._runner.run(
                *_powershell(
                    "Get-CimInstance Win32_VideoController | Format-List Name, "
                    "AdapterCompatibility, AdapterRAM, CurrentHorizontalResolution, "
                    "CurrentVerticalResolution, CurrentBitsPerPixel"
                )
            )
            return parsers.parse_video_controllers(output) if output else ([], [])
        if self.system == LINUX:
            lspci, xrandr = await asyncio.gather(
                self._runner.run("lspci", "-mm"),
                self._runner.run("xrandr", "--current"),
            )
            controllers = parsers.parse_lspci_controllers(lspci) if lspci else []
            displays = parsers.parse_xrandr_displays(xrandr) if xrandr else []
            return controllers, displays
        return [], []

    # ── security ────────────────────────────────────

    async def security_status(self) -> SecurityStatus:
        if self.system != WINDOWS:
            return SecurityStatus()
        firewall_out, antivirus_out = await asyncio.gather(
            self._runner.run("netsh", "advfirewall", "show", "currentprofile"),
            self._runner.run(
                "wmic",
                "/namespace:\\\\root\\SecurityCenter2",
                "path",
                "AntiVirusProduct",
                "get",
                "displayName",
            ),
        )
        return SecurityStatus(
            firewall=parsers.parse_firewall_profile(firewall_out) if firewall_out else None,
            antivirus=parsers.parse_antivirus_products(antivirus_out) if antivirus_out else None,
        )


def default_queries(timeout: float = 3.0) -> PlatformQueries:
    return PlatformQueries(CommandRunner(timeout=timeout))

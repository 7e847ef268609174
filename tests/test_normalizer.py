"""Tests for supportdesk.engine.normalizer."""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from supportdesk.engine.normalizer import (
    DETECTION_FAILED_NAME,
    FIELD_POLICIES,
    NO_ADAPTERS_NAME,
    FieldPolicy,
    coerce_number,
    format_throughput,
    is_meaningful_adapter,
    needs_counter_fallback,
    normalize,
    normalize_battery,
    normalize_disk,
    normalize_memory,
    normalize_network,
    normalize_temperatures,
    ratio_percent,
    resolve_disk_type,
)
from supportdesk.models.probe import (
    PlatformExtras,
    ProbeResults,
    RawBattery,
    RawBios,
    RawCpu,
    RawDiskLayout,
    RawDisplay,
    RawFsEntry,
    RawGraphics,
    RawInterface,
    RawInterfaceStats,
    RawLoad,
    RawMemory,
    RawTemperature,
    RawTime,
)
from supportdesk.models.snapshot import AdapterType, Carrier


def _iface(name: str = "eth0", **overrides) -> RawInterface:
    defaults = dict(
        iface=name,
        type="ethernet",
        ip4="10.0.0.5",
        mac="2c:f0:5d:01:02:03",
        operstate="up",
    )
    defaults.update(overrides)
    return RawInterface(**defaults)


# ── numeric helpers ───────────────────────────────────


class TestCoerceNumber:
    @pytest.mark.parametrize("value", [None, "NaN", "abc", float("nan"), float("inf"), True, [1]])
    def test_rejects_non_finite_and_non_numeric(self, value):
        assert coerce_number(value) is None

    @pytest.mark.parametrize("value, expected", [(5, 5.0), ("12.5", 12.5), (" 3 ", 3.0), (0, 0.0)])
    def test_accepts_numbers_and_numeric_strings(self, value, expected):
        assert coerce_number(value) == expected

    def test_ratio_percent_zero_total(self):
        assert ratio_percent(10.0, 0.0) == 0.0

    def test_ratio_percent_clamped(self):
        assert ratio_percent(150.0, 100.0) == 100.0

    def test_ratio_percent_two_decimals(self):
        assert ratio_percent(1.0, 3.0) == 33.33


# ── field policy table ────────────────────────────────


class TestFieldPolicies:
    def test_every_policy_falls_back_on_empty_results(self):
        results = ProbeResults()
        for name, policy in FIELD_POLICIES.items():
            assert policy.resolve(results) == policy.fallback, name

    def test_invalid_core_count_is_not_available(self):
        results = ProbeResults(cpu=RawCpu(brand="Xeon", cores="lots"))
        assert FIELD_POLICIES["cpu.core_count"].resolve(results) == "N/A"
        assert FIELD_POLICIES["cpu.model"].resolve(results) == "Xeon"

    def test_negative_load_uses_fallback(self):
        results = ProbeResults(load=RawLoad(current_load=-3))
        assert FIELD_POLICIES["cpu.current_load_percent"].resolve(results) == 0.0

    @pytest.mark.parametrize("load, expected", [(250, 100.0), ("100.004", 100.0), (37.456, 37.46)])
    def test_load_clamped_to_percent(self, load, expected):
        results = ProbeResults(load=RawLoad(current_load=load))
        assert FIELD_POLICIES["cpu.current_load_percent"].resolve(results) == expected
        assert normalize(results).cpu.current_load_percent == expected

    def test_uptime_truncated_to_int(self):
        results = ProbeResults(time=RawTime(uptime=3661.9))
        assert FIELD_POLICIES["uptime_seconds"].resolve(results) == 3661

    def test_custom_policy(self):
        policy = FieldPolicy(lambda r: r.hostname, lambda v: v.isupper(), "lower", str.lower)
        assert policy.resolve(ProbeResults(hostname="HOST")) == "host"
        assert policy.resolve(ProbeResults(hostname="host")) == "lower"


# ── memory ────────────────────────────────────────────


class TestMemory:
    def test_usage_percent(self):
        memory = normalize_memory(ProbeResults(memory=RawMemory(total=16_000_000_000, used=8_000_000_000)))
        assert memory.usage_percent == 50.0
        assert memory.free_bytes == 8_000_000_000

    @pytest.mark.parametrize("total", [0, "NaN", None, float("inf")])
    def test_zero_or_non_finite_total(self, total):
        memory = normalize_memory(ProbeResults(memory=RawMemory(total=total, used=1024)))
        assert memory.usage_percent == 0
        assert not math.isnan(memory.usage_percent)
        assert memory.total_bytes == 0

    def test_failed_probe(self):
        memory = normalize_memory(ProbeResults())
        assert memory.total_bytes == 0
        assert memory.usage_percent == 0.0


# ── disks ─────────────────────────────────────────────


class TestDisks:
    @pytest.mark.parametrize("size", ["NaN", None, "garbage"])
    def test_invalid_size_zeroes_entry(self, size):
        disk = normalize_disk(RawFsEntry(mount="C:\\", type="NTFS", size=size, used=100), [])
        assert (disk.total_bytes, disk.used_bytes, disk.free_bytes, disk.usage_percent) == (0, 0, 0, 0)

    def test_usage_and_free(self):
        disk = normalize_disk(RawFsEntry(mount="/", type="ext4", size=200, used=50), [])
        assert disk.free_bytes == 150
        assert disk.usage_percent == 25.0

    def test_type_from_layout_when_fs_type_missing(self):
        layout = [RawDiskLayout(device="D:", type="HD")]
        assert resolve_disk_type(RawFsEntry(mount="d:\\", type=None), layout) == "HD"

    def test_fs_type_wins_over_layout(self):
        layout = [RawDiskLayout(device="C:", type="SSD")]
        assert resolve_disk_type(RawFsEntry(mount="C:\\", type="NTFS"), layout) == "NTFS"

    def test_unknown_type(self):
        assert resolve_disk_type(RawFsEntry(mount="/data", type=""), []) == "Unknown"

    def test_order_preserved(self):
        results = ProbeResults(
            fs_size=[
                RawFsEntry(mount="/b", size=1, used=0),
                RawFsEntry(mount="/a", size=1, used=0),
            ]
        )
        assert [d.mount for d in normalize(results).disks] == ["/b", "/a"]


# ── network ───────────────────────────────────────────


class TestAdapterFiltering:
    def test_zero_mac_excluded(self):
        assert not is_meaningful_adapter(_iface(mac="00:00:00:00:00:00"))

    def test_bluetooth_type_excluded(self):
        assert not is_meaningful_adapter(_iface(type="bluetooth"))

    @pytest.mark.parametrize("declared", ["ethernet", "wireless"])
    def test_loopback_pseudo_interface_excluded(self, declared):
        iface = _iface("Loopback Pseudo-Interface 1", type=declared, mac="aa:bb:cc:dd:ee:ff")
        assert not is_meaningful_adapter(iface)

    def test_bluetooth_name_excluded(self):
        assert not is_meaningful_adapter(_iface("Bluetooth Network Connection", type="wireless"))

    def test_virtual_name_excluded(self):
        assert not is_meaningful_adapter(_iface("Hyper-V Virtual Ethernet Adapter"))

    @pytest.mark.parametrize("mac", ["", "   ", None, "MacAddress", "Status", "LinkSpeed 1 Gbps", "Name"])
    def test_missing_or_header_mac_excluded(self, mac):
        assert not is_meaningful_adapter(_iface(mac=mac))

    def test_physical_adapters_kept(self):
        assert is_meaningful_adapter(_iface())
        assert is_meaningful_adapter(_iface("wlan0", type="Wireless"))


class TestNetwork:
    def test_sentinel_when_nothing_survives(self):
        network = normalize_network(
            ProbeResults(interfaces=[_iface("Bluetooth PAN", type="bluetooth")])
        )
        assert len(network.adapters) == 1
        sentinel = network.adapters[0]
        assert sentinel.name == NO_ADAPTERS_NAME
        assert sentinel.status.carrier == Carrier.DISCONNECTED
        assert network.connected_adapter is None

    def test_sentinel_when_probe_failed(self):
        network = normalize_network(ProbeResults(interfaces=None))
        assert [a.name for a in network.adapters] == [DETECTION_FAILED_NAME]
        assert network.adapters[0].status.carrier == Carrier.ERROR
        assert network.connected_adapter is None

    def test_connected_adapter_is_first_connected(self):
        network = normalize_network(
            ProbeResults(
                interfaces=[
                    _iface("eth0", operstate="down"),
                    _iface("eth1", mac="2c:f0:5d:01:02:04"),
                    _iface("eth2", mac="2c:f0:5d:01:02:05"),
                ]
            )
        )
        assert [a.name for a in network.adapters] == ["eth0", "eth1", "eth2"]
        assert network.adapters[0].status.carrier == Carrier.DISCONNECTED
        assert network.connected_adapter == network.adapters[1]

    def test_no_connected_adapter(self):
        network = normalize_network(ProbeResults(interfaces=[_iface(operstate="down")]))
        assert network.connected_adapter is None

    def test_wifi_name_only_on_wireless(self):
        results = ProbeResults(
            interfaces=[_iface("wlan0", type="wireless"), _iface("eth0", mac="2c:f0:5d:01:02:09")],
            extras=PlatformExtras(wifi_ssid="Office"),
        )
        wlan, eth = normalize_network(results).adapters
        assert wlan.type == AdapterType.WIRELESS
        assert wlan.wifi_network_name == "Office"
        assert eth.wifi_network_name == "N/A"

    def test_ip_falls_back_to_ipv6_then_na(self):
        results = ProbeResults(
            interfaces=[
                _iface("eth0", ip4=None, ip6="fe80::1"),
                _iface("eth1", ip4=None, ip6=None, mac="2c:f0:5d:01:02:04"),
            ]
        )
        assert [a.ip for a in normalize_network(results).adapters] == ["fe80::1", "N/A"]

    def test_throughput_prefers_stats_source(self):
        results = ProbeResults(
            interfaces=[_iface()],
            interface_stats=[RawInterfaceStats(iface="eth0", tx_sec=125_000, rx_sec=250_000)],
            extras=PlatformExtras(
                adapter_stats={"eth0": RawInterfaceStats(iface="eth0", tx_sec=1, rx_sec=1)}
            ),
        )
        adapter = normalize_network(results).adapters[0]
        assert adapter.upload_speed == "1.00 Mbps"
        assert adapter.download_speed == "2.00 Mbps"

    def test_throughput_falls_back_to_platform_counters(self):
        results = ProbeResults(
            interfaces=[_iface()],
            interface_stats=[RawInterfaceStats(iface="eth0", tx_sec="n/a", rx_sec=None)],
            extras=PlatformExtras(
                adapter_stats={"eth0": RawInterfaceStats(iface="eth0", tx_sec=250_000, rx_sec=0)}
            ),
        )
        adapter = normalize_network(results).adapters[0]
        assert adapter.upload_speed == "2.00 Mbps"
        assert adapter.download_speed == "0.00 Mbps"

    def test_throughput_not_available_when_both_sources_fail(self):
        adapter = normalize_network(ProbeResults(interfaces=[_iface()])).adapters[0]
        assert adapter.upload_speed == "N/A"
        assert adapter.download_speed == "N/A"

    def test_needs_counter_fallback(self):
        iface = _iface()
        assert needs_counter_fallback(iface, None)
        assert needs_counter_fallback(iface, [RawInterfaceStats(iface="eth0", tx_sec=1)])
        assert not needs_counter_fallback(iface, [RawInterfaceStats(iface="eth0", tx_sec=1, rx_sec=0)])

    def test_format_throughput(self):
        assert format_throughput(None) == "N/A"
        assert format_throughput(1_000_000 / 8) == "1.00 Mbps"


# ── battery / additional info ─────────────────────────


class TestBattery:
    def test_no_battery_is_none(self):
        assert normalize_battery(RawBattery(has_battery=False), "Balanced") is None
        assert normalize_battery(None, "Balanced") is None

    def test_unknown_percent(self):
        battery = normalize_battery(RawBattery(percent=-1, is_charging=None), "Unknown")
        assert battery.percentage == "N/A"
        assert battery.charging == "Unknown"

    def test_percent_and_charging(self):
        battery = normalize_battery(RawBattery(percent=76, is_charging=True), "Balanced")
        assert battery.percentage == "76%"
        assert battery.charging is True
        assert battery.power_plan == "Balanced"


class TestAdditionalInfo:
    def test_temperature_sentinel_omitted(self):
        assert normalize_temperatures(RawTemperature(main=-1, cores=[])) is None
        assert normalize_temperatures(RawTemperature(main=float("nan"))) is None

    def test_cores_only(self):
        temps = normalize_temperatures(RawTemperature(main=-1, cores=[40, "NaN"]))
        assert temps.cpu_c == "N/A"
        assert temps.cores_c == "40.0°C, N/A"

    def test_main_reading(self):
        temps = normalize_temperatures(RawTemperature(main=54.3))
        assert temps.cpu_c == "54.3°C"
        assert temps.cores_c == "N/A"

    def test_empty_sections_omitted(self):
        snapshot = normalize(
            ProbeResults(bios=RawBios(), temperature=RawTemperature(), graphics=RawGraphics())
        )
        assert snapshot.additional_info.is_empty
        assert snapshot.to_json()["additionalInfo"] == {}

    def test_bios_and_displays(self):
        snapshot = normalize(
            ProbeResults(
                bios=RawBios(vendor="LENOVO"),
                graphics=RawGraphics(
                    displays=[
                        RawDisplay(model="DP-1", main=True, resolution_x=2560, resolution_y=1440, pixel_depth=24),
                        RawDisplay(),
                    ]
                ),
            )
        )
        extra = snapshot.additional_info
        assert extra.bios.vendor == "LENOVO"
        assert extra.bios.version == "N/A"
        assert len(extra.display) == 1
        assert extra.display[0].resolution == "2560x1440"
        assert extra.display[0].is_main is True


# ── whole snapshot ────────────────────────────────────


class TestNormalize:
    def test_scenario_bluetooth_only_host(self):
        results = ProbeResults(
            memory=RawMemory(total=16_000_000_000, used=8_000_000_000),
            fs_size=[],
            interfaces=[_iface("Bluetooth PAN", type="bluetooth", mac="f0:18:98:aa:bb:cc")],
            graphics=RawGraphics(),
            battery=None,
        )
        snapshot = normalize(results)
        assert snapshot.memory.usage_percent == 50.0
        assert snapshot.disks == ()
        assert [a.name for a in snapshot.network.adapters] == [NO_ADAPTERS_NAME]
        assert snapshot.network.connected_adapter is None
        assert snapshot.graphics == ()
        assert snapshot.battery is None

    def test_all_probes_failed_still_complete(self):
        data = normalize(ProbeResults()).to_json()
        for key in (
            "platform", "hostname", "uptimeSeconds", "cpu", "memory", "disks",
            "network", "graphics", "battery", "additionalInfo",
        ):
            assert key in data
        assert data["cpu"]["coreCount"] == "N/A"
        assert data["hostname"] == "Unknown"

    def test_deterministic_given_timestamp(self):
        results = ProbeResults(hostname="box", cpu=RawCpu(brand="x", cores=2))
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert normalize(results, collected_at=at) == normalize(results, collected_at=at)

    def test_snapshot_is_immutable(self):
        snapshot = normalize(ProbeResults(hostname="box"))
        with pytest.raises(ValidationError):
            snapshot.hostname = "other"
        with pytest.raises(ValidationError):
            snapshot.memory.used_bytes = 1

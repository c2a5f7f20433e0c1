# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the aggregation engine.

Records are submitted through the service so every view is computed over
normalized, stored data.
"""

import pytest

from speed_monitor.analytics import JITTER_BUCKETS


def ts(hour, minute=0, day=19):
    return f"2026-10-{day:02d}T{hour:02d}:{minute:02d}:00.000Z"


class TestEmptyStore:
    """Test every view over an empty table."""

    def test_overall_stats_empty(self, service):
        """No records yields zero counts and null means."""
        stats = service.get_overall_stats()

        assert stats["overall"]["total_tests"] == 0
        assert stats["overall"]["total_devices"] == 0
        assert stats["overall"]["avg_download"] is None
        assert stats["per_device"] == []
        assert stats["hourly"] == []

    def test_other_views_empty(self, service):
        """Empty lists, never errors."""
        assert service.get_wifi_stats() == {"by_access_point": [], "by_ssid": [], "band_distribution": []}
        assert service.get_vpn_stats() == {"distribution": [], "comparison": []}
        assert service.get_jitter_stats() == {"distribution": [], "problem_devices": []}


class TestOverallStats:
    """Test overall and per-device statistics."""

    def test_two_device_scenario(self, service, submit):
        """Means are computed over success rows, per device and overall."""
        submit(device_id="A", timestamp_utc=ts(9), download_mbps=50.0)
        submit(device_id="A", timestamp_utc=ts(10), download_mbps=100.0)
        submit(device_id="B", timestamp_utc=ts(11), download_mbps=200.0)

        stats = service.get_overall_stats()

        assert stats["overall"]["total_tests"] == 3
        assert stats["overall"]["total_devices"] == 2
        assert stats["overall"]["avg_download"] == 116.67
        assert stats["overall"]["min_download"] == 50.0
        assert stats["overall"]["max_download"] == 200.0

        per_device = {row["device_id"]: row for row in stats["per_device"]}
        assert per_device["A"]["avg_download"] == 75.0
        assert per_device["A"]["test_count"] == 2
        assert per_device["B"]["avg_download"] == 200.0

    def test_failed_tests_excluded(self, service, submit):
        """Non-success rows never contribute to aggregates."""
        submit(device_id="A", timestamp_utc=ts(9), download_mbps=100.0)
        submit(device_id="A", timestamp_utc=ts(10), download_mbps=0.0, status="error", errors="timeout")
        submit(device_id="C", timestamp_utc=ts(11), status="error")

        stats = service.get_overall_stats()

        assert stats["overall"]["total_tests"] == 1
        assert stats["overall"]["avg_download"] == 100.0
        assert [row["device_id"] for row in stats["per_device"]] == ["A"]
        assert stats["per_device"][0]["last_test"] == ts(9)

    def test_per_device_ordered_by_last_test(self, service, submit):
        """Most recently active device comes first."""
        submit(device_id="A", timestamp_utc=ts(11))
        submit(device_id="B", timestamp_utc=ts(12))
        submit(device_id="C", timestamp_utc=ts(10))

        stats = service.get_overall_stats()
        assert [row["device_id"] for row in stats["per_device"]] == ["B", "A", "C"]

    def test_latest_context_uses_newest_timestamp(self, service, submit):
        """Context comes from the newest timestamp, not the newest insert."""
        submit(device_id="A", timestamp_utc=ts(12), hostname="late", vpn_status="connected", vpn_name="corp")
        submit(device_id="A", timestamp_utc=ts(11), hostname="early")

        row = service.get_overall_stats()["per_device"][0]

        assert row["hostname"] == "late"
        assert row["last_test"] == ts(12)
        assert row["vpn_status"] == "connected"
        assert row["vpn_name"] == "corp"

    def test_latest_context_tie_broken_by_id(self, service, submit):
        """Identical timestamps resolve to the most recently stored row."""
        submit(device_id="A", timestamp_utc=ts(12), hostname="old", app_version="1.0")
        submit(device_id="A", timestamp_utc=ts(12), hostname="new", app_version="1.1")

        row = service.get_overall_stats()["per_device"][0]
        assert row["hostname"] == "new"
        assert row["app_version"] == "1.1"


class TestHourlyTrend:
    """Test the rolling hourly trend (fixed clock at 2026-10-19 12:30 UTC)."""

    def test_window_and_buckets(self, service, submit):
        """Only the last 24 hours are bucketed, oldest hour first."""
        submit(device_id="A", timestamp_utc=ts(12, 10), download_mbps=100.0)
        submit(device_id="A", timestamp_utc=ts(12, 20), download_mbps=200.0)
        submit(device_id="B", timestamp_utc=ts(10, 5), download_mbps=50.0)
        submit(device_id="B", timestamp_utc=ts(11, 0, day=18), download_mbps=10.0)
        submit(device_id="B", timestamp_utc=ts(13, 0), download_mbps=10.0)

        hourly = service.get_overall_stats()["hourly"]

        assert [row["hour"] for row in hourly] == ["2026-10-19 10:00", "2026-10-19 12:00"]
        assert hourly[0]["test_count"] == 1
        assert hourly[1]["test_count"] == 2
        assert hourly[1]["avg_download"] == 150.0

    def test_window_edges(self, service, submit):
        """The window is (now - 24h, now]."""
        submit(device_id="A", timestamp_utc="2026-10-18T12:30:00.000Z")
        submit(device_id="A", timestamp_utc="2026-10-19T12:30:00.000Z")

        hourly = service.get_overall_stats()["hourly"]
        assert [row["hour"] for row in hourly] == ["2026-10-19 12:00"]

    def test_window_boundary_ignores_future_timestamps(self, service, submit):
        """Records stamped after now are not trended."""
        submit(device_id="A", timestamp_utc="2026-10-19T12:30:00.001Z")
        assert service.get_overall_stats()["hourly"] == []


class TestWifiStats:
    """Test access point, SSID and band statistics."""

    def test_placeholder_bssid_excluded(self, service, submit):
        """Null and 'none' BSSIDs are not access points."""
        submit(device_id="A", ssid="Office", bssid="aa:aa", band="5GHz", rssi_dbm=-50)
        submit(device_id="B", ssid="Office", bssid="aa:aa", band="5GHz", rssi_dbm=-54)
        submit(device_id="A", ssid="Office", bssid="none", band="2.4GHz")
        submit(device_id="C", ssid="Office", bssid="NONE")
        submit(device_id="C", ssid="Cellular")

        wifi = service.get_wifi_stats()

        assert [row["bssid"] for row in wifi["by_access_point"]] == ["aa:aa"]
        access_point = wifi["by_access_point"][0]
        assert access_point["test_count"] == 2
        assert access_point["device_count"] == 2
        assert access_point["avg_rssi"] == -52
        assert isinstance(access_point["avg_rssi"], int)

    def test_access_point_context_from_latest_row(self, service, submit):
        """SSID, band and channel of an AP come from its latest test."""
        submit(device_id="A", timestamp_utc=ts(9), ssid="Old", bssid="aa:aa", band="2.4GHz", channel=6)
        submit(device_id="A", timestamp_utc=ts(10), ssid="New", bssid="aa:aa", band="5GHz", channel=36)

        access_point = service.get_wifi_stats()["by_access_point"][0]
        assert (access_point["ssid"], access_point["band"], access_point["channel"]) == ("New", "5GHz", 36)

    def test_access_points_ordered_by_test_count(self, service, submit):
        """Busiest access point first."""
        submit(device_id="A", bssid="bb:bb")
        submit(device_id="A", bssid="aa:aa")
        submit(device_id="B", bssid="aa:aa")

        rows = service.get_wifi_stats()["by_access_point"]
        assert [row["bssid"] for row in rows] == ["aa:aa", "bb:bb"]

    def test_by_ssid_counts_real_access_points(self, service, submit):
        """ap_count ignores placeholder BSSIDs."""
        submit(device_id="A", ssid="Office", bssid="aa:aa")
        submit(device_id="B", ssid="Office", bssid="bb:bb")
        submit(device_id="C", ssid="Office", bssid="none")
        submit(device_id="C", ssid="Home", bssid="cc:cc")

        by_ssid = {row["ssid"]: row for row in service.get_wifi_stats()["by_ssid"]}

        assert by_ssid["Office"]["test_count"] == 3
        assert by_ssid["Office"]["device_count"] == 3
        assert by_ssid["Office"]["ap_count"] == 2
        assert by_ssid["Home"]["ap_count"] == 1

    def test_band_distribution(self, service, submit):
        """Bands are counted with their mean download."""
        submit(device_id="A", band="5GHz", download_mbps=300.0)
        submit(device_id="A", band="5GHz", download_mbps=100.0)
        submit(device_id="B", band="2.4GHz", download_mbps=40.0)
        submit(device_id="B", band="none")

        bands = service.get_wifi_stats()["band_distribution"]
        assert bands == [
            {"band": "5GHz", "count": 2, "avg_download": 200.0},
            {"band": "2.4GHz", "count": 1, "avg_download": 40.0},
        ]


class TestVpnStats:
    """Test VPN usage statistics."""

    def test_comparison(self, service, submit):
        """VPN On and VPN Off are compared on success rows."""
        submit(device_id="A", vpn_status="connected", vpn_name="corp", download_mbps=10.0)
        submit(device_id="B", vpn_status="disconnected", download_mbps=100.0)
        submit(device_id="C", vpn_status="connected", vpn_name="corp", download_mbps=99.0, status="error")

        comparison = service.get_vpn_stats()["comparison"]

        assert [row["mode"] for row in comparison] == ["VPN On", "VPN Off"]
        assert comparison[0]["avg_download"] == 10.0
        assert comparison[0]["test_count"] == 1
        assert comparison[1]["avg_download"] == 100.0

    def test_unknown_status_counts_as_off(self, service, submit):
        """Anything other than 'connected' is VPN Off."""
        submit(device_id="A", vpn_status="reconnecting", download_mbps=80.0)

        comparison = service.get_vpn_stats()["comparison"]
        assert [row["mode"] for row in comparison] == ["VPN Off"]

    def test_distribution_groups_by_status_and_name(self, service, submit):
        """Distribution is keyed by (vpn_status, vpn_name), largest first."""
        submit(device_id="A", vpn_status="connected", vpn_name="corp")
        submit(device_id="B", vpn_status="connected", vpn_name="corp")
        submit(device_id="C", vpn_status="connected", vpn_name="personal")
        submit(device_id="D")

        distribution = service.get_vpn_stats()["distribution"]
        keys = [(row["vpn_status"], row["vpn_name"], row["count"]) for row in distribution]

        assert keys[0] == ("connected", "corp", 2)
        assert set(keys[1:]) == {("connected", "personal", 1), ("disconnected", "none", 1)}


class TestJitterStats:
    """Test jitter distribution and problem devices."""

    def test_bucket_boundaries(self, service, submit):
        """Lower bounds are inclusive."""
        for jitter in (4.99, 5.0, 9.99, 10.0, 19.99, 20.0, 49.99, 50.0, 120.0):
            submit(device_id="A", jitter_ms=jitter)

        distribution = service.get_jitter_stats()["distribution"]
        assert [(row["bucket"], row["count"]) for row in distribution] == [
            ("< 5ms", 1),
            ("5-10ms", 2),
            ("10-20ms", 2),
            ("20-50ms", 2),
            ("> 50ms", 2),
        ]

    def test_only_populated_buckets_returned(self, service, submit):
        """Empty buckets are omitted."""
        submit(device_id="A", jitter_ms=10.0, download_mbps=80.0)

        distribution = service.get_jitter_stats()["distribution"]
        assert distribution == [{"bucket": "10-20ms", "count": 1, "avg_download": 80.0}]

    def test_bucket_labels(self):
        """Bucket labels are fixed."""
        assert [label for label, _ in JITTER_BUCKETS] == ["< 5ms", "5-10ms", "10-20ms", "20-50ms", "> 50ms"]

    def test_problem_device_thresholds(self, service, submit):
        """Devices qualify on mean jitter or mean packet loss."""
        submit(device_id="jittery", jitter_ms=30.0)
        submit(device_id="lossy", jitter_ms=2.0, packet_loss_pct=2.5)
        submit(device_id="edge", jitter_ms=20.0, packet_loss_pct=1.0)
        submit(device_id="fine", jitter_ms=3.0)

        problems = service.get_jitter_stats()["problem_devices"]

        assert [row["device_id"] for row in problems] == ["jittery", "lossy"]
        assert problems[1]["avg_packet_loss"] == 2.5

    def test_problem_devices_use_success_rows(self, service, submit):
        """Failed tests do not make a device a problem."""
        submit(device_id="A", jitter_ms=2.0)
        submit(device_id="A", jitter_ms=500.0, status="error")

        assert service.get_jitter_stats()["problem_devices"] == []

    def test_problem_devices_capped_and_sorted(self, service, submit):
        """At most 20 devices, worst jitter first."""
        for i in range(25):
            submit(device_id=f"dev-{i:02d}", jitter_ms=21.0 + i, hostname=f"host-{i}")

        problems = service.get_jitter_stats()["problem_devices"]

        assert len(problems) == 20
        jitters = [row["avg_jitter"] for row in problems]
        assert jitters == sorted(jitters, reverse=True)
        assert problems[0]["device_id"] == "dev-24"
        assert problems[0]["hostname"] == "host-24"
        assert problems[0]["test_count"] == 1


class TestDeviceHealth:
    """Test the per-device health summary."""

    def test_unknown_device(self, service):
        """Unknown devices report zero tests and no recent history."""
        health = service.get_device_health("ghost")

        assert health["health"]["device_id"] == "ghost"
        assert health["health"]["total_tests"] == 0
        assert health["health"]["successful_tests"] == 0
        assert health["health"]["avg_download"] is None
        assert health["health"]["hostname"] is None
        assert health["recent_tests"] == []

    def test_health_summary(self, service, submit):
        """Totals count every test, means only successful ones."""
        submit(device_id="A", timestamp_utc=ts(9), download_mbps=100.0, hostname="laptop", ssid="Office")
        submit(device_id="A", timestamp_utc=ts(10), download_mbps=50.0, hostname="laptop", ssid="Office")
        submit(device_id="A", timestamp_utc=ts(11), status="error", hostname="laptop", ssid="Cafe",
               bssid="cc:cc", band="2.4GHz", vpn_status="connected", vpn_name="corp")
        submit(device_id="B", timestamp_utc=ts(12), download_mbps=999.0)

        result = service.get_device_health("A")
        health = result["health"]

        assert health["total_tests"] == 3
        assert health["successful_tests"] == 2
        assert health["avg_download"] == 75.0
        assert health["last_seen"] == ts(11)
        assert health["hostname"] == "laptop"
        assert health["current_ssid"] == "Cafe"
        assert health["current_bssid"] == "cc:cc"
        assert health["current_band"] == "2.4GHz"
        assert health["current_vpn_status"] == "connected"
        assert health["current_vpn_name"] == "corp"

        assert [row["timestamp_utc"] for row in result["recent_tests"]] == [ts(11), ts(10), ts(9)]
        assert result["recent_tests"][0]["status"] == "error"

    def test_recent_tests_limited(self, service, submit):
        """Recent tests are capped at 20."""
        for i in range(25):
            submit(device_id="A", timestamp_utc=ts(10, i))

        result = service.get_device_health("A")

        assert result["health"]["total_tests"] == 25
        assert len(result["recent_tests"]) == 20
        assert result["recent_tests"][0]["timestamp_utc"] == ts(10, 24)

    @pytest.mark.parametrize("device_id", ["A'; DROP TABLE speed_results; --", "%", "_"])
    def test_device_id_is_matched_literally(self, service, submit, device_id):
        """Device ids are bound parameters, not SQL."""
        submit(device_id="A")

        assert service.get_device_health(device_id)["health"]["total_tests"] == 0
        assert service.get_service_status()["total_results"] == 1

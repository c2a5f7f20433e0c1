# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Aggregation engine for speed monitor analytics.

Computes the derived views served to dashboards directly from the
speed_results table on demand (pull model, nothing is materialized).

Conventions shared by every view:
- Only status = 'success' rows are aggregated, except device health which
  also counts failed tests.
- Means are rounded to 2 decimals, RSSI means to whole dBm.
- "Latest" values of a group come from the row with the greatest
  timestamp_utc, ties broken by the greatest id.
- Each view runs inside one read transaction and sees a single snapshot.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List

from ..processing.database.sqlite_client import SQLiteClient
from ..shared.errors import StorageError
from ..shared.record_schema import TelemetryRecord

logger = logging.getLogger(__name__)

SUCCESS = "status = 'success'"

# (label, exclusive upper bound); the last bucket is open-ended
JITTER_BUCKETS = (
    ("< 5ms", 5.0),
    ("5-10ms", 10.0),
    ("10-20ms", 20.0),
    ("20-50ms", 50.0),
    ("> 50ms", None),
)

VPN_MODES = ("VPN On", "VPN Off")

DEFAULT_RECENT_TESTS = 20
DEFAULT_PROBLEM_DEVICE_LIMIT = 20
DEFAULT_PROBLEM_JITTER_MS = 20.0
DEFAULT_PROBLEM_PACKET_LOSS_PCT = 1.0
DEFAULT_HOURLY_WINDOW_HOURS = 24


def _jitter_bucket_case() -> str:
    """SQL CASE mapping jitter_ms to its bucket index (lower bound inclusive)."""
    clauses = [
        f"WHEN jitter_ms < {upper} THEN {index}"
        for index, (_, upper) in enumerate(JITTER_BUCKETS)
        if upper is not None
    ]
    return f"CASE {' '.join(clauses)} ELSE {len(JITTER_BUCKETS) - 1} END"


def _latest_per(column: str, where: str) -> str:
    """CTE ranking rows within each group, newest first (rn = 1 is the latest)."""
    return f"""
        latest AS (
            SELECT *
            FROM (
                SELECT
                    *,
                    ROW_NUMBER() OVER (
                        PARTITION BY {column}
                        ORDER BY timestamp_utc DESC, id DESC
                    ) AS rn
                FROM speed_results
                WHERE {where}
            )
            WHERE rn = 1
        )
    """


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AggregationEngine:
    """
    Read-only analytics over the telemetry store.

    Every public method returns plain dictionaries/lists ready to serialize.
    Empty tables produce empty lists (and null means), never errors.
    """

    def __init__(
        self,
        client: SQLiteClient,
        recent_tests: int = DEFAULT_RECENT_TESTS,
        problem_device_limit: int = DEFAULT_PROBLEM_DEVICE_LIMIT,
        problem_jitter_ms: float = DEFAULT_PROBLEM_JITTER_MS,
        problem_packet_loss_pct: float = DEFAULT_PROBLEM_PACKET_LOSS_PCT,
        hourly_window_hours: int = DEFAULT_HOURLY_WINDOW_HOURS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize aggregation engine.

        Args:
            client: SQLiteClient instance
            recent_tests: Raw records returned with device health
            problem_device_limit: Maximum problem devices reported
            problem_jitter_ms: Mean jitter above which a device is a problem
            problem_packet_loss_pct: Mean packet loss above which a device is a problem
            hourly_window_hours: Width of the rolling window for the hourly trend
            clock: Source of the current UTC time
        """
        self.client = client
        self.recent_tests = recent_tests
        self.problem_device_limit = problem_device_limit
        self.problem_jitter_ms = problem_jitter_ms
        self.problem_packet_loss_pct = problem_packet_loss_pct
        self.hourly_window_hours = hourly_window_hours
        self.clock = clock

    @contextmanager
    def _snapshot(self, view: str) -> Iterator[sqlite3.Connection]:
        try:
            with self.client.snapshot() as conn:
                yield conn
        except sqlite3.Error as e:
            logger.error(f"Error fetching {view}: {e}", exc_info=True)
            raise StorageError(f"Failed to fetch {view}: {e}") from e

    # ------------------------------------------------------------------
    # Overall stats
    # ------------------------------------------------------------------

    def overall_stats(self) -> Dict[str, Any]:
        """Overall stats, per-device stats and hourly trend from one snapshot."""
        with self._snapshot("stats") as conn:
            return {
                "overall": self._overall(conn),
                "per_device": self._per_device(conn),
                "hourly": self._hourly(conn),
            }

    def _overall(self, conn: sqlite3.Connection) -> Dict[str, Any]:
        row = conn.execute(f"""
            SELECT
                COUNT(*) AS total_tests,
                COUNT(DISTINCT device_id) AS total_devices,
                ROUND(AVG(download_mbps), 2) AS avg_download,
                ROUND(AVG(upload_mbps), 2) AS avg_upload,
                ROUND(AVG(latency_ms), 2) AS avg_latency,
                ROUND(AVG(jitter_ms), 2) AS avg_jitter,
                ROUND(AVG(packet_loss_pct), 2) AS avg_packet_loss,
                ROUND(MIN(download_mbps), 2) AS min_download,
                ROUND(MAX(download_mbps), 2) AS max_download
            FROM speed_results
            WHERE {SUCCESS}
        """).fetchone()
        return dict(row)

    def _per_device(self, conn: sqlite3.Connection) -> List[Dict[str, Any]]:
        rows = conn.execute(f"""
            WITH {_latest_per("device_id", SUCCESS)}
            SELECT
                g.device_id,
                l.hostname,
                l.os_version,
                l.app_version,
                g.test_count,
                g.avg_download,
                g.avg_upload,
                g.avg_latency,
                g.avg_jitter,
                g.avg_packet_loss,
                l.timestamp_utc AS last_test,
                l.vpn_status,
                l.vpn_name
            FROM (
                SELECT
                    device_id,
                    COUNT(*) AS test_count,
                    ROUND(AVG(download_mbps), 2) AS avg_download,
                    ROUND(AVG(upload_mbps), 2) AS avg_upload,
                    ROUND(AVG(latency_ms), 2) AS avg_latency,
                    ROUND(AVG(jitter_ms), 2) AS avg_jitter,
                    ROUND(AVG(packet_loss_pct), 2) AS avg_packet_loss
                FROM speed_results
                WHERE {SUCCESS}
                GROUP BY device_id
            ) AS g
            JOIN latest AS l ON l.device_id = g.device_id
            ORDER BY last_test DESC, l.id DESC
        """).fetchall()
        return [dict(row) for row in rows]

    def _hourly(self, conn: sqlite3.Connection) -> List[Dict[str, Any]]:
        now = self.clock()
        window_start = now - timedelta(hours=self.hourly_window_hours)

        # timestamp_utc is stored canonicalized, so string order is time order
        rows = conn.execute(f"""
            SELECT
                strftime('%Y-%m-%d %H:00', timestamp_utc) AS hour,
                ROUND(AVG(download_mbps), 2) AS avg_download,
                ROUND(AVG(upload_mbps), 2) AS avg_upload,
                ROUND(AVG(jitter_ms), 2) AS avg_jitter,
                COUNT(*) AS test_count
            FROM speed_results
            WHERE {SUCCESS}
              AND timestamp_utc > ?
              AND timestamp_utc <= ?
            GROUP BY hour
            ORDER BY hour
        """, (_iso(window_start), _iso(now))).fetchall()
        return [dict(row) for row in rows]

    # ------------------------------------------------------------------
    # WiFi / access point stats
    # ------------------------------------------------------------------

    def wifi_stats(self) -> Dict[str, Any]:
        """Stats by access point (BSSID), by SSID, and band distribution."""
        with self._snapshot("WiFi stats") as conn:
            return {
                "by_access_point": self._by_access_point(conn),
                "by_ssid": self._by_ssid(conn),
                "band_distribution": self._band_distribution(conn),
            }

    def _by_access_point(self, conn: sqlite3.Connection) -> List[Dict[str, Any]]:
        where = f"{SUCCESS} AND bssid IS NOT NULL AND lower(bssid) != 'none'"
        rows = conn.execute(f"""
            WITH {_latest_per("bssid", where)}
            SELECT
                g.bssid,
                l.ssid,
                l.band,
                l.channel,
                g.test_count,
                g.device_count,
                g.avg_download,
                g.avg_upload,
                g.avg_rssi,
                g.avg_jitter,
                g.avg_packet_loss
            FROM (
                SELECT
                    bssid,
                    COUNT(*) AS test_count,
                    COUNT(DISTINCT device_id) AS device_count,
                    ROUND(AVG(download_mbps), 2) AS avg_download,
                    ROUND(AVG(upload_mbps), 2) AS avg_upload,
                    CAST(ROUND(AVG(rssi_dbm), 0) AS INTEGER) AS avg_rssi,
                    ROUND(AVG(jitter_ms), 2) AS avg_jitter,
                    ROUND(AVG(packet_loss_pct), 2) AS avg_packet_loss
                FROM speed_results
                WHERE {where}
                GROUP BY bssid
            ) AS g
            JOIN latest AS l ON l.bssid = g.bssid
            ORDER BY g.test_count DESC, g.bssid
        """).fetchall()
        return [dict(row) for row in rows]

    def _by_ssid(self, conn: sqlite3.Connection) -> List[Dict[str, Any]]:
        rows = conn.execute(f"""
            SELECT
                ssid,
                COUNT(*) AS test_count,
                COUNT(DISTINCT device_id) AS device_count,
                COUNT(DISTINCT CASE WHEN lower(bssid) != 'none' THEN bssid END) AS ap_count,
                ROUND(AVG(download_mbps), 2) AS avg_download,
                ROUND(AVG(upload_mbps), 2) AS avg_upload,
                CAST(ROUND(AVG(rssi_dbm), 0) AS INTEGER) AS avg_rssi
            FROM speed_results
            WHERE {SUCCESS} AND ssid IS NOT NULL
            GROUP BY ssid
            ORDER BY test_count DESC, ssid
        """).fetchall()
        return [dict(row) for row in rows]

    def _band_distribution(self, conn: sqlite3.Connection) -> List[Dict[str, Any]]:
        rows = conn.execute(f"""
            SELECT
                band,
                COUNT(*) AS count,
                ROUND(AVG(download_mbps), 2) AS avg_download
            FROM speed_results
            WHERE {SUCCESS} AND band IS NOT NULL AND lower(band) != 'none'
            GROUP BY band
            ORDER BY count DESC, band
        """).fetchall()
        return [dict(row) for row in rows]

    # ------------------------------------------------------------------
    # VPN stats
    # ------------------------------------------------------------------

    def vpn_stats(self) -> Dict[str, Any]:
        """VPN usage distribution and VPN On/Off comparison."""
        with self._snapshot("VPN stats") as conn:
            distribution = conn.execute(f"""
                SELECT
                    vpn_status,
                    vpn_name,
                    COUNT(*) AS count,
                    ROUND(AVG(download_mbps), 2) AS avg_download,
                    ROUND(AVG(upload_mbps), 2) AS avg_upload,
                    ROUND(AVG(latency_ms), 2) AS avg_latency,
                    ROUND(AVG(jitter_ms), 2) AS avg_jitter,
                    ROUND(AVG(packet_loss_pct), 2) AS avg_packet_loss
                FROM speed_results
                WHERE {SUCCESS}
                GROUP BY vpn_status, vpn_name
                ORDER BY count DESC, vpn_status, vpn_name
            """).fetchall()

            comparison = conn.execute(f"""
                SELECT
                    CASE WHEN vpn_status = 'connected' THEN 0 ELSE 1 END AS mode_index,
                    COUNT(*) AS test_count,
                    ROUND(AVG(download_mbps), 2) AS avg_download,
                    ROUND(AVG(upload_mbps), 2) AS avg_upload,
                    ROUND(AVG(latency_ms), 2) AS avg_latency,
                    ROUND(AVG(jitter_ms), 2) AS avg_jitter,
                    ROUND(AVG(packet_loss_pct), 2) AS avg_packet_loss
                FROM speed_results
                WHERE {SUCCESS}
                GROUP BY mode_index
                ORDER BY mode_index
            """).fetchall()

        modes = []
        for row in comparison:
            data = dict(row)
            modes.append({"mode": VPN_MODES[data.pop("mode_index")], **data})

        return {
            "distribution": [dict(row) for row in distribution],
            "comparison": modes,
        }

    # ------------------------------------------------------------------
    # Jitter stats
    # ------------------------------------------------------------------

    def jitter_stats(self) -> Dict[str, Any]:
        """Jitter bucket distribution and problem devices."""
        with self._snapshot("jitter stats") as conn:
            buckets = conn.execute(f"""
                SELECT
                    {_jitter_bucket_case()} AS bucket_index,
                    COUNT(*) AS count,
                    ROUND(AVG(download_mbps), 2) AS avg_download
                FROM speed_results
                WHERE {SUCCESS}
                GROUP BY bucket_index
                ORDER BY bucket_index
            """).fetchall()

            problem_devices = conn.execute(f"""
                WITH {_latest_per("device_id", SUCCESS)}
                SELECT
                    g.device_id,
                    l.hostname,
                    g.test_count,
                    ROUND(g.mean_jitter, 2) AS avg_jitter,
                    ROUND(g.mean_packet_loss, 2) AS avg_packet_loss,
                    l.timestamp_utc AS last_test
                FROM (
                    SELECT
                        device_id,
                        COUNT(*) AS test_count,
                        AVG(jitter_ms) AS mean_jitter,
                        AVG(packet_loss_pct) AS mean_packet_loss
                    FROM speed_results
                    WHERE {SUCCESS}
                    GROUP BY device_id
                    HAVING AVG(jitter_ms) > ? OR AVG(packet_loss_pct) > ?
                ) AS g
                JOIN latest AS l ON l.device_id = g.device_id
                ORDER BY g.mean_jitter DESC, g.device_id
                LIMIT ?
            """, (
                self.problem_jitter_ms,
                self.problem_packet_loss_pct,
                self.problem_device_limit,
            )).fetchall()

        distribution = []
        for row in buckets:
            data = dict(row)
            distribution.append({"bucket": JITTER_BUCKETS[data.pop("bucket_index")][0], **data})

        return {
            "distribution": distribution,
            "problem_devices": [dict(row) for row in problem_devices],
        }

    # ------------------------------------------------------------------
    # Device health
    # ------------------------------------------------------------------

    def device_health(self, device_id: str) -> Dict[str, Any]:
        """
        Health summary and most recent raw records for one device.

        Unknown devices produce zero counts, null metrics and no recent tests.
        """
        with self._snapshot("device health") as conn:
            totals = dict(conn.execute("""
                SELECT
                    COUNT(*) AS total_tests,
                    SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END) AS successful_tests,
                    ROUND(AVG(CASE WHEN status = 'success' THEN download_mbps END), 2) AS avg_download,
                    ROUND(AVG(CASE WHEN status = 'success' THEN upload_mbps END), 2) AS avg_upload,
                    ROUND(AVG(CASE WHEN status = 'success' THEN latency_ms END), 2) AS avg_latency,
                    ROUND(AVG(CASE WHEN status = 'success' THEN jitter_ms END), 2) AS avg_jitter,
                    ROUND(AVG(CASE WHEN status = 'success' THEN packet_loss_pct END), 2) AS avg_packet_loss,
                    MAX(timestamp_utc) AS last_seen
                FROM speed_results
                WHERE device_id = ?
            """, (device_id,)).fetchone())

            recent = conn.execute("""
                SELECT *
                FROM speed_results
                WHERE device_id = ?
                ORDER BY timestamp_utc DESC, id DESC
                LIMIT ?
            """, (device_id, self.recent_tests)).fetchall()

        # recent[0] is the latest row for the device, whatever its status
        context: Dict[str, Any] = dict(recent[0]) if recent else {}

        health = {
            "device_id": device_id,
            "hostname": context.get("hostname"),
            "os_version": context.get("os_version"),
            "app_version": context.get("app_version"),
            **totals,
            "successful_tests": totals["successful_tests"] or 0,
            "current_ssid": context.get("ssid"),
            "current_bssid": context.get("bssid"),
            "current_band": context.get("band"),
            "current_vpn_status": context.get("vpn_status"),
            "current_vpn_name": context.get("vpn_name"),
        }

        return {
            "health": health,
            "recent_tests": [TelemetryRecord.from_row(row).to_dict() for row in recent],
        }

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Database schema for the speed monitor telemetry store.

A single append-only table of speed-test results, keyed by an AUTOINCREMENT
surrogate id, with secondary indexes for the listing and aggregation queries.
"""

import logging
import sqlite3
from typing import Optional

from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SPEED_RESULTS_SQL = """
CREATE TABLE IF NOT EXISTS speed_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,

    -- Identity
    device_id TEXT NOT NULL CHECK (device_id != ''),
    user_id TEXT,
    hostname TEXT,

    -- Metadata
    timestamp_utc TEXT NOT NULL,
    os_version TEXT,
    app_version TEXT,
    timezone TEXT,

    -- Network interface
    interface TEXT,
    local_ip TEXT,
    public_ip TEXT,

    -- WiFi details
    ssid TEXT,
    bssid TEXT,
    band TEXT,
    channel INTEGER NOT NULL DEFAULT 0,
    width_mhz INTEGER NOT NULL DEFAULT 0,
    rssi_dbm INTEGER NOT NULL DEFAULT 0,
    noise_dbm INTEGER NOT NULL DEFAULT 0,
    snr_db INTEGER NOT NULL DEFAULT 0,
    tx_rate_mbps REAL NOT NULL DEFAULT 0,

    -- Performance metrics
    latency_ms REAL NOT NULL DEFAULT 0,
    jitter_ms REAL NOT NULL DEFAULT 0,
    jitter_p50 REAL NOT NULL DEFAULT 0,
    jitter_p95 REAL NOT NULL DEFAULT 0,
    packet_loss_pct REAL NOT NULL DEFAULT 0,
    download_mbps REAL NOT NULL DEFAULT 0,
    upload_mbps REAL NOT NULL DEFAULT 0,

    -- VPN status
    vpn_status TEXT NOT NULL DEFAULT 'disconnected',
    vpn_name TEXT NOT NULL DEFAULT 'none',

    -- Status and errors
    status TEXT NOT NULL DEFAULT 'success',
    errors TEXT,

    -- Raw data
    raw_payload TEXT,

    -- Timestamps
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_device_id ON speed_results(device_id);
CREATE INDEX IF NOT EXISTS idx_timestamp ON speed_results(timestamp_utc);
CREATE INDEX IF NOT EXISTS idx_ssid ON speed_results(ssid);
CREATE INDEX IF NOT EXISTS idx_bssid ON speed_results(bssid);
CREATE INDEX IF NOT EXISTS idx_vpn_status ON speed_results(vpn_status);
CREATE INDEX IF NOT EXISTS idx_status ON speed_results(status);

-- Composite index for per-device time-series queries
CREATE INDEX IF NOT EXISTS idx_device_time ON speed_results(device_id, timestamp_utc);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);
"""


def create_schema(client: SQLiteClient) -> None:
    """
    Create tables and indexes if they do not exist and record the version.

    Safe to call on every startup.
    """
    client.executescript(
        SPEED_RESULTS_SQL
        + f"INSERT OR IGNORE INTO schema_version (version) VALUES ({SCHEMA_VERSION});"
    )
    logger.info(f"Database schema created/verified (version {SCHEMA_VERSION})")


def get_schema_version(client: SQLiteClient) -> Optional[int]:
    """
    Get the installed schema version.

    Returns:
        Highest recorded version, or None if the schema was never created
    """
    if not client.exists():
        return None

    with client.get_connection() as conn:
        try:
            row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        except sqlite3.OperationalError:
            return None
    return row[0] if row else None

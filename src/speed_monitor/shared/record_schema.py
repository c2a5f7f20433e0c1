# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Telemetry record schema.

Defines the single record shape stored by the speed monitor, the column
layout of the speed_results table and the defaults applied at ingestion.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple

VPN_CONNECTED = "connected"
VPN_DISCONNECTED = "disconnected"
VPN_STATUSES = (VPN_CONNECTED, VPN_DISCONNECTED)

STATUS_SUCCESS = "success"

# Placeholder reported by agents that have no WiFi association
PLACEHOLDER_NONE = "none"

# Optional free-form text columns (stored as NULL when absent)
TEXT_FIELDS: Tuple[str, ...] = (
    "hostname",
    "os_version",
    "app_version",
    "timezone",
    "interface",
    "local_ip",
    "public_ip",
    "ssid",
    "bssid",
    "band",
    "errors",
)

INTEGER_FIELDS: Tuple[str, ...] = (
    "channel",
    "width_mhz",
    "rssi_dbm",
    "noise_dbm",
    "snr_db",
)

FLOAT_FIELDS: Tuple[str, ...] = (
    "tx_rate_mbps",
    "latency_ms",
    "jitter_ms",
    "jitter_p50",
    "jitter_p95",
    "packet_loss_pct",
    "download_mbps",
    "upload_mbps",
)


@dataclass(frozen=True)
class TelemetryRecord:
    """One speed-test observation submitted by a device."""

    # Identity
    device_id: str
    timestamp_utc: str
    user_id: Optional[str] = None
    hostname: Optional[str] = None

    # Metadata
    os_version: Optional[str] = None
    app_version: Optional[str] = None
    timezone: Optional[str] = None

    # Network interface
    interface: Optional[str] = None
    local_ip: Optional[str] = None
    public_ip: Optional[str] = None

    # WiFi details
    ssid: Optional[str] = None
    bssid: Optional[str] = None
    band: Optional[str] = None
    channel: int = 0
    width_mhz: int = 0
    rssi_dbm: int = 0
    noise_dbm: int = 0
    snr_db: int = 0
    tx_rate_mbps: float = 0.0

    # Performance metrics
    latency_ms: float = 0.0
    jitter_ms: float = 0.0
    jitter_p50: float = 0.0
    jitter_p95: float = 0.0
    packet_loss_pct: float = 0.0
    download_mbps: float = 0.0
    upload_mbps: float = 0.0

    # VPN status
    vpn_status: str = VPN_DISCONNECTED
    vpn_name: str = PLACEHOLDER_NONE

    # Status and errors
    status: str = STATUS_SUCCESS
    errors: Optional[str] = None

    # Raw data
    raw_payload: Optional[str] = None

    # Assigned by the record store at commit time
    created_at: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Any) -> "TelemetryRecord":
        """Build a record from a sqlite3.Row (or any mapping) of speed_results."""
        data = dict(row)
        return cls(**{name: data[name] for name in RECORD_COLUMNS if name in data})

    def to_dict(self) -> Dict[str, Any]:
        """Return the record as a plain dictionary, id first."""
        data = asdict(self)
        return {"id": data.pop("id"), **data}


# Column order used for INSERT statements (id and created_at handled by the store)
RECORD_COLUMNS: Tuple[str, ...] = tuple(f.name for f in fields(TelemetryRecord))
INSERT_COLUMNS: Tuple[str, ...] = tuple(c for c in RECORD_COLUMNS if c != "id")

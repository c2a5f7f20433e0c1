# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Append-only record store for telemetry records.

All mutation goes through append(); there is no update or delete path.
Surrogate ids come from SQLite's AUTOINCREMENT inside the INSERT itself, so
concurrent appends from any number of threads or processes never share an id.
"""

import dataclasses
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from ...shared.errors import StorageError
from ...shared.record_schema import INSERT_COLUMNS, TelemetryRecord
from .sqlite_client import SQLiteClient

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000
DEFAULT_DEVICE_LIMIT = 50
MAX_DEVICE_LIMIT = 500

_INSERT_SQL = "INSERT INTO speed_results ({columns}) VALUES ({placeholders})".format(
    columns=", ".join(INSERT_COLUMNS),
    placeholders=", ".join("?" for _ in INSERT_COLUMNS),
)

# Newest first; id breaks ties between identical timestamps
ORDER_NEWEST_FIRST = "ORDER BY timestamp_utc DESC, id DESC"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clamp_limit(limit: Any, default: int, maximum: int) -> int:
    """
    Coerce a caller-supplied page size into [1, maximum].

    Missing, unparseable or non-positive values fall back to the default.
    """
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return min(value, maximum)


def clamp_offset(offset: Any) -> int:
    """Coerce a caller-supplied offset to a non-negative integer."""
    try:
        value = int(offset)
    except (TypeError, ValueError):
        return 0
    return max(value, 0)


class RecordStore:
    """
    Durable storage of telemetry records in the speed_results table.

    Every failure of the persistence layer is raised as StorageError; nothing
    is retried here, the caller decides whether to resubmit.
    """

    def __init__(
        self,
        client: SQLiteClient,
        list_limits: Tuple[int, int] = (DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT),
        device_limits: Tuple[int, int] = (DEFAULT_DEVICE_LIMIT, MAX_DEVICE_LIMIT),
    ):
        """
        Initialize record store.

        Args:
            client: SQLiteClient instance
            list_limits: (default, max) page size for query()
            device_limits: (default, max) page size for get_by_device()
        """
        self.client = client
        self.list_limits = list_limits
        self.device_limits = device_limits

    def append(self, record: TelemetryRecord) -> int:
        """
        Persist a record.

        Args:
            record: Normalized record without an id

        Returns:
            Surrogate id assigned to the stored row
        """
        if record.created_at is None:
            record = dataclasses.replace(record, created_at=utc_now_iso())

        params = [getattr(record, column) for column in INSERT_COLUMNS]
        try:
            with self.client.get_connection() as conn:
                cursor = conn.execute(_INSERT_SQL, params)
                record_id = cursor.lastrowid
        except sqlite3.Error as e:
            logger.error(f"Error inserting result for device {record.device_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to save result: {e}") from e

        logger.debug(f"Stored result {record_id} for device {record.device_id}")
        return record_id

    def query(
        self,
        device_id: Optional[str] = None,
        ssid: Optional[str] = None,
        vpn_status: Optional[str] = None,
        limit: Any = None,
        offset: Any = None,
    ) -> List[TelemetryRecord]:
        """
        List records, newest first.

        Args:
            device_id: Exact match filter
            ssid: Exact match filter
            vpn_status: Exact match filter
            limit: Page size (clamped to the configured maximum)
            offset: Rows to skip

        Returns:
            List of TelemetryRecord
        """
        query = "SELECT * FROM speed_results WHERE 1=1"
        params: List[Any] = []

        if device_id:
            query += " AND device_id = ?"
            params.append(device_id)
        if ssid:
            query += " AND ssid = ?"
            params.append(ssid)
        if vpn_status:
            query += " AND vpn_status = ?"
            params.append(vpn_status)

        query += f" {ORDER_NEWEST_FIRST} LIMIT ? OFFSET ?"
        params.append(clamp_limit(limit, *self.list_limits))
        params.append(clamp_offset(offset))

        return self._fetch(query, params)

    def get_by_device(self, device_id: str, limit: Any = None) -> List[TelemetryRecord]:
        """
        List one device's records, newest first.

        Args:
            device_id: Device identifier
            limit: Page size (clamped to the configured maximum)
        """
        query = f"SELECT * FROM speed_results WHERE device_id = ? {ORDER_NEWEST_FIRST} LIMIT ?"
        return self._fetch(query, [device_id, clamp_limit(limit, *self.device_limits)])

    def count(self) -> int:
        """Total number of stored records."""
        try:
            with self.client.get_connection() as conn:
                return conn.execute("SELECT COUNT(*) FROM speed_results").fetchone()[0]
        except sqlite3.Error as e:
            logger.error(f"Error counting results: {e}", exc_info=True)
            raise StorageError(f"Failed to count results: {e}") from e

    def _fetch(self, query: str, params: List[Any]) -> List[TelemetryRecord]:
        try:
            with self.client.get_connection() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error fetching results: {e}", exc_info=True)
            raise StorageError(f"Failed to fetch results: {e}") from e
        return [TelemetryRecord.from_row(row) for row in rows]

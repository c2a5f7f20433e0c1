# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Service boundary for the speed monitor core.

The transport layer (HTTP routing, auth, rate limiting) calls these methods
and nothing else. Every failure leaves the boundary as a SpeedMonitorError
with a stable code; unexpected faults are logged and wrapped.
"""

import functools
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .. import __version__
from ..analytics.aggregations import AggregationEngine
from ..shared.config import Config
from ..shared.errors import InternalError, SpeedMonitorError, StorageError
from .database.record_store import RecordStore, utc_now_iso
from .database.schema import create_schema, get_schema_version
from .database.sqlite_client import SQLiteClient
from .ingest.validator import normalize

logger = logging.getLogger(__name__)


def structured_errors(func: Callable) -> Callable:
    """Translate any fault escaping a boundary method into a SpeedMonitorError."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SpeedMonitorError:
            raise
        except sqlite3.Error as e:
            logger.error(f"Storage error in {func.__name__}: {e}", exc_info=True)
            raise StorageError(f"Storage failure: {e}") from e
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            raise InternalError(f"Unexpected error: {e}") from e

    return wrapper


class SpeedMonitorService:
    """
    Ingestion and aggregation operations exposed to the transport layer.

    Manages:
    - SQLite database initialization
    - Record store (append-only writes, listings)
    - Aggregation engine (derived views)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        db_path: Optional[Union[str, Path]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Configuration instance (creates default if not provided)
            db_path: Database path (uses paths.database.telemetry_db if not provided)
            clock: Source of the current UTC time (for ingestion defaults and trends)
        """
        self.config = config or Config()
        self.db_path = Path(db_path).expanduser() if db_path else self.config.get_path("paths.database.telemetry_db")
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.client = SQLiteClient(self.db_path, busy_timeout=self.config.get_float("database.busy_timeout"))
        self.store = RecordStore(
            self.client,
            list_limits=self.config.get_limit("results"),
            device_limits=self.config.get_limit("device_results"),
        )
        self.engine = AggregationEngine(
            self.client,
            recent_tests=self.config.get_int("limits.recent_tests"),
            problem_device_limit=self.config.get_int("limits.problem_devices"),
            problem_jitter_ms=self.config.get_float("thresholds.problem_jitter_ms"),
            problem_packet_loss_pct=self.config.get_float("thresholds.problem_packet_loss_pct"),
            hourly_window_hours=self.config.get_int("trends.hourly_window_hours"),
            clock=self.clock,
        )
        self.initialized = False

    @structured_errors
    def initialize(self) -> None:
        """Create the database file and schema if needed."""
        if self.initialized:
            return

        logger.info(f"Initializing database: {self.db_path}")
        self.client.initialize_database()
        create_schema(self.client)
        self.initialized = True
        logger.info("Database initialized successfully")

    @structured_errors
    def get_schema_version(self) -> Optional[int]:
        """Installed schema version, or None before initialization."""
        return get_schema_version(self.client)

    @structured_errors
    def submit_record(self, raw: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate and store one telemetry sample.

        Returns:
            {"success": True, "id": <surrogate id>}

        Raises:
            ValidationError: before any storage interaction
            StorageError: if the append fails
        """
        record = normalize(raw, clock=self.clock)
        record_id = self.store.append(record)
        logger.debug(f"Accepted result {record_id} from {record.device_id}")
        return {"success": True, "id": record_id}

    @structured_errors
    def list_records(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Any = None,
        offset: Any = None,
    ) -> List[Dict[str, Any]]:
        """
        List records newest first.

        Args:
            filters: Optional device_id, ssid and vpn_status exact matches
            limit: Page size, at most limits.results.max
            offset: Rows to skip
        """
        filters = filters or {}
        records = self.store.query(
            device_id=filters.get("device_id"),
            ssid=filters.get("ssid"),
            vpn_status=filters.get("vpn_status"),
            limit=limit,
            offset=offset,
        )
        return [record.to_dict() for record in records]

    @structured_errors
    def list_device_records(self, device_id: str, limit: Any = None) -> List[Dict[str, Any]]:
        """List one device's records newest first (at most limits.device_results.max)."""
        return [record.to_dict() for record in self.store.get_by_device(device_id, limit=limit)]

    @structured_errors
    def get_overall_stats(self) -> Dict[str, Any]:
        """Overall stats, per-device stats and hourly trend."""
        return self.engine.overall_stats()

    @structured_errors
    def get_wifi_stats(self) -> Dict[str, Any]:
        """Access point, SSID and band statistics."""
        return self.engine.wifi_stats()

    @structured_errors
    def get_vpn_stats(self) -> Dict[str, Any]:
        """VPN distribution and VPN On/Off comparison."""
        return self.engine.vpn_stats()

    @structured_errors
    def get_jitter_stats(self) -> Dict[str, Any]:
        """Jitter distribution and problem devices."""
        return self.engine.jitter_stats()

    @structured_errors
    def get_device_health(self, device_id: str) -> Dict[str, Any]:
        """Health summary and recent tests for one device."""
        return self.engine.device_health(device_id)

    def get_service_status(self) -> Dict[str, Any]:
        """
        Report service health.

        Failures are reported in-band with status 'error' rather than raised.
        """
        timestamp = utc_now_iso()
        try:
            total = self.store.count()
        except SpeedMonitorError as e:
            return {"status": "error", "timestamp": timestamp, "version": __version__, **e.to_dict()}

        return {
            "status": "ok",
            "timestamp": timestamp,
            "version": __version__,
            "total_results": total,
        }


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

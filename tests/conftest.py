# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared fixtures for speed monitor tests.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from speed_monitor.processing.service import SpeedMonitorService
from speed_monitor.shared.config import Config

# Fixed "now" used by every clock-dependent test
NOW = datetime(2026, 10, 19, 12, 30, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep developer environment overrides out of the tests."""
    for name in ("SPEED_MONITOR_DB_PATH", "DB_PATH", "SPEED_MONITOR_CONFIG_DIR", "SPEED_MONITOR_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Config directory pointing the telemetry database into tmp_path."""
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "config.yaml").write_text(
        """
paths:
  database:
    telemetry_db: "{db}"
logging:
  level: WARNING
""".format(db=tmp_path / "speed_monitor.db")
    )
    return directory


@pytest.fixture
def service(config_dir: Path) -> SpeedMonitorService:
    """Initialized service on a fresh database with a fixed clock."""
    svc = SpeedMonitorService(config=Config(config_dir=config_dir), clock=lambda: NOW)
    svc.initialize()
    return svc


@pytest.fixture
def submit(service: SpeedMonitorService):
    """Submit a record built from keyword arguments and return its id."""

    def _submit(**fields):
        return service.submit_record(fields)["id"]

    return _submit

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Shared components for the speed monitor core.

Provides:
- Telemetry record schema and defaults
- Structured error taxonomy
- YAML configuration
"""

from .config import Config
from .errors import InternalError, SpeedMonitorError, StorageError, ValidationError
from .record_schema import TelemetryRecord

__all__ = [
    'Config',
    'InternalError',
    'SpeedMonitorError',
    'StorageError',
    'TelemetryRecord',
    'ValidationError',
]

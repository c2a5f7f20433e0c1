# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""SQLite persistence for telemetry records."""

from .sqlite_client import SQLiteClient
from .schema import SCHEMA_VERSION, create_schema, get_schema_version
from .record_store import RecordStore

__all__ = [
    'SQLiteClient',
    'SCHEMA_VERSION',
    'create_schema',
    'get_schema_version',
    'RecordStore',
]

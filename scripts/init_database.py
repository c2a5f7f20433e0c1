#!/usr/bin/env python3
# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Database initialization script for the speed monitor.

Creates the SQLite database with schema and optimal settings.
"""

import sys
import logging
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from speed_monitor.processing.database.sqlite_client import SQLiteClient
from speed_monitor.processing.database.schema import create_schema, get_schema_version, SCHEMA_VERSION
from speed_monitor.shared.config import Config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Initialize database."""
    config = Config()
    db_path = config.get_path("paths.database.telemetry_db")

    logger.info(f"Initializing database: {db_path}")

    client = SQLiteClient(db_path, busy_timeout=config.get_float("database.busy_timeout"))

    # Initialize database (creates directory, sets PRAGMAs)
    try:
        client.initialize_database()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1

    current_version = get_schema_version(client)

    if current_version is None:
        logger.info("Creating database schema...")
        create_schema(client)
    elif current_version < SCHEMA_VERSION:
        logger.error(f"Schema version {current_version} is older than {SCHEMA_VERSION}; no migration available")
        return 1
    else:
        logger.info(f"Database schema is up to date (version {current_version})")

    if client.exists():
        logger.info("✅ Database initialized successfully")
        return 0
    else:
        logger.error("❌ Database file was not created")
        return 1


if __name__ == "__main__":
    sys.exit(main())

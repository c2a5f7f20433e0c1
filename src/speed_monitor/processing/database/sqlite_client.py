# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
SQLite client for the telemetry database.

Opens one short-lived connection per operation so the client can be shared
freely across threads. The database runs in WAL mode: readers never block the
writer and each read transaction sees a single consistent snapshot.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT = 5.0  # seconds


class SQLiteClient:
    """Connection factory and helpers for the telemetry SQLite database."""

    def __init__(self, db_path: Union[str, Path], busy_timeout: float = DEFAULT_BUSY_TIMEOUT):
        """
        Initialize SQLite client.

        Args:
            db_path: Path to SQLite database file
            busy_timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = Path(db_path).expanduser()
        self.busy_timeout = busy_timeout

    def initialize_database(self) -> None:
        """Create the database directory and apply persistent PRAGMAs."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self.get_connection() as conn:
            mode = conn.execute("PRAGMA journal_mode=WAL").fetchone()[0]
            if str(mode).lower() != "wal":
                logger.warning(f"Could not enable WAL mode (journal_mode={mode})")

        logger.info(f"SQLite database ready: {self.db_path}")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection in autocommit mode.

        Statements outside an explicit BEGIN commit individually, which makes
        every single-statement write atomic on its own.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout * 1000)}")
            conn.execute("PRAGMA synchronous = NORMAL")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def snapshot(self) -> Iterator[sqlite3.Connection]:
        """Open a read transaction; every query inside sees the same snapshot."""
        with self.get_connection() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
            finally:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")

    def executescript(self, script: str) -> None:
        """Execute a multi-statement script inside one transaction."""
        with self.get_connection() as conn:
            conn.executescript(f"BEGIN;\n{script}\nCOMMIT;")

    def exists(self) -> bool:
        """Check whether the database file exists."""
        return self.db_path.exists()

"""
Database manager for the launch cache.

This module owns the SQLite file backing the cache:
- Schema creation for the launches and cache_meta tables
- Short-lived connections with automatic cleanup
- Transaction management shared by the record and metadata stores

A single DatabaseManager is constructed at startup and handed to every
component that touches the store; there is no module-level instance.
"""

import os
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, List

logger = logging.getLogger("launch_cache.database")

# Configure sqlite3 datetime adapters for Python 3.12+ compatibility
sqlite3.register_adapter(datetime, lambda dt: dt.isoformat())
sqlite3.register_converter("DATETIME", lambda b: datetime.fromisoformat(b.decode()))

LAUNCHES_TABLE = """
CREATE TABLE IF NOT EXISTS launches (
    id TEXT PRIMARY KEY NOT NULL,
    name TEXT NOT NULL,
    net TEXT NOT NULL,
    window_start TEXT,
    window_end TEXT,
    status_id INTEGER,
    status_name TEXT,
    status_abbrev TEXT,
    status_description TEXT,
    lsp_id INTEGER,
    lsp_name TEXT,
    lsp_abbrev TEXT,
    lsp_type TEXT,
    rocket_id INTEGER,
    rocket_config_id INTEGER,
    rocket_config_name TEXT,
    rocket_config_full_name TEXT,
    rocket_config_variant TEXT,
    mission_id INTEGER,
    mission_name TEXT,
    mission_description TEXT,
    mission_type TEXT,
    image_id INTEGER,
    image_name TEXT,
    image_url TEXT,
    image_thumbnail_url TEXT,
    image_credit TEXT,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
);
"""

CACHE_META_TABLE = """
CREATE TABLE IF NOT EXISTS cache_meta (
    key TEXT PRIMARY KEY,
    last_updated DATETIME NOT NULL,
    expires_at DATETIME NOT NULL
);
"""


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class DatabaseManager:
    """Centralized database manager with connection and transaction support."""

    def __init__(self, db_path: str = "launches.db"):
        self.db_path = db_path

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with automatic cleanup."""
        conn = sqlite3.connect(self.db_path, detect_types=sqlite3.PARSE_DECLTYPES)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with transaction management."""
        with self.get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def ensure_schema(self) -> None:
        """Create the cache tables if missing, preserving existing data."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir)

        with self.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(LAUNCHES_TABLE)
            cursor.execute(CACHE_META_TABLE)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_launches_net ON launches (net, id)"
            )
        with self.get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
        logger.debug(f"Schema ready at {self.db_path}")

    def table_names(self) -> List[str]:
        """List user tables in the database."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
            return [row[0] for row in cursor.fetchall()]

    def db_exists(self) -> bool:
        """Check that the database file exists and has the cache tables."""
        if not os.path.exists(self.db_path):
            logger.debug(f"Database file does not exist at {self.db_path}")
            return False
        try:
            tables = self.table_names()
        except sqlite3.Error as e:
            logger.error(f"Database check failed: {e}")
            return False
        return {"launches", "cache_meta"}.issubset(tables)

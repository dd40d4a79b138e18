"""Cache validity metadata, one row per logical cache key."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from database_manager import DatabaseManager, utc_now
from logging_config import get_logger

logger = get_logger()


@dataclass
class CacheEntry:
    """A cache_meta row."""
    key: str
    last_updated: datetime
    expires_at: datetime

    def is_valid_at(self, now: datetime) -> bool:
        return now < self.expires_at


class CacheMetadataStore:
    """Tracks when each cache key was last refreshed and when it expires."""

    def __init__(self, db: DatabaseManager, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def get(self, key: str) -> Optional[CacheEntry]:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT key, last_updated, expires_at FROM cache_meta WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return CacheEntry(row["key"], row["last_updated"], row["expires_at"])

    def list_entries(self) -> List[CacheEntry]:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT key, last_updated, expires_at FROM cache_meta ORDER BY key")
            return [
                CacheEntry(row["key"], row["last_updated"], row["expires_at"])
                for row in cursor.fetchall()
            ]

    def is_valid(self, key: str, ttl_minutes: int) -> bool:
        """
        True iff a row exists for key and now is before its expires_at.

        ttl_minutes is not consulted: expiry was fixed when the row was
        written, so a TTL change only affects future touches.
        """
        entry = self.get(key)
        if entry is None:
            return False
        return entry.is_valid_at(self.clock())

    def touch(self, key: str, ttl_minutes: int, db_conn: Optional[sqlite3.Connection] = None) -> CacheEntry:
        """Overwrite key with last_updated=now, expires_at=now+ttl."""
        now = self.clock()
        entry = CacheEntry(key, now, now + timedelta(minutes=ttl_minutes))
        params = (entry.key, entry.last_updated, entry.expires_at)
        sql = "INSERT OR REPLACE INTO cache_meta (key, last_updated, expires_at) VALUES (?, ?, ?)"

        if db_conn is not None:
            db_conn.execute(sql, params)
        else:
            with self.db.transaction() as conn:
                conn.execute(sql, params)

        logger.debug(f"Cache key {key} valid until {entry.expires_at.isoformat()}")
        return entry

    def clear(self, key: Optional[str] = None) -> int:
        """Delete one key, or every key when none is given."""
        with self.db.transaction() as conn:
            cursor = conn.cursor()
            if key is None:
                cursor.execute("DELETE FROM cache_meta")
            else:
                cursor.execute("DELETE FROM cache_meta WHERE key = ?", (key,))
            deleted = cursor.rowcount
        logger.info(f"Cleared {deleted} cache metadata row(s)")
        return deleted

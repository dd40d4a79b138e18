"""
Read-through cache orchestrator for upcoming launches.

Decides per call whether to serve from the record store or refresh from the
upstream API, writes fresh batches through to storage, and falls back to
stale storage when upstream is unavailable.

Design notes:
    * Staleness is detected lazily; there is no background refresh.
    * Concurrent misses on the same key may each fetch and write. Upserts are
      idempotent per record, so the last writer wins without corruption.
    * Records and metadata are written in one transaction so metadata never
      advances without the batch it describes.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from cache_metadata import CacheMetadataStore
from database_manager import DatabaseManager, utc_now
from error_handling import (
    ErrorCategory,
    ErrorInfo,
    ErrorSeverity,
    NoDataAvailableError,
    StoreWriteError,
    UpstreamError,
    classify_exception,
    log_error,
)
from launch_fetch import LaunchClient
from launch_store import LaunchStore
from logging_config import get_logger

logger = get_logger()

SOURCE_CACHE = "cache"
SOURCE_API = "api"
SOURCE_STALE = "stale_cache"
SOURCE_MANUAL = "manual_refresh"

STALE_WARNING = "External API unavailable, returning stale cache data"

# Per-source key for the total carried in cache_info
_TOTAL_KEYS = {
    SOURCE_CACHE: "total_cached",
    SOURCE_STALE: "total_cached",
    SOURCE_API: "total_fetched",
    SOURCE_MANUAL: "total_refreshed",
}


@dataclass
class CacheEnvelope:
    """One page of launches plus the provenance of the data."""
    results: List[Dict[str, Any]]
    count: int
    limit: int
    offset: int
    source: str
    ttl_minutes: int
    fetched_at: datetime = field(default_factory=utc_now)
    warning: Optional[str] = None

    @property
    def cached(self) -> bool:
        return self.source in (SOURCE_CACHE, SOURCE_STALE)

    @property
    def has_next(self) -> bool:
        return self.offset + self.limit < self.count

    @property
    def has_previous(self) -> bool:
        return self.offset > 0

    def next_url(self, base_path: str) -> Optional[str]:
        if not self.has_next:
            return None
        return f"{base_path}?limit={self.limit}&offset={self.offset + self.limit}"

    def previous_url(self, base_path: str) -> Optional[str]:
        if not self.has_previous:
            return None
        return f"{base_path}?limit={self.limit}&offset={max(0, self.offset - self.limit)}"

    def to_dict(self, base_path: str = "/api/launches") -> Dict[str, Any]:
        """Convert to the JSON response body."""
        cache_info = {
            "source": self.source,
            "fetched_at": self.fetched_at.isoformat(),
            "ttl_minutes": self.ttl_minutes,
        }
        if self.warning:
            cache_info["warning"] = self.warning
        cache_info[_TOTAL_KEYS[self.source]] = self.count
        cache_info["page_size"] = self.limit
        cache_info["page_offset"] = self.offset

        return {
            "count": self.count,
            "next": self.next_url(base_path),
            "previous": self.previous_url(base_path),
            "results": self.results,
            "cached": self.cached,
            "cache_info": cache_info,
        }


def paginate(items: List[Any], limit: int, offset: int) -> List[Any]:
    """Slice [offset, offset + limit); out-of-range offsets give an empty page."""
    return items[offset:offset + limit]


class LaunchCache:
    """Coordinates the record store, metadata store and upstream client."""

    def __init__(
        self,
        db: DatabaseManager,
        client: LaunchClient,
        max_records: int = 100,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.client = client
        self.max_records = max_records
        self.clock = clock
        self.launches = LaunchStore(db, clock)
        self.metadata = CacheMetadataStore(db, clock)

    def get(self, key: str, ttl_minutes: int, limit: int, offset: int) -> CacheEnvelope:
        """Serve a page, refreshing from upstream only when the key is stale."""
        _check_window(limit, offset)
        logger.info(
            f"Checking cache validity for {key} (requesting {limit} records with offset {offset})"
        )

        if self.metadata.is_valid(key, ttl_minutes):
            logger.info(f"Cache for {key} is valid, returning cached data")
            return self._read_store(key, ttl_minutes, limit, offset, SOURCE_CACHE)

        logger.info(f"Cache for {key} is invalid or empty, fetching from external API")
        return self._refresh(key, ttl_minutes, limit, offset, SOURCE_API)

    def refresh(self, key: str, ttl_minutes: int, limit: int, offset: int) -> CacheEnvelope:
        """Force an upstream fetch regardless of current validity."""
        _check_window(limit, offset)
        logger.info(f"Manual cache refresh requested for {key}")
        return self._refresh(key, ttl_minutes, limit, offset, SOURCE_MANUAL)

    def list_all(self, max_records: Optional[int] = None) -> List[Dict[str, Any]]:
        """Every cached launch in API format, without validity checks."""
        return self.launches.list_launches(max_records or self.max_records)

    def _refresh(self, key: str, ttl_minutes: int, limit: int, offset: int, source: str) -> CacheEnvelope:
        try:
            batch = self.client.fetch_batch(self.max_records)
            if batch:
                self._write_through(key, ttl_minutes, batch)
        except (UpstreamError, StoreWriteError) as e:
            log_error(e, context=f"refresh {key}")
            return self._stale_fallback(key, ttl_minutes, limit, offset, e)

        return CacheEnvelope(
            results=paginate(batch, limit, offset),
            count=len(batch),
            limit=limit,
            offset=offset,
            source=source,
            ttl_minutes=ttl_minutes,
            fetched_at=self.clock(),
        )

    def _write_through(self, key: str, ttl_minutes: int, batch: List[Dict[str, Any]]) -> None:
        """Upsert the batch and advance metadata in a single transaction."""
        logger.debug(f"Caching {len(batch)} fresh launches for {key}")
        try:
            with self.db.transaction() as conn:
                self.launches.upsert_all(batch, db_conn=conn)
                self.metadata.touch(key, ttl_minutes, db_conn=conn)
        except (sqlite3.Error, KeyError, ValueError, TypeError, AttributeError) as e:
            raise StoreWriteError(
                classify_exception(e, key=key, operation="write_through", batch_size=len(batch)),
                e,
            )
        logger.info(f"Cached {len(batch)} launches for {key}")

    def _stale_fallback(
        self, key: str, ttl_minutes: int, limit: int, offset: int, cause: Exception
    ) -> CacheEnvelope:
        logger.info(f"Refresh of {key} failed, trying to return stale cache")
        try:
            envelope = self._read_store(key, ttl_minutes, limit, offset, SOURCE_STALE)
        except sqlite3.Error as e:
            logger.error(f"Cache fallback also failed for {key}: {e}")
            raise NoDataAvailableError(
                ErrorInfo(
                    category=ErrorCategory.DATABASE,
                    severity=ErrorSeverity.HIGH,
                    message=str(cause),
                    details={"key": key, "operation": "stale_read", "store_error": str(e)},
                    recoverable=False,
                ),
                e,
            )

        if envelope.count == 0:
            raise NoDataAvailableError(
                ErrorInfo(
                    category=ErrorCategory.EXTERNAL,
                    severity=ErrorSeverity.HIGH,
                    message=str(cause),
                    details={"key": key, "operation": "stale_read"},
                    recoverable=False,
                ),
                cause,
            )

        envelope.warning = STALE_WARNING
        logger.warning(
            f"Returning {len(envelope.results)} stale cached launches for {key} ({envelope.count} total)"
        )
        return envelope

    def _read_store(self, key: str, ttl_minutes: int, limit: int, offset: int, source: str) -> CacheEnvelope:
        launches = self.launches.list_launches(self.max_records)
        return CacheEnvelope(
            results=paginate(launches, limit, offset),
            count=len(launches),
            limit=limit,
            offset=offset,
            source=source,
            ttl_minutes=ttl_minutes,
            fetched_at=self.clock(),
        )


def _check_window(limit: int, offset: int) -> None:
    if limit < 0 or offset < 0:
        raise ValueError(f"limit and offset must be >= 0 (got limit={limit}, offset={offset})")

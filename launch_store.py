"""Record store for normalized launch snapshots."""

import sqlite3
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from database_manager import DatabaseManager, utc_now
from logging_config import get_logger

logger = get_logger()

LAUNCH_COLUMNS = (
    "id", "name", "net", "window_start", "window_end",
    "status_id", "status_name", "status_abbrev", "status_description",
    "lsp_id", "lsp_name", "lsp_abbrev", "lsp_type",
    "rocket_id", "rocket_config_id", "rocket_config_name",
    "rocket_config_full_name", "rocket_config_variant",
    "mission_id", "mission_name", "mission_description", "mission_type",
    "image_id", "image_name", "image_url", "image_thumbnail_url", "image_credit",
    "created_at", "updated_at",
)

UPSERT_SQL = "INSERT OR REPLACE INTO launches ({}) VALUES ({})".format(
    ", ".join(LAUNCH_COLUMNS), ", ".join("?" for _ in LAUNCH_COLUMNS)
)


def _type_name(value: Any) -> str:
    """Provider and mission types arrive as a string or as {id, name}."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and value.get("name"):
        return value["name"]
    return "Unknown"


def launch_to_row(launch: Dict[str, Any], now: datetime) -> Tuple[Any, ...]:
    """Flatten an upstream launch into a launches row, filling defaults."""
    status = launch.get("status") or {}
    lsp = launch.get("launch_service_provider") or {}
    rocket = launch.get("rocket") or {}
    configuration = rocket.get("configuration") or {}
    mission = launch.get("mission") or {}
    image = launch.get("image") or {}
    if launch.get("id") is None:
        raise ValueError("Launch has no id")

    return (
        launch["id"],
        launch["name"],
        launch["net"],
        launch.get("window_start") or launch["net"],
        launch.get("window_end") or launch["net"],
        status.get("id") or 0,
        status.get("name") or "Unknown",
        status.get("abbrev") or "UNK",
        status.get("description") or "Unknown",
        lsp.get("id") or 0,
        lsp.get("name") or "Unknown",
        lsp.get("abbrev") or "UNK",
        _type_name(lsp.get("type")),
        rocket.get("id") or 0,
        configuration.get("id") or 0,
        configuration.get("name") or "Unknown",
        configuration.get("full_name") or "Unknown",
        configuration.get("variant") or "",
        mission.get("id") or 0,
        mission.get("name") or "Unknown",
        mission.get("description") or None,
        _type_name(mission.get("type")),
        image.get("id") or None,
        image.get("name") or None,
        image.get("image_url") or None,
        image.get("thumbnail_url") or None,
        image.get("credit") or None,
        now,
        now,
    )


def row_to_launch(row: sqlite3.Row) -> Dict[str, Any]:
    """Rebuild the upstream JSON shape from a stored launches row."""
    mission = {
        "id": row["mission_id"],
        "name": row["mission_name"],
        "type": row["mission_type"],
    }
    if row["mission_description"]:
        mission["description"] = row["mission_description"]

    launch = {
        "id": row["id"],
        "name": row["name"],
        "net": row["net"],
        "window_start": row["window_start"] or row["net"],
        "window_end": row["window_end"] or row["net"],
        "status": {
            "id": row["status_id"],
            "name": row["status_name"],
            "abbrev": row["status_abbrev"],
            "description": row["status_description"],
        },
        "launch_service_provider": {
            "id": row["lsp_id"],
            "name": row["lsp_name"],
            "abbrev": row["lsp_abbrev"],
            "type": row["lsp_type"],
        },
        "rocket": {
            "id": row["rocket_id"],
            "configuration": {
                "id": row["rocket_config_id"],
                "name": row["rocket_config_name"],
                "full_name": row["rocket_config_full_name"],
                "variant": row["rocket_config_variant"],
            },
        },
        "mission": mission,
    }
    if row["image_id"]:
        launch["image"] = {
            "id": row["image_id"],
            "name": row["image_name"] or "",
            "image_url": row["image_url"] or "",
            "thumbnail_url": row["image_thumbnail_url"] or "",
            "credit": row["image_credit"] or "",
        }
    return launch


class LaunchStore:
    """Durable table of launch records keyed by upstream id."""

    def __init__(self, db: DatabaseManager, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def upsert_all(self, launches: List[Dict[str, Any]], db_conn: Optional[sqlite3.Connection] = None) -> int:
        """
        Insert or replace every launch in the batch as one unit.

        When db_conn is given the caller owns the transaction; otherwise the
        batch is committed here and rolled back entirely on any failure.
        Returns the number of rows written.
        """
        if not launches:
            return 0

        now = self.clock()
        rows = []
        for launch in launches:
            try:
                rows.append(launch_to_row(launch, now))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.error(f"Error preparing launch for insert: {e}")
                logger.debug(f"Launch data: {launch!r}")
                raise

        if db_conn is not None:
            db_conn.executemany(UPSERT_SQL, rows)
        else:
            with self.db.transaction() as conn:
                conn.executemany(UPSERT_SQL, rows)

        logger.debug(f"Upserted {len(rows)} launches")
        return len(rows)

    def list_ordered(self, max_records: int) -> List[sqlite3.Row]:
        """Up to max_records rows ordered by net, ties broken by id."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM launches ORDER BY net ASC, id ASC LIMIT ?",
                (max_records,),
            )
            return cursor.fetchall()

    def list_launches(self, max_records: int) -> List[Dict[str, Any]]:
        """Ordered launches converted back to the upstream JSON shape."""
        return [row_to_launch(row) for row in self.list_ordered(max_records)]

    def count(self) -> int:
        """Total number of stored launches."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM launches")
            return cursor.fetchone()[0]

    def purge_older_than(self, age: timedelta) -> int:
        """Delete launches first cached before now - age."""
        cutoff = self.clock() - age
        with self.db.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM launches WHERE created_at < ?", (cutoff,))
            deleted = cursor.rowcount
        if deleted > 0:
            logger.info(f"Purged {deleted} launches cached before {cutoff.isoformat()}")
        return deleted

    def purge_all(self) -> int:
        """Delete every stored launch."""
        with self.db.transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM launches")
            deleted = cursor.rowcount
        logger.info(f"Purged all {deleted} launches")
        return deleted

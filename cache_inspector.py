#!/usr/bin/env python3
"""Inspect and maintain the launch cache database."""

import argparse
import os
import sqlite3
import sys
from datetime import timedelta
from typing import List, Optional

from cache_metadata import CacheMetadataStore
from config import config
from database_manager import DatabaseManager, utc_now
from launch_store import LaunchStore


class CliArgs:
    """Simple CLI arguments container."""

    def __init__(self):
        self.db_path: str = config.db_path
        self.limit: int = config.inspector_preview
        self.clear_cache: bool = False
        self.clear_all: bool = False
        self.purge_older_than: Optional[int] = None

    @classmethod
    def from_args(cls, args):
        """Create CliArgs from parsed arguments."""
        cli_args = cls()
        cli_args.db_path = args.db_path
        cli_args.limit = args.limit
        cli_args.clear_cache = args.clear_cache
        cli_args.clear_all = args.clear_all
        cli_args.purge_older_than = args.purge_older_than
        return cli_args


def create_argument_parser() -> argparse.ArgumentParser:
    """Create argument parser for the cache inspector."""
    parser = argparse.ArgumentParser(description="Launch Cache Inspector")

    parser.add_argument(
        "--db-path",
        default=config.db_path,
        help=f"Path to the cache database (default: {config.db_path})",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=config.inspector_preview,
        help="Number of upcoming launches to list (default: %(default)s)",
    )

    maintenance_group = parser.add_mutually_exclusive_group()
    maintenance_group.add_argument(
        "--clear-cache",
        action="store_true",
        help="Clear cache metadata so the next request refetches",
    )
    maintenance_group.add_argument(
        "--clear-all",
        action="store_true",
        help="Clear all cached launches and cache metadata",
    )
    maintenance_group.add_argument(
        "--purge-older-than",
        type=int,
        metavar="DAYS",
        help="Delete launches first cached more than DAYS days ago",
    )

    return parser


def parse_args(argv: Optional[List[str]] = None) -> CliArgs:
    """Parse command line arguments into CliArgs object."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    return CliArgs.from_args(args)


def print_report(db: DatabaseManager, limit: int) -> None:
    """Print cache metadata, record counts and the earliest launches."""
    metadata = CacheMetadataStore(db)
    store = LaunchStore(db)
    now = utc_now()

    print("Launch Cache Inspector")
    print("=" * 24 + "\n")

    print("--- Cache Metadata ---")
    entries = metadata.list_entries()
    if not entries:
        print("  No cache metadata found")
    for entry in entries:
        print(f"  Key: {entry.key}")
        print(f"  Last Updated: {entry.last_updated.isoformat()}")
        print(f"  Expires At: {entry.expires_at.isoformat()}")
        print(f"  Valid: {'yes' if entry.is_valid_at(now) else 'no'}")
        print("")

    count = store.count()
    print(f"Cached Launches: {count}")

    if count > 0:
        print(f"\n--- Next {limit} Upcoming Launches ---")
        for index, row in enumerate(store.list_ordered(limit), start=1):
            print(f"  {index}. {row['name']}")
            print(f"     Launch: {row['net']}")
            print(f"     Status: {row['status_name']}")
            print(f"     Provider: {row['lsp_name']}")
            print(f"     Cached: {row['created_at'].isoformat()}")
            print("")

    print("--- Database Info ---")
    print(f"  Tables: {', '.join(db.table_names())}")
    print(f"  File: {db.db_path}")


def main(argv: Optional[List[str]] = None) -> int:
    cli_args = parse_args(argv)

    if not os.path.exists(cli_args.db_path):
        print("No cache database found yet. Start the API server to create it!")
        return 0

    db = DatabaseManager(cli_args.db_path)
    try:
        db.ensure_schema()
        print_report(db, cli_args.limit)

        if cli_args.clear_cache:
            CacheMetadataStore(db).clear()
            print("\nCache metadata cleared!")
        elif cli_args.clear_all:
            LaunchStore(db).purge_all()
            CacheMetadataStore(db).clear()
            print("\nAll cache data cleared!")
        elif cli_args.purge_older_than is not None:
            removed = LaunchStore(db).purge_older_than(
                timedelta(days=cli_args.purge_older_than)
            )
            print(f"\nPurged {removed} launches older than {cli_args.purge_older_than} days")
    except sqlite3.Error as e:
        print(f"Error accessing database: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

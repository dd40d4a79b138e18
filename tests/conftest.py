"""Shared fixtures for launch cache tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from database_manager import DatabaseManager
from launch_cache import LaunchCache
from launch_fetch import LaunchClient


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_launch(launch_id, net, name=None, **overrides):
    """Build an upstream-shaped launch payload."""
    launch = {
        "id": launch_id,
        "name": name or f"Launch {launch_id}",
        "net": net,
        "window_start": net,
        "window_end": net,
        "status": {"id": 1, "name": "Go for Launch", "abbrev": "Go", "description": "Ready"},
        "launch_service_provider": {
            "id": 121,
            "name": "SpaceX",
            "abbrev": "SpX",
            "type": {"id": 1, "name": "Commercial"},
        },
        "rocket": {
            "id": 8000,
            "configuration": {
                "id": 164,
                "name": "Falcon 9",
                "full_name": "Falcon 9 Block 5",
                "variant": "Block 5",
            },
        },
        "mission": {
            "id": 7000,
            "name": "Starlink Group",
            "description": "Batch of Starlink satellites.",
            "type": "Communications",
        },
        "image": {
            "id": 55,
            "name": "Falcon 9 image",
            "image_url": "https://example.org/f9.jpg",
            "thumbnail_url": "https://example.org/f9_thumb.jpg",
            "credit": "SpaceX",
        },
    }
    launch.update(overrides)
    return launch


def make_batch(size, start_day=1):
    """size launches, one per day from January start_day 2025."""
    return [
        make_launch(f"launch-{start_day + i:03d}", f"2025-01-{start_day + i:02d}T10:00:00Z")
        for i in range(size)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(str(tmp_path / "launches.db"))
    manager.ensure_schema()
    return manager


@pytest.fixture
def client():
    """Upstream client double; set fetch_batch.return_value / side_effect."""
    fake = MagicMock(spec=LaunchClient)
    fake.fetch_batch.return_value = make_batch(10)
    return fake


@pytest.fixture
def launch_cache(db, client, clock):
    return LaunchCache(db, client, max_records=100, clock=clock)

"""Tests for the launch record store."""

import sqlite3
from datetime import timedelta

import pytest

from conftest import make_batch, make_launch
from launch_store import LaunchStore, launch_to_row, row_to_launch


class TestLaunchStore:
    """Upsert, ordering and purge behaviour."""

    def test_upsert_and_count(self, db, clock):
        store = LaunchStore(db, clock)
        written = store.upsert_all(make_batch(3))

        assert written == 3
        assert store.count() == 3

    def test_upsert_empty_batch_is_noop(self, db, clock):
        store = LaunchStore(db, clock)
        assert store.upsert_all([]) == 0
        assert store.count() == 0

    def test_upsert_is_idempotent(self, db, clock):
        store = LaunchStore(db, clock)
        batch = make_batch(4)

        store.upsert_all(batch)
        first = store.list_launches(100)
        store.upsert_all(batch)
        second = store.list_launches(100)

        assert store.count() == 4
        assert first == second

    def test_upsert_replaces_all_fields(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all([make_launch("abc", "2025-01-02T00:00:00Z")])

        replacement = make_launch("abc", "2025-02-02T00:00:00Z", name="Renamed")
        del replacement["image"]
        store.upsert_all([replacement])

        launches = store.list_launches(100)
        assert len(launches) == 1
        assert launches[0]["name"] == "Renamed"
        assert launches[0]["net"] == "2025-02-02T00:00:00Z"
        assert "image" not in launches[0]

    def test_failed_batch_leaves_store_unchanged(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all(make_batch(2))

        bad_batch = make_batch(3, start_day=10) + [{"id": "broken"}]
        with pytest.raises(KeyError):
            store.upsert_all(bad_batch)

        assert store.count() == 2

    def test_null_id_rejects_batch(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all(make_batch(2))

        with pytest.raises(ValueError):
            store.upsert_all([make_launch(None, "2025-01-01T00:00:00Z")])
        with pytest.raises(ValueError):
            store.upsert_all([{"name": "No id", "net": "2025-01-01T00:00:00Z"}])

        assert store.count() == 2

    def test_list_ordered_by_net(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all(
            [
                make_launch("c", "2025-03-01T00:00:00Z"),
                make_launch("a", "2025-01-01T00:00:00Z"),
                make_launch("b", "2025-02-01T00:00:00Z"),
            ]
        )

        nets = [row["net"] for row in store.list_ordered(100)]
        assert nets == sorted(nets)
        assert [row["id"] for row in store.list_ordered(100)] == ["a", "b", "c"]

    def test_list_ordered_ties_broken_by_id(self, db, clock):
        store = LaunchStore(db, clock)
        net = "2025-01-01T00:00:00Z"
        store.upsert_all([make_launch("z", net), make_launch("m", net), make_launch("a", net)])

        assert [row["id"] for row in store.list_ordered(100)] == ["a", "m", "z"]

    def test_list_ordered_respects_max(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all(make_batch(10))

        rows = store.list_ordered(4)
        assert len(rows) == 4
        assert rows[0]["id"] == "launch-001"

    def test_purge_older_than(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all(make_batch(2))
        clock.advance(days=10)
        store.upsert_all(make_batch(3, start_day=20))

        removed = store.purge_older_than(timedelta(days=7))

        assert removed == 2
        assert store.count() == 3

    def test_purge_all(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all(make_batch(5))

        assert store.purge_all() == 5
        assert store.count() == 0


class TestNormalization:
    """Flattening upstream payloads and rebuilding them."""

    def test_missing_substructures_get_defaults(self, clock):
        row = launch_to_row({"id": "x", "name": "Bare", "net": "2025-01-01T00:00:00Z"}, clock())
        (
            _id, _name, net, window_start, window_end,
            status_id, status_name, status_abbrev, status_description,
            lsp_id, lsp_name, lsp_abbrev, lsp_type,
        ) = row[:13]

        assert window_start == net and window_end == net
        assert (status_id, status_name, status_abbrev, status_description) == (0, "Unknown", "UNK", "Unknown")
        assert (lsp_id, lsp_name, lsp_abbrev, lsp_type) == (0, "Unknown", "UNK", "Unknown")
        # variant, mission description, image
        assert row[17] == ""
        assert row[20] is None
        assert row[22:27] == (None, None, None, None, None)

    def test_type_fields_accept_string_or_object(self, clock):
        launch = make_launch("x", "2025-01-01T00:00:00Z")
        launch["launch_service_provider"]["type"] = "Government"
        launch["mission"]["type"] = {"id": 3, "name": "Earth Science"}

        row = launch_to_row(launch, clock())
        assert row[12] == "Government"
        assert row[21] == "Earth Science"

    def test_round_trip_shape(self, db, clock):
        store = LaunchStore(db, clock)
        store.upsert_all([make_launch("x", "2025-01-01T00:00:00Z")])

        launch = store.list_launches(1)[0]
        assert launch["launch_service_provider"]["type"] == "Commercial"
        assert launch["rocket"]["configuration"]["full_name"] == "Falcon 9 Block 5"
        assert launch["mission"]["description"] == "Batch of Starlink satellites."
        assert launch["image"]["thumbnail_url"] == "https://example.org/f9_thumb.jpg"

    def test_row_without_mission_description(self, db, clock):
        store = LaunchStore(db, clock)
        launch = make_launch("x", "2025-01-01T00:00:00Z")
        del launch["mission"]["description"]
        store.upsert_all([launch])

        row = store.list_ordered(1)[0]
        assert isinstance(row, sqlite3.Row)
        assert "description" not in row_to_launch(row)["mission"]

"""Unit tests for the SQLite page metadata store."""

import sqlite3

import pytest

from graphsieve.models.page_record import PageRecord
from graphsieve.services.page_store import STORE_SCHEMA_VERSION, PageStore


def record(name, graph_id="g1", **kwargs) -> PageRecord:
    return PageRecord(graph_id=graph_id, name=name, **kwargs)


class TestPageStore:
    """Tests for PageStore."""

    def test_upsert_and_get(self, store):
        """Test that a record round-trips through the store."""
        original = record("Ideas", uuid="u1", last_modified=10.5, summary=["First", "  * Child"], image="a.png")
        store.upsert(original)

        assert store.get("g1", "Ideas") == original
        assert store.get("g1", "Missing") is None
        assert store.get("g2", "Ideas") is None

    def test_upsert_overwrites(self, store):
        """Test that a second upsert replaces the stored values."""
        store.upsert(record("Ideas", summary=["old"]))
        store.upsert(record("Ideas", summary=["new"]))

        assert store.get("g1", "Ideas").summary == ["new"]
        assert store.count("g1") == 1

    def test_uuid_unique_per_graph(self, store):
        """Test that a uuid moving to a new name removes the old row."""
        store.upsert(record("Old Name", uuid="u1"))
        store.upsert(record("New Name", uuid="u1"))
        store.upsert(record("Other Graph", graph_id="g2", uuid="u1"))

        assert store.get("g1", "Old Name") is None
        assert store.get("g1", "New Name") is not None
        assert store.find_by_uuid("g1", "u1").name == "New Name"
        assert store.find_by_uuid("g2", "u1").name == "Other Graph"

    def test_records_without_uuid_coexist(self, store):
        """Test that empty uuids never collide."""
        store.upsert(record("A"))
        store.upsert(record("B"))

        assert store.count("g1") == 2

    def test_recent_order_and_archived(self, store):
        """Test recency ordering and archived filtering."""
        store.upsert(record("Old", last_modified=1))
        store.upsert(record("New", last_modified=3))
        store.upsert(record("Hidden", last_modified=5, archived=True))

        assert [r.name for r in store.recent("g1")] == ["New", "Old"]
        assert [r.name for r in store.recent("g1", include_archived=True)] == ["Hidden", "New", "Old"]
        assert [r.name for r in store.recent("g1", limit=1)] == ["New"]
        assert [r.name for r in store.archived("g1")] == ["Hidden"]

    def test_flags(self, store):
        """Test favorite/archived flag updates."""
        store.upsert(record("Ideas"))

        assert store.set_flag("g1", "Ideas", "favorite", True)
        assert [r.name for r in store.favorites("g1")] == ["Ideas"]
        assert not store.set_flag("g1", "Missing", "favorite", True)

    def test_unknown_flag_rejected(self, store):
        """Test that only known flags can be set."""
        store.upsert(record("Ideas"))
        with pytest.raises(ValueError):
            store.set_flag("g1", "Ideas", "name", True)

    def test_update_fields(self, store):
        """Test partial updates."""
        store.upsert(record("Ideas", summary=["a"]))
        updated = store.update("g1", "Ideas", summary=["b"], favorite=True)

        assert updated.summary == ["b"]
        assert updated.favorite is True
        assert store.update("g1", "Missing", favorite=True) is None

    def test_delete_and_delete_graph(self, store):
        """Test single and whole-graph deletion."""
        store.upsert(record("A"))
        store.upsert(record("B"))
        store.upsert(record("C", graph_id="g2"))

        assert store.delete("g1", "A")
        assert not store.delete("g1", "A")
        assert store.delete_graph("g1") == 1
        assert store.count("g1") == 0
        assert store.count("g2") == 1

    def test_names_with_prefix(self, store):
        """Test namespace listing by name prefix."""
        for name in ("Projects/Acme", "Projects/Beta", "Personal"):
            store.upsert(record(name))

        assert sorted(store.names_with_prefix("g1", "Projects/")) == ["Projects/Acme", "Projects/Beta"]

    def test_all_by_graph(self, store):
        """Test listing every record of a graph."""
        store.upsert(record("A"))
        store.upsert(record("B", graph_id="g2"))

        assert [r.name for r in store.all_by_graph("g1")] == ["A"]


class TestPageStoreFile:
    """Tests for file-backed stores."""

    def test_persists_between_opens(self, tmp_path):
        """Test that records survive closing and reopening the store."""
        db_path = tmp_path / "cache" / "pages.db"
        with PageStore(db_path) as store:
            store.upsert(record("Ideas", summary=["First"]))

        with PageStore(db_path) as store:
            assert store.get("g1", "Ideas").summary == ["First"]

    def test_schema_version_mismatch_rebuilds(self, tmp_path):
        """Test that a store written by another schema version is discarded."""
        db_path = tmp_path / "pages.db"
        with PageStore(db_path) as store:
            store.upsert(record("Ideas"))

        conn = sqlite3.connect(db_path)
        conn.execute(f"PRAGMA user_version = {STORE_SCHEMA_VERSION + 1}")
        conn.commit()
        conn.close()

        with PageStore(db_path) as store:
            assert store.count("g1") == 0

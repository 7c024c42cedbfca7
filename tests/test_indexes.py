"""
Tests for subcollection/views/indexes.py.
"""
import uuid
from types import SimpleNamespace

import pytest

from subcollection.models import Record
from subcollection.views.indexes import IndexStore


@pytest.fixture
def records():
    return [Record(id=i, sku=f"sku-{i}") for i in range(3)]


@pytest.fixture
def store(records):
    store = IndexStore(["id", "sku", "cid"])
    store.rebuild(records)
    return store


class TestIndexStore:
    """Tests for IndexStore."""

    def test_names_put_main_first_and_fallback_last(self):
        store = IndexStore(["sku"], main_index="id")
        assert store.names == ["id", "sku", "cid"]

    def test_lookup_by_main_key(self, store, records):
        assert store.lookup(1) is records[1]

    def test_lookup_by_named_index(self, store, records):
        assert store.lookup("sku-2", "sku") is records[2]

    def test_lookup_falls_back_to_cid(self, store, records):
        assert store.lookup(records[0].cid) is records[0]

    def test_lookup_by_record(self, store, records):
        """Records resolve by identity, then by their own keys."""
        assert store.lookup(records[2]) is records[2]
        twin = SimpleNamespace(id=2)
        assert store.lookup(twin) is records[2]

    def test_lookup_miss(self, store):
        assert store.lookup(99) is None
        assert store.lookup(None) is None
        assert store.lookup(SimpleNamespace()) is None

    def test_lookup_by_uuid_key(self):
        key = uuid.uuid4()
        record = Record(id=key)
        store = IndexStore(["id"])
        store.rebuild([record])

        assert store.lookup(key) is record
        assert store.lookup(uuid.uuid4()) is None

    def test_rebuild_replaces_everything(self, store, records):
        store.rebuild(records[:1])
        assert len(store) == 1
        assert store.lookup(2) is None

    def test_put_and_delete(self, store):
        extra = Record(id=10)
        store.put(extra)
        assert store.contains(extra)
        assert store.lookup(10) is extra

        store.delete(extra)
        assert not store.contains(extra)
        assert store.lookup(10) is None
        assert store.lookup(extra.cid) is None

    def test_delete_after_key_change(self, store, records):
        """Stale keys are found by scanning when the indexed value moved."""
        record = records[0]
        record.set({"id": 50}, silent=True)

        store.delete(record)

        assert store.lookup(0) is None
        assert store.lookup(50) is None

    def test_reindex(self, store, records):
        record = records[1]
        record.set({"sku": "new"}, silent=True)

        store.reindex(record)

        assert store.lookup("new", "sku") is record
        assert store.lookup("sku-1", "sku") is None

    def test_reindex_ignores_non_members(self, store):
        outsider = Record(id=77)
        store.reindex(outsider)
        assert not store.contains(outsider)

    def test_contains_is_identity(self, store, records):
        assert store.contains(records[0])
        assert not store.contains(Record(id=0))

    def test_keyless_records_are_members(self):
        store = IndexStore(["id"])
        anonymous = SimpleNamespace()
        store.rebuild([anonymous])
        assert store.contains(anonymous)
        assert len(store) == 1

    def test_unhashable_values_skipped(self):
        store = IndexStore(["id", "tags"])
        record = SimpleNamespace(id=1, tags=["a"])
        store.put(record)
        assert store.lookup(1) is record

    def test_clear(self, store):
        store.clear()
        assert len(store) == 0
        assert store.lookup(0) is None

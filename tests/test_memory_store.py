"""
Tests for MemoryStore.
"""
import pytest

from device_vault.storage import MemoryStore
from device_vault.vault.exceptions import DuplicateDocument


class TestMemoryStore:

    async def test_insert_assigns_id_and_timestamp(self, store):
        doc = await store.insert("things", {"name": "a"})
        assert doc["name"] == "a"
        assert doc["id"]
        assert doc["created_at"].tzinfo is not None

    async def test_find_equality_filter(self, store):
        await store.insert("things", {"name": "a", "kind": 1})
        await store.insert("things", {"name": "b", "kind": 1})
        await store.insert("others", {"name": "a", "kind": 1})
        found = await store.find("things", {"name": "a"})
        assert [d["name"] for d in found] == ["a"]
        assert len(await store.find("things", {"kind": 1})) == 2

    async def test_results_newest_first_and_limited(self, store):
        for name in ("a", "b", "c"):
            await store.insert("things", {"name": name})
        docs = await store.list_all("things", limit=2)
        assert [d["name"] for d in docs] == ["c", "b"]

    async def test_unknown_collection_is_empty(self, store):
        assert await store.list_all("nothing") == []
        assert await store.find("nothing", {"a": 1}) == []

    async def test_returned_documents_are_copies(self, store):
        """Test callers cannot mutate stored documents."""
        doc = await store.insert("things", {"name": "a"})
        doc["name"] = "changed"
        (await store.list_all("things"))[0]["name"] = "changed"
        assert (await store.list_all("things"))[0]["name"] == "a"

    async def test_unique_constraint(self):
        store = MemoryStore(unique={"devices": ["identifier"]})
        await store.insert("devices", {"identifier": "x"})
        await store.insert("devices", {"identifier": "y"})
        await store.insert("other", {"identifier": "x"})
        with pytest.raises(DuplicateDocument) as exc:
            await store.insert("devices", {"identifier": "x"})
        assert exc.value.collection == "devices"
        assert len(await store.list_all("devices")) == 2

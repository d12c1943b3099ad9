"""
Tests for DeviceRegistry.

Tests cover:
- Registration returns the derived signature and stores one record
- Duplicate identifiers, including store-level constraints
- Signature resolution and normalization
"""
import pytest

from device_vault.data import DeviceRecord
from device_vault.storage import MemoryStore
from device_vault.vault import DeviceRegistry, derive_signature
from device_vault.vault.exceptions import (
    DuplicateIdentifierError,
    StoreUnavailable,
)


class RacingStore(MemoryStore):
    """Store whose existence check never sees earlier registrations."""

    async def find(self, collection, filters, limit=None):
        return []


class TestRegister:
    """Tests for register()."""

    async def test_returns_derived_signature(self, registry, config):
        """Test the signature equals derive_signature(identifier, secret)."""
        signature = await registry.register("device-A")
        assert signature == derive_signature("device-A", config.secret)
        assert len(signature) == 64

    async def test_stores_record(self, registry, store, config):
        """Test a device record is inserted."""
        signature = await registry.register("device-A")
        docs = await store.find(config.device_collection, {"identifier": "device-A"})
        assert len(docs) == 1
        assert docs[0]["signature"] == signature

    async def test_duplicate_identifier(self, registry, store, config):
        """Test a second registration raises DuplicateIdentifierError."""
        await registry.register("device-A")
        with pytest.raises(DuplicateIdentifierError) as exc:
            await registry.register("device-A")
        assert exc.value.identifier == "device-A"
        assert len(await store.list_all(config.device_collection)) == 1

    async def test_distinct_identifiers(self, registry):
        """Test different identifiers get different signatures."""
        assert await registry.register("a") != await registry.register("b")

    async def test_race_without_constraint(self, config):
        """Test a missed existence check lets both inserts through."""
        store = RacingStore()
        registry = DeviceRegistry(store, config)
        first = await registry.register("device-A")
        second = await registry.register("device-A")
        assert first == second
        assert len(await store.list_all(config.device_collection)) == 2

    async def test_race_closed_by_store_constraint(self, config):
        """Test a store uniqueness violation maps to DuplicateIdentifierError."""
        store = RacingStore(unique={config.device_collection: ["identifier"]})
        registry = DeviceRegistry(store, config)
        await registry.register("device-A")
        with pytest.raises(DuplicateIdentifierError):
            await registry.register("device-A")

    async def test_store_unavailable(self, config):
        """Test store failures propagate."""
        class Broken(MemoryStore):
            async def find(self, collection, filters, limit=None):
                raise StoreUnavailable("down")

        with pytest.raises(StoreUnavailable):
            await DeviceRegistry(Broken(), config).register("device-A")


class TestResolve:
    """Tests for resolve()."""

    async def test_resolve_registered(self, registry):
        """Test resolve(register(x)).identifier == x."""
        signature = await registry.register("device-A")
        record = await registry.resolve(signature)
        assert isinstance(record, DeviceRecord)
        assert record.identifier == "device-A"
        assert record.signature == signature
        assert record.document_id

    async def test_resolve_trims_whitespace(self, registry):
        """Test surrounding whitespace is ignored."""
        signature = await registry.register("device-A")
        record = await registry.resolve(f"  {signature}\n")
        assert record is not None
        assert record.identifier == "device-A"

    async def test_resolve_unknown(self, registry):
        """Test unknown signatures return None."""
        assert await registry.resolve("f" * 64) is None

    @pytest.mark.parametrize("value", [None, "", "   "])
    async def test_resolve_empty(self, registry, value):
        """Test empty input returns None."""
        assert await registry.resolve(value) is None

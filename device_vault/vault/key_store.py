"""
Master Key Store — Append-only sequence of master keys.

The current master key is the record with the greatest creation time.
Records are never updated or removed; a rotation appends a new record and
older keys become unreachable once superseded.

Security Note:
    Never log master key values. Only log record ids and timestamps.
"""
import logging
from typing import Optional

from ..data import MasterKeyRecord
from ..storage.abstract import AbstractStore
from .config import VaultConfig
from .crypto import generate_key_material

logger = logging.getLogger("device_vault.vault")


class MasterKeyStore:
    """Generates, appends and resolves master keys.

    Args:
        store: Document store holding the master key collection.
        config: Vault configuration (collection name, scan limit).
    """

    def __init__(self, store: AbstractStore, config: VaultConfig):
        self._store = store
        self._collection = config.master_key_collection
        self._scan_limit = config.key_scan_limit

    async def rotate(self) -> str:
        """Generate a new master key and append it to the store.

        Returns:
            The new key as 64 hex characters.

        Raises:
            StoreUnavailable: If the store rejects the insert.
        """
        value = generate_key_material()
        doc = await self._store.insert(self._collection, {"value": value})
        logger.info("Master key rotated and stored: id=%s", doc.get("id"))
        return value

    async def current_record(self) -> Optional[MasterKeyRecord]:
        """Return the newest master key record, or None if the store is empty.

        Scans at most ``key_scan_limit`` records.
        """
        docs = await self._store.list_all(self._collection, limit=self._scan_limit)
        records = [
            MasterKeyRecord.from_document(d) for d in docs if d.get("value")
        ]
        if not records:
            return None
        # max() keeps the first of equal timestamps
        return max(records, key=lambda r: r.created_at)

    async def current(self) -> str:
        """Return the current master key, generating one on an empty store."""
        record = await self.current_record()
        if record is None:
            logger.warning("No master key found, generating new one")
            return await self.rotate()
        logger.debug("Current master key: id=%s", record.document_id)
        return record.value

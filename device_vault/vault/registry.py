"""
Device Registry — One identity per identifier.

Registration is a read-then-write sequence: two concurrent registrations of
the same identifier may both pass the existence check. The race is closed
only when the store enforces uniqueness on the identifier field; that
violation is reported as ``DuplicateIdentifierError`` as well.
"""
import logging
from typing import Any, Optional

from ..data import DeviceRecord
from ..storage.abstract import AbstractStore
from .config import VaultConfig
from .crypto import derive_signature
from .exceptions import DuplicateDocument, DuplicateIdentifierError

logger = logging.getLogger("device_vault.vault")


def normalize_signature(signature: Any) -> str:
    """Coerce to string and trim surrounding whitespace."""
    if isinstance(signature, str):
        return signature.strip()
    return str(signature or "").strip()


class DeviceRegistry:
    """Registers devices and resolves signatures back to devices."""

    def __init__(self, store: AbstractStore, config: VaultConfig):
        self._store = store
        self._collection = config.device_collection
        self._config = config

    async def register(self, identifier: str) -> str:
        """Register a device identifier and return its signature.

        Raises:
            DuplicateIdentifierError: If the identifier is already registered.
            StoreUnavailable: On store failure.
        """
        logger.info("Register device: identifier=%s", identifier)
        signature = derive_signature(identifier, self._config.secret)

        existing = await self._store.find(
            self._collection, {"identifier": identifier}, limit=1,
        )
        if existing:
            logger.warning("Identifier already registered: %s", identifier)
            raise DuplicateIdentifierError(identifier)

        try:
            doc = await self._store.insert(
                self._collection,
                {"identifier": identifier, "signature": signature},
            )
        except DuplicateDocument as err:
            logger.warning(
                "Identifier already registered (store constraint): %s", identifier,
            )
            raise DuplicateIdentifierError(identifier) from err

        logger.info(
            "Device registered: id=%s signature=%s...", doc.get("id"), signature[:8],
        )
        return signature

    async def resolve(self, signature: Any) -> Optional[DeviceRecord]:
        """Return the device registered under ``signature``, or None."""
        signature = normalize_signature(signature)
        if not signature:
            return None
        docs = await self._store.find(
            self._collection, {"signature": signature}, limit=1,
        )
        found = DeviceRecord.from_document(docs[0]) if docs else None
        logger.info(
            "Resolve device: signature=%s... found=%s", signature[:8], found is not None,
        )
        return found

"""
In-memory document store.

Used for local development and tests. Data is lost on restart.
"""
import uuid
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ..vault.exceptions import DuplicateDocument
from .abstract import AbstractStore

logger = logging.getLogger("device_vault.storage")


class MemoryStore(AbstractStore):
    """Dict-backed document store.

    Args:
        unique: Optional mapping of collection name to the fields whose
            values must be unique within that collection.
    """

    def __init__(self, unique: Optional[dict[str, list[str]]] = None):
        self._collections: dict[str, list[dict]] = {}
        self._unique = {k: tuple(v) for k, v in (unique or {}).items()}
        self._lock = asyncio.Lock()

    @staticmethod
    def _matches(doc: dict, filters: dict[str, Any]) -> bool:
        return all(doc.get(k) == v for k, v in filters.items())

    def _newest_first(self, collection: str) -> list[dict]:
        docs = self._collections.get(collection, [])
        # insertion order breaks created_at ties
        return [dict(d) for d in reversed(docs)]

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        limit: Optional[int] = None,
    ) -> list[dict]:
        result = [
            d for d in self._newest_first(collection) if self._matches(d, filters)
        ]
        return result[:limit] if limit is not None else result

    async def insert(self, collection: str, fields: dict[str, Any]) -> dict:
        async with self._lock:
            docs = self._collections.setdefault(collection, [])
            unique_fields = self._unique.get(collection)
            if unique_fields:
                for field in unique_fields:
                    if field in fields and any(
                        d.get(field) == fields[field] for d in docs
                    ):
                        raise DuplicateDocument(collection, unique_fields)
            doc = {
                **fields,
                "id": uuid.uuid4().hex,
                "created_at": datetime.now(timezone.utc),
            }
            docs.append(doc)
        logger.debug("Inserted document into %s: id=%s", collection, doc["id"])
        return dict(doc)

    async def list_all(
        self,
        collection: str,
        limit: Optional[int] = None,
    ) -> list[dict]:
        result = self._newest_first(collection)
        return result[:limit] if limit is not None else result

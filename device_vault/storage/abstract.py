"""
Document Store Contract — The three operations the vault needs from a store.

Documents are plain dicts. The store assigns ``id`` and ``created_at`` on
insert; results are returned newest first.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class AbstractStore(ABC):
    """Append/query capable document store.

    Implementations raise ``StoreUnavailable`` on backend failure and
    ``DuplicateDocument`` when a uniqueness constraint rejects an insert.
    """

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Return documents whose fields equal every value in ``filters``."""

    @abstractmethod
    async def insert(self, collection: str, fields: dict[str, Any]) -> dict:
        """Append a document and return it with ``id`` and ``created_at``."""

    @abstractmethod
    async def list_all(
        self,
        collection: str,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Return up to ``limit`` documents of a collection."""

    async def close(self) -> None:
        """Release backend resources. No-op by default."""

"""
PostgreSQL document store — JSONB documents in a single append-only table.

Each document row holds its collection name, its fields as JSONB and a
server-assigned creation timestamp. Rows are never updated or deleted.

Security Note:
    Never log document fields; they may carry key material.
"""
import re
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import orjson
import asyncpg

from ..vault.exceptions import DuplicateDocument, StoreUnavailable
from .abstract import AbstractStore

logger = logging.getLogger("device_vault.storage")

_IDENT_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

# SQL statements ({table} is validated against _IDENT_PATTERN)
_FIND = """
SELECT id, fields, created_at
FROM {table}
WHERE collection = $1 AND fields @> $2::jsonb
ORDER BY created_at DESC
LIMIT $3
"""

_LIST_ALL = """
SELECT id, fields, created_at
FROM {table}
WHERE collection = $1
ORDER BY created_at DESC
LIMIT $2
"""

_INSERT = """
INSERT INTO {table} (collection, fields)
VALUES ($1, $2::jsonb)
RETURNING id, fields, created_at
"""

_CREATE_SCHEMA = "CREATE SCHEMA IF NOT EXISTS {schema}"

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
    collection text NOT NULL,
    fields jsonb NOT NULL,
    created_at timestamptz NOT NULL DEFAULT NOW()
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS {name}
ON {table} (collection, created_at DESC)
"""

_CREATE_UNIQUE_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS {name}
ON {table} ((fields->>'{field}'))
WHERE collection = '{collection}'
"""


def _check_ident(value: str) -> str:
    if not _IDENT_PATTERN.match(value):
        raise ValueError(f"Invalid SQL identifier: {value!r}")
    return value


class PostgresStore(AbstractStore):
    """Document store backed by an asyncpg-compatible connection pool.

    Args:
        pool: asyncpg-compatible connection pool.
        table: Schema-qualified document table name.
        timeout: Per-statement timeout in seconds.
    """

    def __init__(
        self,
        pool: Any,
        table: str = "vault.documents",
        timeout: Optional[float] = None,
    ):
        self._pool = pool
        self._table = _check_ident(table)
        self._timeout = timeout
        self._unique: dict[str, tuple] = {}

    @classmethod
    async def from_dsn(
        cls,
        dsn: str,
        table: str = "vault.documents",
        timeout: Optional[float] = None,
        **kwargs,
    ) -> "PostgresStore":
        """Create a pool for ``dsn`` and wrap it in a store."""
        try:
            pool = await asyncpg.create_pool(dsn, **kwargs)
        except (asyncpg.PostgresError, OSError, asyncio.TimeoutError) as err:
            raise StoreUnavailable(f"Cannot connect to document store: {err}") from err
        logger.info("Document store pool created for table %s", table)
        return cls(pool, table=table, timeout=timeout)

    @asynccontextmanager
    async def _connection(self, operation: str, collection: str):
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except asyncpg.UniqueViolationError as err:
            fields = self._unique.get(collection, ())
            logger.warning(
                "Unique constraint violated on %s %s", collection, list(fields),
            )
            raise DuplicateDocument(collection, fields) from err
        except (
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
            OSError,
            asyncio.TimeoutError,
        ) as err:
            logger.error(
                "Document store %s failed on collection=%s: %s",
                operation, collection, err,
            )
            raise StoreUnavailable(
                f"Document store {operation} failed on {collection}"
            ) from err

    @staticmethod
    def _to_document(row: Any) -> dict:
        fields = row["fields"]
        if isinstance(fields, (str, bytes)):
            fields = orjson.loads(fields)
        return {
            **fields,
            "id": str(row["id"]),
            "created_at": row["created_at"],
        }

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        limit: Optional[int] = None,
    ) -> list[dict]:
        query = _FIND.format(table=self._table)
        async with self._connection("find", collection) as conn:
            rows = await conn.fetch(
                query,
                collection,
                orjson.dumps(filters).decode("utf-8"),
                limit,
                timeout=self._timeout,
            )
        return [self._to_document(row) for row in rows]

    async def insert(self, collection: str, fields: dict[str, Any]) -> dict:
        query = _INSERT.format(table=self._table)
        async with self._connection("insert", collection) as conn:
            row = await conn.fetchrow(
                query,
                collection,
                orjson.dumps(fields).decode("utf-8"),
                timeout=self._timeout,
            )
        doc = self._to_document(row)
        logger.debug("Inserted document into %s: id=%s", collection, doc["id"])
        return doc

    async def list_all(
        self,
        collection: str,
        limit: Optional[int] = None,
    ) -> list[dict]:
        query = _LIST_ALL.format(table=self._table)
        async with self._connection("list", collection) as conn:
            rows = await conn.fetch(
                query, collection, limit, timeout=self._timeout,
            )
        return [self._to_document(row) for row in rows]

    async def create_schema(
        self,
        unique: Optional[dict[str, list[str]]] = None,
    ) -> None:
        """Create the document table and its indexes.

        Args:
            unique: Optional mapping of collection to fields that must be
                unique within it (one partial unique index per field).
        """
        base = self._table.replace(".", "_")
        statements = []
        if "." in self._table:
            statements.append(
                _CREATE_SCHEMA.format(schema=self._table.split(".", 1)[0])
            )
        statements.append(_CREATE_TABLE.format(table=self._table))
        statements.append(
            _CREATE_INDEX.format(name=f"{base}_collection_idx", table=self._table)
        )
        for collection, fields in (unique or {}).items():
            _check_ident(collection)
            for field in fields:
                _check_ident(field)
                statements.append(
                    _CREATE_UNIQUE_INDEX.format(
                        name=f"{base}_{collection}_{field}_uidx",
                        table=self._table,
                        field=field,
                        collection=collection,
                    )
                )
            self._unique[collection] = tuple(fields)

        async with self._connection("create_schema", self._table) as conn:
            for statement in statements:
                await conn.execute(statement)
        logger.info("Document store schema ready: %s", self._table)

    async def close(self) -> None:
        await self._pool.close()

"""
Durable document storage.

Collections of JSON documents addressed by (collection, doc_id). Documents are
plain JSON-compatible dicts; callers serialize models with
model_dump(mode="json") before writing and validate them on read.

Two backends:
- MemoryDocumentStore: process-local, for tests and local development.
- PostgresDocumentStore: JSONB rows in a single `documents` table.
"""

import copy
import logging
from typing import Any, Protocol
from uuid import uuid4

from psycopg2.extras import Json
from starlette.concurrency import run_in_threadpool

from clients.postgres_client import PostgresClient

logger = logging.getLogger(__name__)

Document = dict[str, Any]


class DocumentNotFoundError(Exception):
    """update() targeted a document that does not exist."""


class DocumentStore(Protocol):
    """Async key/value document store with simple equality queries."""

    async def get(self, collection: str, doc_id: str) -> Document | None: ...

    async def set(self, collection: str, doc_id: str, data: Document) -> None: ...

    async def update(self, collection: str, doc_id: str, fields: Document) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> bool: ...

    async def add(self, collection: str, data: Document) -> str: ...

    async def query(self, collection: str, where: Document) -> list[tuple[str, Document]]: ...

    async def delete_where(self, collection: str, where: Document) -> int: ...


def _matches(data: Document, where: Document) -> bool:
    return all(data.get(key) == value for key, value in where.items())


class MemoryDocumentStore:
    """
    In-memory DocumentStore.

    Reads and writes deep-copy documents so callers never share mutable state
    with the store, mirroring a real serialization boundary.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = {}

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    async def get(self, collection: str, doc_id: str) -> Document | None:
        data = self._collection(collection).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy(data)

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")
        docs[doc_id].update(copy.deepcopy(fields))

    async def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    async def add(self, collection: str, data: Document) -> str:
        doc_id = uuid4().hex
        await self.set(collection, doc_id, data)
        return doc_id

    async def query(self, collection: str, where: Document) -> list[tuple[str, Document]]:
        return [
            (doc_id, copy.deepcopy(data))
            for doc_id, data in self._collection(collection).items()
            if _matches(data, where)
        ]

    async def delete_where(self, collection: str, where: Document) -> int:
        docs = self._collection(collection)
        doomed = [doc_id for doc_id, data in docs.items() if _matches(data, where)]
        for doc_id in doomed:
            del docs[doc_id]
        return len(doomed)


class PostgresDocumentStore:
    """
    DocumentStore backed by a JSONB table.

    Equality queries use JSONB containment (data @> where), which the GIN
    index on `data` serves.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS documents (
            collection TEXT NOT NULL,
            doc_id TEXT NOT NULL,
            data JSONB NOT NULL,
            PRIMARY KEY (collection, doc_id)
        );
        CREATE INDEX IF NOT EXISTS documents_data_gin ON documents USING GIN (data);
    """

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def ensure_schema(self) -> None:
        """Create the documents table if missing. Blocking; call at startup."""
        self._db.execute(self.SCHEMA)
        logger.info("Document table ready")

    async def get(self, collection: str, doc_id: str) -> Document | None:
        row = await run_in_threadpool(
            self._db.execute_single,
            "SELECT data FROM documents WHERE collection = %s AND doc_id = %s",
            (collection, doc_id),
        )
        return row["data"] if row else None

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        await run_in_threadpool(
            self._db.execute_returning,
            """INSERT INTO documents (collection, doc_id, data)
               VALUES (%s, %s, %s)
               ON CONFLICT (collection, doc_id) DO UPDATE SET data = EXCLUDED.data
               RETURNING doc_id""",
            (collection, doc_id, Json(data)),
        )

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        rows = await run_in_threadpool(
            self._db.execute_returning,
            """UPDATE documents SET data = data || %s
               WHERE collection = %s AND doc_id = %s
               RETURNING doc_id""",
            (Json(fields), collection, doc_id),
        )
        if not rows:
            raise DocumentNotFoundError(f"{collection}/{doc_id} not found")

    async def delete(self, collection: str, doc_id: str) -> bool:
        rows = await run_in_threadpool(
            self._db.execute_returning,
            "DELETE FROM documents WHERE collection = %s AND doc_id = %s RETURNING doc_id",
            (collection, doc_id),
        )
        return len(rows) > 0

    async def add(self, collection: str, data: Document) -> str:
        doc_id = uuid4().hex
        await self.set(collection, doc_id, data)
        return doc_id

    async def query(self, collection: str, where: Document) -> list[tuple[str, Document]]:
        rows = await run_in_threadpool(
            self._db.execute,
            "SELECT doc_id, data FROM documents WHERE collection = %s AND data @> %s",
            (collection, Json(where)),
        )
        return [(row["doc_id"], row["data"]) for row in rows]

    async def delete_where(self, collection: str, where: Document) -> int:
        rows = await run_in_threadpool(
            self._db.execute_returning,
            "DELETE FROM documents WHERE collection = %s AND data @> %s RETURNING doc_id",
            (collection, Json(where)),
        )
        return len(rows)

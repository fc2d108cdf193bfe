"""SQLite document store with one JSON document per record."""

import asyncio
import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

import aiosqlite

from family_tasks.core.config import settings


logger = logging.getLogger(__name__)


class DocumentBackend(Protocol):
    """Persistence port used by the task store and recurrence engine.

    Documents are opaque JSON text; decoding happens in the services so that a
    corrupt body can be detected and skipped per record.
    """

    async def read(self, collection: str, doc_id: str) -> str | None:
        """Return the raw document body, or None if it does not exist."""
        ...

    async def write(self, collection: str, doc_id: str, body: str) -> None:
        """Insert or replace a document."""
        ...

    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        ...

    async def list_ids(self, collection: str) -> list[str]:
        """Return every document id in the collection."""
        ...

    async def close(self) -> None: ...


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


_SCHEMA = """CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    body TEXT NOT NULL,
    updated TEXT NOT NULL,
    PRIMARY KEY (collection, doc_id)
)"""


class SQLiteDocumentBackend:
    """aiosqlite-backed DocumentBackend.

    One connection per backend instance, opened lazily on first use.
    """

    def __init__(self, db_path: str | None = None) -> None:
        self._path = get_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def _get_connection(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn

        async with self._connect_lock:
            # Double-check after acquiring lock
            if self._conn is not None:
                return self._conn

            self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._path))
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.execute(_SCHEMA)
            await conn.commit()
            self._conn = conn

            logger.info("Opened SQLite document store", extra={"db_path": str(self._path)})
            return conn

    async def init_db(self) -> None:
        """Create the schema if missing."""
        await self._get_connection()

    async def read(self, collection: str, doc_id: str) -> str | None:
        try:
            _validate_collection_name(collection)
            conn = await self._get_connection()
            cursor = await conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            row = await cursor.fetchone()
            return None if row is None else str(row[0])
        except ValueError:
            raise
        except Exception as e:
            logger.error("read_document_failed", extra={"collection": collection, "doc_id": doc_id, "error": str(e)})
            msg = f"Failed to read document {collection}/{doc_id}: {e}"
            raise RuntimeError(msg) from e

    async def write(self, collection: str, doc_id: str, body: str) -> None:
        try:
            _validate_collection_name(collection)
            conn = await self._get_connection()
            await conn.execute(
                "INSERT INTO documents (collection, doc_id, body, updated) VALUES (?, ?, ?, ?) "
                "ON CONFLICT (collection, doc_id) DO UPDATE SET body = excluded.body, updated = excluded.updated",
                (collection, doc_id, body, datetime.now(UTC).isoformat()),
            )
            await conn.commit()
            logger.debug("Wrote document", extra={"collection": collection, "doc_id": doc_id})
        except ValueError:
            raise
        except Exception as e:
            logger.error("write_document_failed", extra={"collection": collection, "doc_id": doc_id, "error": str(e)})
            msg = f"Failed to write document {collection}/{doc_id}: {e}"
            raise RuntimeError(msg) from e

    async def delete(self, collection: str, doc_id: str) -> bool:
        try:
            _validate_collection_name(collection)
            conn = await self._get_connection()
            cursor = await conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            await conn.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.debug("Deleted document", extra={"collection": collection, "doc_id": doc_id})
            return deleted
        except ValueError:
            raise
        except Exception as e:
            logger.error("delete_document_failed", extra={"collection": collection, "doc_id": doc_id, "error": str(e)})
            msg = f"Failed to delete document {collection}/{doc_id}: {e}"
            raise RuntimeError(msg) from e

    async def list_ids(self, collection: str) -> list[str]:
        try:
            _validate_collection_name(collection)
            conn = await self._get_connection()
            cursor = await conn.execute(
                "SELECT doc_id FROM documents WHERE collection = ? ORDER BY doc_id",
                (collection,),
            )
            rows = await cursor.fetchall()
            return [str(row[0]) for row in rows]
        except ValueError:
            raise
        except Exception as e:
            logger.error("list_documents_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to list documents in {collection}: {e}"
            raise RuntimeError(msg) from e

    async def close(self) -> None:
        """Close the connection if open."""
        if self._conn is None:
            return
        try:
            await self._conn.close()
            logger.info("Closed SQLite document store", extra={"db_path": str(self._path)})
        except Exception as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e)})
        finally:
            self._conn = None

"""
Document store - async CRUD over named collections.
SQLite is the canonical truth; the vector index and translation maps derive from it.
"""

import copy
import json
import sqlite3
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .config import STORE_MAX_RETRIES
from .db import get_db, init_db
from .errors import ConflictError, NotFoundError

from ..util.logging import logger

SYSTEM_FIELDS = ("id", "createdAt", "updatedAt")


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def deep_merge(target: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge patch into target. Nested dicts merge, everything else replaces."""
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class IDocumentStore(ABC):
    """Abstract interface for the canonical document store."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one document or None."""
        pass

    @abstractmethod
    async def list(self, collection: str, filters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        """List documents matching every equality filter, ordered by ID."""
        pass

    @abstractmethod
    async def create(self, collection: str, data: Dict[str, Any], doc_id: str = None) -> Dict[str, Any]:
        """Insert a document; the store assigns id and timestamps."""
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        """Replace top-level fields of an existing document."""
        pass

    @abstractmethod
    async def merge(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge a patch into an existing document."""
        pass

    @abstractmethod
    async def mutate(self, collection: str, doc_id: str, fn: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Dict[str, Any]:
        """Read-modify-write with optimistic concurrency."""
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False when it did not exist."""
        pass

    @abstractmethod
    async def count(self, collection: str, filters: Dict[str, Any] = None) -> int:
        """Count documents matching every equality filter."""
        pass


class SQLiteDocumentStore(IDocumentStore):
    """JSON documents in a single SQLite table, keyed by (collection, id)."""

    def __init__(self, db_path: str = None, max_retries: int = STORE_MAX_RETRIES):
        self.db_path = db_path
        self.max_retries = max_retries
        init_db(db_path)

    @staticmethod
    def _where(collection: str, filters: Dict[str, Any] = None):
        clauses = ["collection = ?"]
        params: List[Any] = [collection]
        for field, value in (filters or {}).items():
            if value is None:
                continue
            # JSON path goes in as a bound parameter, never interpolated
            clauses.append("json_extract(data, ?) = ?")
            params.extend([f"$.{field}", value])
        return " AND ".join(clauses), params

    def _read(self, conn: sqlite3.Connection, collection: str, doc_id: str):
        cursor = conn.cursor()
        cursor.execute(
            "SELECT data, version FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id)
        )
        row = cursor.fetchone()
        if row is None:
            return None, None
        return json.loads(row["data"]), row["version"]

    def _write(self, conn: sqlite3.Connection, collection: str, doc: Dict[str, Any], version: int) -> bool:
        """Write doc if the stored version still equals version."""
        cursor = conn.cursor()
        cursor.execute(
            """UPDATE documents SET data = ?, version = version + 1, updated_at = ?
               WHERE collection = ? AND id = ? AND version = ?""",
            (json.dumps(doc), doc["updatedAt"], collection, doc["id"], version)
        )
        return cursor.rowcount == 1

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        with get_db(self.db_path) as conn:
            doc, _ = self._read(conn, collection, doc_id)
        return doc

    async def list(self, collection: str, filters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        where, params = self._where(collection, filters)
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT data FROM documents WHERE {where} ORDER BY id ASC", params)
            rows = cursor.fetchall()
        return [json.loads(row["data"]) for row in rows]

    async def create(self, collection: str, data: Dict[str, Any], doc_id: str = None) -> Dict[str, Any]:
        now = utc_now_iso()
        doc = {k: v for k, v in copy.deepcopy(data).items() if k not in SYSTEM_FIELDS}
        doc["id"] = doc_id or uuid.uuid4().hex
        doc["createdAt"] = now
        doc["updatedAt"] = now

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """INSERT INTO documents (collection, id, data, version, created_at, updated_at)
                       VALUES (?, ?, ?, 1, ?, ?)""",
                    (collection, doc["id"], json.dumps(doc), now, now)
                )
            except sqlite3.IntegrityError:
                raise ConflictError(f"{collection}/{doc['id']} already exists")
            conn.commit()

        return doc

    async def update(self, collection: str, doc_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        def apply(doc):
            for key, value in partial.items():
                if key not in SYSTEM_FIELDS:
                    doc[key] = copy.deepcopy(value)
            return doc

        return await self.mutate(collection, doc_id, apply)

    async def merge(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        safe_patch = {k: v for k, v in patch.items() if k not in SYSTEM_FIELDS}
        return await self.mutate(collection, doc_id, lambda doc: deep_merge(doc, safe_patch))

    async def mutate(self, collection: str, doc_id: str, fn: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Dict[str, Any]:
        """Apply fn to a fresh copy of the document and compare-and-swap it back.

        fn may raise to abort; nothing is written in that case. Retries up to
        max_retries times when another writer bumped the version in between.
        """
        for attempt in range(self.max_retries):
            with get_db(self.db_path) as conn:
                doc, version = self._read(conn, collection, doc_id)
                if doc is None:
                    raise NotFoundError(f"{collection}/{doc_id} not found")

                updated = fn(copy.deepcopy(doc))
                updated["id"] = doc["id"]
                updated["createdAt"] = doc["createdAt"]
                updated["updatedAt"] = utc_now_iso()

                if self._write(conn, collection, updated, version):
                    conn.commit()
                    return updated

            logger.log_operation(
                "store.mutate", "retry",
                {"collection": collection, "id": doc_id, "attempt": attempt + 1}
            )

        raise ConflictError(f"Concurrent modification of {collection}/{doc_id}, please retry")

    async def delete(self, collection: str, doc_id: str) -> bool:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM documents WHERE collection = ? AND id = ?", (collection, doc_id))
            conn.commit()
            return cursor.rowcount > 0

    async def count(self, collection: str, filters: Dict[str, Any] = None) -> int:
        where, params = self._where(collection, filters)
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) FROM documents WHERE {where}", params)
            return cursor.fetchone()[0]

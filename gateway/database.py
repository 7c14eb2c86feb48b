"""SQLite-backed JSON document store (collection/key addressed)."""

import json
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Tuple

from common.logging_config import get_logger
from gateway.exceptions import DocumentConflictError, StoreError

logger = get_logger(__name__)

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _json_path(field: str) -> str:
    if not _FIELD_NAME.match(field):
        raise ValueError(f"Invalid document field name: {field!r}")
    return f"$.{field}"


class DocumentStore:
    """
    Key/value document store with simple equality and ordering queries.

    Every document lives in a ``(collection, doc_key)`` slot as a JSON body.
    Writes to one slot are last-writer-wins except for ``add_to_set`` and
    ``put_if_absent``, which run inside an immediate transaction.
    """

    def __init__(self, database_path: str, busy_timeout_seconds: float = 5.0):
        self.database_path = database_path
        self.busy_timeout_seconds = busy_timeout_seconds

    def init_database(self) -> None:
        """
        Create the documents table if it doesn't exist.
        """
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_key TEXT NOT NULL,
                    body TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY(collection, doc_key)
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection)
            """)

        logger.info(f"Document store initialized [path={self.database_path}]")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for autocommit connections; sqlite errors surface as StoreError.
        """
        try:
            conn = sqlite3.connect(
                self.database_path,
                timeout=self.busy_timeout_seconds,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open document store at {self.database_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Document store error: {e}", exc_info=True)
            raise StoreError(f"Document store error: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key)
            ).fetchone()

        if row is None:
            return None
        return json.loads(row["body"])

    def put(self, collection: str, key: str, document: Dict[str, Any]) -> None:
        """
        Insert or overwrite a document.
        """
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO documents (collection, doc_key, body, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(collection, doc_key) DO UPDATE SET
                    body = excluded.body,
                    updated_at = excluded.updated_at
                """,
                (collection, key, json.dumps(document), self._now())
            )

    def put_if_absent(self, collection: str, key: str, document: Dict[str, Any]) -> bool:
        """
        Insert a document only when the slot is empty.

        Returns:
            True if the document was written, False if one already existed
        """
        with self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO documents (collection, doc_key, body, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (collection, key, json.dumps(document), self._now())
            )
            return cursor.rowcount == 1

    def delete(self, collection: str, key: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key)
            )
            return cursor.rowcount > 0

    def delete_where(self, collection: str, where: Dict[str, Any]) -> int:
        """
        Delete all documents in a collection matching every equality filter.

        Returns:
            Number of documents deleted
        """
        clauses, params = self._where_clause(where)
        with self._connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM documents WHERE collection = ?{clauses}",
                (collection, *params)
            )
            return cursor.rowcount

    def query(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query documents by field equality with optional ordering and limit.

        Args:
            collection: Collection name
            where: Field/value pairs that must all match
            order_by: Field to order by
            descending: Reverse ordering
            limit: Maximum number of documents

        Returns:
            Matching document bodies, each carrying its key as ``id`` unless
            the body already defines one
        """
        clauses, params = self._where_clause(where or {})
        sql = f"SELECT doc_key, body FROM documents WHERE collection = ?{clauses}"
        params = [collection, *params]

        if order_by:
            sql += f" ORDER BY json_extract(body, ?) {'DESC' if descending else 'ASC'}, doc_key"
            params.append(_json_path(order_by))
        else:
            sql += " ORDER BY doc_key"

        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        results = []
        for row in rows:
            body = json.loads(row["body"])
            results.append({"id": row["doc_key"], **body})
        return results

    def add_to_set(
        self,
        collection: str,
        key: str,
        field: str,
        value: Any,
        on_create: Dict[str, Any],
        touch: Optional[Dict[str, Any]] = None,
        expect: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Atomically add ``value`` to the list stored under ``field``.

        The read-modify-write runs under ``BEGIN IMMEDIATE`` so concurrent
        callers on the same document serialize instead of losing updates.

        Args:
            collection: Collection name
            key: Document key
            field: List field to extend
            value: Value to add if not already present
            on_create: Body used when the document does not exist yet
            touch: Fields overwritten on every call (e.g. last_updated)
            expect: Fields an existing document must already hold

        Returns:
            Tuple of (resulting document, created flag)

        Raises:
            DocumentConflictError: If an existing document differs from ``expect``
        """
        _json_path(field)

        with self._connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                    (collection, key)
                ).fetchone()

                created = row is None
                if created:
                    document = dict(on_create)
                    values = list(document.get(field) or [])
                else:
                    document = json.loads(row["body"])
                    for name, expected in (expect or {}).items():
                        if document.get(name) != expected:
                            raise DocumentConflictError(
                                f"{collection}/{key}: {name} is {document.get(name)!r}, expected {expected!r}",
                                field=name,
                                expected=expected,
                                actual=document.get(name),
                            )
                    values = list(document.get(field) or [])

                if value not in values:
                    values.append(value)
                document[field] = values
                if touch:
                    document.update(touch)

                conn.execute(
                    """
                    INSERT INTO documents (collection, doc_key, body, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(collection, doc_key) DO UPDATE SET
                        body = excluded.body,
                        updated_at = excluded.updated_at
                    """,
                    (collection, key, json.dumps(document), self._now())
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

        return document, created

    def merge(self, collection: str, key: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Atomically overwrite selected fields of an existing document.

        Returns:
            The updated document, or None if the document does not exist
        """
        with self._connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                    (collection, key)
                ).fetchone()

                if row is None:
                    conn.execute("COMMIT")
                    return None

                document = json.loads(row["body"])
                document.update(fields)
                conn.execute(
                    "UPDATE documents SET body = ?, updated_at = ? WHERE collection = ? AND doc_key = ?",
                    (json.dumps(document), self._now(), collection, key)
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

        return document

    @staticmethod
    def _where_clause(where: Dict[str, Any]) -> Tuple[str, List[Any]]:
        clauses = ""
        params: List[Any] = []
        for field, value in where.items():
            clauses += " AND json_extract(body, ?) = ?"
            params.append(_json_path(field))
            params.append(value)
        return clauses, params

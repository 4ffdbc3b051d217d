"""SQLite-based document persistence for Grocery Ledger.

This module provides SQLite database storage as an alternative to JSON files.
It implements the same interface as DataStore for seamless switching. A batch
commit runs inside a single transaction.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from .data_store import (
    COLLECTIONS,
    DOCUMENT_KINDS,
    Document,
    SubscriptionMixin,
    WriteBatch,
    _check_collection,
    validate_user_id,
)
from .errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class SQLiteStore(SubscriptionMixin):
    """Manages SQLite database persistence for one user's documents."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | None = None, user_id: str = "local"):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/ledger.db
            user_id: Identity scoping the collections
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "ledger.db"
        self.db_path = db_path
        self.user_id = validate_user_id(user_id)
        self._init_subscriptions()
        self._ensure_directories()
        self._init_database()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create data directory: {e}") from e

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper cleanup.

        The connection commits on success and rolls back on any error;
        sqlite errors surface as PersistenceError.
        """
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database write failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize database schema if not exists."""
        with self._get_connection() as conn:
            conn.executescript("""
                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                -- Documents of every collection, scoped by user
                CREATE TABLE IF NOT EXISTS documents (
                    position INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    UNIQUE(user_id, collection, doc_id)
                );

                CREATE INDEX IF NOT EXISTS idx_documents_user_collection
                    ON documents(user_id, collection);

                -- Record schema version
                INSERT OR IGNORE INTO schema_version (version) VALUES (1);
            """)

    def snapshot(self, collection: str) -> list[Document]:
        """Return every document of a collection in insertion order."""
        _check_collection(collection)
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT data FROM documents
                WHERE user_id = ? AND collection = ?
                ORDER BY position
                """,
                (self.user_id, collection),
            ).fetchall()

        return [json.loads(row["data"]) for row in rows]

    def commit(self, batch: WriteBatch) -> None:
        """Apply all operations of a batch in one transaction.

        Raises:
            NotFoundError: If a delete targets a missing document.
            PersistenceError: If the database rejects the transaction.
        """
        if not batch.operations:
            return

        touched: set[str] = set()
        with self._get_connection() as conn:
            for op in batch.operations:
                if op.kind == "set":
                    conn.execute(
                        """
                        INSERT INTO documents (user_id, collection, doc_id, data)
                        VALUES (?, ?, ?, ?)
                        ON CONFLICT(user_id, collection, doc_id)
                        DO UPDATE SET data = excluded.data
                        """,
                        (self.user_id, op.collection, op.doc_id, json.dumps(op.data)),
                    )
                else:
                    cursor = conn.execute(
                        """
                        DELETE FROM documents
                        WHERE user_id = ? AND collection = ? AND doc_id = ?
                        """,
                        (self.user_id, op.collection, op.doc_id),
                    )
                    if cursor.rowcount == 0:
                        raise NotFoundError(DOCUMENT_KINDS[op.collection], op.doc_id)
                touched.add(op.collection)

        logger.debug(
            "Committed %d operations for user %s (%s)",
            len(batch),
            self.user_id,
            ", ".join(sorted(touched)),
        )
        self._notify(touched)

    def count(self, collection: str | None = None) -> int:
        """Count this user's documents, optionally in one collection."""
        collections = [collection] if collection else list(COLLECTIONS)
        placeholders = ",".join("?" * len(collections))
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) AS n FROM documents WHERE user_id = ? AND collection IN ({placeholders})",
                (self.user_id, *collections),
            ).fetchone()
        return int(row["n"])

"""Document persistence for Grocery Ledger.

This module provides a per-user document store with support for JSON
(default) or SQLite backends. Use create_data_store() to get the appropriate
backend based on configuration.

Every backend offers the same primitives: full-collection snapshots, change
subscriptions, single-document add/delete, and an atomic multi-document
``WriteBatch``. Subscribers receive the complete collection after every
committed write; a failed write raises ``PersistenceError`` and notifies
nobody.
"""

import json
import logging
import os
import re
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from .errors import NotFoundError, PersistenceError, ValidationError
from .models import new_document_id

logger = logging.getLogger(__name__)

SESSIONS = "sessions"
HISTORY = "history"
COLLECTIONS = (SESSIONS, HISTORY)
DOCUMENT_KINDS = {SESSIONS: "session", HISTORY: "history record"}

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], None]

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]+$")


class BackendType(str, Enum):
    """Data storage backend types."""

    JSON = "json"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class WriteOperation:
    """One pending write inside a batch."""

    kind: str  # "set" or "delete"
    collection: str
    doc_id: str
    data: Document | None = None


class WriteBatch:
    """Collects mixed set/delete operations to be committed atomically."""

    def __init__(self) -> None:
        self.operations: list[WriteOperation] = []

    def set(self, collection: str, document: Document) -> str:
        """Queue an insert (or overwrite) of a document.

        Returns:
            The document ID, generated if the document has none.
        """
        _check_collection(collection)
        doc_id = str(document.get("id") or new_document_id())
        self.operations.append(
            WriteOperation("set", collection, doc_id, {**document, "id": doc_id})
        )
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        """Queue a document deletion."""
        _check_collection(collection)
        self.operations.append(WriteOperation("delete", collection, doc_id))

    def __len__(self) -> int:
        return len(self.operations)


class DataStoreProtocol(Protocol):
    """Protocol defining the document store interface."""

    user_id: str

    def snapshot(self, collection: str) -> list[Document]: ...
    def subscribe(
        self, collection: str, callback: SnapshotCallback
    ) -> Callable[[], None]: ...
    def add(self, collection: str, document: Document) -> str: ...
    def delete(self, collection: str, doc_id: str) -> None: ...
    def commit(self, batch: WriteBatch) -> None: ...


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection '{collection}'")


def validate_user_id(user_id: str) -> str:
    """Reject user IDs that cannot scope a collection namespace."""
    if user_id in (".", "..") or not _USER_ID_PATTERN.match(user_id or ""):
        raise ValidationError(f"Invalid user ID '{user_id}'")
    return user_id


def apply_batch(
    documents: dict[str, dict[str, Document]], batch: WriteBatch
) -> set[str]:
    """Apply a batch to an in-memory copy of all collections.

    Raises:
        NotFoundError: If a delete targets a missing document. The caller's
            copy may be partially modified and must be discarded.

    Returns:
        Names of the collections touched by the batch.
    """
    touched: set[str] = set()
    for op in batch.operations:
        collection = documents.setdefault(op.collection, {})
        if op.kind == "set":
            collection[op.doc_id] = dict(op.data or {})
        elif op.doc_id in collection:
            del collection[op.doc_id]
        else:
            raise NotFoundError(DOCUMENT_KINDS[op.collection], op.doc_id)
        touched.add(op.collection)
    return touched


class SubscriptionMixin:
    """Fan-out of collection snapshots to subscribers."""

    def _init_subscriptions(self) -> None:
        self._subscribers: dict[str, list[SnapshotCallback]] = {c: [] for c in COLLECTIONS}

    def subscribe(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        """Register a callback receiving the full collection on every change.

        The callback is invoked immediately with the current snapshot.

        Returns:
            A function that removes the subscription.
        """
        _check_collection(collection)
        self._subscribers[collection].append(callback)
        callback(self.snapshot(collection))  # type: ignore[attr-defined]

        def unsubscribe() -> None:
            if callback in self._subscribers[collection]:
                self._subscribers[collection].remove(callback)

        return unsubscribe

    def _notify(self, collections: set[str]) -> None:
        """Deliver snapshots after a durable commit.

        Subscriber failures are logged and do not propagate.
        """
        for collection in COLLECTIONS:
            if collection not in collections or not self._subscribers[collection]:
                continue
            snapshot = self.snapshot(collection)  # type: ignore[attr-defined]
            for callback in list(self._subscribers[collection]):
                try:
                    callback(snapshot)
                except Exception:
                    logger.exception("Subscriber to %s failed", collection)

    def add(self, collection: str, document: Document) -> str:
        """Insert a single document.

        Returns:
            The stored document ID.
        """
        batch = WriteBatch()
        doc_id = batch.set(collection, document)
        self.commit(batch)  # type: ignore[attr-defined]
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a single document.

        Raises:
            NotFoundError: If no such document exists.
        """
        batch = WriteBatch()
        batch.delete(collection, doc_id)
        self.commit(batch)  # type: ignore[attr-defined]


class DataStore(SubscriptionMixin):
    """Manages JSON file persistence for one user's documents.

    All collections of a user live in a single file, replaced atomically on
    every commit.
    """

    def __init__(self, data_dir: Path | None = None, user_id: str = "local"):
        """Initialize data store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
            user_id: Identity scoping the collections
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self.user_id = validate_user_id(user_id)
        self._init_subscriptions()
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        try:
            self._user_dir().mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create data directory: {e}") from e

    def _user_dir(self) -> Path:
        """Directory holding this user's documents."""
        return self.data_dir / "users" / self.user_id

    def _documents_path(self) -> Path:
        """Path to the user's document file."""
        return self._user_dir() / "documents.json"

    def _load(self) -> dict[str, dict[str, Document]]:
        path = self._documents_path()
        if not path.exists():
            return {c: {} for c in COLLECTIONS}

        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e

        return {c: dict(data.get(c, {})) for c in COLLECTIONS}

    def _save(self, documents: dict[str, dict[str, Document]]) -> None:
        path = self._documents_path()
        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".documents-", suffix=".json")
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(documents, f, indent=2)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write {path}: {e}") from e

    def snapshot(self, collection: str) -> list[Document]:
        """Return every document of a collection in insertion order."""
        _check_collection(collection)
        return [dict(doc) for doc in self._load()[collection].values()]

    def commit(self, batch: WriteBatch) -> None:
        """Apply all operations of a batch, or none of them.

        Raises:
            NotFoundError: If a delete targets a missing document.
            PersistenceError: If the file cannot be read or written.
        """
        if not batch.operations:
            return

        documents = self._load()
        touched = apply_batch(documents, batch)
        self._save(documents)
        logger.debug(
            "Committed %d operations for user %s (%s)",
            len(batch),
            self.user_id,
            ", ".join(sorted(touched)),
        )
        self._notify(touched)


def create_data_store(
    backend: BackendType = BackendType.JSON,
    data_dir: Path | None = None,
    db_path: Path | None = None,
    user_id: str = "local",
) -> DataStoreProtocol:
    """Create a data store with the specified backend.

    Args:
        backend: Which backend to use (json or sqlite)
        data_dir: Directory for data files (used by JSON backend, also used
                  as base path for SQLite if db_path not specified)
        db_path: Path to SQLite database file (only used by SQLite backend)
        user_id: Identity scoping the collections

    Returns:
        A DataStore or SQLiteStore instance

    Example:
        # Use JSON backend (default)
        store = create_data_store()

        # Use SQLite backend for another user
        store = create_data_store(BackendType.SQLITE, user_id="rina")
    """
    if backend == BackendType.SQLITE:
        from .sqlite_store import SQLiteStore

        if db_path is None and data_dir is not None:
            db_path = data_dir / "ledger.db"

        return SQLiteStore(db_path=db_path, user_id=user_id)
    else:
        return DataStore(data_dir=data_dir, user_id=user_id)

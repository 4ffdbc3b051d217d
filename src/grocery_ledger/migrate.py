"""Migration of ledger documents between stores.

Two sources are supported: another backend holding the same user's
documents (e.g. JSON files to SQLite), and a legacy export file of the form
``{"sessions": [...], "history": [...]}`` using the camelCase document
fields. Each migration is committed to the target as a single batch and can
be run safely multiple times: it refuses to write into a target that already
holds documents unless forced.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as ModelValidationError

from .data_store import COLLECTIONS, HISTORY, SESSIONS, DataStoreProtocol, Document, WriteBatch
from .errors import LedgerError
from .models import HistoryRecord, Session, new_document_id

logger = logging.getLogger(__name__)

_MODELS = {SESSIONS: Session, HISTORY: HistoryRecord}


class MigrationError(LedgerError):
    """Raised when migration encounters an error."""

    error_code = "MIGRATION_ERROR"


def upgrade_legacy_history(document: Document) -> Document:
    """Give a legacy history document its own ID.

    Legacy records reused the ID of the session item they came from; that ID
    becomes ``itemId`` and the record gets a fresh document ID.
    """
    if "itemId" in document or "item_id" in document:
        return document
    return {**document, "itemId": document.get("id"), "id": new_document_id()}


class DocumentMigrator:
    """Copies validated session and history documents into a target store."""

    def __init__(self, target: DataStoreProtocol):
        """Initialize migrator.

        Args:
            target: Store receiving the documents
        """
        self.target = target
        self.stats = {
            "sessions": 0,
            "history": 0,
            "skipped": 0,
        }

    def check_target_has_data(self) -> bool:
        """Check if the target already holds documents for this user."""
        return any(self.target.snapshot(c) for c in COLLECTIONS)

    def _validated(self, collection: str, documents: list[Document]) -> list[Document]:
        valid: list[Document] = []
        model = _MODELS[collection]
        for doc in documents:
            try:
                valid.append(model.model_validate(doc).to_document())
            except ModelValidationError as e:
                self.stats["skipped"] += 1
                doc_id = doc.get("id") if isinstance(doc, dict) else None
                logger.warning("Skipping invalid %s document %s: %s", collection, doc_id, e)
        return valid

    def _commit(self, documents: dict[str, list[Document]], force: bool) -> dict[str, int]:
        if self.check_target_has_data() and not force:
            raise MigrationError(
                f"Target store already contains data for user '{self.target.user_id}'; "
                "use force to merge into it"
            )

        batch = WriteBatch()
        for collection in COLLECTIONS:
            valid = self._validated(collection, documents.get(collection, []))
            for doc in valid:
                batch.set(collection, doc)
            self.stats[collection] = len(valid)

        self.target.commit(batch)
        logger.info(
            "Migrated %d sessions and %d history records for user %s (%d skipped)",
            self.stats[SESSIONS],
            self.stats[HISTORY],
            self.target.user_id,
            self.stats["skipped"],
        )
        return dict(self.stats)

    def migrate_from(self, source: DataStoreProtocol, force: bool = False) -> dict[str, int]:
        """Copy every document of the source store into the target.

        Raises:
            MigrationError: If the target already has data and force is False.
        """
        documents = {c: source.snapshot(c) for c in COLLECTIONS}
        return self._commit(documents, force)

    def import_export(self, path: Path, force: bool = False) -> dict[str, int]:
        """Import a legacy JSON export file.

        Raises:
            MigrationError: If the file is unreadable or malformed, or the
                target already has data and force is False.
        """
        try:
            with open(path) as f:
                data: Any = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise MigrationError(f"Cannot read export {path}: {e}") from e

        if not isinstance(data, dict):
            raise MigrationError("Export must be a JSON object with 'sessions' and 'history'")

        documents = {
            SESSIONS: list(data.get(SESSIONS, [])),
            HISTORY: [
                upgrade_legacy_history(d) if isinstance(d, dict) else d
                for d in data.get(HISTORY, [])
            ],
        }
        return self._commit(documents, force)

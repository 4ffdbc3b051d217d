"""Tests for document migration and legacy import."""

import json

import pytest

from grocery_ledger.data_store import HISTORY, SESSIONS
from grocery_ledger.migrate import DocumentMigrator, MigrationError, upgrade_legacy_history
from grocery_ledger.models import HistoryRecord, Session


@pytest.fixture
def populated_store(data_store):
    """JSON store with one session and two history records."""
    data_store.add(SESSIONS, Session(created_at=0, date_str="1 Mei 2024").to_document())
    data_store.add(HISTORY, HistoryRecord(name="Telur", price=15000, timestamp=1).to_document())
    data_store.add(HISTORY, HistoryRecord(name="Beras", price=55000, timestamp=2).to_document())
    return data_store


@pytest.fixture
def export_file(tmp_path):
    """Legacy export whose history records reuse their item IDs."""
    path = tmp_path / "export.json"
    path.write_text(
        json.dumps(
            {
                "sessions": [
                    {
                        "id": "sess-1",
                        "items": [{"id": "1714521600000", "name": "Gula", "qty": "1", "unit": "kg"}],
                        "createdAt": 1714521600000,
                        "dateStr": "1 Mei 2024",
                        "isoDate": "2024-05-01",
                        "status": "pending",
                    }
                ],
                "history": [
                    {
                        "id": "1714435200000",
                        "name": "Telur",
                        "qty": "10",
                        "unit": "butir",
                        "price": 15000,
                        "sessionDate": "30 April 2024",
                        "timestamp": 1714435200000,
                    },
                    {"id": "broken", "name": "Beras"},
                    "not a document",
                ],
            }
        )
    )
    return path


class TestUpgradeLegacyHistory:
    """Tests for legacy history upgrades."""

    def test_old_id_becomes_item_id(self):
        upgraded = upgrade_legacy_history({"id": "123", "name": "Telur"})
        assert upgraded["itemId"] == "123"
        assert upgraded["id"] != "123"

    def test_current_documents_unchanged(self):
        doc = {"id": "abc", "itemId": "123"}
        assert upgrade_legacy_history(doc) is doc


class TestMigrateFrom:
    """Tests for backend-to-backend migration."""

    def test_json_to_sqlite(self, populated_store, sqlite_store):
        stats = DocumentMigrator(sqlite_store).migrate_from(populated_store)

        assert stats == {"sessions": 1, "history": 2, "skipped": 0}
        assert sqlite_store.snapshot(SESSIONS) == populated_store.snapshot(SESSIONS)
        assert [d["name"] for d in sqlite_store.snapshot(HISTORY)] == ["Telur", "Beras"]

    def test_refuses_non_empty_target(self, populated_store, sqlite_store):
        sqlite_store.add(SESSIONS, {"id": "existing"})
        with pytest.raises(MigrationError):
            DocumentMigrator(sqlite_store).migrate_from(populated_store)
        assert sqlite_store.count() == 1

    def test_force_merges(self, populated_store, sqlite_store):
        sqlite_store.add(SESSIONS, Session(created_at=0, date_str="x").to_document())
        DocumentMigrator(sqlite_store).migrate_from(populated_store, force=True)
        assert sqlite_store.count(SESSIONS) == 2

    def test_rerun_with_force_is_idempotent(self, populated_store, sqlite_store):
        """Documents keep their IDs, so migrating twice does not duplicate them."""
        DocumentMigrator(sqlite_store).migrate_from(populated_store)
        DocumentMigrator(sqlite_store).migrate_from(populated_store, force=True)
        assert sqlite_store.count() == 3


class TestImportExport:
    """Tests for importing legacy export files."""

    def test_import(self, export_file, data_store):
        stats = DocumentMigrator(data_store).import_export(export_file)

        assert stats == {"sessions": 1, "history": 1, "skipped": 2}
        record = data_store.snapshot(HISTORY)[0]
        assert record["itemId"] == "1714435200000"
        assert record["price"] == 15000
        assert data_store.snapshot(SESSIONS)[0]["id"] == "sess-1"

    def test_missing_file(self, tmp_path, data_store):
        with pytest.raises(MigrationError):
            DocumentMigrator(data_store).import_export(tmp_path / "nope.json")

    def test_not_an_object(self, tmp_path, data_store):
        path = tmp_path / "export.json"
        path.write_text("[]")
        with pytest.raises(MigrationError):
            DocumentMigrator(data_store).import_export(path)

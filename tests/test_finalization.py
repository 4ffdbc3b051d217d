"""Tests for finishing a session into history."""

from datetime import date

import pytest

from grocery_ledger.data_store import HISTORY, SESSIONS, DataStore
from grocery_ledger.dates import date_to_epoch_ms
from grocery_ledger.errors import NoOpenSessionError, NotFoundError, PersistenceError
from grocery_ledger.finalization import session_timestamp
from grocery_ledger.ledger import Ledger
from grocery_ledger.models import Session
from grocery_ledger.sqlite_store import SQLiteStore


def shop(ledger, on: str, *items: tuple[str, str]):
    """Draft items, save the session and open it for pricing."""
    for name, _ in items:
        ledger.draft.add_item(name, target_date=on)
    session = ledger.create_session()
    ledger.open_session(session.id)
    for item, (_, price) in zip(session.items, items):
        ledger.tracker.set_price(item.id, price)
    return session


class TestSessionTimestamp:
    """Tests for the purchase timestamp of a session."""

    def test_uses_iso_date(self):
        session = Session(created_at=1, date_str="x", iso_date="2024-05-01")
        assert session_timestamp(session) == date_to_epoch_ms(date(2024, 5, 1))

    def test_falls_back_to_created_at(self):
        """Missing or malformed ISO dates use the creation time."""
        assert session_timestamp(Session(created_at=42, date_str="x")) == 42
        assert session_timestamp(Session(created_at=42, date_str="x", iso_date="bad")) == 42


class TestFinish:
    """Tests for FinalizationEngine.finish."""

    def test_telur_scenario(self, ledger):
        """One priced item becomes one history record and the session is gone."""
        session = shop(ledger, "2024-05-01", ("Telur", "15.000"))

        records = ledger.finish()

        assert len(records) == 1
        record = records[0]
        assert record.name == "Telur"
        assert record.price == 15000
        assert record.item_id == session.items[0].id
        assert record.session_date == "1 Mei 2024"
        assert record.timestamp == date_to_epoch_ms(date(2024, 5, 1))
        assert ledger.sessions.list_sessions() == []
        assert ledger.history.month_total(2024, 4) == 15000
        assert [r.id for r in ledger.history.filter_by_month(2024, 4)] == [record.id]

    def test_tracker_closed_after_finish(self, ledger):
        shop(ledger, "2024-05-01", ("Telur", "15.000"))
        ledger.finish()
        assert ledger.tracker.session is None
        assert ledger.tracker.live_total() == 0

    def test_failing_history_listener(self, ledger):
        """A broken presentation listener does not turn a finish into an error."""
        shop(ledger, "2024-05-01", ("Telur", "15.000"))
        seen = []

        def broken(snap):
            raise RuntimeError("render failed")

        ledger.state.on_history_changed(broken)
        ledger.state.on_history_changed(lambda snap: seen.append(len(snap.history)))

        records = ledger.finish()

        assert len(records) == 1
        assert seen == [1]
        assert ledger.data_store.snapshot(SESSIONS) == []
        assert len(ledger.data_store.snapshot(HISTORY)) == 1
        assert ledger.tracker.session is None

    def test_beras_scenario(self, ledger):
        """The latest finished price becomes the last price."""
        shop(ledger, "2024-04-01", ("Beras", "50.000"))
        ledger.finish()
        shop(ledger, "2024-05-01", ("Beras", "55.000"))
        ledger.finish()

        assert ledger.price_index.last_price("beras") == 55000
        assert ledger.draft.add_item("BERAS").last_price == 55000

    def test_unpriced_items_recorded_at_zero(self, ledger):
        session = shop(ledger, "2024-05-01", ("Telur", "15.000"), ("Gula", ""))
        records = ledger.finish(session.id)
        assert [r.price for r in records] == [15000, 0]

    def test_finish_without_tracking(self, ledger):
        """A session finished without opening it records zero prices."""
        ledger.draft.add_item("Telur", target_date="2024-05-01")
        session = ledger.create_session()
        records = ledger.finish(session.id)
        assert [r.price for r in records] == [0]

    def test_records_in_item_order(self, ledger):
        shop(ledger, "2024-05-01", ("Telur", "1"), ("Beras", "2"), ("Gula", "3"))
        records = ledger.finish()
        assert [r.name for r in records] == ["Telur", "Beras", "Gula"]
        assert [d["name"] for d in ledger.data_store.snapshot(HISTORY)] == ["Telur", "Beras", "Gula"]

    def test_nothing_open(self, ledger):
        with pytest.raises(NoOpenSessionError) as excinfo:
            ledger.finish()
        assert str(excinfo.value) == "No session is open for price entry"
        assert excinfo.value.error_code == "NOT_FOUND"


class TestFinishAtomicity:
    """Tests for all-or-nothing finalization."""

    def test_failed_commit_changes_nothing(self, ledger, monkeypatch):
        """A rejected batch leaves the session, history and entered prices as they were."""
        session = shop(ledger, "2024-05-01", ("Telur", "15.000"))

        def broken_commit(batch):
            raise PersistenceError("network down")

        monkeypatch.setattr(ledger.data_store, "commit", broken_commit)
        with pytest.raises(PersistenceError):
            ledger.finish()

        assert [s.id for s in ledger.sessions.list_sessions()] == [session.id]
        assert ledger.history.records() == []
        assert ledger.tracker.session.id == session.id
        assert ledger.tracker.live_total() == 15000

    def test_session_deleted_elsewhere(self, ledger, temp_data_dir):
        """Finishing a session removed by another client writes nothing."""
        session = shop(ledger, "2024-05-01", ("Telur", "15.000"))
        DataStore(data_dir=temp_data_dir).delete(SESSIONS, session.id)

        with pytest.raises(NotFoundError):
            ledger.finish()

        assert ledger.data_store.snapshot(HISTORY) == []

    def test_session_deleted_before_finish(self, ledger):
        session = shop(ledger, "2024-05-01", ("Telur", "15.000"))
        ledger.sessions.delete_session(session.id)

        with pytest.raises(NotFoundError):
            ledger.finish(session.id)
        assert ledger.history.records() == []


class TestFinishOnSQLite:
    """Finalization against the SQLite backend."""

    def test_finish(self, sqlite_store):
        with Ledger(sqlite_store) as ledger:
            shop(ledger, "2024-05-01", ("Telur", "15.000"), ("Beras", "55.000"))
            ledger.finish()
            assert sqlite_store.count(SESSIONS) == 0
            assert sqlite_store.count(HISTORY) == 2
            assert ledger.history.month_total(2024, 4) == 70000

    def test_session_deleted_elsewhere_rolls_back(self, sqlite_store):
        """History inserts are rolled back when the session delete fails."""
        with Ledger(sqlite_store) as ledger:
            session = shop(ledger, "2024-05-01", ("Telur", "15.000"))
            SQLiteStore(db_path=sqlite_store.db_path).delete(SESSIONS, session.id)

            with pytest.raises(NotFoundError):
                ledger.finish()
            assert sqlite_store.count(HISTORY) == 0

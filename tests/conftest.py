"""Shared test fixtures for Grocery Ledger."""

from datetime import date

import pytest

from grocery_ledger.data_store import HISTORY, DataStore
from grocery_ledger.dates import date_to_epoch_ms
from grocery_ledger.ledger import Ledger
from grocery_ledger.models import HistoryRecord
from grocery_ledger.sqlite_store import SQLiteStore


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def data_store(temp_data_dir):
    """Create a JSON DataStore with temporary directory."""
    return DataStore(data_dir=temp_data_dir)


@pytest.fixture
def sqlite_store(tmp_path):
    """Create an SQLiteStore with a temporary database."""
    return SQLiteStore(db_path=tmp_path / "test.db")


@pytest.fixture
def ledger(data_store):
    """Create a started Ledger over a temporary JSON store."""
    with Ledger(data_store) as started:
        yield started


def make_record(name: str, price: int, on: date, **extra) -> HistoryRecord:
    """Build a history record for a purchase on a given date."""
    return HistoryRecord(
        name=name,
        price=price,
        session_date=on.isoformat(),
        timestamp=date_to_epoch_ms(on),
        **extra,
    )


@pytest.fixture
def add_history(ledger):
    """Insert history records directly into the ledger's store."""

    def _add(name: str, price: int, on: date, **extra) -> HistoryRecord:
        record = make_record(name, price, on, **extra)
        ledger.data_store.add(HISTORY, record.to_document())
        return record

    return _add

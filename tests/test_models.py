"""Tests for data models."""

from datetime import date

import pytest
from pydantic import ValidationError

from grocery_ledger.models import (
    DraftItem,
    HistoryRecord,
    MonthSummary,
    PriceTrend,
    Session,
    SessionItem,
    SessionStatus,
)


class TestSessionItem:
    """Tests for SessionItem model."""

    def test_numeric_quantity_becomes_text(self):
        """Numbers given as quantity are stored as text."""
        assert SessionItem(id="1", name="Beras", quantity=2).quantity == "2"
        assert SessionItem(id="1", name="Beras", quantity=1.5).quantity == "1.5"

    def test_large_numeric_quantity_keeps_digits(self):
        assert SessionItem(id="1", name="Air", quantity=1000000).quantity == "1000000"
        assert SessionItem(id="1", name="Air", quantity=2.0).quantity == "2"
        assert SessionItem(id="1", name="Air", quantity=1234.5678).quantity == "1234.5678"

    def test_document_uses_stored_field_names(self):
        """Documents carry qty, lastPrice and selectedDate."""
        item = SessionItem(
            id="1", name="Telur", quantity="10", unit="butir",
            last_price=20000, target_date=date(2024, 5, 1),
        )
        doc = item.to_document()
        assert doc["qty"] == "10"
        assert doc["lastPrice"] == 20000
        assert doc["selectedDate"] == "2024-05-01"

    def test_validate_from_document(self):
        """Documents with stored names validate back into models."""
        item = SessionItem.model_validate(
            {"id": "1", "name": "Telur", "qty": "10", "lastPrice": None, "selectedDate": "2024-05-01"}
        )
        assert item.quantity == "10"
        assert item.target_date == date(2024, 5, 1)

    def test_frozen(self):
        """Items are immutable."""
        item = SessionItem(id="1", name="Telur")
        with pytest.raises(ValidationError):
            item.name = "Beras"


class TestDraftItem:
    """Tests for DraftItem model."""

    def test_target_date_defaults_to_today(self):
        """Draft items always have a target date."""
        assert DraftItem(id="1", name="Gula").target_date == date.today()


class TestSession:
    """Tests for Session model."""

    def test_defaults(self):
        """New sessions get an ID and pending status."""
        session = Session(created_at=0, date_str="1 Mei 2024")
        assert session.id
        assert session.status == SessionStatus.PENDING
        assert session.items == ()

    def test_get_item(self):
        """Items are found by ID."""
        session = Session(
            items=(SessionItem(id="a", name="Telur"), SessionItem(id="b", name="Beras")),
            created_at=0,
            date_str="1 Mei 2024",
        )
        assert session.get_item("b").name == "Beras"
        assert session.get_item("zzz") is None
        assert session.item_count == 2

    def test_round_trip_document(self):
        """createdAt, dateStr and isoDate survive a store round trip."""
        session = Session(created_at=123, date_str="1 Mei 2024", iso_date="2024-05-01")
        doc = session.to_document()
        assert doc["createdAt"] == 123
        assert doc["dateStr"] == "1 Mei 2024"
        assert Session.model_validate(doc) == session


class TestHistoryRecord:
    """Tests for HistoryRecord model."""

    def test_own_id_separate_from_item(self):
        """Records get their own ID and keep the item ID apart."""
        record = HistoryRecord(item_id="item-1", name="Telur", price=15000, timestamp=0)
        assert record.id != "item-1"
        assert record.to_document()["itemId"] == "item-1"

    def test_negative_price_rejected(self):
        """Prices are non-negative."""
        with pytest.raises(ValidationError):
            HistoryRecord(name="Telur", price=-1, timestamp=0)


class TestEnums:
    """Tests for model enums."""

    def test_trend_values(self):
        """Trends serialize to plain strings."""
        assert PriceTrend.INCREASED.value == "increased"
        assert PriceTrend("unset") == PriceTrend.UNSET

    def test_month_summary_month_range(self):
        """Month must be 1-12."""
        with pytest.raises(ValidationError):
            MonthSummary(year=2024, month=13)

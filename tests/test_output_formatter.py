"""Tests for output formatting."""

import json
import re
from datetime import date, datetime
from io import StringIO

import pytest
from rich.console import Console

from grocery_ledger.dates import date_to_epoch_ms
from grocery_ledger.models import HistoryRecord, MonthSummary, Session, SessionItem
from grocery_ledger.output_formatter import JSONEncoder, OutputFormatter, format_idr


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    ansi_escape = re.compile(r"\x1b\[[0-9;]*m")
    return ansi_escape.sub("", text)


@pytest.fixture
def rich_formatter():
    """Rich-mode formatter writing to an in-memory console."""
    formatter = OutputFormatter(json_mode=False)
    formatter.console = Console(file=StringIO(), force_terminal=True, width=120)
    return formatter


def rendered(formatter: OutputFormatter) -> str:
    return strip_ansi(formatter.console.file.getvalue())


class TestFormatIdr:
    """Tests for rupiah formatting."""

    def test_thousands(self):
        assert format_idr(15000) == "Rp15.000"
        assert format_idr(1234567) == "Rp1.234.567"

    def test_small_and_none(self):
        assert format_idr(0) == "Rp0"
        assert format_idr(None) == "-"


class TestJSONEncoder:
    """Tests for JSONEncoder."""

    def test_encode_datetime(self):
        """Datetime encoded as ISO format."""
        result = json.dumps({"time": datetime(2024, 5, 1, 10, 30)}, cls=JSONEncoder)
        assert "2024-05-01T10:30:00" in result

    def test_encode_date(self):
        """Date encoded as ISO format."""
        assert "2024-05-01" in json.dumps({"date": date(2024, 5, 1)}, cls=JSONEncoder)

    def test_encode_fallback(self):
        """Non-special types raise TypeError."""
        with pytest.raises(TypeError):
            json.dumps({"bad": object()}, cls=JSONEncoder)


class TestOutputFormatterJSON:
    """Tests for JSON output mode."""

    def test_json_mode_output(self, capsys):
        """JSON mode outputs valid JSON."""
        formatter = OutputFormatter(json_mode=True)
        formatter.output({"success": True, "data": {"test": "value"}})

        captured = capsys.readouterr()
        assert json.loads(captured.out)["data"]["test"] == "value"

    def test_json_error(self, capsys):
        """JSON error includes error code."""
        formatter = OutputFormatter(json_mode=True)
        formatter.error("Session with ID 'x' not found", error_code="NOT_FOUND")

        data = json.loads(capsys.readouterr().out)
        assert data["success"] is False
        assert data["error_code"] == "NOT_FOUND"

    def test_json_success(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.success("Deleted", {"session_id": "s1"})

        data = json.loads(capsys.readouterr().out)
        assert data["message"] == "Deleted"
        assert data["data"]["session_id"] == "s1"


class TestOutputFormatterRich:
    """Tests for Rich output mode."""

    def test_rich_error_output(self, rich_formatter):
        rich_formatter.error("Test error message")
        assert "Test error message" in rendered(rich_formatter)

    def test_rich_warning_output(self, rich_formatter):
        rich_formatter.warning("Test warning message")
        assert "Test warning message" in rendered(rich_formatter)

    def test_render_empty_sessions(self, rich_formatter):
        rich_formatter.output({"success": True, "data": {"sessions": []}})
        assert "No pending shopping sessions" in rendered(rich_formatter)

    def test_render_sessions(self, rich_formatter):
        session = Session(
            items=tuple(SessionItem(id=str(i), name=f"Item{i}") for i in range(5)),
            created_at=0,
            date_str="1 Mei 2024",
        )
        rich_formatter.output(
            {"success": True, "data": {"sessions": [session.model_dump(mode="json")]}}
        )
        output = rendered(rich_formatter)
        assert "1 Mei 2024" in output
        assert "+2 more" in output

    def test_render_session(self, rich_formatter):
        session = Session(
            items=(SessionItem(id="1", name="Beras", quantity="5", unit="kg", last_price=55000),),
            created_at=0,
            date_str="1 Mei 2024",
        )
        rich_formatter.output(
            {"success": True, "data": {"session": session.model_dump(mode="json")}}
        )
        output = rendered(rich_formatter)
        assert "Beras" in output
        assert "5 kg" in output
        assert "Rp55.000" in output

    def test_render_finalized(self, rich_formatter):
        record = HistoryRecord(item_id="1", name="Beras", price=55000, timestamp=0)
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "finalized": {
                        "records": [record.model_dump(mode="json")],
                        "entries": [
                            {"item_id": "1", "price": 55000, "trend": "increased", "last_price": 50000}
                        ],
                        "total": 55000,
                    }
                },
            }
        )
        output = rendered(rich_formatter)
        assert "Rp50.000" in output
        assert "up" in output
        assert "Total: Rp55.000" in output

    def test_render_history(self, rich_formatter):
        record = HistoryRecord(
            name="Telur", price=15000, timestamp=date_to_epoch_ms(date(2024, 5, 1))
        )
        summary = MonthSummary(year=2024, month=5, count=1, total=15000, records=[record])
        rich_formatter.output(
            {"success": True, "data": {"history": summary.model_dump(mode="json")}}
        )
        output = rendered(rich_formatter)
        assert "History: Mei 2024" in output
        assert "01/05/2024" in output
        assert "Rp15.000" in output

    def test_render_empty_history(self, rich_formatter):
        summary = MonthSummary(year=2024, month=1)
        rich_formatter.output(
            {"success": True, "data": {"history": summary.model_dump(mode="json")}}
        )
        assert "No purchase history for Januari 2024" in rendered(rich_formatter)

    def test_render_month_total_custom_names(self):
        formatter = OutputFormatter(month_names=[f"M{i}" for i in range(1, 13)])
        formatter.console = Console(file=StringIO(), force_terminal=True, width=120)
        formatter.output(
            {"success": True, "data": {"month_total": {"year": 2024, "month": 5, "total": 70000, "count": 2}}}
        )
        output = rendered(formatter)
        assert "M5 2024" in output
        assert "Rp70.000" in output

    def test_render_last_price_missing(self, rich_formatter):
        rich_formatter.output(
            {"success": True, "data": {"last_price": {"item": "Gula", "price": None}}}
        )
        assert "No price recorded for Gula" in rendered(rich_formatter)

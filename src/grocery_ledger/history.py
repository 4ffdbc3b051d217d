"""Monthly filtering and totals over purchase history."""

import logging

from .data_store import HISTORY, DataStoreProtocol
from .dates import month_bounds
from .errors import NotFoundError, ValidationError
from .models import HistoryRecord, MonthSummary
from .state import LedgerState

logger = logging.getLogger(__name__)


class HistoryAggregator:
    """Reads history from the current snapshot; nothing is cached."""

    def __init__(self, data_store: DataStoreProtocol, state: LedgerState):
        self.data_store = data_store
        self.state = state

    def records(self) -> list[HistoryRecord]:
        """All history records in snapshot order."""
        return list(self.state.snapshot.history)

    def filter_by_month(self, year: int, month: int) -> list[HistoryRecord]:
        """Records of a calendar month (local time), most recent first.

        ``month`` is a zero-based index, so 0 is January and 11 is December.

        Raises:
            ValidationError: If month is outside 0-11.
        """
        if not 0 <= month <= 11:
            raise ValidationError(f"Month index must be between 0 and 11, got {month}")
        start, end = month_bounds(year, month + 1)
        matches = [r for r in self.state.snapshot.history if start <= r.timestamp < end]
        return sorted(matches, key=lambda r: r.timestamp, reverse=True)

    def month_total(self, year: int, month: int) -> int:
        """Sum of prices recorded in a calendar month."""
        return sum(r.price for r in self.filter_by_month(year, month))

    def month_summary(self, year: int, month: int) -> MonthSummary:
        """Records, count and total for a zero-based month index.

        The summary carries the calendar month (1-12) for display.
        """
        records = self.filter_by_month(year, month)
        return MonthSummary(
            year=year,
            month=month + 1,
            count=len(records),
            total=sum(r.price for r in records),
            records=records,
        )

    def get_record(self, record_id: str) -> HistoryRecord:
        """Find a history record by ID.

        Raises:
            NotFoundError: If no such record exists.
        """
        for record in self.state.snapshot.history:
            if record.id == record_id:
                return record
        raise NotFoundError("history record", record_id)

    def delete_record(self, record_id: str) -> None:
        """Permanently remove one history record.

        Raises:
            NotFoundError: If no such record exists.
            PersistenceError: If the store rejects the delete.
        """
        self.get_record(record_id)
        self.data_store.delete(HISTORY, record_id)
        logger.info("Deleted history record %s", record_id)

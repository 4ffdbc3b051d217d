"""Last-price lookups over finalized history."""

from collections.abc import Callable, Iterable

from .models import HistoryRecord


def name_key(name: str) -> str:
    """Case-insensitive identity key for an item name."""
    return name.strip().casefold()


class PriceHistoryIndex:
    """Answers "what was the last price paid for this item".

    The index holds no state of its own: every lookup reads the history
    snapshot returned by ``history_source``.
    """

    def __init__(self, history_source: Callable[[], Iterable[HistoryRecord]]):
        """Initialize the index.

        Args:
            history_source: Callable returning the current history records
        """
        self._history_source = history_source

    def latest_record(self, name: str) -> HistoryRecord | None:
        """Most recent record matching a name case-insensitively.

        Ties on timestamp resolve to the record appearing last in the snapshot.
        """
        key = name_key(name)
        latest: HistoryRecord | None = None
        for record in self._history_source():
            if name_key(record.name) != key:
                continue
            if latest is None or record.timestamp >= latest.timestamp:
                latest = record
        return latest

    def last_price(self, name: str) -> int | None:
        """Price of the most recent matching record, or None."""
        record = self.latest_record(name)
        return record.price if record is not None else None

"""Conversion of a priced session into permanent history."""

import logging

from .data_store import HISTORY, SESSIONS, DataStoreProtocol, WriteBatch
from .dates import iso_to_epoch_ms
from .errors import LedgerError
from .models import HistoryRecord, Session
from .price_entry import PriceEntryTracker
from .session_store import SessionStore

logger = logging.getLogger(__name__)


def session_timestamp(session: Session) -> int:
    """Purchase timestamp of a session: its ISO date, else its creation time."""
    timestamp = iso_to_epoch_ms(session.iso_date)
    return timestamp if timestamp is not None else session.created_at


class FinalizationEngine:
    """Turns one pending session into history records in a single batch."""

    def __init__(
        self,
        data_store: DataStoreProtocol,
        sessions: SessionStore,
        tracker: PriceEntryTracker,
    ):
        self.data_store = data_store
        self.sessions = sessions
        self.tracker = tracker

    def _is_tracking(self, session: Session) -> bool:
        return self.tracker.session is not None and self.tracker.session.id == session.id

    def build_records(self, session: Session) -> list[HistoryRecord]:
        """One history record per session item, in stored order.

        Prices come from the tracker when it has the session open; items
        without an entry are recorded at 0.
        """
        tracking = self._is_tracking(session)
        timestamp = session_timestamp(session)
        return [
            HistoryRecord(
                item_id=item.id,
                name=item.name,
                quantity=item.quantity,
                unit=item.unit,
                last_price=item.last_price,
                target_date=item.target_date,
                price=self.tracker.price_for(item.id) if tracking else 0,
                session_date=session.date_str,
                timestamp=timestamp,
            )
            for item in session.items
        ]

    def finish(self, session_id: str) -> list[HistoryRecord]:
        """Record a session's items as history and delete the session.

        The inserts and the delete are committed as one batch: either all
        apply or none do.

        Raises:
            NotFoundError: If the session no longer exists.
            PersistenceError: If the store cannot apply the batch.
        """
        session = self.sessions.get_session(session_id)
        records = self.build_records(session)

        batch = WriteBatch()
        for record in records:
            batch.set(HISTORY, record.to_document())
        batch.delete(SESSIONS, session.id)

        try:
            self.data_store.commit(batch)
        except LedgerError:
            logger.warning("Finalizing session %s failed; nothing was recorded", session.id)
            raise

        if self._is_tracking(session):
            self.tracker.close()
        logger.info(
            "Finalized session %s into %d history records (total %d)",
            session.id,
            len(records),
            sum(r.price for r in records),
        )
        return records

"""Pending shopping sessions."""

import logging
from collections.abc import Sequence

from .data_store import SESSIONS, DataStoreProtocol
from .dates import DEFAULT_MONTH_NAMES, date_to_epoch_ms, format_date_label
from .draft_cart import DraftCart
from .errors import NotFoundError, ValidationError
from .models import DraftItem, Session, SessionItem, SessionStatus
from .state import LedgerState

logger = logging.getLogger(__name__)


class SessionStore:
    """Creates, lists and deletes pending sessions.

    Reads come from the state snapshot; writes go to the document store and
    become visible once the store's change notification has replaced the
    snapshot.
    """

    def __init__(
        self,
        data_store: DataStoreProtocol,
        state: LedgerState,
        month_names: Sequence[str] = DEFAULT_MONTH_NAMES,
    ):
        self.data_store = data_store
        self.state = state
        self.month_names = tuple(month_names)

    def create_session(self, draft_items: Sequence[DraftItem]) -> Session:
        """Persist a pending session built from draft items.

        All items share the first item's target date.

        Raises:
            ValidationError: If there are no items.
            PersistenceError: If the store rejects the write.
        """
        if not draft_items:
            raise ValidationError("Cannot create a session without items")

        ref_date = draft_items[0].target_date
        session = Session(
            items=tuple(SessionItem(**item.model_dump()) for item in draft_items),
            created_at=date_to_epoch_ms(ref_date),
            date_str=format_date_label(ref_date, self.month_names),
            iso_date=ref_date.isoformat(),
            status=SessionStatus.PENDING,
        )
        self.data_store.add(SESSIONS, session.to_document())
        logger.info(
            "Created session %s for %s with %d items",
            session.id,
            session.iso_date,
            session.item_count,
        )
        return session

    def create_from_cart(self, cart: DraftCart) -> Session:
        """Create a session from a cart, clearing the cart once stored."""
        session = self.create_session(cart.items)
        cart.clear()
        return session

    def list_sessions(self) -> list[Session]:
        """Sessions in the latest snapshot, in snapshot order."""
        return list(self.state.snapshot.sessions)

    def get_session(self, session_id: str) -> Session:
        """Find a session in the latest snapshot.

        Raises:
            NotFoundError: If no such session exists.
        """
        for session in self.state.snapshot.sessions:
            if session.id == session_id:
                return session
        raise NotFoundError("session", session_id)

    def delete_session(self, session_id: str) -> None:
        """Permanently remove a pending session.

        Confirmation is the caller's responsibility.

        Raises:
            NotFoundError: If no such session exists.
            PersistenceError: If the store rejects the delete.
        """
        self.get_session(session_id)
        self.data_store.delete(SESSIONS, session_id)
        logger.info("Deleted session %s", session_id)

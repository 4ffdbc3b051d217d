"""Wiring of the ledger components for one signed-in user."""

import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from .config import ConfigManager
from .data_store import HISTORY, SESSIONS, BackendType, DataStoreProtocol, Document, create_data_store
from .dates import DEFAULT_MONTH_NAMES
from .draft_cart import DraftCart
from .errors import NoOpenSessionError
from .finalization import FinalizationEngine
from .history import HistoryAggregator
from .models import HistoryRecord, LedgerSnapshot, Session
from .price_entry import PriceEntryTracker
from .price_index import PriceHistoryIndex
from .session_store import SessionStore
from .state import LedgerState

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def parse_documents(model: type[M], documents: list[Document]) -> list[M]:
    """Validate store documents, skipping (and logging) malformed ones."""
    parsed: list[M] = []
    for doc in documents:
        try:
            parsed.append(model.model_validate(doc))
        except ModelValidationError as e:
            logger.warning(
                "Skipping malformed %s document %s: %s",
                model.__name__,
                doc.get("id"),
                e.errors()[0]["msg"] if e.errors() else e,
            )
    return parsed


class Ledger:
    """The shopping-session engine bound to one user's document store."""

    def __init__(
        self,
        data_store: DataStoreProtocol,
        month_names: Sequence[str] = DEFAULT_MONTH_NAMES,
        default_unit: str = "",
        default_quantity: str = "1",
    ):
        self.data_store = data_store
        self.state = LedgerState()
        self.price_index = PriceHistoryIndex(lambda: self.state.snapshot.history)
        self.draft = DraftCart(
            self.price_index, default_unit=default_unit, default_quantity=default_quantity
        )
        self.sessions = SessionStore(data_store, self.state, month_names)
        self.tracker = PriceEntryTracker(self.price_index)
        self.finalizer = FinalizationEngine(data_store, self.sessions, self.tracker)
        self.history = HistoryAggregator(data_store, self.state)
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def user_id(self) -> str:
        return self.data_store.user_id

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self.state.snapshot

    def start(self) -> "Ledger":
        """Sign in: start the state and subscribe to both collections."""
        if self.state.started:
            return self
        self.state.start(self.user_id)
        self._unsubscribers = [
            self.data_store.subscribe(SESSIONS, self._on_sessions),
            self.data_store.subscribe(HISTORY, self._on_history),
        ]
        return self

    def stop(self) -> None:
        """Sign out: drop subscriptions, the draft and the open session."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.tracker.close()
        self.draft.clear()
        self.state.stop()

    def __enter__(self) -> "Ledger":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _on_sessions(self, documents: list[Document]) -> None:
        sessions = parse_documents(Session, documents)
        self.state.replace_sessions(sessions)
        active = self.tracker.session
        if active is not None and all(s.id != active.id for s in sessions):
            logger.info("Open session %s disappeared from the store; closing it", active.id)
            self.tracker.close()

    def _on_history(self, documents: list[Document]) -> None:
        self.state.replace_history(parse_documents(HistoryRecord, documents))

    # --- Convenience operations ---

    def create_session(self) -> Session:
        """Create a session from the draft cart and clear the cart."""
        return self.sessions.create_from_cart(self.draft)

    def open_session(self, session_id: str) -> Session:
        """Make a session active for price entry."""
        session = self.sessions.get_session(session_id)
        self.tracker.open(session)
        return session

    def finish(self, session_id: str | None = None) -> list[HistoryRecord]:
        """Finalize a session, the open one by default."""
        if session_id is None:
            active = self.tracker.session
            if active is None:
                raise NoOpenSessionError()
            session_id = active.id
        return self.finalizer.finish(session_id)


def open_ledger(
    config: ConfigManager | None = None,
    data_store: DataStoreProtocol | None = None,
    user_id: str | None = None,
) -> Ledger:
    """Build and start a Ledger from configuration.

    Args:
        config: Configuration; loaded from standard locations if omitted
        data_store: Explicit store, overriding the configured backend
        user_id: Identity overriding the configured user
    """
    cfg = config or ConfigManager()
    if data_store is None:
        data_store = create_data_store(
            backend=BackendType(cfg.data.backend),
            data_dir=cfg.data.storage_dir,
            user_id=user_id or cfg.identity.user_id,
        )
    ledger = Ledger(
        data_store,
        month_names=cfg.locale.month_names,
        default_unit=cfg.defaults.unit,
        default_quantity=cfg.defaults.quantity,
    )
    return ledger.start()

"""Process-wide snapshot of the signed-in user's sessions and history.

``LedgerState`` owns the only in-memory copy of store data. It is started on
sign-in, replaced wholesale on each store notification and stopped on
sign-out. Components read ``state.snapshot``; the presentation layer
subscribes to change notifications.
"""

import logging
from collections.abc import Callable, Iterable

from .errors import LedgerError
from .models import HistoryRecord, LedgerSnapshot, Session

logger = logging.getLogger(__name__)

Listener = Callable[[LedgerSnapshot], None]


class StateNotStartedError(LedgerError):
    """Raised when the state is used before sign-in or after sign-out."""

    error_code = "NOT_SIGNED_IN"


class LedgerState:
    """Versioned snapshot container with change notifications."""

    def __init__(self) -> None:
        self._snapshot = LedgerSnapshot()
        self._started = False
        self._session_listeners: list[Listener] = []
        self._history_listeners: list[Listener] = []

    @property
    def started(self) -> bool:
        return self._started

    @property
    def snapshot(self) -> LedgerSnapshot:
        """Current snapshot.

        Raises:
            StateNotStartedError: If no user is signed in.
        """
        if not self._started:
            raise StateNotStartedError("No user signed in")
        return self._snapshot

    @property
    def user_id(self) -> str | None:
        return self._snapshot.user_id if self._started else None

    def start(self, user_id: str) -> None:
        """Begin a signed-in lifetime with an empty snapshot."""
        self._snapshot = LedgerSnapshot(version=0, user_id=user_id)
        self._started = True
        logger.info("Ledger state started for user %s", user_id)

    def stop(self) -> None:
        """Tear down the snapshot on sign-out."""
        if self._started:
            logger.info("Ledger state stopped for user %s", self._snapshot.user_id)
        self._snapshot = LedgerSnapshot()
        self._started = False

    def replace_sessions(self, sessions: Iterable[Session]) -> LedgerSnapshot:
        """Replace the session set and notify session listeners."""
        snapshot = self.snapshot.model_copy(
            update={"version": self._snapshot.version + 1, "sessions": tuple(sessions)}
        )
        self._snapshot = snapshot
        logger.debug("Session snapshot v%d: %d sessions", snapshot.version, len(snapshot.sessions))
        self._emit(self._session_listeners, snapshot)
        return snapshot

    def replace_history(self, history: Iterable[HistoryRecord]) -> LedgerSnapshot:
        """Replace the history set and notify history listeners."""
        snapshot = self.snapshot.model_copy(
            update={"version": self._snapshot.version + 1, "history": tuple(history)}
        )
        self._snapshot = snapshot
        logger.debug("History snapshot v%d: %d records", snapshot.version, len(snapshot.history))
        self._emit(self._history_listeners, snapshot)
        return snapshot

    def on_sessions_changed(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to session set changes. Returns an unsubscribe function."""
        return self._add_listener(self._session_listeners, listener)

    def on_history_changed(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to history set changes. Returns an unsubscribe function."""
        return self._add_listener(self._history_listeners, listener)

    @staticmethod
    def _add_listener(listeners: list[Listener], listener: Listener) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    @staticmethod
    def _emit(listeners: list[Listener], snapshot: LedgerSnapshot) -> None:
        for listener in list(listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener %r failed", listener)

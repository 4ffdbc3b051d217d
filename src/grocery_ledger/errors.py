"""Error types raised by the ledger core."""


class LedgerError(Exception):
    """Base class for all ledger errors."""

    error_code = "LEDGER_ERROR"


class ValidationError(LedgerError, ValueError):
    """Raised when user input is rejected before reaching the store."""

    error_code = "VALIDATION_ERROR"


class NotFoundError(LedgerError, LookupError):
    """Raised when a session, item or record is no longer present."""

    error_code = "NOT_FOUND"

    def __init__(self, kind: str, identifier: str, message: str | None = None):
        self.kind = kind
        self.identifier = identifier
        super().__init__(message or f"{kind.capitalize()} with ID '{identifier}' not found")


class NoOpenSessionError(NotFoundError):
    """Raised when pricing or finishing needs an open session and none is."""

    def __init__(self):
        super().__init__("session", "", "No session is open for price entry")


class PersistenceError(LedgerError):
    """Raised when the backing store rejects or cannot complete a write."""

    error_code = "PERSISTENCE_ERROR"


class DraftIndexError(LedgerError, IndexError):
    """Raised when a draft position is out of range."""

    error_code = "NOT_FOUND"

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(f"Draft position {index} out of range (cart has {size} items)")

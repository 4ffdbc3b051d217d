"""Grocery Ledger - Shopping sessions, last-price lookups and monthly spend."""

from .config import ConfigManager
from .data_store import BackendType, DataStore, WriteBatch, create_data_store
from .draft_cart import DraftCart
from .errors import (
    DraftIndexError,
    LedgerError,
    NoOpenSessionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .finalization import FinalizationEngine
from .history import HistoryAggregator
from .ledger import Ledger, open_ledger
from .models import (
    DraftItem,
    HistoryRecord,
    LedgerSnapshot,
    MonthSummary,
    PriceEntry,
    PriceTrend,
    Session,
    SessionItem,
    SessionStatus,
)
from .output_formatter import OutputFormatter
from .price_entry import PriceEntryTracker
from .price_index import PriceHistoryIndex
from .session_store import SessionStore
from .sqlite_store import SQLiteStore
from .state import LedgerState

__version__ = "0.1.0"

__all__ = [
    "BackendType",
    "ConfigManager",
    "create_data_store",
    "DataStore",
    "DraftCart",
    "DraftIndexError",
    "DraftItem",
    "FinalizationEngine",
    "HistoryAggregator",
    "HistoryRecord",
    "Ledger",
    "LedgerError",
    "LedgerSnapshot",
    "LedgerState",
    "MonthSummary",
    "NoOpenSessionError",
    "NotFoundError",
    "open_ledger",
    "OutputFormatter",
    "PersistenceError",
    "PriceEntry",
    "PriceEntryTracker",
    "PriceHistoryIndex",
    "PriceTrend",
    "Session",
    "SessionItem",
    "SessionStatus",
    "SessionStore",
    "SQLiteStore",
    "ValidationError",
    "WriteBatch",
]

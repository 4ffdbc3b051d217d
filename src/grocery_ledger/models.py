"""Core data models for Grocery Ledger.

Stored documents use camelCase field names
(``qty``, ``createdAt``, ``dateStr`` ...) through field aliases. Use
``to_document()`` when writing to a store and ``model_validate`` when reading
one back.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dates import epoch_ms_to_datetime


def new_document_id() -> str:
    """Generate a store document identifier."""
    return uuid4().hex


class SessionStatus(str, Enum):
    """Status of a persisted shopping session."""

    PENDING = "pending"


class PriceTrend(str, Enum):
    """Entered price relative to the last known price."""

    UNSET = "unset"
    INCREASED = "increased"
    DECREASED = "decreased"
    NEUTRAL = "neutral"


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_document(self) -> dict[str, Any]:
        """Serialize using the persisted field names."""
        return self.model_dump(mode="json", by_alias=True)


class SessionItem(_Document):
    """An item inside a shopping session."""

    id: str
    name: str
    quantity: str = Field(default="1", alias="qty")
    unit: str = ""
    last_price: int | None = Field(default=None, alias="lastPrice")
    target_date: date | None = Field(default=None, alias="selectedDate")

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_as_text(cls, value: Any) -> Any:
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else repr(value)
        if isinstance(value, int):
            return str(value)
        return value


class DraftItem(SessionItem):
    """An item drafted for purchase, not yet part of a session."""

    target_date: date = Field(default_factory=date.today, alias="selectedDate")


class Session(_Document):
    """A pending shopping session awaiting price entry."""

    id: str = Field(default_factory=new_document_id)
    items: tuple[SessionItem, ...] = ()
    created_at: int = Field(alias="createdAt")
    date_str: str = Field(alias="dateStr")
    iso_date: str | None = Field(default=None, alias="isoDate")
    status: SessionStatus = SessionStatus.PENDING

    def get_item(self, item_id: str) -> SessionItem | None:
        """Find an item by ID."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def item_count(self) -> int:
        return len(self.items)


class HistoryRecord(SessionItem):
    """A finalized, priced purchase of one item.

    Carries the fields of the session item it was recorded from, plus its own
    document ID.
    """

    id: str = Field(default_factory=new_document_id)
    item_id: str | None = Field(default=None, alias="itemId")
    price: int = Field(default=0, ge=0)
    session_date: str = Field(default="", alias="sessionDate")
    timestamp: int

    @property
    def purchased_at(self) -> datetime:
        """Timestamp as a local datetime."""
        return epoch_ms_to_datetime(self.timestamp)


class PriceEntry(BaseModel):
    """Result of entering a price for a session item."""

    item_id: str
    price: int
    trend: PriceTrend
    last_price: int | None = None


class MonthSummary(BaseModel):
    """History records and spend for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)  # 1-12
    count: int = 0
    total: int = 0
    records: list[HistoryRecord] = Field(default_factory=list)


class LedgerSnapshot(BaseModel):
    """Versioned view of one user's sessions and history."""

    model_config = ConfigDict(frozen=True)

    version: int = 0
    user_id: str | None = None
    sessions: tuple[Session, ...] = ()
    history: tuple[HistoryRecord, ...] = ()
    taken_at: datetime = Field(default_factory=datetime.now)

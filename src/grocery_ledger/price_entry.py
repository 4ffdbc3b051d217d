"""Price entry for the active shopping session."""

import re

from .errors import NoOpenSessionError, NotFoundError
from .models import PriceEntry, PriceTrend, Session
from .price_index import PriceHistoryIndex

_NON_DIGITS = re.compile(r"\D")
_THOUSANDS = re.compile(r"\B(?=(\d{3})+(?!\d))")


def normalize_price_input(raw_input: str | None) -> int:
    """Digits of the input as a non-negative integer, 0 when there are none."""
    digits = _NON_DIGITS.sub("", raw_input or "")
    return int(digits) if digits else 0


def format_price_input(raw_input: str | None) -> str:
    """Echo typed digits with ``.`` thousands separators (``15000`` -> ``15.000``)."""
    digits = _NON_DIGITS.sub("", raw_input or "")
    return _THOUSANDS.sub(".", digits)


def classify_price(price: int, last_price: int | None) -> PriceTrend:
    """Compare an entered price against the last known price."""
    if price == 0:
        return PriceTrend.UNSET
    if last_price is None or last_price <= 0:
        return PriceTrend.NEUTRAL
    if price > last_price:
        return PriceTrend.INCREASED
    return PriceTrend.DECREASED


class PriceEntryTracker:
    """Holds the prices being typed for exactly one open session."""

    def __init__(self, price_index: PriceHistoryIndex):
        self.price_index = price_index
        self._session: Session | None = None
        self._last_prices: dict[str, int | None] = {}
        self._prices: dict[str, int] = {}

    @property
    def session(self) -> Session | None:
        """The open session, if any."""
        return self._session

    @property
    def prices(self) -> dict[str, int]:
        """Copy of the entered prices keyed by item ID."""
        return dict(self._prices)

    def open(self, session: Session) -> None:
        """Make a session active, capturing last prices and clearing entries."""
        self.reset()
        self._session = session
        self._last_prices = {
            item.id: self.price_index.last_price(item.name) for item in session.items
        }

    def close(self) -> None:
        """Deactivate the session and clear entries."""
        self.reset()
        self._session = None
        self._last_prices = {}

    def reset(self) -> None:
        """Clear all entered prices."""
        self._prices = {}

    def last_price_for(self, item_id: str) -> int | None:
        """Last known price captured when the session was opened."""
        return self._last_prices.get(item_id)

    def price_for(self, item_id: str) -> int:
        return self._prices.get(item_id, 0)

    def set_price(self, item_id: str, raw_input: str | None) -> PriceEntry:
        """Record a typed price, overwriting any earlier entry for the item.

        Raises:
            NoOpenSessionError: If no session is open.
            NotFoundError: If the session has no such item.
        """
        if self._session is None:
            raise NoOpenSessionError()
        if self._session.get_item(item_id) is None:
            raise NotFoundError("item", item_id)

        price = normalize_price_input(raw_input)
        self._prices[item_id] = price
        last_price = self._last_prices.get(item_id)
        return PriceEntry(
            item_id=item_id,
            price=price,
            trend=classify_price(price, last_price),
            last_price=last_price,
        )

    def live_total(self) -> int:
        """Sum of all entered prices."""
        return sum(self._prices.values())

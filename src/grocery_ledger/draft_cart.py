"""In-memory draft of items to buy, before a session exists."""

import time
from datetime import date

from .errors import DraftIndexError, ValidationError
from .models import DraftItem
from .price_index import PriceHistoryIndex


def parse_target_date(value: date | str | None) -> date:
    """Coerce a target date given as a date or ISO string.

    Raises:
        ValidationError: If the string is not a YYYY-MM-DD date.
    """
    if value is None:
        return date.today()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD") from e


class DraftCart:
    """Ordered, not-yet-committed items for the next shopping session."""

    def __init__(
        self,
        price_index: PriceHistoryIndex,
        default_unit: str = "",
        default_quantity: str = "1",
    ):
        self.price_index = price_index
        self.default_unit = default_unit
        self.default_quantity = default_quantity
        self._items: list[DraftItem] = []
        self._last_id = 0

    def _next_id(self) -> str:
        """Time-based identifier, strictly increasing within this cart."""
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return str(self._last_id)

    def add_item(
        self,
        name: str,
        quantity: str | int | float | None = None,
        unit: str | None = None,
        target_date: date | str | None = None,
    ) -> DraftItem:
        """Append an item to the draft.

        The last known price is resolved now and never refreshed.

        Raises:
            ValidationError: If the name is blank or the date is invalid.
        """
        name = name.strip() if name else ""
        if not name:
            raise ValidationError("Item name must not be empty")

        item = DraftItem(
            id=self._next_id(),
            name=name,
            quantity=str(quantity).strip() if quantity is not None else self.default_quantity,
            unit=unit.strip() if unit is not None else self.default_unit,
            target_date=parse_target_date(target_date),
            last_price=self.price_index.last_price(name),
        )
        self._items.append(item)
        return item

    def remove_item(self, index: int) -> DraftItem:
        """Remove the item at a position.

        Raises:
            DraftIndexError: If the position is out of range.
        """
        if not 0 <= index < len(self._items):
            raise DraftIndexError(index, len(self._items))
        return self._items.pop(index)

    def clear(self) -> None:
        self._items.clear()

    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[DraftItem]:
        """Copy of the drafted items in insertion order."""
        return list(self._items)

"""Date and timestamp helpers shared by the ledger components.

Timestamps are epoch milliseconds. Calendar dates are interpreted at local
midnight, so a timestamp derived from a date always falls inside that date's
local calendar month.
"""

from datetime import date, datetime, time

DEFAULT_MONTH_NAMES = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)


def date_to_epoch_ms(value: date) -> int:
    """Epoch milliseconds of local midnight on the given date."""
    return int(datetime.combine(value, time.min).timestamp() * 1000)


def iso_to_epoch_ms(value: str | None) -> int | None:
    """Parse an ISO date string to epoch milliseconds, or None if unparsable."""
    if not value:
        return None
    try:
        parsed = date.fromisoformat(value.strip())
    except ValueError:
        try:
            return int(datetime.fromisoformat(value.strip()).timestamp() * 1000)
        except ValueError:
            return None
    return date_to_epoch_ms(parsed)


def epoch_ms_to_datetime(value: int) -> datetime:
    """Local datetime for an epoch milliseconds timestamp."""
    return datetime.fromtimestamp(value / 1000)


def format_date_label(value: date, month_names: tuple[str, ...] | list[str] = DEFAULT_MONTH_NAMES) -> str:
    """Long human-readable label, e.g. ``1 Mei 2024``."""
    return f"{value.day} {month_names[value.month - 1]} {value.year}"


def month_bounds(year: int, month: int) -> tuple[int, int]:
    """Half-open ``[start, end)`` epoch-ms range of a 1-based calendar month."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return date_to_epoch_ms(start), date_to_epoch_ms(end)

"""Terminal UI for Grocery Ledger."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    Static,
    TabbedContent,
    TabPane,
)

from .errors import LedgerError
from .ledger import Ledger
from .models import LedgerSnapshot, PriceTrend
from .output_formatter import format_idr
from .price_entry import classify_price, format_price_input

TREND_LABELS = {
    PriceTrend.INCREASED: "▲ up",
    PriceTrend.DECREASED: "▼ down",
    PriceTrend.NEUTRAL: "new",
    PriceTrend.UNSET: "-",
}


class DraftItemFormScreen(ModalScreen[dict[str, Any] | None]):
    """Modal dialog to draft an item for the next session."""

    DEFAULT_CSS = """
    DraftItemFormScreen {
        align: center middle;
    }

    #draft-item-form-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: round $primary;
        background: $surface;
    }

    #draft-item-form-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }

    .field-label {
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, default_quantity: str, default_unit: str, default_date: date):
        super().__init__()
        self.default_quantity = default_quantity
        self.default_unit = default_unit
        self.default_date = default_date

    def compose(self) -> ComposeResult:
        with Vertical(id="draft-item-form-dialog"):
            yield Label("Add Item", classes="field-label")
            yield Label("Name", classes="field-label")
            yield Input(placeholder="Telur", id="name")
            yield Label("Quantity", classes="field-label")
            yield Input(value=self.default_quantity, id="quantity")
            yield Label("Unit", classes="field-label")
            yield Input(value=self.default_unit, placeholder="kg", id="unit")
            yield Label("Shopping date (YYYY-MM-DD)", classes="field-label")
            yield Input(value=self.default_date.isoformat(), id="date")
            with Horizontal(id="draft-item-form-actions"):
                yield Button("Cancel", id="cancel")
                yield Button("Add", id="submit", variant="primary")

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
            return

        if event.button.id != "submit":
            return

        name = self.query_one("#name", Input).value.strip()
        date_raw = self.query_one("#date", Input).value.strip()

        if not name:
            self.app.bell()
            return

        try:
            target = date.fromisoformat(date_raw) if date_raw else self.default_date
        except ValueError:
            self.app.bell()
            return

        self.dismiss(
            {
                "name": name,
                "quantity": self.query_one("#quantity", Input).value.strip() or None,
                "unit": self.query_one("#unit", Input).value.strip(),
                "target_date": target,
            }
        )


class PriceFormScreen(ModalScreen[str | None]):
    """Modal dialog to type the paid price of one item."""

    DEFAULT_CSS = """
    PriceFormScreen {
        align: center middle;
    }

    #price-form-dialog {
        width: 50;
        height: auto;
        padding: 1 2;
        border: round $accent;
        background: $surface;
    }

    #price-form-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, item_name: str, last_price: int | None, current: int):
        super().__init__()
        self.item_name = item_name
        self.last_price = last_price
        self.current = current

    def compose(self) -> ComposeResult:
        with Vertical(id="price-form-dialog"):
            yield Label(f"Price for {self.item_name}")
            yield Label(f"Last price: {format_idr(self.last_price)}")
            yield Input(
                value=format_price_input(str(self.current)) if self.current else "",
                placeholder="15.000",
                id="price",
            )
            yield Label("", id="trend")
            with Horizontal(id="price-form-actions"):
                yield Button("Cancel", id="cancel")
                yield Button("Set", id="submit", variant="primary")

    def on_input_changed(self, event: Input.Changed) -> None:
        formatted = format_price_input(event.value)
        if formatted != event.value:
            event.input.value = formatted
            event.input.cursor_position = len(formatted)
            return
        digits = formatted.replace(".", "")
        trend = classify_price(int(digits) if digits else 0, self.last_price)
        self.query_one("#trend", Label).update(TREND_LABELS[trend])

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
        elif event.button.id == "submit":
            self.dismiss(self.query_one("#price", Input).value)


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no confirmation before a destructive action."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: round $error;
        background: $surface;
    }

    #confirm-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(self.message)
            with Horizontal(id="confirm-actions"):
                yield Button("No", id="no")
                yield Button("Delete", id="yes", variant="error")

    def action_cancel(self) -> None:
        self.dismiss(False)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")


class GroceryLedgerApp(App[None]):
    """Interactive terminal UI for drafting, pricing and reviewing purchases."""

    TITLE = "Grocery Ledger"
    SUB_TITLE = "Terminal Interface"

    DEFAULT_CSS = """
    #status {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    .summary {
        height: 1;
        padding: 0 1;
    }

    DataTable {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("a", "add_item", "Add Item"),
        Binding("s", "save_session", "Save Session"),
        Binding("o", "open_session", "Open Session"),
        Binding("p", "enter_price", "Enter Price"),
        Binding("f", "finish_session", "Finish"),
        Binding("x", "remove_selected", "Remove Selected"),
        Binding("[", "previous_month", "Prev Month"),
        Binding("]", "next_month", "Next Month"),
    ]

    def __init__(self, ledger: Ledger):
        super().__init__()
        self.ledger = ledger
        today = date.today()
        self.year = today.year
        self.month = today.month  # 1-12
        self._row_ids: dict[str, list[str]] = {
            "draft": [],
            "sessions": [],
            "prices": [],
            "history": [],
        }
        self._unsubscribers: list[Callable[[], None]] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with TabbedContent(initial="draft"):
            with TabPane("Draft", id="draft"):
                yield DataTable(id="draft-table")
            with TabPane("Sessions", id="sessions"):
                yield DataTable(id="sessions-table")
            with TabPane("Price Entry", id="prices"):
                yield Static("No session open", id="prices-heading", classes="summary")
                yield DataTable(id="prices-table")
                yield Static("", id="prices-total", classes="summary")
            with TabPane("History", id="history"):
                yield Static("", id="history-heading", classes="summary")
                yield DataTable(id="history-table")
        yield Static(
            "a:add  s:save  o:open  p:price  f:finish  x:remove  [ ]:month  r:refresh  q:quit",
            id="status",
        )
        yield Footer()

    def on_mount(self) -> None:
        columns = {
            "draft": ("Item", "Qty", "Date", "Last Price"),
            "sessions": ("Date", "Items", "Preview"),
            "prices": ("Item", "Qty", "Last", "Price", "Trend"),
            "history": ("Item", "Qty", "Date", "Price"),
        }
        for tab, names in columns.items():
            table = self.query_one(f"#{tab}-table", DataTable)
            table.cursor_type = "row"
            table.add_columns(*names)

        self._unsubscribers = [
            self.ledger.state.on_sessions_changed(self._on_snapshot),
            self.ledger.state.on_history_changed(self._on_snapshot),
        ]
        self.action_refresh()

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_snapshot(self, snapshot: LedgerSnapshot) -> None:
        self._refresh_sessions_table()
        self._refresh_prices_table()
        self._refresh_history_table()

    def action_refresh(self) -> None:
        try:
            self._refresh_draft_table()
            self._refresh_sessions_table()
            self._refresh_prices_table()
            self._refresh_history_table()
            self._set_status("Refreshed")
        except LedgerError as exc:
            self._set_status(f"Refresh failed: {exc}")

    def action_add_item(self) -> None:
        items = self.ledger.draft.items
        default_date = items[-1].target_date if items else date.today()
        self.push_screen(
            DraftItemFormScreen(
                self.ledger.draft.default_quantity,
                self.ledger.draft.default_unit,
                default_date,
            ),
            self._handle_add_item,
        )

    def action_save_session(self) -> None:
        try:
            session = self.ledger.create_session()
        except LedgerError as exc:
            self._set_status(str(exc))
            return
        self._refresh_draft_table()
        self.query_one(TabbedContent).active = "sessions"
        self._set_status(f"Saved session for {session.date_str}")

    def action_open_session(self) -> None:
        session_id = self._selected_id("sessions")
        if session_id is None:
            self._set_status("Select a session in the Sessions tab")
            return
        try:
            session = self.ledger.open_session(session_id)
        except LedgerError as exc:
            self._set_status(str(exc))
            return
        self._refresh_prices_table()
        self.query_one(TabbedContent).active = "prices"
        self._set_status(f"Entering prices for {session.date_str}")

    def action_enter_price(self) -> None:
        session = self.ledger.tracker.session
        if session is None:
            self._set_status("Open a session first")
            return
        item_id = self._selected_id("prices")
        item = session.get_item(item_id) if item_id else None
        if item is None:
            self._set_status("No item selected")
            return
        self.push_screen(
            PriceFormScreen(
                item.name,
                self.ledger.tracker.last_price_for(item.id),
                self.ledger.tracker.price_for(item.id),
            ),
            lambda raw, selected_id=item.id: self._handle_price(selected_id, raw),
        )

    def action_finish_session(self) -> None:
        session = self.ledger.tracker.session
        if session is None:
            self._set_status("Open a session first")
            return
        try:
            records = self.ledger.finish(session.id)
        except LedgerError as exc:
            self._set_status(f"Finish failed: {exc}")
            return
        self._refresh_prices_table()
        total = sum(r.price for r in records)
        self.query_one(TabbedContent).active = "history"
        self._set_status(f"Recorded {len(records)} items, total {format_idr(total)}")

    def action_remove_selected(self) -> None:
        tab = self._active_tab()
        row_id = self._selected_id(tab)
        if row_id is None:
            self._set_status("No row selected")
            return

        if tab == "draft":
            index = self._row_ids["draft"].index(row_id)
            try:
                removed = self.ledger.draft.remove_item(index)
            except LedgerError as exc:
                self._set_status(str(exc))
                return
            self._refresh_draft_table()
            self._set_status(f"Removed {removed.name} from draft")
        elif tab == "sessions":
            self.push_screen(
                ConfirmScreen("Delete this shopping session?"),
                lambda ok, selected_id=row_id: self._handle_delete_session(selected_id, ok),
            )
        elif tab == "history":
            self.push_screen(
                ConfirmScreen("Delete this history record?"),
                lambda ok, selected_id=row_id: self._handle_delete_record(selected_id, ok),
            )

    def action_previous_month(self) -> None:
        self.year, self.month = (self.year - 1, 12) if self.month == 1 else (self.year, self.month - 1)
        self._refresh_history_table()

    def action_next_month(self) -> None:
        self.year, self.month = (self.year + 1, 1) if self.month == 12 else (self.year, self.month + 1)
        self._refresh_history_table()

    def _reset_table(self, tab: str) -> DataTable:
        table = self.query_one(f"#{tab}-table", DataTable)
        table.clear(columns=False)
        self._row_ids[tab] = []
        return table

    def _add_row(self, tab: str, table: DataTable, row_id: str, *cells: str) -> None:
        self._row_ids[tab].append(row_id)
        table.add_row(*cells, key=row_id)

    def _refresh_draft_table(self) -> None:
        table = self._reset_table("draft")
        for item in self.ledger.draft.items:
            self._add_row(
                "draft",
                table,
                item.id,
                item.name,
                f"{item.quantity} {item.unit}".strip(),
                item.target_date.isoformat(),
                format_idr(item.last_price),
            )

    def _refresh_sessions_table(self) -> None:
        table = self._reset_table("sessions")
        for session in self.ledger.sessions.list_sessions():
            preview = ", ".join(i.name for i in session.items[:3])
            self._add_row(
                "sessions", table, session.id, session.date_str, str(session.item_count), preview
            )

    def _refresh_prices_table(self) -> None:
        table = self._reset_table("prices")
        tracker = self.ledger.tracker
        session = tracker.session
        heading = self.query_one("#prices-heading", Static)
        if session is None:
            heading.update("No session open")
            self.query_one("#prices-total", Static).update("")
            return

        heading.update(f"Session {session.date_str}")
        for item in session.items:
            price = tracker.price_for(item.id)
            last = tracker.last_price_for(item.id)
            self._add_row(
                "prices",
                table,
                item.id,
                item.name,
                f"{item.quantity} {item.unit}".strip(),
                format_idr(last),
                format_idr(price) if price else "-",
                TREND_LABELS[classify_price(price, last)],
            )
        self.query_one("#prices-total", Static).update(
            f"Total: {format_idr(tracker.live_total())}"
        )

    def _refresh_history_table(self) -> None:
        table = self._reset_table("history")
        summary = self.ledger.history.month_summary(self.year, self.month - 1)
        for record in summary.records:
            self._add_row(
                "history",
                table,
                record.id,
                record.name,
                f"{record.quantity} {record.unit}".strip(),
                record.purchased_at.strftime("%d/%m/%Y"),
                format_idr(record.price),
            )
        month_name = self.ledger.sessions.month_names[self.month - 1]
        self.query_one("#history-heading", Static).update(
            f"{month_name} {self.year}: {summary.count} items, {format_idr(summary.total)}"
        )

    def _handle_add_item(self, payload: dict[str, Any] | None) -> None:
        if payload is None:
            self._set_status("Add item canceled")
            return

        try:
            item = self.ledger.draft.add_item(**payload)
        except LedgerError as exc:
            self._set_status(str(exc))
            return
        self._refresh_draft_table()
        self._set_status(f"Added {item.name} (last price {format_idr(item.last_price)})")

    def _handle_price(self, item_id: str, raw: str | None) -> None:
        if raw is None:
            return
        try:
            entry = self.ledger.tracker.set_price(item_id, raw)
        except LedgerError as exc:
            self._set_status(str(exc))
            return
        self._refresh_prices_table()
        self._set_status(f"Price set to {format_idr(entry.price)} ({TREND_LABELS[entry.trend]})")

    def _handle_delete_session(self, session_id: str, confirmed: bool | None) -> None:
        if not confirmed:
            self._set_status("Delete canceled")
            return
        try:
            self.ledger.sessions.delete_session(session_id)
        except LedgerError as exc:
            self._set_status(f"Delete failed: {exc}")
            return
        self._refresh_prices_table()
        self._set_status("Session deleted")

    def _handle_delete_record(self, record_id: str, confirmed: bool | None) -> None:
        if not confirmed:
            self._set_status("Delete canceled")
            return
        try:
            self.ledger.history.delete_record(record_id)
        except LedgerError as exc:
            self._set_status(f"Delete failed: {exc}")
            return
        self._set_status("History record deleted")

    def _selected_id(self, tab: str) -> str | None:
        table = self.query_one(f"#{tab}-table", DataTable)
        row = table.cursor_row
        ids = self._row_ids[tab]
        if row is None or row < 0 or row >= len(ids):
            return None
        return ids[row]

    def _active_tab(self) -> str:
        tabbed_content = self.query_one(TabbedContent)
        return tabbed_content.active or "draft"

    def _set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(message)

"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .dates import DEFAULT_MONTH_NAMES, epoch_ms_to_datetime

TREND_STYLES = {
    "increased": "[red]▲ up[/red]",
    "decreased": "[green]▼ down[/green]",
    "neutral": "[blue]new[/blue]",
    "unset": "[dim]-[/dim]",
}


def format_idr(amount: int | float | None) -> str:
    """Whole-rupiah amount with ``.`` thousands separators, e.g. ``Rp15.000``."""
    if amount is None:
        return "-"
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp{abs(round(amount)):,}".replace(",", ".")


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False, month_names: list[str] | None = None):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
            month_names: Month names used in headings
        """
        self.json_mode = json_mode
        self.month_names = list(month_names or DEFAULT_MONTH_NAMES)
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "sessions" in payload:
            self._render_sessions(payload["sessions"])
        elif "session" in payload:
            self._render_session(payload["session"])
        elif "finalized" in payload:
            self._render_finalized(payload["finalized"])
        elif "history" in payload:
            self._render_history(payload["history"])
        elif "month_total" in payload:
            self._render_month_total(payload["month_total"])
        elif "last_price" in payload:
            self._render_last_price(payload["last_price"])
        elif "migration" in payload:
            self._render_migration(payload["migration"])

    def _month_label(self, month: int, year: int) -> str:
        return f"{self.month_names[month - 1]} {year}"

    def _render_sessions(self, sessions: list[dict]) -> None:
        """Render pending sessions as a table."""
        if not sessions:
            self.console.print("[dim]No pending shopping sessions[/dim]")
            return

        table = Table(title="Pending Sessions", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Date", style="cyan")
        table.add_column("Items", justify="right", style="magenta")
        table.add_column("Preview")

        for session in sessions:
            items = session.get("items", [])
            preview = ", ".join(i["name"] for i in items[:3])
            if len(items) > 3:
                preview += f" +{len(items) - 3} more"
            table.add_row(session["id"], session["date_str"], str(len(items)), preview)

        self.console.print(table)

    def _render_session(self, session: dict) -> None:
        """Render one session with its items."""
        items = session.get("items", [])
        self.console.print(
            Panel(
                f"[bold]{session['date_str']}[/bold]\n\n"
                f"ID: {session['id']}\nStatus: {session.get('status', 'pending')}\n"
                f"Items: {len(items)}",
                title="Shopping Session",
                border_style="green",
            )
        )

        table = Table(show_header=True, header_style="bold")
        table.add_column("Item ID", style="dim", no_wrap=True)
        table.add_column("Item", style="cyan")
        table.add_column("Qty", justify="right")
        table.add_column("Last Price", justify="right")

        for item in items:
            table.add_row(
                item["id"],
                item["name"],
                f"{item.get('quantity', '')} {item.get('unit', '')}".strip(),
                format_idr(item.get("last_price")),
            )
        self.console.print(table)

    def _render_finalized(self, finalized: dict) -> None:
        """Render entered prices of a finished session."""
        table = Table(title="Recorded Purchases", show_header=True, header_style="bold")
        table.add_column("Item", style="cyan")
        table.add_column("Price", justify="right")
        table.add_column("Last", justify="right")
        table.add_column("Trend", justify="center")

        trends = {e["item_id"]: e for e in finalized.get("entries", [])}
        for record in finalized["records"]:
            entry = trends.get(record.get("item_id"), {})
            table.add_row(
                record["name"],
                format_idr(record["price"]),
                format_idr(entry.get("last_price")),
                TREND_STYLES.get(entry.get("trend", "unset"), ""),
            )
        self.console.print(table)
        self.console.print(f"\nTotal: [bold]{format_idr(finalized['total'])}[/bold]")

    def _render_history(self, history: dict) -> None:
        """Render a month of history records."""
        label = self._month_label(history["month"], history["year"])
        records = history["records"]
        if not records:
            self.console.print(f"[dim]No purchase history for {label}[/dim]")
            return

        table = Table(title=f"History: {label}", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Item", style="cyan")
        table.add_column("Qty", justify="right")
        table.add_column("Date")
        table.add_column("Price", justify="right", style="blue")

        for record in records:
            table.add_row(
                record["id"],
                record["name"],
                f"{record.get('quantity', '')} {record.get('unit', '')}".strip(),
                epoch_ms_to_datetime(record["timestamp"]).strftime("%d/%m/%Y"),
                format_idr(record["price"]),
            )
        self.console.print(table)
        self.console.print(
            f"\n{history['count']} items, total [bold]{format_idr(history['total'])}[/bold]"
        )

    def _render_month_total(self, total: dict) -> None:
        """Render a month's spend."""
        label = self._month_label(total["month"], total["year"])
        self.console.print(
            Panel(
                f"[bold]{format_idr(total['total'])}[/bold]\n{total['count']} items",
                title=f"Spending {label}",
                border_style="blue",
            )
        )

    def _render_last_price(self, last: dict) -> None:
        """Render a last-price lookup."""
        if last.get("price") is None:
            self.console.print(f"[dim]No price recorded for {last['item']}[/dim]")
            return
        self.console.print(
            f"Last price for [bold]{last['item']}[/bold]: {format_idr(last['price'])}"
            f" ({last.get('session_date') or '-'})"
        )

    def _render_migration(self, stats: dict) -> None:
        """Render migration statistics."""
        table = Table(show_header=True, header_style="bold")
        table.add_column("Collection")
        table.add_column("Documents", justify="right")
        for name, count in stats.items():
            table.add_row(name, str(count))
        self.console.print(table)

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")

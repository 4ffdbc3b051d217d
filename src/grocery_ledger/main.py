"""CLI entry point for Grocery Ledger."""

import logging
from datetime import date
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from .config import ConfigManager
from .data_store import BackendType, create_data_store
from .errors import LedgerError, NotFoundError, ValidationError
from .ledger import Ledger, open_ledger
from .migrate import DocumentMigrator
from .models import PriceEntry, Session
from .output_formatter import OutputFormatter
from .price_index import name_key

app = typer.Typer(
    name="grocery-ledger",
    help="Household grocery sessions, prices and monthly spend",
    no_args_is_help=True,
)

console = Console()

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
ledger: Ledger | None = None
data_dir_override: Path | None = None
user_override: str | None = None


def setup_logging(level: str) -> None:
    """Send package logs to stderr through Rich."""
    package_logger = logging.getLogger("grocery_ledger")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
    )
    package_logger.setLevel(level)
    package_logger.propagate = False


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_ledger() -> Ledger:
    """Get or create a started Ledger using config values."""
    global ledger
    if ledger is None:
        cfg = get_config()
        effective_data_dir = data_dir_override or cfg.data.storage_dir
        store = create_data_store(
            backend=BackendType(cfg.data.backend),
            data_dir=effective_data_dir,
            user_id=user_override or cfg.identity.user_id,
        )
        ledger = open_ledger(cfg, data_store=store)
    return ledger


def fail(error: Exception) -> NoReturn:
    """Report an error and exit with status 1."""
    if isinstance(error, LedgerError):
        formatter.error(str(error), error_code=error.error_code)
    else:
        formatter.error(str(error))
    raise typer.Exit(code=1)


def resolve_month(month: int | None, year: int | None) -> tuple[int, int]:
    """Year and zero-based month index from a 1-12 ``--month`` option."""
    today = date.today()
    return (year or today.year), (month or today.month) - 1


def session_payload(session: Session) -> dict:
    return session.model_dump(mode="json")


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    user: Annotated[str | None, typer.Option("--user", help="User whose data to use")] = None,
) -> None:
    """Grocery Ledger CLI - Draft, price and record your grocery shopping."""
    global formatter, config, ledger, data_dir_override, user_override

    formatter = OutputFormatter(json_mode=json_output)

    # Load config early
    try:
        config = ConfigManager()
        setup_logging(config.logging.level)
    except LedgerError as e:
        fail(e)
    except ValueError as e:
        fail(ValidationError(f"Invalid configuration: {e}"))

    formatter = OutputFormatter(json_mode=json_output, month_names=config.locale.month_names)

    # CLI options override config, which overrides defaults
    data_dir_override = data_dir
    user_override = user
    ledger = None


# Session subcommand group
session_app = typer.Typer(help="Shopping session commands")
app.add_typer(session_app, name="session")


def parse_item_spec(spec: str, default_date: date | None) -> tuple[str, str | None, str | None, str | date | None]:
    """Split ``NAME[,QTY[,UNIT[,YYYY-MM-DD]]]`` into draft fields."""
    parts = [p.strip() for p in spec.split(",")]
    if len(parts) > 4:
        raise ValidationError(f"Too many fields in item '{spec}', expected NAME,QTY,UNIT,DATE")
    parts += [""] * (4 - len(parts))
    name, quantity, unit, target = parts
    return name, quantity or None, unit or None, target or default_date


@session_app.command("create")
def session_create(
    items: Annotated[
        list[str],
        typer.Option("--item", "-i", help="Item as NAME,QTY,UNIT[,YYYY-MM-DD]; repeatable"),
    ],
    on: Annotated[
        str | None, typer.Option("--date", "-d", help="Date for items without one (YYYY-MM-DD)")
    ] = None,
) -> None:
    """Draft items and save them as a new pending session."""
    try:
        current = get_ledger()
        default_date = date.fromisoformat(on) if on else None
        for spec in items:
            name, quantity, unit, target = parse_item_spec(spec, default_date)
            current.draft.add_item(name, quantity, unit, target)
        session = current.create_session()
        formatter.output(
            {"success": True, "data": {"session": session_payload(session)}},
            f"Saved shopping session for {session.date_str}",
        )
    except ValueError as e:
        fail(e if isinstance(e, LedgerError) else ValidationError(str(e)))
    except LedgerError as e:
        fail(e)


@session_app.command("list")
def session_list() -> None:
    """List pending sessions."""
    try:
        sessions = get_ledger().sessions.list_sessions()
        formatter.output(
            {"success": True, "data": {"sessions": [session_payload(s) for s in sessions]}},
            f"Found {len(sessions)} pending sessions",
        )
    except LedgerError as e:
        fail(e)


@session_app.command("show")
def session_show(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
) -> None:
    """Show a session with last known prices."""
    try:
        session = get_ledger().sessions.get_session(session_id)
        formatter.output({"success": True, "data": {"session": session_payload(session)}})
    except LedgerError as e:
        fail(e)


@session_app.command("delete")
def session_delete(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a pending session."""
    try:
        current = get_ledger()
        session = current.sessions.get_session(session_id)
        if not yes:
            typer.confirm(f"Delete the shopping session of {session.date_str}?", abort=True)
        current.sessions.delete_session(session_id)
        formatter.success(f"Deleted session {session_id}", {"session_id": session_id})
    except LedgerError as e:
        fail(e)


def enter_prices(current: Ledger, session: Session, prices: list[str]) -> list[PriceEntry]:
    """Open a session and apply ``ITEM=PRICE`` entries.

    ITEM is an item ID or, failing that, an item name (case-insensitive).
    """
    current.tracker.open(session)
    entries: list[PriceEntry] = []
    for spec in prices:
        target, sep, raw = spec.partition("=")
        if not sep:
            raise ValidationError(f"Invalid price '{spec}', expected ITEM=PRICE")
        target = target.strip()
        item = session.get_item(target) or next(
            (i for i in session.items if name_key(i.name) == name_key(target)), None
        )
        if item is None:
            raise NotFoundError("item", target)
        entries.append(current.tracker.set_price(item.id, raw))
    return entries


@session_app.command("price")
def session_price(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    prices: Annotated[
        list[str], typer.Option("--price", "-p", help="ITEM=PRICE (item ID or name); repeatable")
    ],
) -> None:
    """Preview entered prices against last prices without recording them."""
    try:
        current = get_ledger()
        session = current.sessions.get_session(session_id)
        entries = enter_prices(current, session, prices)
        total = current.tracker.live_total()
        current.tracker.close()
        formatter.success(
            f"Running total {total}",
            {
                "session_id": session.id,
                "entries": [e.model_dump(mode="json") for e in entries],
                "total": total,
            },
        )
    except LedgerError as e:
        fail(e)


@session_app.command("finish")
def session_finish(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    prices: Annotated[
        list[str] | None,
        typer.Option("--price", "-p", help="ITEM=PRICE (item ID or name); repeatable"),
    ] = None,
) -> None:
    """Record paid prices and move the session into history."""
    try:
        current = get_ledger()
        session = current.sessions.get_session(session_id)
        entries = enter_prices(current, session, prices or [])
        total = current.tracker.live_total()
        records = current.finish(session.id)
        formatter.output(
            {
                "success": True,
                "data": {
                    "finalized": {
                        "session_id": session.id,
                        "records": [r.model_dump(mode="json") for r in records],
                        "entries": [e.model_dump(mode="json") for e in entries],
                        "total": total,
                    }
                },
            },
            f"Recorded {len(records)} purchases from {session.date_str}",
        )
    except LedgerError as e:
        fail(e)


# History subcommand group
history_app = typer.Typer(help="Purchase history commands")
app.add_typer(history_app, name="history")


@history_app.command("list")
def history_list(
    month: Annotated[
        int | None, typer.Option("--month", "-m", min=1, max=12, help="Month 1-12")
    ] = None,
    year: Annotated[int | None, typer.Option("--year", "-y", help="Year")] = None,
) -> None:
    """List purchases of a month, most recent first."""
    try:
        y, m = resolve_month(month, year)
        summary = get_ledger().history.month_summary(y, m)
        formatter.output({"success": True, "data": {"history": summary.model_dump(mode="json")}})
    except LedgerError as e:
        fail(e)


@history_app.command("total")
def history_total(
    month: Annotated[
        int | None, typer.Option("--month", "-m", min=1, max=12, help="Month 1-12")
    ] = None,
    year: Annotated[int | None, typer.Option("--year", "-y", help="Year")] = None,
) -> None:
    """Show total spend of a month."""
    try:
        y, m = resolve_month(month, year)
        summary = get_ledger().history.month_summary(y, m)
        formatter.output(
            {
                "success": True,
                "data": {
                    "month_total": {
                        "year": y,
                        "month": summary.month,
                        "count": summary.count,
                        "total": summary.total,
                    }
                },
            }
        )
    except LedgerError as e:
        fail(e)


@history_app.command("delete")
def history_delete(
    record_id: Annotated[str, typer.Argument(help="History record ID")],
    yes: Annotated[bool, typer.Option("--yes", help="Skip confirmation")] = False,
) -> None:
    """Delete one history record."""
    try:
        current = get_ledger()
        record = current.history.get_record(record_id)
        if not yes:
            typer.confirm(f"Delete the history record for {record.name}?", abort=True)
        current.history.delete_record(record_id)
        formatter.success(f"Deleted history record {record_id}", {"record_id": record_id})
    except LedgerError as e:
        fail(e)


# Price subcommand group
price_app = typer.Typer(help="Price lookup commands")
app.add_typer(price_app, name="price")


@price_app.command("last")
def price_last(
    item: Annotated[str, typer.Argument(help="Item name")],
) -> None:
    """Show the last price paid for an item."""
    try:
        record = get_ledger().price_index.latest_record(item)
        formatter.output(
            {
                "success": True,
                "data": {
                    "last_price": {
                        "item": item,
                        "price": record.price if record else None,
                        "session_date": record.session_date if record else None,
                        "timestamp": record.timestamp if record else None,
                    }
                },
            }
        )
    except LedgerError as e:
        fail(e)


@app.command()
def migrate(
    to_backend: Annotated[
        BackendType, typer.Option("--to", help="Backend receiving the documents")
    ] = BackendType.SQLITE,
    from_backend: Annotated[
        BackendType, typer.Option("--from", help="Backend to copy from")
    ] = BackendType.JSON,
    import_file: Annotated[
        Path | None, typer.Option("--import", help="Legacy JSON export to import instead")
    ] = None,
    force: Annotated[bool, typer.Option("--force", help="Write into a non-empty target")] = False,
) -> None:
    """Copy documents between backends or import a legacy export."""
    try:
        cfg = get_config()
        data_dir = data_dir_override or cfg.data.storage_dir
        user_id = user_override or cfg.identity.user_id
        target = create_data_store(backend=to_backend, data_dir=data_dir, user_id=user_id)
        migrator = DocumentMigrator(target)

        if import_file is not None:
            stats = migrator.import_export(import_file, force=force)
            message = f"Imported {import_file}"
        else:
            if from_backend == to_backend:
                raise ValidationError("Source and target backends must differ")
            source = create_data_store(backend=from_backend, data_dir=data_dir, user_id=user_id)
            stats = migrator.migrate_from(source, force=force)
            message = f"Migrated {from_backend.value} to {to_backend.value}"

        formatter.output({"success": True, "data": {"migration": stats}}, message)
    except LedgerError as e:
        fail(e)


@app.command()
def tui() -> None:
    """Launch the interactive terminal UI."""
    from .tui import GroceryLedgerApp

    try:
        current = get_ledger()
    except LedgerError as e:
        fail(e)
    GroceryLedgerApp(current).run()

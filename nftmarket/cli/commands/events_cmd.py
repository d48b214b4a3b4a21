"""``nftmarket events`` and ``nftmarket verify`` — inspect the event log.

``verify`` walks the hash chain and replays every event, failing if the
replayed state differs from the stored listings and proceeds.
"""

from __future__ import annotations

import typer
from rich.console import Console

from nftmarket.cli.commands.listings_cmd import open_existing_store
from nftmarket.config import config
from nftmarket.core.event_log import EventLog, EventLogIntegrityError
from nftmarket.models.principal import normalize_address
from nftmarket.monitor.projection import MarketProjection
from nftmarket.monitor.renderer import MarketRenderer

console = Console()


def events_cmd(
    collection: str = typer.Option(
        None, "--collection", "-c", help="Only events for this collection."
    ),
    asset_id: int = typer.Option(
        None, "--asset-id", "-a", help="Only events for this asset id."
    ),
    ledger_db: str = typer.Option(
        str(config.ledger_path),
        "--ledger",
        "-l",
        help="Path to the ledger SQLite database.",
    ),
) -> None:
    """Show the market event history."""
    if collection is not None:
        try:
            collection = normalize_address(collection)
        except ValueError as exc:
            console.print(f"[bold red]{exc}[/bold red]")
            raise typer.Exit(code=2)

    store = open_existing_store(ledger_db)
    try:
        events = EventLog(store).events(collection=collection, asset_id=asset_id)
        MarketRenderer(console=console, currency=config.currency_symbol).print_events(events)
    finally:
        store.close()


def verify_cmd(
    ledger_db: str = typer.Option(
        str(config.ledger_path),
        "--ledger",
        "-l",
        help="Path to the ledger SQLite database.",
    ),
) -> None:
    """Verify the event hash chain and that events account for all state."""
    store = open_existing_store(ledger_db)
    try:
        log = EventLog(store)
        try:
            log.verify_chain()
        except EventLogIntegrityError as exc:
            console.print(f"[bold red]Hash chain broken:[/bold red] {exc}")
            raise typer.Exit(code=1)

        projection = MarketProjection(log)
        problems = projection.discrepancies(store)
        renderer = MarketRenderer(console=console, currency=config.currency_symbol)
        renderer.print_snapshot(projection.snapshot())
        if problems:
            for problem in problems:
                console.print(f"[red]- {problem}[/red]")
            raise typer.Exit(code=1)
        console.print("[bold green]Ledger verified.[/bold green]")
    finally:
        store.close()

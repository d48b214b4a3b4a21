"""``nftmarket listings`` and ``nftmarket proceeds ADDRESS`` — read ledger state."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from nftmarket.config import config
from nftmarket.core.state_store import StateStore
from nftmarket.models.principal import normalize_address
from nftmarket.monitor.renderer import MarketRenderer

console = Console()


def open_existing_store(ledger_db: str) -> StateStore:
    """Open a ledger database, exiting with code 1 if it does not exist."""
    db_path = Path(ledger_db)
    if not db_path.exists():
        console.print(f"[bold red]Ledger not found:[/bold red] {ledger_db}")
        raise typer.Exit(code=1)
    return StateStore(db_path)


def listings_cmd(
    ledger_db: str = typer.Option(
        str(config.ledger_path),
        "--ledger",
        "-l",
        help="Path to the ledger SQLite database.",
    ),
) -> None:
    """Show every active listing."""
    store = open_existing_store(ledger_db)
    try:
        MarketRenderer(console=console, currency=config.currency_symbol).print_listings(
            store.all_listings()
        )
    finally:
        store.close()


def proceeds_cmd(
    address: str = typer.Argument(..., help="Seller address to look up."),
    ledger_db: str = typer.Option(
        str(config.ledger_path),
        "--ledger",
        "-l",
        help="Path to the ledger SQLite database.",
    ),
) -> None:
    """Show the withdrawable proceeds of an address."""
    try:
        owner = normalize_address(address)
    except ValueError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=2)

    store = open_existing_store(ledger_db)
    try:
        renderer = MarketRenderer(console=console, currency=config.currency_symbol)
        renderer.print_account(store.get_account(owner))
    finally:
        store.close()

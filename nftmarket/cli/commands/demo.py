"""``nftmarket demo`` — run a list → buy → withdraw scenario.

Uses an in-memory token registry and funds gateway.  The ledger itself is
in memory unless ``--ledger`` points at a database file, in which case the
result can be inspected afterwards with ``listings``, ``events`` and
``verify``.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from nftmarket.bridge.asset_registry import MarketplaceRegistryAdapter
from nftmarket.bridge.funds import InMemoryFundsGateway
from nftmarket.bridge.memory_registry import InMemoryAssetRegistry
from nftmarket.config import config
from nftmarket.core.errors import MarketplaceError
from nftmarket.core.marketplace import MarketplaceLedger
from nftmarket.core.state_store import MEMORY, StateStore
from nftmarket.core.units import parse_ether
from nftmarket.models.listing import OverpaymentPolicy
from nftmarket.models.principal import Principal
from nftmarket.monitor.projection import MarketProjection
from nftmarket.monitor.renderer import MarketRenderer

console = Console()

DEMO_COLLECTION = "0x" + "c0" * 20
DEMO_SELLER = Principal(address="0x" + "a1" * 20)
DEMO_BUYER = Principal(address="0x" + "b2" * 20)


def demo_cmd(
    price: str = typer.Option("0.1", "--price", "-p", help="Listing price in ether."),
    paid: str = typer.Option(
        None, "--paid", help="Amount the buyer pays in ether (defaults to the price)."
    ),
    policy: OverpaymentPolicy = typer.Option(
        config.overpayment_policy, "--policy", help="Overpayment policy."
    ),
    ledger_db: str = typer.Option(
        MEMORY,
        "--ledger",
        help="Ledger SQLite database (in memory by default).",
    ),
) -> None:
    """Mint, list, buy and withdraw once, printing state after each step."""
    try:
        price_wei = parse_ether(price)
        paid_wei = parse_ether(paid) if paid is not None else price_wei
    except ValueError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=2)

    store = StateStore(ledger_db)
    try:
        _run_demo(store, price_wei, paid_wei, policy)
    finally:
        store.close()


def _run_demo(
    store: StateStore, price_wei: int, paid_wei: int, policy: OverpaymentPolicy
) -> None:
    tokens = InMemoryAssetRegistry()
    funds = InMemoryFundsGateway()
    registry = MarketplaceRegistryAdapter(tokens, config.marketplace_address)
    ledger = MarketplaceLedger(registry, funds, store, overpayment_policy=policy)
    renderer = MarketRenderer(console=console, currency=config.currency_symbol)
    projection = MarketProjection(ledger.event_log)

    console.print()
    console.print(
        Panel(
            "[bold]nftmarket demo[/bold]\n\n"
            f"Seller {DEMO_SELLER} lists a token, buyer {DEMO_BUYER} buys it,\n"
            "and the seller withdraws the proceeds.",
            border_style="cyan",
            padding=(1, 2),
        )
    )

    try:
        asset_id = tokens.mint(DEMO_COLLECTION, DEMO_SELLER.address)
        tokens.approve(
            DEMO_SELLER.address, DEMO_COLLECTION, asset_id, registry.marketplace_address
        )
        console.print(f"\n[cyan]>>> Minted[/cyan] {DEMO_COLLECTION}#{asset_id}")

        ledger.list_item(DEMO_SELLER, DEMO_COLLECTION, asset_id, price_wei)
        console.print(f"[cyan]>>> Listed[/cyan] at {renderer.amount(price_wei)}")
        renderer.print_listings(ledger.active_listings())

        ledger.buy_item(DEMO_BUYER, DEMO_COLLECTION, asset_id, paid_wei)
        console.print(f"[cyan]>>> Bought[/cyan] paying {renderer.amount(paid_wei)}")
        console.print(
            f"    owner is now {tokens.owner_of(DEMO_COLLECTION, asset_id)}, "
            f"seller proceeds {renderer.amount(ledger.get_proceeds(DEMO_SELLER))}"
        )

        amount = ledger.withdraw_proceeds(DEMO_SELLER)
        console.print(
            f"[cyan]>>> Withdrew[/cyan] {renderer.amount(amount)}; seller wallet "
            f"holds {renderer.amount(funds.balance_of(DEMO_SELLER.address))}"
        )
    except MarketplaceError as exc:
        console.print(f"[bold red]Demo step failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print()
    renderer.print_events(ledger.event_log.events())
    renderer.print_snapshot(projection.snapshot())

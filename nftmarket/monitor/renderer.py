"""Rich terminal renderer for marketplace state and event history.

Color scheme
------------
- green   : ItemListed
- yellow  : ItemCanceled
- cyan    : ItemBought
- magenta : ProceedsWithdrawn
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from nftmarket.core.units import format_ether
from nftmarket.models.events import EventKind, MarketEvent
from nftmarket.models.listing import Listing, ProceedsAccount
from nftmarket.monitor.projection import MarketSnapshot

_KIND_STYLES: dict[EventKind, str] = {
    EventKind.ITEM_LISTED: "green",
    EventKind.ITEM_CANCELED: "yellow",
    EventKind.ITEM_BOUGHT: "cyan",
    EventKind.PROCEEDS_WITHDRAWN: "magenta",
}


def _short(address: str | None) -> str:
    if not address:
        return "-"
    return f"{address[:6]}…{address[-4:]}"


class MarketRenderer:
    """Renders listings, events and snapshots as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    currency:
        Symbol shown next to ether amounts.
    """

    def __init__(self, console: Console | None = None, currency: str = "ETH") -> None:
        self.console = console or Console()
        self.currency = currency

    def amount(self, wei: int) -> str:
        return f"{format_ether(wei)} {self.currency}"

    def listings_table(self, listings: list[Listing]) -> Table:
        table = Table(title="Active Listings")
        table.add_column("Collection", style="cyan")
        table.add_column("Asset", justify="right")
        table.add_column("Seller")
        table.add_column("Price", justify="right", style="green")
        for listing in listings:
            table.add_row(
                listing.collection,
                str(listing.asset_id),
                listing.seller or "-",
                self.amount(listing.price),
            )
        return table

    def events_table(self, events: list[MarketEvent]) -> Table:
        table = Table(title="Market Events")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Event")
        table.add_column("Asset")
        table.add_column("Actor")
        table.add_column("Amount", justify="right")
        table.add_column("Hash", style="dim")
        for event in events:
            style = _KIND_STYLES.get(event.kind, "")
            asset = (
                f"{_short(event.collection)}#{event.asset_id}"
                if event.asset_id is not None
                else "-"
            )
            table.add_row(
                str(event.sequence),
                f"[{style}]{event.kind.value}[/{style}]",
                asset,
                _short(event.actor),
                self.amount(event.price) if event.price else "-",
                event.event_hash[:8],
            )
        return table

    def snapshot_panel(self, snapshot: MarketSnapshot) -> Panel:
        chain = (
            "[green]VALID[/green]"
            if snapshot.chain_valid
            else f"[bold red]BROKEN[/bold red] {snapshot.chain_error}"
        )
        lines = [
            f"Events:               {snapshot.event_count}",
            f"Hash chain:           {chain}",
            f"Active listings:      {len(snapshot.listings)}",
            f"Listed value:         {self.amount(snapshot.total_listed_value)}",
            f"Unwithdrawn proceeds: {self.amount(snapshot.total_proceeds)}",
            f"Retained overpayment: {self.amount(snapshot.retained_overpayments)}",
        ]
        return Panel("\n".join(lines), title="Marketplace", expand=False)

    def print_listings(self, listings: list[Listing]) -> None:
        if not listings:
            self.console.print("[dim]No active listings.[/dim]")
            return
        self.console.print(self.listings_table(listings))

    def print_events(self, events: list[MarketEvent]) -> None:
        if not events:
            self.console.print("[dim]No events recorded.[/dim]")
            return
        self.console.print(self.events_table(events))

    def print_account(self, account: ProceedsAccount) -> None:
        self.console.print(f"[bold]{account.owner}[/bold]: {self.amount(account.balance)}")

    def print_snapshot(self, snapshot: MarketSnapshot) -> None:
        self.console.print(self.snapshot_panel(snapshot))

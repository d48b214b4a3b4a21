"""Main Typer application — imports and registers all CLI commands.

Entry point: ``nftmarket`` (configured via pyproject.toml scripts).

Commands: listings, proceeds, events, verify, demo.
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from nftmarket.cli.commands.demo import demo_cmd
from nftmarket.cli.commands.events_cmd import events_cmd, verify_cmd
from nftmarket.cli.commands.listings_cmd import listings_cmd, proceeds_cmd
from nftmarket.config import config

app = typer.Typer(
    name="nftmarket",
    help="nftmarket: fixed-price NFT marketplace ledger.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="listings", help="Show active listings.")(listings_cmd)
app.command(name="proceeds", help="Show withdrawable proceeds for an address.")(proceeds_cmd)
app.command(name="events", help="Show the market event history.")(events_cmd)
app.command(name="verify", help="Verify the event hash chain against stored state.")(verify_cmd)
app.command(name="demo", help="Run a list, buy and withdraw scenario.")(demo_cmd)


def configure_logging(level: str) -> None:
    """Route log records through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=config.debug, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        config.log_level, "--log-level", help="Logging level (DEBUG, INFO, WARNING...)."
    ),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

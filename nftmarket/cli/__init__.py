"""nftmarket CLI — Typer-based command-line interface.

Provides the ``nftmarket`` command with subcommands for inspecting
listings, proceeds and the event log, verifying the ledger, and running
a demo scenario.

All output uses Rich for formatted terminal display.
"""

"""Read-only views over the market event log.

Modules
-------
projection
    ``MarketProjection`` replays events into a ``MarketSnapshot`` — the
    state an external indexer reconstructs without touching the store.
renderer
    ``MarketRenderer`` turns listings, events and snapshots into Rich output.
"""

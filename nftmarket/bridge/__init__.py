"""Adapters for the marketplace's external collaborators.

Modules
-------
asset_registry
    ``AssetRegistry`` protocol consumed by the ledger and
    ``MarketplaceRegistryAdapter`` binding an ERC-721-style registry to the
    marketplace's operator address.
memory_registry
    ``InMemoryAssetRegistry`` — token ownership and approvals in memory.
funds
    ``FundsGateway`` protocol and ``InMemoryFundsGateway``.
"""

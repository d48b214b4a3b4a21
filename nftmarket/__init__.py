"""nftmarket: fixed-price NFT marketplace ledger with approve-and-pull escrow.

  - Listing Ledger: list, update, cancel and buy fixed-price listings
  - Proceeds Ledger: pull-payment withdrawals of seller earnings
  - Asset Registry adapter: ownership and approval checked against the NFT
    contract, never custody
  - Append-only, hash-chained event log for external indexers
  - SQLite-backed state store with atomic, re-entrancy-safe operations
"""

__version__ = "0.1.0"
__description__ = "Fixed-price NFT marketplace ledger with approve-and-pull escrow"

from nftmarket.core.marketplace import MarketplaceLedger
from nftmarket.models.principal import Principal
from nftmarket.cli.app import app as cli

__all__ = ["MarketplaceLedger", "Principal", "cli", "__version__"]

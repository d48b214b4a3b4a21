"""Named, parameterised failure kinds raised by the Marketplace Ledger.

Every error aborts the whole operation; the ledger rolls back any state
written before the failure.  Parameters are kept as attributes so callers
can diagnose a failure without reading ledger state.
"""

from __future__ import annotations


class MarketplaceError(RuntimeError):
    """Base class for every ledger operation failure."""


class NotListed(MarketplaceError):
    """Raised when cancel/update/buy targets an asset with no active listing."""

    def __init__(self, collection: str, asset_id: int) -> None:
        self.collection = collection
        self.asset_id = asset_id
        super().__init__(f'NotListed("{collection}", {asset_id})')


class AlreadyListed(MarketplaceError):
    """Raised when listing an asset that already has an active listing."""

    def __init__(self, collection: str, asset_id: int) -> None:
        self.collection = collection
        self.asset_id = asset_id
        super().__init__(f'AlreadyListed("{collection}", {asset_id})')


class NotOwner(MarketplaceError):
    """Raised when the caller is not the registry's current owner of the asset."""

    def __init__(self, collection: str, asset_id: int, caller: str) -> None:
        self.collection = collection
        self.asset_id = asset_id
        self.caller = caller
        super().__init__(f'NotOwner("{collection}", {asset_id}, "{caller}")')


class NotApprovedForMarketplace(MarketplaceError):
    """Raised when the marketplace may not transfer the asset on the owner's behalf."""

    def __init__(self, collection: str, asset_id: int) -> None:
        self.collection = collection
        self.asset_id = asset_id
        super().__init__(f'NotApprovedForMarketplace("{collection}", {asset_id})')


class PriceMustBeAboveZero(MarketplaceError):
    def __init__(self, price: int) -> None:
        self.price = price
        super().__init__(f"PriceMustBeAboveZero({price})")


class PriceNotMet(MarketplaceError):
    """Raised when a buyer's payment is strictly below the listing price."""

    def __init__(self, collection: str, asset_id: int, price: int, paid: int) -> None:
        self.collection = collection
        self.asset_id = asset_id
        self.price = price
        self.paid = paid
        super().__init__(
            f'PriceNotMet("{collection}", {asset_id}, {price}, {paid})'
        )


class NoProceeds(MarketplaceError):
    def __init__(self, owner: str) -> None:
        self.owner = owner
        super().__init__(f'NoProceeds("{owner}")')


class TransferFailed(MarketplaceError):
    """Raised when an external asset or fund transfer aborts an operation."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"TransferFailed: {reason}")

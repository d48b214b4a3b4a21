"""Asset Registry interface — the marketplace's view of an NFT contract.

The registry is the system of record for ownership and transfer approval.
The ledger treats it as authoritative and read-consistent for the duration
of one operation, and never assumes a transfer succeeds.

Two layers:

``AssetRegistry``
    What the ledger consumes: ownership, "is the marketplace approved for
    this asset", and transfer.
``TokenRegistry``
    The raw ERC-721-style surface an NFT contract exposes.
    ``MarketplaceRegistryAdapter`` turns one into an ``AssetRegistry`` by
    binding the marketplace's own operator address.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from nftmarket.models.principal import normalize_address

logger = logging.getLogger(__name__)


class AssetRegistryError(RuntimeError):
    """Base class for failures reported by an asset registry."""


class AssetNotFound(AssetRegistryError):
    """Raised when a collection/asset pair does not exist in the registry."""

    def __init__(self, collection: str, asset_id: int) -> None:
        self.collection = collection
        self.asset_id = asset_id
        super().__init__(f"Asset {collection}#{asset_id} does not exist")


class TransferRejected(AssetRegistryError):
    """Raised when the registry refuses a transfer."""


@runtime_checkable
class AssetRegistry(Protocol):
    """Ownership and transfer facts consumed by the Marketplace Ledger."""

    def owner_of(self, collection: str, asset_id: int) -> str: ...

    def is_approved_for_marketplace(self, collection: str, asset_id: int) -> bool: ...

    def transfer(
        self, collection: str, asset_id: int, from_address: str, to_address: str
    ) -> None: ...


@runtime_checkable
class TokenRegistry(Protocol):
    """Raw ERC-721-style registry surface."""

    def owner_of(self, collection: str, asset_id: int) -> str: ...

    def get_approved(self, collection: str, asset_id: int) -> str: ...

    def is_approved_for_all(self, collection: str, owner: str, operator: str) -> bool: ...

    def transfer_from(
        self,
        collection: str,
        asset_id: int,
        from_address: str,
        to_address: str,
        *,
        operator: str,
    ) -> None: ...


class MarketplaceRegistryAdapter:
    """Binds a ``TokenRegistry`` to the marketplace's operator address.

    Parameters
    ----------
    registry:
        The underlying token registry.
    marketplace_address:
        The address the marketplace acts as when approvals are checked and
        transfers are performed.
    """

    def __init__(self, registry: TokenRegistry, marketplace_address: str) -> None:
        self._registry = registry
        self._operator = normalize_address(marketplace_address)

    @property
    def marketplace_address(self) -> str:
        return self._operator

    def owner_of(self, collection: str, asset_id: int) -> str:
        return normalize_address(self._registry.owner_of(collection, asset_id))

    def is_approved_for_marketplace(self, collection: str, asset_id: int) -> bool:
        approved = self._registry.get_approved(collection, asset_id)
        if approved and normalize_address(approved) == self._operator:
            return True
        owner = self.owner_of(collection, asset_id)
        return self._registry.is_approved_for_all(collection, owner, self._operator)

    def transfer(
        self, collection: str, asset_id: int, from_address: str, to_address: str
    ) -> None:
        logger.debug(
            "Transferring %s#%d from %s to %s as %s.",
            collection, asset_id, from_address, to_address, self._operator,
        )
        self._registry.transfer_from(
            collection, asset_id, from_address, to_address, operator=self._operator
        )

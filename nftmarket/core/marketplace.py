"""Marketplace Ledger — fixed-price listings with approve-and-pull escrow.

The ledger records sale offers and seller proceeds.  It never takes
custody of an asset: the owner keeps it and grants the marketplace a
transfer approval in the asset registry; the marketplace pulls it to the
buyer at settlement.  Sellers pull their proceeds with a withdrawal.

Per-asset state machine::

    UNLISTED --list_item--> LISTED --cancel_listing / buy_item--> UNLISTED
    LISTED --update_listing--> LISTED

Every operation runs inside one ``StateStore`` transaction:

1. checks — each failure raises a named ``MarketplaceError`` and nothing
   has been written;
2. effects — listing/proceeds rows and the event are written;
3. interactions — the external asset transfer or fund release runs last,
   so a re-entrant call observes post-mutation state.  If it fails, the
   whole transaction rolls back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from nftmarket.bridge.asset_registry import AssetRegistry, AssetRegistryError
from nftmarket.bridge.funds import FundsGateway, FundsTransferError
from nftmarket.config import MarketConfig
from nftmarket.core.errors import (
    AlreadyListed,
    MarketplaceError,
    NoProceeds,
    NotApprovedForMarketplace,
    NotListed,
    NotOwner,
    PriceMustBeAboveZero,
    PriceNotMet,
    TransferFailed,
)
from nftmarket.core.event_log import EventLog, Subscriber
from nftmarket.core.state_store import RETAINED_OVERPAYMENTS, StateStore
from nftmarket.models.events import EventKind, MarketEvent
from nftmarket.models.listing import Listing, OverpaymentPolicy, ProceedsAccount
from nftmarket.models.principal import Principal, normalize_address

logger = logging.getLogger(__name__)


def _check_asset_id(asset_id: int) -> int:
    if isinstance(asset_id, bool) or not isinstance(asset_id, int) or asset_id < 0:
        raise ValueError(f"Asset id must be a non-negative integer, got {asset_id!r}")
    return asset_id


class MarketplaceLedger:
    """Listing Ledger and Proceeds Ledger over one state store.

    Parameters
    ----------
    registry:
        Authoritative source of ownership and approval; performs transfers.
    funds:
        Releases withdrawn proceeds to their owners.
    store:
        State store for listings, proceeds and events.  Defaults to a fresh
        in-memory store.
    overpayment_policy:
        How a payment above the listing price is settled.

    Examples
    --------
    >>> from nftmarket.bridge.funds import InMemoryFundsGateway
    >>> from nftmarket.bridge.memory_registry import InMemoryAssetRegistry
    >>> from nftmarket.bridge.asset_registry import MarketplaceRegistryAdapter
    >>> tokens = InMemoryAssetRegistry()
    >>> registry = MarketplaceRegistryAdapter(tokens, "0x" + "4d" * 20)
    >>> ledger = MarketplaceLedger(registry, InMemoryFundsGateway())
    >>> ledger.get_proceeds("0x" + "aa" * 20)
    0
    """

    def __init__(
        self,
        registry: AssetRegistry,
        funds: FundsGateway,
        store: StateStore | None = None,
        *,
        overpayment_policy: OverpaymentPolicy = OverpaymentPolicy.FORFEIT,
    ) -> None:
        self._registry = registry
        self._funds = funds
        self._store = store if store is not None else StateStore()
        self._events = EventLog(self._store)
        self._policy = OverpaymentPolicy(overpayment_policy)

    @classmethod
    def from_config(
        cls,
        config: MarketConfig,
        registry: AssetRegistry,
        funds: FundsGateway,
    ) -> MarketplaceLedger:
        """Build a ledger persisted at ``config.ledger_path``."""
        return cls(
            registry,
            funds,
            StateStore(config.ledger_path),
            overpayment_policy=config.overpayment_policy,
        )

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def event_log(self) -> EventLog:
        return self._events

    @property
    def overpayment_policy(self) -> OverpaymentPolicy:
        return self._policy

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Receive every event after its operation commits."""
        return self._events.subscribe(subscriber)

    # ------------------------------------------------------------------
    # Listing Ledger
    # ------------------------------------------------------------------

    def list_item(
        self, caller: Principal, collection: str, asset_id: int, price: int
    ) -> MarketEvent:
        """Offer an owned, marketplace-approved asset for sale at *price* wei."""
        collection = normalize_address(collection)
        _check_asset_id(asset_id)

        with self._store.transaction():
            self._require_owner(caller, collection, asset_id)
            if price <= 0:
                raise self._reject(PriceMustBeAboveZero(price))
            if self._store.get_listing(collection, asset_id) is not None:
                raise self._reject(AlreadyListed(collection, asset_id))
            if not self._registry.is_approved_for_marketplace(collection, asset_id):
                raise self._reject(NotApprovedForMarketplace(collection, asset_id))

            self._store.put_listing(
                Listing(
                    collection=collection,
                    asset_id=asset_id,
                    seller=caller.address,
                    price=price,
                )
            )
            event = self._events.append(
                MarketEvent(
                    kind=EventKind.ITEM_LISTED,
                    collection=collection,
                    asset_id=asset_id,
                    actor=caller.address,
                    price=price,
                )
            )

        logger.info("Listed %s#%d by %s at %d wei.", collection, asset_id, caller, price)
        return event

    def cancel_listing(
        self, caller: Principal, collection: str, asset_id: int
    ) -> MarketEvent:
        """Withdraw an active listing.  Only the asset's current owner may cancel."""
        collection = normalize_address(collection)
        _check_asset_id(asset_id)

        with self._store.transaction():
            self._require_listing(collection, asset_id)
            self._require_owner(caller, collection, asset_id)

            self._store.delete_listing(collection, asset_id)
            event = self._events.append(
                MarketEvent(
                    kind=EventKind.ITEM_CANCELED,
                    collection=collection,
                    asset_id=asset_id,
                    actor=caller.address,
                )
            )

        logger.info("Canceled listing %s#%d by %s.", collection, asset_id, caller)
        return event

    def update_listing(
        self, caller: Principal, collection: str, asset_id: int, new_price: int
    ) -> MarketEvent:
        """Change the price of an active listing; emits ``ItemListed`` again."""
        collection = normalize_address(collection)
        _check_asset_id(asset_id)

        with self._store.transaction():
            listing = self._require_listing(collection, asset_id)
            self._require_owner(caller, collection, asset_id)
            if new_price <= 0:
                raise self._reject(PriceMustBeAboveZero(new_price))

            self._store.put_listing(listing.model_copy(update={"price": new_price}))
            event = self._events.append(
                MarketEvent(
                    kind=EventKind.ITEM_LISTED,
                    collection=collection,
                    asset_id=asset_id,
                    actor=listing.seller,
                    price=new_price,
                )
            )

        logger.info(
            "Updated listing %s#%d from %d to %d wei.",
            collection, asset_id, listing.price, new_price,
        )
        return event

    def buy_item(
        self, caller: Principal, collection: str, asset_id: int, payment: int
    ) -> MarketEvent:
        """Settle a listing with *payment* wei attached.

        The listing is removed and proceeds credited before the asset moves
        from seller to buyer.  A rejected transfer rolls everything back and
        raises ``TransferFailed``.
        """
        collection = normalize_address(collection)
        _check_asset_id(asset_id)
        if payment < 0:
            raise ValueError(f"Payment cannot be negative: {payment}")

        with self._store.transaction():
            listing = self._require_listing(collection, asset_id)
            if payment < listing.price:
                raise self._reject(
                    PriceNotMet(collection, asset_id, listing.price, payment)
                )

            seller_credit, buyer_credit, retained = self._split_payment(
                listing.price, payment
            )
            self._store.delete_listing(collection, asset_id)
            self._store.credit(listing.seller, seller_credit)
            if buyer_credit:
                self._store.credit(caller.address, buyer_credit)
            if retained:
                self._store.add_to_counter(RETAINED_OVERPAYMENTS, retained)
            event = self._events.append(
                MarketEvent(
                    kind=EventKind.ITEM_BOUGHT,
                    collection=collection,
                    asset_id=asset_id,
                    actor=caller.address,
                    seller=listing.seller,
                    price=listing.price,
                    paid=payment,
                    seller_credit=seller_credit,
                    buyer_credit=buyer_credit,
                )
            )

            try:
                self._registry.transfer(
                    collection, asset_id, listing.seller, caller.address
                )
            except AssetRegistryError as exc:
                logger.exception(
                    "Transfer of %s#%d to %s failed; purchase rolled back.",
                    collection, asset_id, caller,
                )
                raise TransferFailed(
                    f"asset {collection}#{asset_id} could not be transferred "
                    f"from {listing.seller} to {caller.address}: {exc}"
                ) from exc

        logger.info(
            "Sold %s#%d from %s to %s for %d wei (paid %d).",
            collection, asset_id, listing.seller, caller, listing.price, payment,
        )
        return event

    def get_listing(self, collection: str, asset_id: int) -> Listing:
        """Return the active listing, or an empty one (price 0, no seller)."""
        collection = normalize_address(collection)
        _check_asset_id(asset_id)
        listing = self._store.get_listing(collection, asset_id)
        return listing if listing is not None else Listing.empty(collection, asset_id)

    def active_listings(self) -> list[Listing]:
        """Every active listing, ordered by (collection, asset_id)."""
        return self._store.all_listings()

    # ------------------------------------------------------------------
    # Proceeds Ledger
    # ------------------------------------------------------------------

    def get_proceeds(self, owner: str | Principal) -> int:
        address = owner.address if isinstance(owner, Principal) else normalize_address(owner)
        return self._store.get_balance(address)

    def proceeds_account(self, owner: str | Principal) -> ProceedsAccount:
        """The owner's withdrawable balance as a ``ProceedsAccount``."""
        address = owner.address if isinstance(owner, Principal) else normalize_address(owner)
        return self._store.get_account(address)

    def withdraw_proceeds(self, caller: Principal) -> int:
        """Release the caller's whole balance; returns the amount released.

        The balance is zeroed before funds are released.  If the release
        fails the balance is restored and ``TransferFailed`` is raised.
        """
        with self._store.transaction():
            amount = self._store.get_balance(caller.address)
            if amount <= 0:
                raise self._reject(NoProceeds(caller.address))

            self._store.set_balance(caller.address, 0)
            self._events.append(
                MarketEvent(
                    kind=EventKind.PROCEEDS_WITHDRAWN,
                    actor=caller.address,
                    price=amount,
                )
            )

            try:
                self._funds.release(caller.address, amount)
            except FundsTransferError as exc:
                logger.exception(
                    "Release of %d wei to %s failed; withdrawal rolled back.",
                    amount, caller,
                )
                raise TransferFailed(
                    f"{amount} wei could not be released to {caller.address}: {exc}"
                ) from exc

        logger.info("Withdrew %d wei of proceeds to %s.", amount, caller)
        return amount

    def retained_overpayments(self) -> int:
        """Total excess payment kept by the marketplace under ``FORFEIT``."""
        return self._store.get_counter(RETAINED_OVERPAYMENTS)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _split_payment(self, price: int, payment: int) -> tuple[int, int, int]:
        """Return (seller_credit, buyer_credit, retained) for a payment."""
        excess = payment - price
        if self._policy == OverpaymentPolicy.CREDIT_SELLER:
            return payment, 0, 0
        if self._policy == OverpaymentPolicy.REFUND_BUYER:
            return price, excess, 0
        return price, 0, excess

    def _require_listing(self, collection: str, asset_id: int) -> Listing:
        listing = self._store.get_listing(collection, asset_id)
        if listing is None:
            raise self._reject(NotListed(collection, asset_id))
        return listing

    def _require_owner(self, caller: Principal, collection: str, asset_id: int) -> None:
        owner = normalize_address(self._registry.owner_of(collection, asset_id))
        if owner != caller.address:
            raise self._reject(NotOwner(collection, asset_id, caller.address))

    @staticmethod
    def _reject(error: MarketplaceError) -> MarketplaceError:
        logger.warning("Rejected: %s", error)
        return error

"""Listing and proceeds models — the two pieces of ledger state."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nftmarket.models.principal import normalize_address


class ListingState(str, Enum):
    """Per-asset listing state."""

    UNLISTED = "unlisted"
    LISTED = "listed"


class OverpaymentPolicy(str, Enum):
    """What happens to the part of a payment above the listing price.

    - ``FORFEIT``: the seller receives exactly the price; the excess stays
      with the marketplace and is tracked as retained overpayment.
    - ``CREDIT_SELLER``: the seller receives the whole payment.
    - ``REFUND_BUYER``: the seller receives exactly the price; the excess is
      credited to the buyer's proceeds for withdrawal.
    """

    FORFEIT = "forfeit"
    CREDIT_SELLER = "credit_seller"
    REFUND_BUYER = "refund_buyer"


class Listing(BaseModel):
    """An offer to sell one asset at one price.

    An absent listing is represented by ``Listing.empty()``: ``price == 0``
    and ``seller is None``.  A stored listing always has a positive price.
    """

    model_config = ConfigDict(frozen=True)

    collection: str
    asset_id: int = Field(ge=0)
    seller: str | None = None
    price: int = Field(default=0, ge=0)

    @field_validator("collection")
    @classmethod
    def _check_collection(cls, value: str) -> str:
        return normalize_address(value)

    @field_validator("seller")
    @classmethod
    def _check_seller(cls, value: str | None) -> str | None:
        return normalize_address(value) if value is not None else None

    @classmethod
    def empty(cls, collection: str, asset_id: int) -> Listing:
        return cls(collection=collection, asset_id=asset_id)

    @property
    def state(self) -> ListingState:
        if self.price > 0 and self.seller is not None:
            return ListingState.LISTED
        return ListingState.UNLISTED

    @property
    def is_active(self) -> bool:
        return self.state == ListingState.LISTED


class ProceedsAccount(BaseModel):
    """A seller's withdrawable balance, in wei."""

    model_config = ConfigDict(frozen=True)

    owner: str
    balance: int = Field(default=0, ge=0)

    @field_validator("owner")
    @classmethod
    def _check_owner(cls, value: str) -> str:
        return normalize_address(value)

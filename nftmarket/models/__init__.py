"""nftmarket data models — all Pydantic v2, all frozen (immutable)."""

from nftmarket.models.events import EventKind, MarketEvent
from nftmarket.models.listing import (
    Listing,
    ListingState,
    OverpaymentPolicy,
    ProceedsAccount,
)
from nftmarket.models.principal import ZERO_ADDRESS, Principal, normalize_address

__all__ = [
    # principal
    "Principal",
    "ZERO_ADDRESS",
    "normalize_address",
    # listing
    "Listing",
    "ListingState",
    "OverpaymentPolicy",
    "ProceedsAccount",
    # events
    "EventKind",
    "MarketEvent",
]

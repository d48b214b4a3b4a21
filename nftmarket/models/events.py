"""Market event model (append-only, hash-chained).

Events are the notification surface for external indexers.  Each one
carries enough data to rebuild listing history and proceeds balances
without querying ledger state:

- ``ItemListed``: collection, asset_id, actor (seller), price
- ``ItemCanceled``: collection, asset_id, actor (seller)
- ``ItemBought``: collection, asset_id, actor (buyer), seller, price, paid,
  plus how the payment was split (``seller_credit``, ``buyer_credit``)
- ``ProceedsWithdrawn``: actor (withdrawer), price (amount released)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    ITEM_LISTED = "ItemListed"
    ITEM_CANCELED = "ItemCanceled"
    ITEM_BOUGHT = "ItemBought"
    PROCEEDS_WITHDRAWN = "ProceedsWithdrawn"


class MarketEvent(BaseModel):
    """A single sealed entry in the market event log.

    ``sequence``, ``previous_event_hash`` and ``event_hash`` are assigned
    by ``EventLog.append``; callers build events with the defaults.
    """

    model_config = ConfigDict(frozen=True)

    sequence: int = 0
    kind: EventKind
    collection: str = ""
    asset_id: int | None = None
    actor: str
    seller: str | None = None
    price: int = 0
    paid: int = 0
    seller_credit: int = 0
    buyer_credit: int = 0
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    previous_event_hash: str = ""
    event_hash: str = ""

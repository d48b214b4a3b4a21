"""MarketProjection — rebuilds marketplace state from the event log alone.

This is the indexer's view: it never reads the listings or proceeds
tables, only events.  Every call re-reads the log.  Comparing a
projection with the state store is how ``nftmarket verify`` proves the
events are complete.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from nftmarket.core.event_log import EventLog, EventLogIntegrityError
from nftmarket.core.state_store import RETAINED_OVERPAYMENTS, StateStore
from nftmarket.models.events import EventKind, MarketEvent
from nftmarket.models.listing import Listing


class MarketSnapshot(BaseModel):
    """A frozen, point-in-time view derived entirely from events."""

    model_config = ConfigDict(frozen=True)

    listings: list[Listing] = []
    balances: dict[str, int] = {}
    retained_overpayments: int = 0
    event_count: int = 0
    head_hash: str = ""
    chain_valid: bool = True
    chain_error: str | None = None
    taken_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_listed_value(self) -> int:
        return sum(l.price for l in self.listings)

    @property
    def total_proceeds(self) -> int:
        return sum(self.balances.values())


def replay(events: list[MarketEvent]) -> tuple[dict[tuple[str, int], Listing], dict[str, int], int]:
    """Fold events into (listings, balances, retained overpayments)."""
    listings: dict[tuple[str, int], Listing] = {}
    balances: dict[str, int] = {}
    retained = 0

    for event in events:
        key = (event.collection, event.asset_id)
        if event.kind == EventKind.ITEM_LISTED:
            listings[key] = Listing(
                collection=event.collection,
                asset_id=event.asset_id,
                seller=event.actor,
                price=event.price,
            )
        elif event.kind == EventKind.ITEM_CANCELED:
            listings.pop(key, None)
        elif event.kind == EventKind.ITEM_BOUGHT:
            listings.pop(key, None)
            balances[event.seller] = balances.get(event.seller, 0) + event.seller_credit
            if event.buyer_credit:
                balances[event.actor] = balances.get(event.actor, 0) + event.buyer_credit
            retained += event.paid - event.seller_credit - event.buyer_credit
        elif event.kind == EventKind.PROCEEDS_WITHDRAWN:
            balances[event.actor] = balances.get(event.actor, 0) - event.price

    return listings, balances, retained


class MarketProjection:
    """Pure read-only projection over the EventLog.

    Parameters
    ----------
    event_log:
        The log to project from.
    """

    def __init__(self, event_log: EventLog) -> None:
        self._log = event_log

    def snapshot(self) -> MarketSnapshot:
        events = self._log.events()
        chain_valid, chain_error = True, None
        try:
            self._log.verify_chain()
        except EventLogIntegrityError as exc:
            chain_valid, chain_error = False, str(exc)

        listings, balances, retained = replay(events)
        return MarketSnapshot(
            listings=sorted(listings.values(), key=lambda l: (l.collection, l.asset_id)),
            balances={owner: bal for owner, bal in balances.items() if bal},
            retained_overpayments=retained,
            event_count=len(events),
            head_hash=events[-1].event_hash if events else "",
            chain_valid=chain_valid,
            chain_error=chain_error,
        )

    def listing_history(self, collection: str, asset_id: int) -> list[MarketEvent]:
        """Every event that touched one asset, oldest first."""
        return self._log.events(collection=collection, asset_id=asset_id)

    def discrepancies(self, store: StateStore) -> list[str]:
        """Differences between the projected state and the stored state.

        An empty list means the events fully account for the store.
        """
        snapshot = self.snapshot()
        problems: list[str] = []

        projected = {(l.collection, l.asset_id): l for l in snapshot.listings}
        stored = {(l.collection, l.asset_id): l for l in store.all_listings()}
        for key in sorted(set(projected) | set(stored)):
            have, want = projected.get(key), stored.get(key)
            if have != want:
                problems.append(
                    f"listing {key[0]}#{key[1]}: events say {have!r}, store says {want!r}"
                )

        stored_balances = {o: b for o, b in store.all_balances().items() if b}
        for owner in sorted(set(snapshot.balances) | set(stored_balances)):
            have = snapshot.balances.get(owner, 0)
            want = stored_balances.get(owner, 0)
            if have != want:
                problems.append(
                    f"proceeds {owner}: events say {have}, store says {want}"
                )

        stored_retained = store.get_counter(RETAINED_OVERPAYMENTS)
        if snapshot.retained_overpayments != stored_retained:
            problems.append(
                f"retained overpayments: events say {snapshot.retained_overpayments}, "
                f"store says {stored_retained}"
            )
        return problems

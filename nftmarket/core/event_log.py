"""Append-only, hash-chained market event log.

The event log lives in the same SQLite database as the ledger state and
writes through the same ``StateStore`` transaction, so an event is
persisted if and only if the state change it describes is committed.

Design:
- Append-only: only ``append()`` writes; there is no update or delete.
- Hash-chained: each event includes the SHA-256 of the previous event.
- Subscribers are notified after the outermost commit, never for a
  rolled-back operation.
- ``event_hash`` UNIQUE constraint for tamper detection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from nftmarket.core.hasher import canonical_json_bytes, compute_event_hash, sha256_hex
from nftmarket.core.state_store import StateStore
from nftmarket.models.events import EventKind, MarketEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[MarketEvent], None]


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_EVENTS = """
CREATE TABLE IF NOT EXISTS market_events (
    sequence             INTEGER PRIMARY KEY,
    kind                 TEXT NOT NULL,
    collection           TEXT NOT NULL DEFAULT '',
    asset_id             TEXT,
    actor                TEXT NOT NULL,
    seller               TEXT,
    price                TEXT NOT NULL DEFAULT '0',
    paid                 TEXT NOT NULL DEFAULT '0',
    seller_credit        TEXT NOT NULL DEFAULT '0',
    buyer_credit         TEXT NOT NULL DEFAULT '0',
    timestamp_utc        TEXT NOT NULL,
    previous_event_hash  TEXT NOT NULL DEFAULT '',
    event_hash           TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_ASSET = """
CREATE INDEX IF NOT EXISTS idx_events_asset
ON market_events(collection, asset_id, sequence);
"""

_COLUMNS = (
    "sequence, kind, collection, asset_id, actor, seller, price, paid, "
    "seller_credit, buyer_credit, timestamp_utc, previous_event_hash, event_hash"
)


class EventLogIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class EventLog:
    """Append-only, hash-chained log of market events.

    Parameters
    ----------
    store:
        The state store whose database and transactions the log shares.
    """

    def __init__(self, store: StateStore) -> None:
        self._store = store
        self._subscribers: list[Subscriber] = []
        with store.transaction() as conn:
            conn.execute(_CREATE_EVENTS)
            conn.execute(_CREATE_IDX_ASSET)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns a function that unregisters it."""
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def _notify(self, event: MarketEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed on event #%d (%s).",
                    subscriber, event.sequence, event.kind.value,
                )

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, event: MarketEvent) -> MarketEvent:
        """Seal and persist an event inside the current store transaction.

        Returns the event with ``sequence``, ``previous_event_hash`` and
        ``event_hash`` set.  This is the ONLY write method.
        """
        with self._store.transaction() as conn:
            row = conn.execute(
                "SELECT sequence, event_hash FROM market_events "
                "ORDER BY sequence DESC LIMIT 1"
            ).fetchone()
            sequence, previous_hash = (row[0] + 1, row[1]) if row else (1, "")

            unsealed = event.model_copy(
                update={
                    "sequence": sequence,
                    "previous_event_hash": previous_hash,
                    "event_hash": "",
                }
            )
            sealed = unsealed.model_copy(
                update={
                    "event_hash": compute_event_hash(unsealed.model_dump(mode="json"))
                }
            )
            self._insert(conn, sealed)
            self._store.on_commit(lambda: self._notify(sealed))

        logger.debug("Appended %s event #%d.", sealed.kind.value, sealed.sequence)
        return sealed

    @staticmethod
    def _insert(conn: Any, event: MarketEvent) -> None:
        data = event.model_dump(mode="json")
        conn.execute(
            f"INSERT INTO market_events ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                event.sequence,
                event.kind.value,
                event.collection,
                str(event.asset_id) if event.asset_id is not None else None,
                event.actor,
                event.seller,
                str(event.price),
                str(event.paid),
                str(event.seller_credit),
                str(event.buyer_credit),
                data["timestamp_utc"],
                event.previous_event_hash,
                event.event_hash,
            ),
        )

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def events(
        self,
        *,
        collection: str | None = None,
        asset_id: int | None = None,
        kind: EventKind | None = None,
    ) -> list[MarketEvent]:
        """Return events in sequence order, optionally filtered."""
        clauses: list[str] = []
        params: list[Any] = []
        if collection is not None:
            clauses.append("collection = ?")
            params.append(collection)
        if asset_id is not None:
            clauses.append("asset_id = ?")
            params.append(str(asset_id))
        if kind is not None:
            clauses.append("kind = ?")
            params.append(kind.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._store.transaction() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM market_events {where} ORDER BY sequence ASC",
                params,
            ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def get_latest(self) -> MarketEvent | None:
        with self._store.transaction() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM market_events ORDER BY sequence DESC LIMIT 1"
            ).fetchone()
        return self._row_to_event(row) if row else None

    def __len__(self) -> int:
        with self._store.transaction() as conn:
            (count,) = conn.execute("SELECT COUNT(*) FROM market_events").fetchone()
        return count

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self) -> bool:
        """Verify the hash chain integrity of the whole log.

        Walks all events in order, recomputes each event_hash, and
        verifies that previous_event_hash links match.

        Returns True if the chain is valid, raises EventLogIntegrityError otherwise.
        """
        prev_hash = ""
        expected_sequence = 1
        for event in self.events():
            if event.sequence != expected_sequence:
                raise EventLogIntegrityError(
                    f"Gap in event log: expected sequence {expected_sequence}, "
                    f"got {event.sequence}"
                )
            if event.previous_event_hash != prev_hash:
                raise EventLogIntegrityError(
                    f"Chain broken at event #{event.sequence}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {event.previous_event_hash!r}"
                )

            expected_hash = compute_event_hash(event.model_dump(mode="json"))
            if event.event_hash != expected_hash:
                raise EventLogIntegrityError(
                    f"Tampered event #{event.sequence}: "
                    f"expected hash={expected_hash!r}, "
                    f"got {event.event_hash!r}"
                )

            prev_hash = event.event_hash
            expected_sequence += 1

        return True

    def export_anchor(self) -> dict[str, Any]:
        """Export a digest of the current chain head for external witnessing.

        Comparing a previously exported anchor against the live chain
        detects retroactive rewrites.
        """
        events = self.events()
        anchor: dict[str, Any] = {
            "event_count": len(events),
            "head_hash": events[-1].event_hash if events else "",
            "first_event_hash": events[0].event_hash if events else "",
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
        anchor["anchor_hash"] = sha256_hex(canonical_json_bytes(anchor)) if events else ""
        return anchor

    def verify_against_anchor(self, anchor: dict[str, Any]) -> bool:
        """Verify the current chain still extends a previously exported anchor."""
        events = self.events()
        expected_count = anchor.get("event_count", 0)
        if len(events) < expected_count:
            raise EventLogIntegrityError(
                f"Event log has {len(events)} events but anchor expects "
                f"at least {expected_count}."
            )
        if expected_count == 0:
            return True

        if events[0].event_hash != anchor.get("first_event_hash", ""):
            raise EventLogIntegrityError(
                "First event hash mismatch; the log may have been rewritten "
                "from the beginning."
            )
        if events[expected_count - 1].event_hash != anchor.get("head_hash", ""):
            raise EventLogIntegrityError(
                f"Head hash mismatch at event #{expected_count}; the log may "
                "have been retroactively modified."
            )

        self.verify_chain()
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_event(row: tuple) -> MarketEvent:
        """Convert a SQLite row tuple to a MarketEvent."""
        (
            sequence,
            kind,
            collection,
            asset_id,
            actor,
            seller,
            price,
            paid,
            seller_credit,
            buyer_credit,
            timestamp_utc,
            previous_event_hash,
            event_hash,
        ) = row
        return MarketEvent(
            sequence=sequence,
            kind=EventKind(kind),
            collection=collection,
            asset_id=int(asset_id) if asset_id is not None else None,
            actor=actor,
            seller=seller,
            price=int(price),
            paid=int(paid),
            seller_credit=int(seller_credit),
            buyer_credit=int(buyer_credit),
            timestamp_utc=timestamp_utc,
            previous_event_hash=previous_event_hash,
            event_hash=event_hash,
        )

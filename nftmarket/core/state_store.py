"""Explicit state store for the Marketplace Ledger, backed by SQLite.

The store owns the two pieces of ledger state (active listings and
proceeds balances) plus the retained-overpayment counter.  Nothing
outside ``MarketplaceLedger`` writes to it.

Design:
- One connection, guarded by a process-wide re-entrant lock.  Operations
  never interleave.
- ``transaction()`` opens ``BEGIN IMMEDIATE`` at the outermost level and a
  SAVEPOINT for every nested (re-entrant) level.  A nested level sees the
  outer level's uncommitted writes and rolls back on its own.
- Callbacks registered with ``on_commit()`` run only after the outermost
  commit and are dropped with a rolled-back level.
- Amounts and asset ids are stored as decimal TEXT: wei values overflow
  SQLite's 64-bit INTEGER.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from nftmarket.models.listing import Listing, ProceedsAccount

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_LISTINGS = """
CREATE TABLE IF NOT EXISTS listings (
    collection  TEXT NOT NULL,
    asset_id    TEXT NOT NULL,
    seller      TEXT NOT NULL,
    price       TEXT NOT NULL,
    PRIMARY KEY (collection, asset_id)
);
"""

_CREATE_PROCEEDS = """
CREATE TABLE IF NOT EXISTS proceeds (
    owner       TEXT PRIMARY KEY,
    balance     TEXT NOT NULL DEFAULT '0'
);
"""

_CREATE_COUNTERS = """
CREATE TABLE IF NOT EXISTS counters (
    name        TEXT PRIMARY KEY,
    value       TEXT NOT NULL DEFAULT '0'
);
"""

RETAINED_OVERPAYMENTS = "retained_overpayments"


class StateStore:
    """Atomic, serial-access store for listings and proceeds.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file, or ``":memory:"`` for a
        throwaway in-memory store.  Parent directories are created.
    """

    def __init__(self, db_path: Path | str = MEMORY) -> None:
        self._db_path = str(db_path)
        if self._db_path != MEMORY:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            self._db_path, check_same_thread=False, isolation_level=None
        )
        if self._db_path != MEMORY:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._lock = threading.RLock()
        self._depth = 0
        # One list of post-commit callbacks per open transaction level
        self._pending: list[list[Callable[[], None]]] = []
        with self.transaction() as conn:
            conn.execute(_CREATE_LISTINGS)
            conn.execute(_CREATE_PROCEEDS)
            conn.execute(_CREATE_COUNTERS)

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically; any exception rolls back the block's writes."""
        with self._lock:
            level = self._depth
            savepoint = f"sp_{level}"
            if level == 0:
                self._conn.execute("BEGIN IMMEDIATE")
            else:
                self._conn.execute(f"SAVEPOINT {savepoint}")
            self._depth += 1
            self._pending.append([])
            try:
                yield self._conn
            except BaseException:
                self._depth -= 1
                self._pending.pop()
                if level == 0:
                    self._conn.execute("ROLLBACK")
                else:
                    self._conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                    self._conn.execute(f"RELEASE SAVEPOINT {savepoint}")
                logger.debug("Rolled back transaction level %d.", level)
                raise

            self._depth -= 1
            callbacks = self._pending.pop()
            if level > 0:
                self._conn.execute(f"RELEASE SAVEPOINT {savepoint}")
                self._pending[-1].extend(callbacks)
                return

            self._conn.execute("COMMIT")
            for callback in callbacks:
                try:
                    callback()
                except Exception:
                    logger.exception("Post-commit callback %r failed.", callback)

    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run *callback* once the current outermost transaction commits."""
        with self._lock:
            if self._depth == 0:
                callback()
                return
            self._pending[-1].append(callback)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def get_listing(self, collection: str, asset_id: int) -> Listing | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT seller, price FROM listings WHERE collection = ? AND asset_id = ?",
                (collection, str(asset_id)),
            ).fetchone()
        if row is None:
            return None
        seller, price = row
        return Listing(
            collection=collection, asset_id=asset_id, seller=seller, price=int(price)
        )

    def put_listing(self, listing: Listing) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO listings (collection, asset_id, seller, price)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (collection, asset_id)
                DO UPDATE SET seller = excluded.seller, price = excluded.price
                """,
                (
                    listing.collection,
                    str(listing.asset_id),
                    listing.seller,
                    str(listing.price),
                ),
            )

    def delete_listing(self, collection: str, asset_id: int) -> None:
        with self.transaction() as conn:
            conn.execute(
                "DELETE FROM listings WHERE collection = ? AND asset_id = ?",
                (collection, str(asset_id)),
            )

    def all_listings(self) -> list[Listing]:
        """Every stored listing, ordered by (collection, asset_id)."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT collection, asset_id, seller, price FROM listings"
            ).fetchall()
        listings = [
            Listing(
                collection=collection,
                asset_id=int(asset_id),
                seller=seller,
                price=int(price),
            )
            for collection, asset_id, seller, price in rows
        ]
        return sorted(listings, key=lambda l: (l.collection, l.asset_id))

    # ------------------------------------------------------------------
    # Proceeds
    # ------------------------------------------------------------------

    def get_balance(self, owner: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT balance FROM proceeds WHERE owner = ?", (owner,)
            ).fetchone()
        return int(row[0]) if row else 0

    def get_account(self, owner: str) -> ProceedsAccount:
        return ProceedsAccount(owner=owner, balance=self.get_balance(owner))

    def set_balance(self, owner: str, balance: int) -> None:
        if balance < 0:
            raise ValueError(f"Balance for {owner} cannot be negative: {balance}")
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO proceeds (owner, balance) VALUES (?, ?)
                ON CONFLICT (owner) DO UPDATE SET balance = excluded.balance
                """,
                (owner, str(balance)),
            )

    def credit(self, owner: str, amount: int) -> int:
        """Add *amount* to *owner*'s balance; returns the new balance."""
        with self.transaction():
            balance = self.get_balance(owner) + amount
            self.set_balance(owner, balance)
        return balance

    def all_balances(self) -> dict[str, int]:
        with self._lock:
            rows = self._conn.execute("SELECT owner, balance FROM proceeds").fetchall()
        return {owner: int(balance) for owner, balance in rows}

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def get_counter(self, name: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM counters WHERE name = ?", (name,)
            ).fetchone()
        return int(row[0]) if row else 0

    def add_to_counter(self, name: str, amount: int) -> int:
        with self.transaction() as conn:
            value = self.get_counter(name) + amount
            conn.execute(
                """
                INSERT INTO counters (name, value) VALUES (?, ?)
                ON CONFLICT (name) DO UPDATE SET value = excluded.value
                """,
                (name, str(value)),
            )
        return value

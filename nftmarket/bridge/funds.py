"""Funds gateway — releases withdrawn proceeds to their owner.

The ledger calls ``release`` only after the caller's balance has been
zeroed.  Any exception from ``release`` aborts the withdrawal and the
balance is restored.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from nftmarket.models.principal import normalize_address

logger = logging.getLogger(__name__)


class FundsTransferError(RuntimeError):
    """Raised when funds cannot be released to a recipient."""


@runtime_checkable
class FundsGateway(Protocol):
    def release(self, to_address: str, amount: int) -> None: ...


class InMemoryFundsGateway:
    """External account balances held in memory.

    ``reject_releases`` makes every release fail, to exercise the
    withdrawal rollback path.
    """

    def __init__(self, *, reject_releases: bool = False) -> None:
        self._lock = threading.Lock()
        self._balances: dict[str, int] = {}
        self.reject_releases = reject_releases
        self.released_total = 0

    def fund(self, address: str, amount: int) -> None:
        address = normalize_address(address)
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + amount

    def balance_of(self, address: str) -> int:
        with self._lock:
            return self._balances.get(normalize_address(address), 0)

    def release(self, to_address: str, amount: int) -> None:
        if amount <= 0:
            raise FundsTransferError(f"Refusing to release non-positive amount {amount}")
        if self.reject_releases:
            raise FundsTransferError(f"Release of {amount} wei to {to_address} rejected")
        to_address = normalize_address(to_address)
        with self._lock:
            self._balances[to_address] = self._balances.get(to_address, 0) + amount
            self.released_total += amount
        logger.debug("Released %d wei to %s.", amount, to_address)

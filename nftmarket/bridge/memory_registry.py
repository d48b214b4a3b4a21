"""In-memory ERC-721-style token registry.

Stands in for the NFT contract in the demo and in tests.  Follows the
ERC-721 approval rules the marketplace relies on:

- one approved address per token, cleared on every transfer;
- per-owner "approved for all" operators;
- only the owner, the approved address or an approved-for-all operator
  may move a token.
"""

from __future__ import annotations

import logging
import threading

from nftmarket.bridge.asset_registry import AssetNotFound, TransferRejected
from nftmarket.models.principal import ZERO_ADDRESS, normalize_address

logger = logging.getLogger(__name__)


class InMemoryAssetRegistry:
    """Token ownership and approvals for any number of collections."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._owners: dict[tuple[str, int], str] = {}
        self._approvals: dict[tuple[str, int], str] = {}
        self._operators: dict[tuple[str, str], set[str]] = {}
        self._counters: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Minting & approvals
    # ------------------------------------------------------------------

    def mint(self, collection: str, to_address: str) -> int:
        """Mint the next token id of *collection* to *to_address*."""
        collection = normalize_address(collection)
        to_address = normalize_address(to_address)
        if to_address == ZERO_ADDRESS:
            raise TransferRejected("Cannot mint to the zero address")
        with self._lock:
            asset_id = self._counters.get(collection, 0)
            self._counters[collection] = asset_id + 1
            self._owners[(collection, asset_id)] = to_address
        logger.debug("Minted %s#%d to %s.", collection, asset_id, to_address)
        return asset_id

    def approve(
        self, caller: str, collection: str, asset_id: int, approved: str
    ) -> None:
        """Approve *approved* to move one token; the zero address clears it."""
        key = (normalize_address(collection), asset_id)
        caller = normalize_address(caller)
        with self._lock:
            owner = self._require_owner(key)
            if caller != owner and not self._is_operator(key[0], owner, caller):
                raise TransferRejected(
                    f"{caller} is not owner nor approved for all on {key[0]}#{asset_id}"
                )
            approved = normalize_address(approved)
            if approved == ZERO_ADDRESS:
                self._approvals.pop(key, None)
            else:
                self._approvals[key] = approved

    def set_approval_for_all(
        self, caller: str, collection: str, operator: str, approved: bool
    ) -> None:
        caller = normalize_address(caller)
        operator = normalize_address(operator)
        with self._lock:
            operators = self._operators.setdefault(
                (normalize_address(collection), caller), set()
            )
            if approved:
                operators.add(operator)
            else:
                operators.discard(operator)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def owner_of(self, collection: str, asset_id: int) -> str:
        with self._lock:
            return self._require_owner((normalize_address(collection), asset_id))

    def get_approved(self, collection: str, asset_id: int) -> str:
        key = (normalize_address(collection), asset_id)
        with self._lock:
            self._require_owner(key)
            return self._approvals.get(key, ZERO_ADDRESS)

    def is_approved_for_all(self, collection: str, owner: str, operator: str) -> bool:
        with self._lock:
            return self._is_operator(
                normalize_address(collection),
                normalize_address(owner),
                normalize_address(operator),
            )

    # ------------------------------------------------------------------
    # Transfer
    # ------------------------------------------------------------------

    def transfer_from(
        self,
        collection: str,
        asset_id: int,
        from_address: str,
        to_address: str,
        *,
        operator: str,
    ) -> None:
        key = (normalize_address(collection), asset_id)
        from_address = normalize_address(from_address)
        to_address = normalize_address(to_address)
        operator = normalize_address(operator)
        with self._lock:
            owner = self._require_owner(key)
            if owner != from_address:
                raise TransferRejected(
                    f"{from_address} does not own {key[0]}#{asset_id} (owner is {owner})"
                )
            if to_address == ZERO_ADDRESS:
                raise TransferRejected("Cannot transfer to the zero address")
            authorized = (
                operator == owner
                or self._approvals.get(key) == operator
                or self._is_operator(key[0], owner, operator)
            )
            if not authorized:
                raise TransferRejected(
                    f"{operator} is not approved to transfer {key[0]}#{asset_id}"
                )
            self._approvals.pop(key, None)
            self._owners[key] = to_address
        logger.debug(
            "Transferred %s#%d from %s to %s.", key[0], asset_id, from_address, to_address
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_owner(self, key: tuple[str, int]) -> str:
        owner = self._owners.get(key)
        if owner is None:
            raise AssetNotFound(*key)
        return owner

    def _is_operator(self, collection: str, owner: str, operator: str) -> bool:
        return operator in self._operators.get((collection, owner), set())

"""Adversarial tests: failed external transfers leave no partial state.

If the asset registry refuses a transfer, or the funds gateway refuses a
release, the whole operation must roll back: listings, proceeds, counters
and events all return to their pre-operation values.
"""

from __future__ import annotations

import pytest

from nftmarket.bridge.asset_registry import MarketplaceRegistryAdapter
from nftmarket.bridge.funds import InMemoryFundsGateway
from nftmarket.bridge.memory_registry import InMemoryAssetRegistry
from nftmarket.core.errors import TransferFailed
from nftmarket.core.marketplace import MarketplaceLedger
from nftmarket.core.state_store import StateStore
from nftmarket.models.events import MarketEvent
from nftmarket.models.principal import Principal


class TestFailedAssetTransfer:
    def test_owner_moved_asset_away_after_listing(
        self, ledger: MarketplaceLedger, tokens: InMemoryAssetRegistry,
        deployer: Principal, user: Principal, stranger: Principal,
        collection: str, price: int, token_id: int,
    ):
        ledger.list_item(deployer, collection, token_id, price + 1)
        # Seller moves the token outside the marketplace; the listing is stale
        tokens.transfer_from(
            collection, token_id, deployer.address, stranger.address,
            operator=deployer.address,
        )
        events_before = len(ledger.event_log)
        received: list[MarketEvent] = []
        ledger.subscribe(received.append)

        with pytest.raises(TransferFailed):
            ledger.buy_item(user, collection, token_id, price + 5)

        assert ledger.get_listing(collection, token_id).price == price + 1
        assert ledger.get_proceeds(deployer) == 0
        assert ledger.retained_overpayments() == 0
        assert len(ledger.event_log) == events_before
        assert received == []
        assert tokens.owner_of(collection, token_id) == stranger.address

    def test_approval_revoked_after_listing(
        self, ledger: MarketplaceLedger, tokens: InMemoryAssetRegistry,
        deployer: Principal, user: Principal, collection: str, price: int, token_id: int,
    ):
        ledger.list_item(deployer, collection, token_id, price)
        tokens.approve(deployer.address, collection, token_id, "0x" + "00" * 20)

        with pytest.raises(TransferFailed) as exc_info:
            ledger.buy_item(user, collection, token_id, price)

        assert exc_info.value.__cause__ is not None
        assert ledger.get_listing(collection, token_id).is_active
        assert tokens.owner_of(collection, token_id) == deployer.address

    def test_new_owner_may_cancel_stale_listing(
        self, ledger: MarketplaceLedger, tokens: InMemoryAssetRegistry,
        deployer: Principal, stranger: Principal, collection: str, price: int, token_id: int,
    ):
        ledger.list_item(deployer, collection, token_id, price)
        tokens.transfer_from(
            collection, token_id, deployer.address, stranger.address,
            operator=deployer.address,
        )
        ledger.cancel_listing(stranger, collection, token_id)
        assert not ledger.get_listing(collection, token_id).is_active


class TestFailedFundsRelease:
    def test_balance_restored(
        self, registry: MarketplaceRegistryAdapter, store: StateStore,
        deployer: Principal, user: Principal, collection: str, price: int, token_id: int,
    ):
        funds = InMemoryFundsGateway()
        ledger = MarketplaceLedger(registry, funds, store)
        ledger.list_item(deployer, collection, token_id, price)
        ledger.buy_item(user, collection, token_id, price)
        events_before = len(ledger.event_log)

        funds.reject_releases = True
        with pytest.raises(TransferFailed):
            ledger.withdraw_proceeds(deployer)

        assert ledger.get_proceeds(deployer) == price
        assert len(ledger.event_log) == events_before
        assert funds.balance_of(deployer.address) == 0

        funds.reject_releases = False
        assert ledger.withdraw_proceeds(deployer) == price
        assert funds.balance_of(deployer.address) == price
